"""
Durable task store in the shared Redis.

Maps an opaque task identifier to its analysis outcome.  Unlike
the response cache, every operation here is required for
correctness, so a Redis failure is raised as
``StoreUnavailableError`` instead of being degraded.

**Keyspace**

=================  =============================================
``task:<id>``      terminal outcome: analysis dict, or
                   ``{"error": true, "message": ...}``
``job:<id>``       queue marker written on enqueue
``jobs:failed``    most recent failed jobs, newest first
=================  =============================================

Outcomes and markers expire after ``TASK_RESULT_TTL`` (24 h) when
nobody polls for them.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import redis

from newsbias.core.config import get_settings
from newsbias.core.constants import (
    REDIS_KEY_FAILED_JOBS,
    REDIS_PREFIX_JOB,
    REDIS_PREFIX_TASK_RESULT,
    STATUS_ACTIVE,
    STATUS_QUEUED,
)
from newsbias.core.exceptions import StoreUnavailableError
from newsbias.core.redis import get_redis_client, load_json, store_json

logger = logging.getLogger(__name__)


def _result_key(task_id: str) -> str:
    return f"{REDIS_PREFIX_TASK_RESULT}{task_id}"


def _job_key(task_id: str) -> str:
    return f"{REDIS_PREFIX_JOB}{task_id}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TaskStore:
    """Read / write task outcomes and queue markers."""

    def __init__(self, client: redis.Redis | None = None) -> None:
        self._client = client

    def _conn(self) -> redis.Redis:
        return self._client if self._client is not None else get_redis_client()

    def _release(self, conn: redis.Redis) -> None:
        if conn is not self._client:
            conn.close()

    # ── Queue markers ───────────────────────────────────────

    def mark_queued(self, task_id: str, content_length: int) -> None:
        """Record that a job for *task_id* was handed to the queue."""
        self._write_marker(
            task_id,
            {
                "task_id": task_id,
                "state": STATUS_QUEUED,
                "content_length": content_length,
                "created_at": _now_iso(),
            },
        )

    def mark_active(self, task_id: str, attempt: int) -> None:
        """Record that a worker picked the job up."""
        marker = self.get_marker(task_id) or {"task_id": task_id}
        marker.update(
            state=STATUS_ACTIVE,
            attempt=attempt,
            started_at=_now_iso(),
        )
        self._write_marker(task_id, marker)

    def get_marker(self, task_id: str) -> dict[str, Any] | None:
        """Return the queue marker, or ``None`` if the job is unknown."""
        conn = self._conn()
        try:
            return load_json(conn.get(_job_key(task_id)))
        except redis.RedisError as exc:
            raise StoreUnavailableError(
                f"Failed to read job marker: {exc}"
            ) from exc
        finally:
            self._release(conn)

    def delete_marker(self, task_id: str) -> None:
        """Forget the queue marker for *task_id*."""
        conn = self._conn()
        try:
            conn.delete(_job_key(task_id))
        except redis.RedisError as exc:
            raise StoreUnavailableError(
                f"Failed to delete job marker: {exc}"
            ) from exc
        finally:
            self._release(conn)

    def _write_marker(self, task_id: str, marker: dict[str, Any]) -> None:
        conn = self._conn()
        try:
            store_json(conn, _job_key(task_id), marker, get_settings().TASK_RESULT_TTL)
        except redis.RedisError as exc:
            raise StoreUnavailableError(
                f"Failed to write job marker: {exc}"
            ) from exc
        finally:
            self._release(conn)

    # ── Terminal outcomes ───────────────────────────────────

    def save_result(self, task_id: str, result: dict[str, Any]) -> None:
        """Persist a successful analysis for *task_id*."""
        self._write_outcome(task_id, result)
        logger.info("Stored analysis result for task %s", task_id)

    def save_failure(self, task_id: str, message: str) -> None:
        """Persist a terminal failure so pollers see a deterministic end."""
        self._write_outcome(task_id, {"error": True, "message": message})
        logger.info("Stored failure for task %s", task_id)

    def _write_outcome(self, task_id: str, payload: dict[str, Any]) -> None:
        conn = self._conn()
        try:
            store_json(conn, _result_key(task_id), payload, get_settings().TASK_RESULT_TTL)
        except redis.RedisError as exc:
            logger.error("Failed to persist outcome for task %s: %s", task_id, exc)
            raise StoreUnavailableError(
                f"Failed to persist task outcome: {exc}"
            ) from exc
        finally:
            self._release(conn)

    def peek_outcome(self, task_id: str) -> dict[str, Any] | None:
        """Return the stored outcome without consuming it."""
        conn = self._conn()
        try:
            return load_json(conn.get(_result_key(task_id)))
        except redis.RedisError as exc:
            raise StoreUnavailableError(
                f"Failed to read task outcome: {exc}"
            ) from exc
        finally:
            self._release(conn)

    def consume_outcome(self, task_id: str) -> dict[str, Any] | None:
        """Atomically read and delete the outcome for *task_id*.

        ``GETDEL`` guarantees single delivery even when two polls
        race: exactly one of them receives the payload.  The queue
        marker is dropped alongside so later polls report
        ``not_found``.
        """
        conn = self._conn()
        try:
            outcome = load_json(conn.getdel(_result_key(task_id)))
            if outcome is not None:
                conn.delete(_job_key(task_id))
            return outcome
        except redis.RedisError as exc:
            raise StoreUnavailableError(
                f"Failed to read task outcome: {exc}"
            ) from exc
        finally:
            self._release(conn)

    # ── Failed-job diagnostics ──────────────────────────────

    def record_failed_job(
        self,
        task_id: str,
        message: str,
        attempts: int,
    ) -> None:
        """Push a failed job onto the bounded diagnostics list.

        Only the newest ``FAILED_JOBS_RETAINED`` entries are kept.
        """
        settings = get_settings()
        entry = json.dumps(
            {
                "task_id": task_id,
                "message": message,
                "attempts": attempts,
                "failed_at": _now_iso(),
            }
        )
        conn = self._conn()
        try:
            pipe = conn.pipeline(transaction=True)
            pipe.lpush(REDIS_KEY_FAILED_JOBS, entry)
            pipe.ltrim(REDIS_KEY_FAILED_JOBS, 0, settings.FAILED_JOBS_RETAINED - 1)
            pipe.execute()
        except redis.RedisError as exc:
            raise StoreUnavailableError(
                f"Failed to record failed job: {exc}"
            ) from exc
        finally:
            self._release(conn)

    def recent_failures(self, limit: int = 20) -> list[dict[str, Any]]:
        """Return up to *limit* of the most recent failed jobs."""
        conn = self._conn()
        try:
            raw = conn.lrange(REDIS_KEY_FAILED_JOBS, 0, limit - 1)
        except redis.RedisError as exc:
            raise StoreUnavailableError(
                f"Failed to read failed jobs: {exc}"
            ) from exc
        finally:
            self._release(conn)
        return [load_json(item) for item in raw]
