"""
Submission and polling for asynchronous analysis jobs.

``add_analysis_job`` hands work to the Celery queue under the
caller's task identifier; ``get_analysis_status`` implements the
polling protocol:

* a terminal outcome in the task store is consumed exactly once
  (``completed`` / ``failed``) and the queue marker and Celery
  metadata are dropped with it;
* without an outcome, an unknown marker means ``not_found``;
* otherwise the live Celery state decides ``queued`` or
  ``active``.
"""

from __future__ import annotations

import logging
from typing import Any

from celery import states
from celery.result import AsyncResult

from newsbias.core.exceptions import QueueError, StoreUnavailableError
from newsbias.core.metrics import record_task_submitted
from newsbias.schemas import AnalysisStatus, AnalysisStatusResponse
from newsbias.services.task_store import TaskStore
from newsbias.workers.analysis_task import analyze_article_task
from newsbias.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


def add_analysis_job(task_id: str, content: str) -> None:
    """Enqueue an analysis of *content* under *task_id*.

    Args:
        task_id: Freshly generated opaque identifier.
        content: Validated article text.

    Raises:
        StoreUnavailableError: If the queue marker could not be
            written.
        QueueError: If the broker message could not be published.
            The marker is removed again first.
    """
    store = TaskStore()
    store.mark_queued(task_id, len(content))
    try:
        analyze_article_task.apply_async(
            kwargs={"task_id": task_id, "content": content},
            task_id=task_id,
        )
    except Exception as exc:
        logger.error("Failed to queue analysis %s: %s", task_id, exc)
        try:
            store.delete_marker(task_id)
        except StoreUnavailableError:
            logger.warning("Could not drop marker for unqueued task %s", task_id)
        raise QueueError(f"Failed to queue analysis: {exc}") from exc

    record_task_submitted()
    logger.info(
        "Queued analysis task %s (%d chars)",
        task_id,
        len(content),
    )


def _map_live_state(celery_state: str, marker: Any) -> AnalysisStatus:
    if celery_state == states.STARTED:
        return AnalysisStatus.ACTIVE
    if celery_state == states.RETRY:
        return AnalysisStatus.QUEUED
    if isinstance(marker, dict) and marker.get("state") == AnalysisStatus.ACTIVE:
        return AnalysisStatus.ACTIVE
    return AnalysisStatus.QUEUED


def _forget(result: AsyncResult) -> None:
    """Drop Celery metadata for a delivered task; best effort."""
    try:
        result.forget()
    except Exception:
        logger.warning(
            "Failed to forget Celery result for task %s",
            result.id,
            exc_info=True,
        )


def _failure_message(outcome: Any) -> str:
    if isinstance(outcome, dict) and outcome.get("message"):
        return str(outcome["message"])
    return "Analysis failed"


def get_analysis_status(task_id: str) -> AnalysisStatusResponse:
    """Report the state of *task_id*, delivering a result at most once.

    Args:
        task_id: Identifier previously returned by submission.

    Returns:
        The client-facing status, with ``result`` for
        ``completed`` and ``error`` for ``failed``.

    Raises:
        StoreUnavailableError: If the task store is unreachable.
    """
    store = TaskStore()
    outcome = store.consume_outcome(task_id)

    if outcome is not None:
        _forget(AsyncResult(task_id, app=celery_app))
        if not isinstance(outcome, dict) or outcome.get("error"):
            logger.info("Delivered failure for task %s", task_id)
            return AnalysisStatusResponse(
                status=AnalysisStatus.FAILED,
                error=_failure_message(outcome),
            )
        logger.info("Delivered result for task %s", task_id)
        return AnalysisStatusResponse(
            status=AnalysisStatus.COMPLETED,
            result=outcome,
        )

    marker = store.get_marker(task_id)
    if marker is None:
        return AnalysisStatusResponse(status=AnalysisStatus.NOT_FOUND)

    live = AsyncResult(task_id, app=celery_app)
    celery_state = live.state
    if celery_state == states.FAILURE:
        # The worker could not persist its failure record.
        store.delete_marker(task_id)
        _forget(live)
        return AnalysisStatusResponse(
            status=AnalysisStatus.FAILED,
            error=str(live.info) or "Analysis failed",
        )
    status = _map_live_state(celery_state, marker)
    logger.debug(
        "Task %s is %s (celery state %s)",
        task_id,
        status,
        celery_state,
    )
    return AnalysisStatusResponse(status=status)
