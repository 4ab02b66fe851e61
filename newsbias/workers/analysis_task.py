"""Article analysis Celery task."""

from __future__ import annotations

import logging
import time
from typing import Any

from celery.exceptions import Retry, SoftTimeLimitExceeded

from newsbias.core.config import get_settings
from newsbias.core.metrics import record_task_completed
from newsbias.services.analyzer import analyze_article
from newsbias.services.task_store import TaskStore
from newsbias.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

_settings = get_settings()


def _retry_countdown(retries: int) -> int:
    """Seconds to wait before queue-level attempt ``retries + 2``."""
    return get_settings().QUEUE_BACKOFF_BASE * 2**retries


def _record_final_failure(
    store: TaskStore,
    task_id: str,
    message: str,
    attempt: int,
    elapsed_s: float,
) -> None:
    record_task_completed(success=False, duration_s=elapsed_s)
    store.save_failure(task_id, message)
    store.record_failed_job(task_id, message, attempt)


@celery_app.task(
    bind=True,
    name="tasks.analyze_article",
    max_retries=_settings.QUEUE_MAX_ATTEMPTS - 1,
)
def analyze_article_task(
    self,
    task_id: str,
    content: str,
) -> dict[str, Any]:
    """Run the bias analysis for one submitted article.

    The adapter already retries the model call; this task adds a
    second, coarser layer with exponential countdowns (5 s, 10 s).
    Only the final failure writes a failure record, so a poller
    never sees ``failed`` while a retry is still pending.  Hitting
    the soft time limit is always final.

    Args:
        task_id: Opaque identifier returned to the client.  Also
            used as the Celery task id.
        content: Validated article text.

    Returns:
        The analysis dict that was written to the task store.
    """
    store = TaskStore()
    attempt = self.request.retries + 1
    start_s = time.monotonic()
    try:
        store.mark_active(task_id, attempt)
        result = analyze_article(content)
        store.save_result(task_id, result)
        record_task_completed(
            success=True,
            duration_s=time.monotonic() - start_s,
        )
        logger.info(
            "Analysis task %s completed on attempt %d",
            task_id,
            attempt,
        )
        return result

    except Retry:
        raise

    except SoftTimeLimitExceeded:
        logger.error(
            "Analysis task %s hit the soft time limit (attempt %d)",
            task_id,
            attempt,
        )
        _record_final_failure(
            store,
            task_id,
            "Analysis timed out",
            attempt,
            time.monotonic() - start_s,
        )
        raise

    except Exception as exc:
        elapsed_s = time.monotonic() - start_s
        logger.exception(
            "Analysis task %s failed (attempt %d/%d): %s",
            task_id,
            attempt,
            self.max_retries + 1,
            exc,
        )
        if self.request.retries >= self.max_retries:
            _record_final_failure(store, task_id, str(exc), attempt, elapsed_s)
            raise

        raise self.retry(
            exc=exc,
            countdown=_retry_countdown(self.request.retries),
        ) from exc
