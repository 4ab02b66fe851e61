"""
Celery application configuration.

Instantiates and configures the Celery app used by both the
worker process and the FastAPI application (for
``task.apply_async()`` calls).

Usage - start a worker::

    celery -A newsbias.workers.celery_app worker --loglevel=info
"""

from __future__ import annotations

from celery import Celery

from newsbias.core.config import get_settings
from newsbias.logging_config import setup_logging

settings = get_settings()
setup_logging(
    level=settings.LOG_LEVEL,
    json_format=not settings.DEBUG,
)

celery_app = Celery(
    "newsbias-worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["newsbias.workers.analysis_task"],
)

celery_app.conf.update(
    # Serialisation
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Reliability
    task_track_started=True,
    task_time_limit=settings.TASK_TIME_LIMIT,
    task_soft_time_limit=settings.TASK_SOFT_TIME_LIMIT,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    # Results
    result_expires=settings.TASK_RESULT_TTL,
    # Retry policy for broker connection
    broker_connection_retry_on_startup=True,
)
