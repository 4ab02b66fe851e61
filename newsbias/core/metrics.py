"""
Prometheus metrics with Redis-backed cross-process counters.

FastAPI and Celery workers run in separate containers, so
in-process ``prometheus_client`` counters cannot be shared.
This module keeps Redis as the cross-process backing store
and exposes an ``AnalysisCollector`` custom Collector that
bridges Redis values into proper Prometheus metric families.

Usage:
    Call the ``record_*`` helpers from any process.  On the
    FastAPI side the ``/metrics`` endpoint calls
    ``generate_latest(REGISTRY)`` which invokes the custom
    collector automatically.
"""

from __future__ import annotations

import logging

from prometheus_client import (
    CollectorRegistry,
    generate_latest,
)
from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
)

from newsbias.core.constants import REDIS_PREFIX_METRICS
from newsbias.core.redis import get_redis_client

logger = logging.getLogger(__name__)

_SUBMITTED_KEY = f"{REDIS_PREFIX_METRICS}tasks_submitted_total"
_SUCCEEDED_KEY = f"{REDIS_PREFIX_METRICS}tasks_succeeded_total"
_FAILED_KEY = f"{REDIS_PREFIX_METRICS}tasks_failed_total"
_DURATION_KEY = f"{REDIS_PREFIX_METRICS}task_duration_seconds_sum"
_CACHE_HIT_KEY = f"{REDIS_PREFIX_METRICS}cache_hits_total"
_CACHE_MISS_KEY = f"{REDIS_PREFIX_METRICS}cache_misses_total"
_RATE_LIMITED_KEY = f"{REDIS_PREFIX_METRICS}rate_limited_total"


def _incr(key: str, label: str) -> None:
    try:
        client = get_redis_client()
        try:
            client.incr(key)
        finally:
            client.close()
    except Exception:
        logger.warning(
            "Failed to record %s metric",
            label,
            exc_info=True,
        )


# ── Record helpers (called from any process) ────────────────


def record_task_submitted() -> None:
    """Increment the submitted-task counter in Redis."""
    _incr(_SUBMITTED_KEY, "task_submitted")


def record_task_completed(
    *,
    success: bool,
    duration_s: float,
) -> None:
    """Record a task completion event in Redis.

    Args:
        success: ``True`` if the task succeeded.
        duration_s: Wall-clock duration in seconds.
    """
    try:
        client = get_redis_client()
        try:
            key = _SUCCEEDED_KEY if success else _FAILED_KEY
            client.incr(key)
            client.incrbyfloat(_DURATION_KEY, duration_s)
        finally:
            client.close()
    except Exception:
        logger.warning(
            "Failed to record task_completed metric",
            exc_info=True,
        )


def record_cache_hit() -> None:
    """Increment the response-cache hit counter in Redis."""
    _incr(_CACHE_HIT_KEY, "cache_hit")


def record_cache_miss() -> None:
    """Increment the response-cache miss counter in Redis."""
    _incr(_CACHE_MISS_KEY, "cache_miss")


def record_rate_limited() -> None:
    """Increment the rejected-by-rate-limit counter in Redis."""
    _incr(_RATE_LIMITED_KEY, "rate_limited")


# ── Prometheus custom collector ─────────────────────────────


class AnalysisCollector:
    """Read task, cache and rate-limit metrics from Redis on each scrape."""

    def collect(self):
        """Yield Prometheus metric families from Redis."""
        submitted = 0
        succeeded = 0
        failed = 0
        duration = 0.0
        cache_hits = 0
        cache_misses = 0
        rate_limited = 0

        try:
            client = get_redis_client()
            try:
                vals = client.mget(
                    _SUBMITTED_KEY,
                    _SUCCEEDED_KEY,
                    _FAILED_KEY,
                    _DURATION_KEY,
                    _CACHE_HIT_KEY,
                    _CACHE_MISS_KEY,
                    _RATE_LIMITED_KEY,
                )
            finally:
                client.close()
            submitted = int(vals[0] or 0)
            succeeded = int(vals[1] or 0)
            failed = int(vals[2] or 0)
            duration = float(vals[3] or 0)
            cache_hits = int(vals[4] or 0)
            cache_misses = int(vals[5] or 0)
            rate_limited = int(vals[6] or 0)
        except Exception:
            logger.warning(
                "Failed to read metrics from Redis",
                exc_info=True,
            )

        c_sub = CounterMetricFamily(
            "newsbias_tasks_submitted",
            "Total analysis tasks submitted.",
        )
        c_sub.add_metric([], submitted)
        yield c_sub

        c_ok = CounterMetricFamily(
            "newsbias_tasks_succeeded",
            "Total analysis tasks that succeeded.",
        )
        c_ok.add_metric([], succeeded)
        yield c_ok

        c_fail = CounterMetricFamily(
            "newsbias_tasks_failed",
            "Total analysis tasks that exhausted all attempts.",
        )
        c_fail.add_metric([], failed)
        yield c_fail

        g_dur = GaugeMetricFamily(
            "newsbias_task_duration_seconds_sum",
            "Cumulative task processing time in seconds.",
        )
        g_dur.add_metric([], duration)
        yield g_dur

        c_hits = CounterMetricFamily(
            "newsbias_cache_hits",
            "Total search / parse cache hits.",
        )
        c_hits.add_metric([], cache_hits)
        yield c_hits

        c_miss = CounterMetricFamily(
            "newsbias_cache_misses",
            "Total search / parse cache misses.",
        )
        c_miss.add_metric([], cache_misses)
        yield c_miss

        c_limited = CounterMetricFamily(
            "newsbias_rate_limited",
            "Total requests rejected by a rate-limit tier.",
        )
        c_limited.add_metric([], rate_limited)
        yield c_limited


# ── Shared registry ─────────────────────────────────────────

#: Dedicated registry so the collector never clashes with
#: anything registered on the default registry.
REGISTRY = CollectorRegistry()
REGISTRY.register(AnalysisCollector())


def generate_metrics() -> bytes:
    """Render Prometheus exposition format for app metrics.

    Returns:
        UTF-8 bytes ready to be served on ``/metrics``.
    """
    return generate_latest(REGISTRY)
