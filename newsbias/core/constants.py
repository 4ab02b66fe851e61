"""
Centralised constants used across the application.

Keeping magic strings in one place makes it easy to rename keys,
avoids silent typos, and keeps ``grep`` useful when debugging.
"""

from __future__ import annotations

# ── Redis key prefixes ──────────────────────────────────────────────────────
# Every Redis key written by the application starts with one of
# these prefixes so the keyspace stays organised and collisions
# are impossible.

REDIS_PREFIX_SEARCH_CACHE: str = "search:"
"""Prefix for cached news-search payloads (keyed by query)."""

REDIS_PREFIX_PARSE_CACHE: str = "parse:"
"""Prefix for cached article text (keyed by URL)."""

REDIS_PREFIX_TASK_RESULT: str = "task:"
"""Prefix for terminal analysis outcomes (success or error)."""

REDIS_PREFIX_JOB: str = "job:"
"""Prefix for queue markers written when a job is enqueued."""

REDIS_KEY_FAILED_JOBS: str = "jobs:failed"
"""Bounded list of recently failed jobs kept for diagnostics."""

REDIS_PREFIX_RATE_LIMIT: str = "ratelimit:"
"""Prefix for per-tier, per-client rate-limit counters."""

REDIS_PREFIX_METRICS: str = "metrics:"
"""Prefix for atomic metric counters."""

REDIS_KEY_HEALTH_CHECK: str = "health-check"
"""Key read by the detailed health endpoint to probe Redis."""


# ── Task / result status strings ────────────────────────────────────────────
# Values of the ``status`` field returned to clients.

STATUS_SUCCESS: str = "success"
"""Response status for successful synchronous calls."""

STATUS_ERROR: str = "error"
"""Response status used by every error body."""

STATUS_QUEUED: str = "queued"
"""Job is waiting in the queue (or waiting for a retry)."""

STATUS_ACTIVE: str = "active"
"""Job is currently being executed by a worker."""

STATUS_COMPLETED: str = "completed"
"""Analysis finished and the result is being delivered."""

STATUS_FAILED: str = "failed"
"""Analysis exhausted all attempts."""

STATUS_NOT_FOUND: str = "not_found"
"""Unknown, expired, or already-delivered task identifier."""
