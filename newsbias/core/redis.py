"""
Redis connection management.

Provides a shared ``ConnectionPool``, a convenience factory
for ``redis.Redis`` clients, and small JSON helpers that give
the rest of the application get / set-with-expiry / delete
semantics over the shared store.  FastAPI-specific dependency
injection (``Depends(get_redis)``) lives in
``newsbias.api.deps``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis

from newsbias.core.config import get_settings

logger = logging.getLogger(__name__)

# ── Global Redis connection pool ────────────────────────

_redis_pool: redis.ConnectionPool | None = None


def get_redis_pool() -> redis.ConnectionPool:
    """Return a module-level Redis ``ConnectionPool``.

    Reusing a single pool avoids the overhead of creating
    and tearing down connections per request.

    Returns:
        A shared ``ConnectionPool`` instance.
    """
    global _redis_pool
    if _redis_pool is None:
        settings = get_settings()
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


def get_redis_client() -> redis.Redis:
    """Return a Redis client for non-dependency use.

    Used by Celery tasks and services that cannot rely on
    FastAPI ``Depends()``.  The caller is responsible for
    calling ``client.close()`` when finished.

    Returns:
        A ``redis.Redis`` instance on the shared pool.
    """
    return redis.Redis(connection_pool=get_redis_pool())


# ── JSON helpers ────────────────────────────────────────


def store_json(
    client: redis.Redis,
    key: str,
    value: Any,
    ttl: int | None = None,
) -> None:
    """Serialise *value* to JSON and write it under *key*.

    Args:
        client: Redis client to write through.
        key: Full Redis key.
        value: Any JSON-serialisable value.
        ttl: Optional expiry in seconds.  Overwrites any
            prior value and TTL for the key.
    """
    payload = json.dumps(value)
    if ttl:
        client.set(key, payload, ex=ttl)
    else:
        client.set(key, payload)


def load_json(raw: str | None) -> Any | None:
    """Decode a value written by :func:`store_json`.

    Values that are not valid JSON are returned unchanged so
    that keys written by other tools remain readable.

    Args:
        raw: Raw string returned by ``GET`` (or ``None``).

    Returns:
        The decoded value, or ``None`` when *raw* is ``None``.
    """
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.error("Stored value is not valid JSON; returning raw string")
        return raw
