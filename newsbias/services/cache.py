"""
Cache-aside accessor for expensive external calls.

``ResponseCache`` sits in front of the news-search and article
parser adapters.  A fresh entry makes a repeated call with the
same logical inputs free: no second request reaches the paid or
rate-limited provider.

**Keys**

===============  ======================  ========
``search:<q>``   raw provider payload    5 min
``parse:<url>``  trimmed article text    24 h
===============  ======================  ========

**Degradation**

The cache is an optimisation only.  When Redis is unreachable a
read is treated as a miss and a write is skipped; both are
logged and the user request carries on to the provider.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from newsbias.core.metrics import record_cache_hit, record_cache_miss
from newsbias.core.redis import get_redis_client, load_json, store_json

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResponseCache:
    """Redis-backed read-through cache using the shared pool.

    Usage::

        cache = ResponseCache.instance()
        hit = cache.get("search:climate")
        if hit is not None:
            return hit
        payload = call_provider(...)
        cache.set("search:climate", payload, ttl=300)
        return payload

    or, equivalently, ``cache.get_or_load(key, ttl, loader)``.
    """

    _instance: ResponseCache | None = None

    # ── Singleton ───────────────────────────────────────────

    @classmethod
    def instance(cls) -> ResponseCache:
        """Return a lazily-initialised singleton."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (useful in tests)."""
        cls._instance = None

    # ── Public API ──────────────────────────────────────────

    def get(self, key: str) -> Any | None:
        """Look up a cached value.

        Args:
            key: Full cache key (e.g. ``search:<query>``).

        Returns:
            The cached value, or ``None`` on miss or when the
            store cannot be reached.
        """
        t0 = time.monotonic()
        try:
            client = get_redis_client()
            try:
                value = load_json(client.get(key))
            finally:
                client.close()
        except Exception:
            logger.warning(
                "Cache GET failed for %s; treating as miss",
                key,
                exc_info=True,
            )
            value = None
        elapsed_ms = (time.monotonic() - t0) * 1000

        if value is not None:
            logger.debug("Cache HIT (key=%.60s, %.1f ms)", key, elapsed_ms)
            record_cache_hit()
        else:
            logger.debug("Cache MISS (key=%.60s, %.1f ms)", key, elapsed_ms)
            record_cache_miss()
        return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        """Store *value* under *key* for *ttl* seconds.

        Overwrites any prior value.  Failures are logged and
        swallowed so the caller still returns the fresh value.
        """
        try:
            client = get_redis_client()
            try:
                store_json(client, key, value, ttl)
            finally:
                client.close()
        except Exception:
            logger.warning(
                "Cache SET failed for %s",
                key,
                exc_info=True,
            )
            return
        logger.debug("Cache SET (key=%.60s, ttl=%ds)", key, ttl)

    def get_or_load(
        self,
        key: str,
        ttl: int,
        loader: Callable[[], T],
    ) -> T:
        """Return the cached value or call *loader* and cache its result.

        Exceptions raised by *loader* propagate and nothing is
        cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        self.set(key, value, ttl)
        return value
