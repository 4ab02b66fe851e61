"""
Redis-backed, tiered rate limiting keyed by client address.

Four independent fixed-window budgets protect the API and the
paid upstream quotas:

===============  ==============  =================================
``basic``        200 / 1 min     every route unless it opts out
``api``          100 / 15 min    generic API budget (``/parse``)
``search``       10 / 5 min      ``POST /search`` only
``analysis``     5 / 10 min      ``POST /start-analysis`` only
===============  ==============  =================================

Routes that carry their own tier opt out of ``basic`` with
:func:`skip_basic_protection` so one request is never charged
against two counters.  Counters live in the shared Redis so every
web process enforces the same logical budget.  Each window is
opened with ``SET NX EX`` and counted with ``INCR`` inside one
``MULTI`` block, relying on Redis per-key atomicity only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import redis
from fastapi import Request

from newsbias.core.config import Settings, get_settings
from newsbias.core.constants import REDIS_PREFIX_RATE_LIMIT
from newsbias.core.exceptions import (
    RateLimitExceededError,
    StoreUnavailableError,
)
from newsbias.core.metrics import record_rate_limited
from newsbias.core.redis import get_redis_client

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TIER_BASIC = "basic"
TIER_API = "api"
TIER_SEARCH = "search"
TIER_ANALYSIS = "analysis"

_SKIP_BASIC_ATTR = "skip_basic_rate_limit"


@dataclass(frozen=True)
class RateLimitTier:
    """One independently configured request budget."""

    name: str
    max_requests: int
    window_seconds: int
    message: str


@dataclass(frozen=True)
class RateLimitResult:
    """Counter state after a request was admitted."""

    count: int
    limit: int
    reset_seconds: int


def _describe_window(seconds: int) -> str:
    """Render a window length for tier messages ("5 minutes", "30 seconds")."""
    if seconds % 60:
        return "1 second" if seconds == 1 else f"{seconds} seconds"
    minutes = seconds // 60
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


def build_tiers(settings: Settings) -> dict[str, RateLimitTier]:
    """Return the four tiers configured by *settings*."""
    search_window = _describe_window(settings.RATE_LIMIT_SEARCH_WINDOW)
    analysis_window = _describe_window(settings.RATE_LIMIT_ANALYSIS_WINDOW)
    return {
        TIER_BASIC: RateLimitTier(
            name=TIER_BASIC,
            max_requests=settings.RATE_LIMIT_BASIC_MAX,
            window_seconds=settings.RATE_LIMIT_BASIC_WINDOW,
            message=(
                "Too many requests from this IP, please try again after a minute"
            ),
        ),
        TIER_API: RateLimitTier(
            name=TIER_API,
            max_requests=settings.RATE_LIMIT_MAX,
            window_seconds=settings.RATE_LIMIT_WINDOW,
            message="Too many requests, please try again later",
        ),
        TIER_SEARCH: RateLimitTier(
            name=TIER_SEARCH,
            max_requests=settings.RATE_LIMIT_SEARCH_MAX,
            window_seconds=settings.RATE_LIMIT_SEARCH_WINDOW,
            message=(
                "Search rate limit exceeded. Maximum "
                f"{settings.RATE_LIMIT_SEARCH_MAX} searches per "
                f"{search_window} allowed."
            ),
        ),
        TIER_ANALYSIS: RateLimitTier(
            name=TIER_ANALYSIS,
            max_requests=settings.RATE_LIMIT_ANALYSIS_MAX,
            window_seconds=settings.RATE_LIMIT_ANALYSIS_WINDOW,
            message=(
                "Analysis rate limit exceeded. Maximum "
                f"{settings.RATE_LIMIT_ANALYSIS_MAX} analyses per "
                f"{analysis_window} allowed."
            ),
        ),
    }


def hit(tier: RateLimitTier, client_id: str) -> RateLimitResult:
    """Count one request for *client_id* against *tier*.

    Args:
        tier: The budget to charge.
        client_id: Client network address.

    Returns:
        The counter state when the request is admitted.

    Raises:
        RateLimitExceededError: If the window's budget is spent.
        StoreUnavailableError: If Redis cannot be reached.  A
            rate-limit decision is never skipped silently.
    """
    key = f"{REDIS_PREFIX_RATE_LIMIT}{tier.name}:{client_id}"
    client = get_redis_client()
    try:
        pipe = client.pipeline(transaction=True)
        pipe.set(key, 0, ex=tier.window_seconds, nx=True)
        pipe.incr(key)
        pipe.ttl(key)
        _, count, ttl = pipe.execute()
    except redis.RedisError as exc:
        logger.error(
            "Rate-limit check failed for tier=%s: %s",
            tier.name,
            exc,
        )
        raise StoreUnavailableError("Service temporarily unavailable") from exc
    finally:
        client.close()

    reset_seconds = ttl if ttl and ttl > 0 else tier.window_seconds
    if count > tier.max_requests:
        logger.warning(
            "Rate limit exceeded (tier=%s, client=%s, count=%d/%d)",
            tier.name,
            client_id,
            count,
            tier.max_requests,
        )
        record_rate_limited()
        raise RateLimitExceededError(
            tier.message,
            tier=tier.name,
            retry_after=reset_seconds,
        )
    return RateLimitResult(
        count=count,
        limit=tier.max_requests,
        reset_seconds=reset_seconds,
    )


def client_address(request: Request, settings: Settings) -> str:
    """Return the rate-limit bucket key for *request*.

    The socket peer is used unless ``RATE_LIMIT_TRUST_PROXY`` is
    set, in which case the first ``X-Forwarded-For`` hop wins.
    """
    if settings.RATE_LIMIT_TRUST_PROXY:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _enforce(tier_name: str, request: Request) -> None:
    settings = get_settings()
    if not settings.RATE_LIMIT_ENABLED:
        return
    tier = build_tiers(settings)[tier_name]
    hit(tier, client_address(request, settings))


# ── Route opt-out ───────────────────────────────────────────


def skip_basic_protection(endpoint: F) -> F:
    """Mark a route so the global ``basic`` tier does not count it.

    Used on routes that are already charged against a dedicated
    tier.
    """
    setattr(endpoint, _SKIP_BASIC_ATTR, True)
    return endpoint


def _skips_basic(request: Request) -> bool:
    route = request.scope.get("route")
    endpoint = getattr(route, "endpoint", None) or request.scope.get("endpoint")
    return bool(getattr(endpoint, _SKIP_BASIC_ATTR, False))


# ── FastAPI dependencies ────────────────────────────────────


def basic_protection(request: Request) -> None:
    """Global DDoS guard, installed as an app-level dependency."""
    if _skips_basic(request):
        return
    _enforce(TIER_BASIC, request)


def api_rate_limit(request: Request) -> None:
    """Generic API budget."""
    _enforce(TIER_API, request)


def search_rate_limit(request: Request) -> None:
    """Budget for news searches (paid upstream quota)."""
    _enforce(TIER_SEARCH, request)


def analysis_rate_limit(request: Request) -> None:
    """Budget for analysis submissions (most expensive)."""
    _enforce(TIER_ANALYSIS, request)
