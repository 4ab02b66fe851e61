"""Health-check routes (liveness, detailed status, metrics)."""

from __future__ import annotations

import logging
import os
import platform
import resource
import sys
import time
from datetime import datetime, timezone
from typing import Any

import redis
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from newsbias.api.deps import get_redis
from newsbias.core.config import get_version
from newsbias.core.constants import REDIS_KEY_HEALTH_CHECK
from newsbias.core.metrics import generate_metrics
from newsbias.core.rate_limit import skip_basic_protection
from newsbias.schemas import DetailedHealthResponse, HealthResponse, UptimeInfo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

_version = get_version()
_started_at = time.monotonic()

_BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def format_uptime(seconds: float) -> str:
    """Render *seconds* as e.g. ``"1d 2h 5m 7s"``.

    Zero-valued leading units are omitted; seconds are always
    shown.
    """
    remaining = int(seconds)
    days, remaining = divmod(remaining, 86400)
    hours, remaining = divmod(remaining, 3600)
    minutes, secs = divmod(remaining, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def format_bytes(num: float) -> str:
    """Render a byte count with a binary unit, e.g. ``"1.5 KB"``."""
    if num <= 0:
        return "0 Bytes"
    index = 0
    while num >= 1024 and index < len(_BYTE_UNITS) - 1:
        num /= 1024
        index += 1
    return f"{round(num, 2):g} {_BYTE_UNITS[index]}"


def _system_info() -> dict[str, Any]:
    info: dict[str, Any] = {
        "platform": sys.platform,
        "python_version": platform.python_version(),
        "cpus": os.cpu_count(),
    }
    try:
        page_size = os.sysconf("SC_PAGE_SIZE")
        total = os.sysconf("SC_PHYS_PAGES") * page_size
        free = os.sysconf("SC_AVPHYS_PAGES") * page_size
    except (AttributeError, OSError, ValueError):
        return info
    info["memory"] = {
        "total": total,
        "free": free,
        "usage": f"{(total - free) / total * 100:.2f}%" if total else "0.00%",
    }
    return info


def _process_info() -> dict[str, Any]:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is KiB on Linux, bytes on macOS
    max_rss = usage.ru_maxrss if sys.platform == "darwin" else usage.ru_maxrss * 1024
    return {
        "pid": os.getpid(),
        "memory": {"max_rss": format_bytes(max_rss)},
    }


@router.get("/health", response_model=HealthResponse)
@skip_basic_protection
def health_check() -> HealthResponse:
    """Liveness probe: returns OK if the web process is running."""
    return HealthResponse(status="ok", timestamp=_now_iso())


@router.get("/health/detailed", response_model=DetailedHealthResponse)
@skip_basic_protection
def detailed_health_check(
    client: redis.Redis = Depends(get_redis),
) -> DetailedHealthResponse:
    """Report version, uptime, host details and Redis reachability.

    Queue workers are not probed.
    """
    redis_status = "ok"
    try:
        client.get(REDIS_KEY_HEALTH_CHECK)
    except redis.RedisError as exc:
        redis_status = "error"
        logger.error("Redis health check failed: %s", exc)

    uptime_s = time.monotonic() - _started_at
    return DetailedHealthResponse(
        status="ok",
        version=_version,
        timestamp=_now_iso(),
        uptime=UptimeInfo(seconds=uptime_s, formatted=format_uptime(uptime_s)),
        system=_system_info(),
        process=_process_info(),
        dependencies={"redis": redis_status},
    )


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    tags=["observability"],
)
@skip_basic_protection
def prometheus_metrics() -> PlainTextResponse:
    """Expose task, cache and rate-limit counters in Prometheus format."""
    return PlainTextResponse(
        generate_metrics(),
        media_type=CONTENT_TYPE_LATEST,
    )
