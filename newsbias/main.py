"""
FastAPI entry point.

The application exposes:
* ``POST /api/search``                   - search recent news
* ``GET  /api/parse?url=``               - extract article text
* ``POST /api/start-analysis``           - queue a bias analysis
* ``GET  /api/check-analysis/{taskId}``  - poll an analysis task
* ``GET  /health``                       - liveness probe
* ``GET  /health/detailed``              - version, uptime, Redis status
* ``GET  /metrics``                      - Prometheus metrics
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from newsbias.api.routes import analysis, health, parse, search
from newsbias.core.config import get_settings, get_version
from newsbias.core.exceptions import register_exception_handlers
from newsbias.core.middleware import REQUEST_ID_HEADER, RequestIDMiddleware
from newsbias.core.rate_limit import basic_protection
from newsbias.logging_config import setup_logging

# ── Logging ─────────────────────────────────────────────────────────────────

settings = get_settings()
setup_logging(level=settings.LOG_LEVEL, json_format=not settings.DEBUG)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup / shutdown hooks."""
    logger.info("Starting %s", settings.APP_NAME)
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


# ── App factory ─────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "News search, article extraction and queued bias analysis "
        "powered by FastAPI, Celery and Redis."
    ),
    version=get_version(),
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    root_path=settings.ROOT_PATH,
    lifespan=lifespan,
    dependencies=[Depends(basic_protection)],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)
app.add_middleware(RequestIDMiddleware)

register_exception_handlers(app)

# ── Routers ─────────────────────────────────────────────────────────────────

app.include_router(search.router, prefix=settings.API_PREFIX)
app.include_router(parse.router, prefix=settings.API_PREFIX)
app.include_router(analysis.router, prefix=settings.API_PREFIX)
app.include_router(health.router)
