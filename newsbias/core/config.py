"""
Application configuration and settings.

Centralises all external configuration (env-vars / .env) and
version discovery.  Redis connectivity lives in
``newsbias.core.redis`` and FastAPI dependency injection in
``newsbias.api.deps``.
"""

from __future__ import annotations

import importlib.metadata
import json
import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# ── Package version (single source of truth from pyproject.toml) ────────


def get_version() -> str:
    """Return the installed package version.

    Falls back to ``"0.0.0-dev"`` when the package metadata
    is not available (e.g. during editable / source installs).

    Returns:
        Semantic version string.
    """
    try:
        return importlib.metadata.version("newsbias-api")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0-dev"


# ── Settings ────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # General
    APP_NAME: str = "NewsBias API"
    API_PREFIX: str = "/api"
    ROOT_PATH: str = ""
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Redis / Celery
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_URL_OVERRIDE: str = ""

    # ── News search provider ────────────────────────────────────────
    NEWS_API_KEY: str = ""
    NEWS_API_BASE_URL: str = "https://newsapi.org/v2"
    NEWS_API_TIMEOUT: float = 5.0  # seconds
    NEWS_API_PAGE_SIZE: int = 50

    # ── Article parser ──────────────────────────────────────────────
    PARSER_TIMEOUT: int = 10  # seconds
    PARSER_USER_AGENT: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )

    # ── Language model ──────────────────────────────────────────────
    OPENAI_API_KEY: str = ""
    OPENAI_ORG_ID: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini-2024-07-18"
    OPENAI_MAX_TOKENS: int = 1000
    OPENAI_TEMPERATURE: float = 0.7

    # Adapter-level retry around each model call
    ANALYSIS_MAX_ATTEMPTS: int = 3
    ANALYSIS_INITIAL_DELAY: float = 1.0  # seconds, doubled per retry

    # ── Job queue ───────────────────────────────────────────────────
    QUEUE_MAX_ATTEMPTS: int = 3
    QUEUE_BACKOFF_BASE: int = 5  # seconds, doubled per retry
    FAILED_JOBS_RETAINED: int = 100
    TASK_TIME_LIMIT: int = 600  # seconds
    TASK_SOFT_TIME_LIMIT: int = 540  # seconds

    # ── Cache / result lifetimes ────────────────────────────────────
    SEARCH_CACHE_TTL: int = 300  # 5 min
    PARSE_CACHE_TTL: int = 86400  # 24 h
    TASK_RESULT_TTL: int = 86400  # 24 h

    # ── Input limits ────────────────────────────────────────────────
    MAX_CONTENT_CHARS: int = 50_000

    # ── Rate limiting ───────────────────────────────────────────────
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_TRUST_PROXY: bool = False
    RATE_LIMIT_BASIC_MAX: int = 200
    RATE_LIMIT_BASIC_WINDOW: int = 60
    RATE_LIMIT_MAX: int = 100
    RATE_LIMIT_WINDOW: int = 900
    RATE_LIMIT_SEARCH_MAX: int = 10
    RATE_LIMIT_SEARCH_WINDOW: int = 300
    RATE_LIMIT_ANALYSIS_MAX: int = 5
    RATE_LIMIT_ANALYSIS_WINDOW: int = 600

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: str | list[str]) -> list[str]:
        """Accept a JSON-encoded string or a list."""
        if isinstance(v, str):
            return json.loads(v)
        return v

    # Derived URLs
    @property
    def REDIS_URL(self) -> str:  # noqa: N802
        """Full Redis connection URL."""
        if self.REDIS_URL_OVERRIDE:
            return self.REDIS_URL_OVERRIDE
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def CELERY_BROKER_URL(self) -> str:  # noqa: N802
        """Celery broker URL (backed by Redis)."""
        return self.REDIS_URL

    @property
    def CELERY_RESULT_BACKEND(self) -> str:  # noqa: N802
        """Celery result backend URL (backed by Redis)."""
        return self.REDIS_URL


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Using ``lru_cache`` ensures the .env file is read exactly
    once.  Tests patch the module-level ``get_settings`` names
    or clear the cache with ``get_settings.cache_clear()``.
    """
    return Settings()
