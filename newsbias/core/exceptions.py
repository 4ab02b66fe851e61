"""
Typed application errors and their HTTP mapping.

Adapters and services raise subclasses of ``NewsBiasError``;
the handlers registered by :func:`register_exception_handlers`
turn them into ``{"status": "error", "message": ...}`` bodies
with the status code carried by the exception class.
"""

from __future__ import annotations

import logging

import redis
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from newsbias.core.config import get_settings
from newsbias.core.constants import STATUS_ERROR

logger = logging.getLogger(__name__)


class NewsBiasError(Exception):
    """Base class for every error surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ── Client errors ───────────────────────────────────────────


class ValidationFailedError(NewsBiasError):
    """Client input is malformed; never reaches an adapter."""

    status_code = status.HTTP_400_BAD_REQUEST


class RateLimitExceededError(NewsBiasError):
    """A rate-limit tier rejected the request."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        message: str,
        *,
        tier: str,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.tier = tier
        self.retry_after = retry_after


# ── Provider errors ─────────────────────────────────────────


class ProviderError(NewsBiasError):
    """An external provider call failed."""

    retryable: bool = False


class InvalidCredentialsError(ProviderError):
    """The provider rejected our API key (operator-facing)."""


class ProviderRateLimitError(ProviderError):
    """The provider throttled us; the caller may retry later."""

    retryable = True


class ProviderTimeoutError(ProviderError):
    """The provider did not answer within the configured timeout."""

    retryable = True


class ArticleParseError(ProviderError):
    """Content extraction failed or returned no text."""


class AnalysisFailedError(ProviderError):
    """The language model call failed on every attempt."""


# ── Infrastructure errors ───────────────────────────────────


class QueueError(NewsBiasError):
    """Enqueueing a job failed."""


class StoreUnavailableError(NewsBiasError):
    """The shared store is unreachable for a durable operation."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# ── Handlers ────────────────────────────────────────────────


def _error_body(message: str) -> dict[str, str]:
    return {"status": STATUS_ERROR, "message": message}


async def _handle_app_error(
    request: Request,
    exc: NewsBiasError,
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Server error on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
        )
    else:
        logger.warning(
            "Client error on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
        )

    headers = None
    if isinstance(exc, RateLimitExceededError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        _error_body(exc.message),
        status_code=exc.status_code,
        headers=headers,
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        message = str(errors[0].get("msg", "Invalid request"))
        # pydantic prefixes custom validator messages
        message = message.removeprefix("Value error, ")
    else:
        message = "Invalid request"
    logger.warning(
        "Invalid request on %s %s: %s",
        request.method,
        request.url.path,
        message,
    )
    return JSONResponse(
        _error_body(message),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def _handle_http_error(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Not Found - {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(
        _error_body(message),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def _handle_redis_error(
    request: Request,
    exc: redis.RedisError,
) -> JSONResponse:
    logger.error(
        "Shared store unavailable on %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        _error_body("Service temporarily unavailable"),
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


async def _handle_unexpected_error(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
    )
    message = str(exc) if get_settings().DEBUG else "Internal Server Error"
    return JSONResponse(
        _error_body(message),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error-body handlers to *app*."""
    app.add_exception_handler(NewsBiasError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(redis.RedisError, _handle_redis_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
