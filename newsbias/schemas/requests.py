"""Request models and validators for the public endpoints.

Every validator here runs before a rate-limited adapter or the
job queue is touched; failures surface as HTTP 400.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import (
    BaseModel,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from newsbias.core.config import get_settings
from newsbias.core.exceptions import ValidationFailedError

# Version 1-5 UUIDs, as produced by ``uuid.uuid4()``.
_TASK_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_http_url = TypeAdapter(HttpUrl)


class SearchRequest(BaseModel):
    """Body of ``POST /api/search``."""

    query: str = Field(
        ...,
        description="Free-text news search query",
    )

    @field_validator("query", mode="before")
    @classmethod
    def _require_query(cls, v: Any) -> str:
        """Reject missing, non-string and blank queries; trim the rest."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Search query must be a non-empty string")
        return v.strip()


class AnalysisRequest(BaseModel):
    """Body of ``POST /api/start-analysis``."""

    content: str = Field(
        ...,
        description="Article text to analyse (max 50,000 characters)",
    )

    @field_validator("content", mode="before")
    @classmethod
    def _check_content(cls, v: Any) -> str:
        """Require non-blank text within the configured size cap.

        Length is measured on the raw string, so surrounding
        whitespace counts towards the limit.
        """
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Content must be a non-empty string")
        max_chars = get_settings().MAX_CONTENT_CHARS
        if len(v) > max_chars:
            raise ValueError(
                f"Content is too long. Maximum {max_chars:,} characters allowed."
            )
        return v


def validate_article_url(url: str | None) -> str:
    """Check that *url* is an absolute http(s) URL.

    The original string is returned untouched so that it can be
    used verbatim as the parse cache key.

    Raises:
        ValidationFailedError: If the URL is missing or malformed.
    """
    if not url:
        raise ValidationFailedError("URL is required")
    try:
        _http_url.validate_python(url)
    except ValidationError as exc:
        raise ValidationFailedError("Invalid URL format") from exc
    return url


def validate_task_id(task_id: str) -> str:
    """Check that *task_id* looks like a UUID.

    Raises:
        ValidationFailedError: On any other shape.
    """
    if not task_id or not _TASK_ID_PATTERN.match(task_id):
        raise ValidationFailedError("Invalid task ID format")
    return task_id
