"""News search payloads: raw provider shape and normalised articles."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NewsSource(BaseModel):
    """Nested ``source`` object on a provider article."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None


class RawArticle(BaseModel):
    """One article as returned by the news provider.

    Every field is optional; the provider omits or nulls them
    freely.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    source: NewsSource | None = None
    author: str | None = None
    title: str | None = None
    description: str | None = None
    url: str | None = None
    url_to_image: str | None = Field(default=None, alias="urlToImage")
    published_at: str | None = Field(default=None, alias="publishedAt")
    content: str | None = None


class NewsSearchPayload(BaseModel):
    """Top-level ``/everything`` response body."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: str | None = None
    total_results: int | None = Field(default=None, alias="totalResults")
    articles: Any = None


class Article(BaseModel):
    """Normalised article served to clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="Position in the result list")
    title: str | None = None
    url: str | None = None
    author: str = "Unknown"
    publisher: str = "Unknown Source"
    published_at: str | None = Field(default=None, alias="publishedAt")
    description: str | None = None
