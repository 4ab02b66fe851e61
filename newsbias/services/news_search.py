"""
News search adapter.

Wraps the provider's ``/everything`` endpoint behind the
cache-aside accessor and classifies failures into typed
``ProviderError`` subclasses so the route can map them to an
HTTP response.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from newsbias.core.config import get_settings
from newsbias.core.constants import REDIS_PREFIX_SEARCH_CACHE
from newsbias.core.exceptions import (
    InvalidCredentialsError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)
from newsbias.schemas.articles import Article, RawArticle
from newsbias.services.cache import ResponseCache

logger = logging.getLogger(__name__)


def search_cache_key(query: str) -> str:
    """Return the cache key for *query*."""
    return f"{REDIS_PREFIX_SEARCH_CACHE}{query}"


def _provider_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message")
    return None


def _fetch_articles(query: str) -> dict[str, Any]:
    """Call the provider once (no cache).

    Raises:
        ProviderError: Classified by status / transport failure.
    """
    settings = get_settings()
    logger.info("Fetching search results from News API (query=%r)", query)
    try:
        with httpx.Client(
            base_url=settings.NEWS_API_BASE_URL,
            timeout=settings.NEWS_API_TIMEOUT,
            headers={"X-Api-Key": settings.NEWS_API_KEY},
        ) as client:
            resp = client.get(
                "/everything",
                params={
                    "q": query,
                    "language": "en",
                    "sortBy": "publishedAt",
                    "pageSize": settings.NEWS_API_PAGE_SIZE,
                },
            )
            resp.raise_for_status()
            return resp.json()
    except httpx.HTTPStatusError as exc:
        status_code = exc.response.status_code
        provider_message = _provider_message(exc.response)
        logger.error(
            "News API returned %d for query %r: %s",
            status_code,
            query,
            provider_message,
        )
        if status_code == 401:
            raise InvalidCredentialsError("Invalid News API key") from exc
        if status_code == 429:
            raise ProviderRateLimitError("News API rate limit exceeded") from exc
        raise ProviderError(
            f"News API error: {provider_message or 'Unknown error'}"
        ) from exc
    except httpx.TimeoutException as exc:
        logger.error("News API request timed out for query %r", query)
        raise ProviderTimeoutError("News API request timed out") from exc
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Error searching articles for %r: %s", query, exc)
        raise ProviderError(f"Error searching articles: {exc}") from exc


def search_articles(query: str) -> dict[str, Any]:
    """Search the news provider for *query*, cached for 5 minutes.

    Args:
        query: Non-empty, trimmed query string.

    Returns:
        The provider's raw JSON payload.

    Raises:
        ProviderError: When the provider call fails on a miss.
    """
    settings = get_settings()
    return ResponseCache.instance().get_or_load(
        search_cache_key(query),
        settings.SEARCH_CACHE_TTL,
        lambda: _fetch_articles(query),
    )


def format_articles(raw_articles: Any) -> list[Article]:
    """Normalise provider articles for client consumption.

    Non-list input yields an empty list; entries that are not
    objects are skipped.  ``id`` is the entry's position in the
    provider list.
    """
    if not isinstance(raw_articles, list):
        return []

    articles: list[Article] = []
    for index, raw in enumerate(raw_articles):
        try:
            item = RawArticle.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed article at index %d", index)
            continue
        articles.append(
            Article(
                id=index,
                title=item.title,
                url=item.url,
                author=item.author or "Unknown",
                publisher=(item.source.name if item.source else None)
                or "Unknown Source",
                published_at=item.published_at,
                description=item.description,
            )
        )
    return articles
