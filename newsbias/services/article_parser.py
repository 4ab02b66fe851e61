"""
Article text extraction adapter.

Uses ``newspaper4k`` to download a page and pull out the main
article body as plain text.  Results are cached for 24 hours
under ``parse:<url>``.  There is no retry here: a failed parse is
terminal for the request.
"""

from __future__ import annotations

import logging
from typing import Any

from newspaper import Article as NewspaperArticle
from newspaper import Config as NewspaperConfig

from newsbias.core.config import get_settings
from newsbias.core.constants import REDIS_PREFIX_PARSE_CACHE
from newsbias.core.exceptions import ArticleParseError
from newsbias.services.cache import ResponseCache

logger = logging.getLogger(__name__)


def parse_cache_key(url: str) -> str:
    """Return the cache key for *url*."""
    return f"{REDIS_PREFIX_PARSE_CACHE}{url}"


def _build_config() -> NewspaperConfig:
    settings = get_settings()
    config = NewspaperConfig()
    config.browser_user_agent = settings.PARSER_USER_AGENT
    config.request_timeout = settings.PARSER_TIMEOUT
    config.fetch_images = False
    config.memoize_articles = False
    return config


def _extract_text(url: str) -> str:
    """Download and parse *url*, returning the trimmed body text.

    Raises:
        ArticleParseError: If extraction fails or yields nothing.
    """
    logger.info("Parsing article %s", url)
    try:
        article = NewspaperArticle(url, config=_build_config())
        article.download()
        article.parse()
        text = article.text
    except Exception as exc:
        logger.error("Error parsing article %s: %s", url, exc)
        raise ArticleParseError(f"Error parsing article: {exc}") from exc

    if not text or not text.strip():
        logger.error("No content extracted from %s", url)
        raise ArticleParseError(
            "Error parsing article: Failed to parse article content"
        )
    return text.strip()


def parse_article(url: str) -> str:
    """Return the plain-text body of the article at *url*.

    Args:
        url: Absolute http(s) URL, validated by the caller.

    Returns:
        Trimmed article text.

    Raises:
        ArticleParseError: On extraction failure (not cached).
    """
    settings = get_settings()
    return ResponseCache.instance().get_or_load(
        parse_cache_key(url),
        settings.PARSE_CACHE_TTL,
        lambda: _extract_text(url),
    )


def format_article_with_content(
    article: dict[str, Any],
    content: str | None,
) -> str:
    """Render article metadata and body into the text sent for analysis.

    Including publisher, date and author lets the model weigh the
    outlet's reputation and the publication context.
    """
    return (
        f"Publisher: {article.get('publisher') or 'Unknown'}\n"
        f"Date: {article.get('publishedAt') or 'Unknown'}\n"
        f"Author: {article.get('author') or 'Unknown'}\n"
        f"Title: {article.get('title') or 'Untitled'}\n"
        f"URL: {article.get('url') or ''}\n"
        f"Article: {content or 'No content available'}"
    )
