"""News search route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from newsbias.core.rate_limit import search_rate_limit, skip_basic_protection
from newsbias.schemas import NewsSearchPayload, SearchRequest, SearchResponse
from newsbias.services.news_search import format_articles, search_articles

logger = logging.getLogger(__name__)

router = APIRouter(tags=["articles"])


@router.post(
    "/search",
    response_model=SearchResponse,
    response_model_by_alias=True,
    dependencies=[Depends(search_rate_limit)],
)
@skip_basic_protection
def search(request: SearchRequest) -> SearchResponse:
    """Search recent English-language news for ``query``.

    Repeated queries within five minutes are served from the
    cache without contacting the provider.
    """
    payload = NewsSearchPayload.model_validate(search_articles(request.query))
    articles = format_articles(payload.articles)
    logger.info(
        "Search %r returned %d article(s)",
        request.query,
        len(articles),
    )
    return SearchResponse(
        articles=articles,
        total_results=payload.total_results or 0,
    )
