"""Article content extraction route."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from newsbias.core.rate_limit import api_rate_limit
from newsbias.schemas import validate_article_url
from newsbias.services.article_parser import parse_article

router = APIRouter(tags=["articles"])


@router.get(
    "/parse",
    response_model=str,
    dependencies=[Depends(api_rate_limit)],
)
def parse(url: str | None = Query(default=None)) -> str:
    """Return the main text of the article at ``url``."""
    return parse_article(validate_article_url(url))
