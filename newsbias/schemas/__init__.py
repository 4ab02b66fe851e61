"""
Pydantic models for API requests, responses and provider payloads.

All data contracts live here so that route handlers, workers,
and services can import lightweight schema objects without
circular dependencies.

For convenience every public model is re-exported from this
``__init__`` so that ``from newsbias.schemas import SearchRequest``
keeps working.
"""

from newsbias.schemas.articles import (
    Article,
    NewsSearchPayload,
    NewsSource,
    RawArticle,
)
from newsbias.schemas.enums import AnalysisStatus
from newsbias.schemas.health import (
    DetailedHealthResponse,
    HealthResponse,
    UptimeInfo,
)
from newsbias.schemas.requests import (
    AnalysisRequest,
    SearchRequest,
    validate_article_url,
    validate_task_id,
)
from newsbias.schemas.responses import (
    AnalysisStatusResponse,
    AnalysisSubmitResponse,
    SearchResponse,
)
from newsbias.schemas.results import (
    AnalysisChoice,
    AnalysisMessage,
    AnalysisResult,
    TokenUsage,
)

__all__ = [
    "AnalysisChoice",
    "AnalysisMessage",
    "AnalysisRequest",
    "AnalysisResult",
    "AnalysisStatus",
    "AnalysisStatusResponse",
    "AnalysisSubmitResponse",
    "Article",
    "DetailedHealthResponse",
    "HealthResponse",
    "NewsSearchPayload",
    "NewsSource",
    "RawArticle",
    "SearchRequest",
    "SearchResponse",
    "TokenUsage",
    "UptimeInfo",
    "validate_article_url",
    "validate_task_id",
]
