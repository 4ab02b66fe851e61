"""Response models for search and analysis endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from newsbias.core.constants import STATUS_SUCCESS
from newsbias.schemas.articles import Article
from newsbias.schemas.enums import AnalysisStatus


class SearchResponse(BaseModel):
    """Returned by ``POST /api/search``."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(
        default=STATUS_SUCCESS,
        description="Request outcome",
    )
    articles: list[Article] = Field(
        default_factory=list,
        description="Normalised articles, newest first",
    )
    total_results: int = Field(
        default=0,
        alias="totalResults",
        description="Total hits reported by the provider",
    )


class AnalysisSubmitResponse(BaseModel):
    """Returned immediately when an analysis task is submitted."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(
        default=STATUS_SUCCESS,
        description="Submission outcome",
    )
    task_id: str = Field(
        ...,
        alias="taskId",
        description="Opaque identifier to poll with",
    )
    message: str = Field(
        default="Analysis task started",
        description="Human-readable status message",
    )


class AnalysisStatusResponse(BaseModel):
    """Returned when polling an analysis task."""

    status: AnalysisStatus = Field(
        ...,
        description="Current state of the task",
    )
    result: dict[str, Any] | None = Field(
        default=None,
        description="Analysis payload (``completed`` only)",
    )
    error: str | None = Field(
        default=None,
        description="Failure message (``failed`` only)",
    )
