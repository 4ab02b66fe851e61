"""Health check response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Returned by the liveness endpoint."""

    status: str = Field(
        ...,
        description="Service health status",
    )
    timestamp: str = Field(
        ...,
        description="Current server time (ISO 8601, UTC)",
    )


class UptimeInfo(BaseModel):
    """Process uptime."""

    seconds: float
    formatted: str


class DetailedHealthResponse(BaseModel):
    """Returned by the detailed health endpoint."""

    status: str = Field(
        ...,
        description="Service health status",
    )
    version: str = Field(
        ...,
        description="Application version",
    )
    timestamp: str = Field(
        ...,
        description="Current server time (ISO 8601, UTC)",
    )
    uptime: UptimeInfo
    system: dict[str, Any] = Field(
        default_factory=dict,
        description="Host information",
    )
    process: dict[str, Any] = Field(
        default_factory=dict,
        description="Web process information",
    )
    dependencies: dict[str, str] = Field(
        default_factory=dict,
        description="Reachability of backing services",
    )
