"""Task status enumeration used across the application."""

from __future__ import annotations

from enum import StrEnum

from newsbias.core.constants import (
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_NOT_FOUND,
    STATUS_QUEUED,
)


class AnalysisStatus(StrEnum):
    """Client-visible states of an analysis task."""

    QUEUED = STATUS_QUEUED
    ACTIVE = STATUS_ACTIVE
    COMPLETED = STATUS_COMPLETED
    FAILED = STATUS_FAILED
    NOT_FOUND = STATUS_NOT_FOUND

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition can happen."""
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)
