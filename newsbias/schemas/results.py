"""Analysis result models.

The language model answers in the OpenAI chat-completion shape.
Only the fields the application and clients rely on are typed;
everything else passes through untouched.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AnalysisMessage(BaseModel):
    """Assistant message inside a completion choice."""

    model_config = ConfigDict(extra="allow")

    role: str = "assistant"
    content: str | None = None


class AnalysisChoice(BaseModel):
    """One completion choice."""

    model_config = ConfigDict(extra="allow")

    index: int = 0
    message: AnalysisMessage = Field(default_factory=AnalysisMessage)
    finish_reason: str | None = None


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    model_config = ConfigDict(extra="allow")

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class AnalysisResult(BaseModel):
    """Structured bias / objectivity analysis of one article."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    model: str | None = None
    created: int | None = None
    choices: list[AnalysisChoice] = Field(default_factory=list)
    usage: TokenUsage | None = None

    @property
    def text(self) -> str | None:
        """Content of the first choice, if any."""
        if not self.choices:
            return None
        return self.choices[0].message.content

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable dict for the task store."""
        return self.model_dump(mode="json", exclude_none=True)
