"""
Pydantic models for per-answer interview feedback.

A feedback record is produced for every question/answer pair. Two variants
exist so callers can tell a real evaluation from the canned fallback without
inspecting text: ``GeneratedFeedback`` and ``FallbackFeedback``.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from roleplay.config.constants import (
    DEFAULT_FEEDBACK_MODEL,
    DEFAULT_SCORE,
    FEEDBACK_MAX_TOKENS,
    FEEDBACK_TEMPERATURE,
    NO_SUMMARY_TEXT,
    PLACEHOLDER_TEXT,
)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class FeedbackRecord(BaseModel):
    """Evaluation of a single interview answer. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    strengths: List[str] = Field(default_factory=lambda: [PLACEHOLDER_TEXT])
    weaknesses: List[str] = Field(default_factory=lambda: [PLACEHOLDER_TEXT])
    ideal_answer: str = PLACEHOLDER_TEXT
    technical_assessment: str = PLACEHOLDER_TEXT
    improvement_suggestions: List[str] = Field(default_factory=lambda: [PLACEHOLDER_TEXT])
    overall_score: float = DEFAULT_SCORE
    summary: str = NO_SUMMARY_TEXT

    question_number: int = 1
    timestamp: str = Field(default_factory=utc_timestamp)
    question: str = ""
    answer: str = ""
    is_fallback: bool = False

    @field_validator("strengths", "weaknesses", "improvement_suggestions", mode="before")
    @classmethod
    def coerce_list(cls, v):
        if v is None:
            return [PLACEHOLDER_TEXT]
        if isinstance(v, (list, tuple)):
            return [str(item) for item in v]
        return [str(v)]

    @field_validator("ideal_answer", "technical_assessment", "summary", mode="before")
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return PLACEHOLDER_TEXT
        return v if isinstance(v, str) else str(v)

    @field_validator("overall_score", mode="before")
    @classmethod
    def normalize_score(cls, v):
        """Coerce to float in [0, 1]; anything unusable becomes the default."""
        if isinstance(v, bool):
            return DEFAULT_SCORE
        try:
            score = float(v)
        except (TypeError, ValueError):
            return DEFAULT_SCORE
        if score != score:  # NaN
            return DEFAULT_SCORE
        return min(1.0, max(0.0, score))


class GeneratedFeedback(FeedbackRecord):
    """Feedback parsed from a model response."""

    is_fallback: Literal[False] = False


class FallbackFeedback(FeedbackRecord):
    """Deterministic placeholder used when generation fails."""

    is_fallback: Literal[True] = True
    fallback_reason: Optional[str] = None


FeedbackResult = Union[GeneratedFeedback, FallbackFeedback]


class FeedbackRequest(BaseModel):
    """Body of POST /api/generate-feedback."""

    system_prompt: str = ""
    user_message: str = ""
    model: str = DEFAULT_FEEDBACK_MODEL
    max_tokens: int = FEEDBACK_MAX_TOKENS
    temperature: float = FEEDBACK_TEMPERATURE


class FeedbackResponse(BaseModel):
    content: Optional[str] = None
