"""
Pydantic models for the external interview plan service.

The service answers ``GET /status/{session_id}`` with an overall status and,
once finished, a nested plan: sections, each holding questions. Only the
fields used here are modelled and everything else is preserved.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from roleplay.config.constants import PLAN_STATUS_COMPLETED, PLAN_STATUS_ERROR


class PlanSubmission(BaseModel):
    """Response of POST /create-interview-plan."""
    model_config = ConfigDict(extra="allow")

    session_id: Optional[str] = None


class PlanStatus(BaseModel):
    """Response of GET /status/{session_id}."""
    model_config = ConfigDict(extra="allow")

    overall_status: Optional[str] = None
    result: Optional[Any] = None
    error: Optional[Any] = None

    @property
    def is_completed(self) -> bool:
        return self.overall_status == PLAN_STATUS_COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.overall_status == PLAN_STATUS_ERROR or bool(self.error)

    @property
    def is_terminal(self) -> bool:
        return self.is_completed or self.is_failed


class PlanQuestion(BaseModel):
    model_config = ConfigDict(extra="allow")

    question_text: Optional[str] = None


class PlanSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    questions: List[PlanQuestion] = Field(default_factory=list)
