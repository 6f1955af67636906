"""Assessment attempt and result schemas."""

from datetime import datetime
from typing import Any

from pydantic import Field

from app.schemas.base import ApiModel


class AttemptStart(ApiModel):
    assessment_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    context_id: str | None = None


class AnswerItem(ApiModel):
    question_id: str = Field(..., min_length=1)
    answer: Any = None


class AttemptSubmit(ApiModel):
    answers: list[AnswerItem] = Field(default_factory=list, max_length=500)


class AttemptResponse(ApiModel):
    id: str
    assessment_id: str
    user_id: str
    context_id: str | None
    status: str
    score: float | None
    passed: bool | None
    started_at: datetime
    completed_at: datetime | None
    time_spent_seconds: int | None = None
    external: bool = False


class SubmissionResponse(ApiModel):
    attempt_id: str
    score: float
    passed: bool
    time_spent_seconds: int
    feedback: str | None
    results: list[dict[str, Any]] | None


class AssessmentResponse(ApiModel):
    id: str
    tool_id: str
    external_id: str
    title: str
    description: str | None
    type: str
    question_count: int
    time_limit_minutes: int | None
    passing_score: float | None
    max_attempts: int | None
