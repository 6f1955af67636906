"""DTOs for assessment attempts and results."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AttemptResult:
    """Attempt state (local or externally scored)."""

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


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of submit_attempt(). feedback and results follow the assessment's flags."""

    attempt_id: str
    score: float
    passed: bool
    time_spent_seconds: int
    feedback: str | None
    results: list[dict[str, Any]] | None


@dataclass(frozen=True)
class AssessmentSummary:
    """Synced assessment without its questions (they carry the correct answers)."""

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
