"""Assessment ORM models: Assessment (synced from tools) and AssessmentAttempt."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import MultiTenantModel


class Assessment(MultiTenantModel, Base):
    """Assessment published by an assessment tool. Table: assessment."""

    __tablename__ = "assessment"

    registration_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("integration_registration.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    external_id: Mapped[str] = mapped_column(String(200), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False, default="quiz")
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    time_limit_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    passing_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_attempts: Mapped[int | None] = mapped_column(Integer, nullable=True)
    show_feedback: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    show_results: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("registration_id", "external_id", name="uq_assessment_registration_external"),
    )


class AssessmentAttempt(MultiTenantModel, Base):
    """A learner's attempt at an assessment. Table: assessment_attempt."""

    __tablename__ = "assessment_attempt"

    assessment_id: Mapped[str] = mapped_column(
        String, ForeignKey("assessment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(200), nullable=False)
    context_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="in_progress")
    answers: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    time_spent_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    external: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("ix_attempt_tenant_user", "tenant_id", "user_id"),)
