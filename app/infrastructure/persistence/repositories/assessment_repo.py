"""Assessment and attempt repositories."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.models.assessment import Assessment, AssessmentAttempt
from app.infrastructure.persistence.repositories.base import BaseRepository


class AssessmentRepository(BaseRepository[Assessment]):
    """Assessments synced from assessment tool webhooks."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Assessment)

    async def get_by_external_id(
        self, tenant_id: str, registration_id: str, external_id: str
    ) -> Assessment | None:
        result = await self.db.execute(
            select(Assessment).where(
                Assessment.tenant_id == tenant_id,
                Assessment.registration_id == registration_id,
                Assessment.external_id == external_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_tenant(
        self, tenant_id: str, registration_id: str | None = None
    ) -> list[Assessment]:
        stmt = select(Assessment).where(Assessment.tenant_id == tenant_id)
        if registration_id is not None:
            stmt = stmt.where(Assessment.registration_id == registration_id)
        result = await self.db.execute(stmt.order_by(Assessment.title))
        return list(result.scalars().all())


class AssessmentAttemptRepository(BaseRepository[AssessmentAttempt]):
    """Assessment attempts (local and externally scored)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, AssessmentAttempt)

    async def count_for_user(self, tenant_id: str, assessment_id: str, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(AssessmentAttempt)
            .where(
                AssessmentAttempt.tenant_id == tenant_id,
                AssessmentAttempt.assessment_id == assessment_id,
                AssessmentAttempt.user_id == user_id,
            )
        )
        return int(result.scalar_one())

    async def get_results(
        self,
        tenant_id: str,
        user_id: str,
        assessment_id: str | None = None,
        context_id: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> list[AssessmentAttempt]:
        """Return the user's completed attempts, newest first (paginated)."""
        stmt = select(AssessmentAttempt).where(
            AssessmentAttempt.tenant_id == tenant_id,
            AssessmentAttempt.user_id == user_id,
            AssessmentAttempt.status == "completed",
        )
        if assessment_id is not None:
            stmt = stmt.where(AssessmentAttempt.assessment_id == assessment_id)
        if context_id is not None:
            stmt = stmt.where(AssessmentAttempt.context_id == context_id)
        result = await self.db.execute(
            stmt.order_by(AssessmentAttempt.completed_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())
