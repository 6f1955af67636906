"""Integration registration repository. Reads are always scoped by tenant and kind."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.models.registration import IntegrationRegistration
from app.infrastructure.persistence.repositories.base import BaseRepository


class RegistrationRepository(BaseRepository[IntegrationRegistration]):
    """Registration repository for all integration families."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, IntegrationRegistration)

    async def get_by_tenant_and_kind(
        self,
        tenant_id: str,
        kind: str,
        status: str | None = None,
        ids: Sequence[str] | None = None,
    ) -> list[IntegrationRegistration]:
        """Return registrations of one kind for tenant, optionally filtered by status and ids."""
        stmt = select(IntegrationRegistration).where(
            IntegrationRegistration.tenant_id == tenant_id,
            IntegrationRegistration.kind == kind,
        )
        if status is not None:
            stmt = stmt.where(IntegrationRegistration.status == status)
        if ids is not None:
            stmt = stmt.where(IntegrationRegistration.id.in_(list(ids)))
        result = await self.db.execute(stmt.order_by(IntegrationRegistration.created_at))
        return list(result.scalars().all())

    async def get_for_tenant(
        self, registration_id: str, tenant_id: str, kind: str
    ) -> IntegrationRegistration | None:
        """Return registration by id if it belongs to tenant and is of the given kind."""
        result = await self.db.execute(
            select(IntegrationRegistration).where(
                IntegrationRegistration.id == registration_id,
                IntegrationRegistration.tenant_id == tenant_id,
                IntegrationRegistration.kind == kind,
            )
        )
        return result.scalar_one_or_none()
