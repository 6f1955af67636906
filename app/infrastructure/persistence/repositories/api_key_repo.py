"""API key repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.models.api_key import ApiKey
from app.infrastructure.persistence.repositories.base import BaseRepository


class ApiKeyRepository(BaseRepository[ApiKey]):
    """API key repository (lookup by public key, list by tenant)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, ApiKey)

    async def get_by_key(self, key: str) -> ApiKey | None:
        result = await self.db.execute(select(ApiKey).where(ApiKey.key == key))
        return result.scalar_one_or_none()

    async def get_by_tenant(self, tenant_id: str) -> list[ApiKey]:
        """Return all keys of a tenant, newest first (revoked included)."""
        result = await self.db.execute(
            select(ApiKey)
            .where(ApiKey.tenant_id == tenant_id)
            .order_by(ApiKey.created_at.desc())
        )
        return list(result.scalars().all())
