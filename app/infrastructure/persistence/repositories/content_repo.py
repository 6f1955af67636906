"""Content catalog and usage repositories."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.models.content import ContentItem, ContentUsage
from app.infrastructure.persistence.repositories.base import BaseRepository


class ContentItemRepository(BaseRepository[ContentItem]):
    """Content items synced from provider webhooks."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, ContentItem)

    async def get_by_external_id(
        self, tenant_id: str, registration_id: str, external_id: str
    ) -> ContentItem | None:
        result = await self.db.execute(
            select(ContentItem).where(
                ContentItem.tenant_id == tenant_id,
                ContentItem.registration_id == registration_id,
                ContentItem.external_id == external_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, tenant_id: str, item_ids: list[str]) -> list[ContentItem]:
        if not item_ids:
            return []
        result = await self.db.execute(
            select(ContentItem).where(
                ContentItem.tenant_id == tenant_id, ContentItem.id.in_(item_ids)
            )
        )
        return list(result.scalars().all())

    async def get_candidates(
        self,
        tenant_id: str,
        registration_ids: list[str],
        limit: int = 500,
    ) -> list[ContentItem]:
        """Return recent catalog items from the given registrations."""
        if not registration_ids:
            return []
        result = await self.db.execute(
            select(ContentItem)
            .where(
                ContentItem.tenant_id == tenant_id,
                ContentItem.registration_id.in_(registration_ids),
            )
            .order_by(ContentItem.updated_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class ContentUsageRepository(BaseRepository[ContentUsage]):
    """Learner usage of content items."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, ContentUsage)

    async def get_by_user(
        self, tenant_id: str, user_id: str, limit: int = 100
    ) -> list[ContentUsage]:
        """Return the user's most recent usage records."""
        result = await self.db.execute(
            select(ContentUsage)
            .where(ContentUsage.tenant_id == tenant_id, ContentUsage.user_id == user_id)
            .order_by(ContentUsage.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
