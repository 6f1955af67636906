"""HeyGen video repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.models.heygen_video import HeyGenVideo
from app.infrastructure.persistence.repositories.base import BaseRepository


class HeyGenVideoRepository(BaseRepository[HeyGenVideo]):
    """HeyGen video repository (lookup by HeyGen video_id, list by tenant)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, HeyGenVideo)

    async def get_by_video_id(self, video_id: str) -> HeyGenVideo | None:
        result = await self.db.execute(select(HeyGenVideo).where(HeyGenVideo.video_id == video_id))
        return result.scalar_one_or_none()

    async def get_by_tenant(self, tenant_id: str, skip: int = 0, limit: int = 100) -> list[HeyGenVideo]:
        result = await self.db.execute(
            select(HeyGenVideo)
            .where(HeyGenVideo.tenant_id == tenant_id)
            .order_by(HeyGenVideo.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
