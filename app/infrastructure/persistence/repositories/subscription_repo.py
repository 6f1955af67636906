"""Subscription repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.models.subscription import Subscription
from app.infrastructure.persistence.repositories.base import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription]):
    """Per-tenant billing subscription."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Subscription)

    async def get_by_tenant(self, tenant_id: str) -> Subscription | None:
        result = await self.db.execute(select(Subscription).where(Subscription.tenant_id == tenant_id))
        return result.scalar_one_or_none()

    async def get_by_stripe_subscription_id(self, subscription_id: str) -> Subscription | None:
        result = await self.db.execute(
            select(Subscription).where(Subscription.stripe_subscription_id == subscription_id)
        )
        return result.scalar_one_or_none()

    async def get_by_customer(self, customer_id: str) -> Subscription | None:
        result = await self.db.execute(
            select(Subscription).where(Subscription.stripe_customer_id == customer_id)
        )
        return result.scalar_one_or_none()
