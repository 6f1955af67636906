"""Billing service: tenant subscriptions maintained from Stripe webhook events."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from app.application.dtos.media import SubscriptionResult
from app.domain.enums import SubscriptionStatus
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.infrastructure.persistence.database import Database
from app.infrastructure.persistence.models.subscription import Subscription
from app.infrastructure.persistence.repositories.subscription_repo import SubscriptionRepository
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import ensure_utc, from_timestamp_utc

logger = logging.getLogger(__name__)


def _subscription_to_result(sub: Subscription) -> SubscriptionResult:
    return SubscriptionResult(
        tenant_id=sub.tenant_id,
        status=sub.status,
        stripe_customer_id=sub.stripe_customer_id,
        stripe_subscription_id=sub.stripe_subscription_id,
        price_id=sub.price_id,
        current_period_end=ensure_utc(sub.current_period_end),
        cancel_at_period_end=sub.cancel_at_period_end,
        updated_at=ensure_utc(sub.updated_at),  # type: ignore[arg-type]
    )


def _tenant_from(obj: dict[str, Any]) -> str | None:
    metadata = obj.get("metadata") or {}
    return metadata.get("tenant_id") or obj.get("client_reference_id")


def _first_price_id(obj: dict[str, Any]) -> str | None:
    items = (obj.get("items") or {}).get("data") or []
    if items and isinstance(items[0], dict):
        return (items[0].get("price") or {}).get("id")
    return None


class BillingService:
    """Apply Stripe events to per-tenant subscription rows.

    Checkout creation is out of scope; this service only mirrors state
    Stripe reports back.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def _handlers(
        self,
    ) -> dict[str, Callable[[SubscriptionRepository, dict[str, Any]], Awaitable[bool]]]:
        return {
            "checkout.session.completed": self._on_checkout_completed,
            "customer.subscription.created": self._on_subscription_updated,
            "customer.subscription.updated": self._on_subscription_updated,
            "customer.subscription.deleted": self._on_subscription_deleted,
            "invoice.payment_succeeded": self._on_invoice_paid,
            "invoice.payment_failed": self._on_invoice_failed,
        }

    @traced("billing.handle_webhook_event")
    async def handle_webhook_event(self, event_type: str, obj: dict[str, Any]) -> bool:
        """Apply one Stripe event (data.object). Returns False when ignored."""
        handler = self._handlers().get(event_type)
        if handler is None:
            logger.warning("Ignoring Stripe event %r", event_type)
            return False
        async with self.db.transaction() as session:
            return await handler(SubscriptionRepository(session), obj)

    async def _find(self, repo: SubscriptionRepository, obj: dict[str, Any], sub_id: str | None) -> Subscription | None:
        if sub_id:
            found = await repo.get_by_stripe_subscription_id(sub_id)
            if found is not None:
                return found
        tenant_id = _tenant_from(obj)
        if tenant_id:
            found = await repo.get_by_tenant(tenant_id)
            if found is not None:
                return found
        customer = obj.get("customer")
        if customer:
            return await repo.get_by_customer(str(customer))
        return None

    async def _on_checkout_completed(self, repo: SubscriptionRepository, obj: dict[str, Any]) -> bool:
        tenant_id = _tenant_from(obj)
        if not tenant_id:
            raise ValidationException(
                "checkout session has no tenant (metadata.tenant_id or client_reference_id)",
                field="tenant_id",
            )
        sub = await repo.get_by_tenant(tenant_id)
        if sub is None:
            sub = await repo.create(Subscription(tenant_id=tenant_id, cancel_at_period_end=False))
        sub.stripe_customer_id = obj.get("customer") or sub.stripe_customer_id
        sub.stripe_subscription_id = obj.get("subscription") or sub.stripe_subscription_id
        sub.status = SubscriptionStatus.ACTIVE.value
        await repo.update(sub)
        logger.info("Subscription activated for tenant %s", tenant_id)
        return True

    async def _on_subscription_updated(self, repo: SubscriptionRepository, obj: dict[str, Any]) -> bool:
        sub = await self._find(repo, obj, obj.get("id"))
        if sub is None:
            tenant_id = _tenant_from(obj)
            if not tenant_id:
                logger.warning("Stripe subscription %s matches no tenant", obj.get("id"))
                return False
            sub = await repo.create(Subscription(tenant_id=tenant_id, cancel_at_period_end=False))
        status = obj.get("status")
        if status in SubscriptionStatus.values():
            sub.status = status
        elif status:
            logger.warning("Unknown Stripe subscription status %r", status)
        sub.stripe_subscription_id = obj.get("id") or sub.stripe_subscription_id
        sub.stripe_customer_id = obj.get("customer") or sub.stripe_customer_id
        sub.price_id = _first_price_id(obj) or sub.price_id
        if obj.get("current_period_end"):
            sub.current_period_end = from_timestamp_utc(float(obj["current_period_end"]))
        sub.cancel_at_period_end = bool(obj.get("cancel_at_period_end", sub.cancel_at_period_end))
        await repo.update(sub)
        return True

    async def _on_subscription_deleted(self, repo: SubscriptionRepository, obj: dict[str, Any]) -> bool:
        return await self._set_status(repo, obj, obj.get("id"), SubscriptionStatus.CANCELED)

    async def _on_invoice_paid(self, repo: SubscriptionRepository, obj: dict[str, Any]) -> bool:
        return await self._set_status(repo, obj, obj.get("subscription"), SubscriptionStatus.ACTIVE)

    async def _on_invoice_failed(self, repo: SubscriptionRepository, obj: dict[str, Any]) -> bool:
        return await self._set_status(repo, obj, obj.get("subscription"), SubscriptionStatus.PAST_DUE)

    async def _set_status(
        self,
        repo: SubscriptionRepository,
        obj: dict[str, Any],
        sub_id: str | None,
        status: SubscriptionStatus,
    ) -> bool:
        sub = await self._find(repo, obj, sub_id)
        if sub is None:
            logger.warning("Stripe event for unknown subscription %s", sub_id)
            return False
        sub.status = status.value
        await repo.update(sub)
        logger.info("Subscription for tenant %s -> %s", sub.tenant_id, status.value)
        return True

    async def get_subscription(self, tenant_id: str) -> SubscriptionResult:
        async with self.db.session() as session:
            sub = await SubscriptionRepository(session).get_by_tenant(tenant_id)
            if sub is None:
                raise ResourceNotFoundException("subscription", tenant_id)
            return _subscription_to_result(sub)
