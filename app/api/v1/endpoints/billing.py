"""Stripe webhook and the tenant subscription it maintains."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.api.v1.dependencies import (
    get_billing_service,
    get_tenant_id,
    get_webhook_dispatcher,
    require_permission,
)
from app.application.dtos.credential import TokenPayload
from app.application.services.billing_service import BillingService
from app.application.services.webhook_dispatcher import WebhookDispatcher
from app.core.constants import STRIPE_SIGNATURE_HEADER
from app.core.limiter import limit_webhooks
from app.domain.enums import ApiPermission
from app.schemas.media import SubscriptionResponse
from app.schemas.registration import WebhookAck

stripe_router = APIRouter()
billing_router = APIRouter()


@stripe_router.post("/webhook", response_model=WebhookAck)
@limit_webhooks
async def stripe_webhook(
    request: Request,
    dispatcher: Annotated[WebhookDispatcher, Depends(get_webhook_dispatcher)],
):
    event, handled = await dispatcher.receive_stripe_webhook(
        await request.body(), request.headers.get(STRIPE_SIGNATURE_HEADER)
    )
    return WebhookAck(event_type=event.event_type, handled=handled)


@billing_router.get("/subscription/{tenant_id}", response_model=SubscriptionResponse)
async def get_subscription(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[BillingService, Depends(get_billing_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.BILLING_READ))],
):
    return SubscriptionResponse.model_validate(await service.get_subscription(tenant_id))
