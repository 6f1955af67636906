"""Webhook dispatcher: verify, normalize and route inbound third-party callbacks.

Every sender's body is reduced to one WebhookEvent (tenant, source kind,
source id, event type, payload) and handed to the owning service.
Signatures are always required:

- registrations: X-Webhook-Signature-256: sha256=<hex>, keyed by the
  registration's webhook secret
- HeyGen: Signature: <hex>, keyed by HEYGEN_WEBHOOK_SECRET
- Stripe: Stripe-Signature: t=<ts>,v1=<hex>, keyed by STRIPE_WEBHOOK_SECRET

There is no retry or dead-letter queue; senders retry on non-2xx.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from app.application.dtos.webhook import WebhookEvent
from app.application.services.billing_service import BillingService
from app.application.services.heygen_service import HeyGenService
from app.application.services.registration_service import RegistrationService
from app.core.config import Settings
from app.domain.enums import RegistrationKind
from app.domain.exceptions import (
    IntegrationNotConfiguredException,
    ValidationException,
    WebhookSignatureException,
)
from app.infrastructure.security.signatures import (
    verify_plain_signature,
    verify_prefixed_signature,
    verify_stripe_signature,
)

logger = logging.getLogger(__name__)

SOURCE_HEYGEN = "heygen"
SOURCE_STRIPE = "stripe"


def parse_json_object(body: bytes) -> dict[str, Any]:
    """Decode a webhook body that must be a JSON object."""
    try:
        data = json.loads(body or b"{}")
    except ValueError as e:
        raise ValidationException("Webhook body must be valid JSON") from e
    if not isinstance(data, dict):
        raise ValidationException("Webhook body must be a JSON object")
    return data


def normalize_registration_event(
    kind: RegistrationKind, tenant_id: str, source_id: str, data: dict[str, Any]
) -> WebhookEvent:
    """{eventType, payload, ...extras} -> WebhookEvent. Extras are merged under payload."""
    event_type = data.get("eventType") or data.get("event_type")
    if not isinstance(event_type, str) or not event_type:
        raise ValidationException("eventType is required", field="eventType")
    payload = data.get("payload") or {}
    if not isinstance(payload, dict):
        raise ValidationException("payload must be an object", field="payload")
    extras = {k: v for k, v in data.items() if k not in ("eventType", "event_type", "payload")}
    return WebhookEvent(
        tenant_id=tenant_id,
        source_kind=kind.value,
        source_id=source_id,
        event_type=event_type,
        payload={**extras, **payload},
    )


def normalize_heygen_event(data: dict[str, Any]) -> WebhookEvent:
    """{event_type, event_data} -> WebhookEvent (source_id is the HeyGen video_id)."""
    event_type = data.get("event_type") or data.get("eventType")
    if not isinstance(event_type, str) or not event_type:
        raise ValidationException("event_type is required", field="event_type")
    event_data = data.get("event_data") or data.get("payload") or {}
    if not isinstance(event_data, dict):
        raise ValidationException("event_data must be an object", field="event_data")
    video_id = event_data.get("video_id")
    return WebhookEvent(
        tenant_id=None,
        source_kind=SOURCE_HEYGEN,
        source_id=str(video_id) if video_id else None,
        event_type=event_type,
        payload=event_data,
    )


def normalize_stripe_event(data: dict[str, Any]) -> WebhookEvent:
    """{id, type, data: {object}} -> WebhookEvent (payload is data.object)."""
    event_type = data.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise ValidationException("type is required", field="type")
    obj = (data.get("data") or {}).get("object") or {}
    if not isinstance(obj, dict):
        raise ValidationException("data.object must be an object", field="data.object")
    metadata = obj.get("metadata") or {}
    return WebhookEvent(
        tenant_id=metadata.get("tenant_id") or obj.get("client_reference_id"),
        source_kind=SOURCE_STRIPE,
        source_id=data.get("id"),
        event_type=event_type,
        payload=obj,
    )


class WebhookDispatcher:
    """Single entry point for inbound webhooks."""

    def __init__(
        self,
        settings: Settings,
        registrations: Mapping[RegistrationKind, RegistrationService],
        heygen: HeyGenService,
        billing: BillingService,
    ) -> None:
        self.settings = settings
        self.registrations = registrations
        self.heygen = heygen
        self.billing = billing

    async def dispatch(self, event: WebhookEvent) -> bool:
        """Route a verified event to its owning service. Returns False if it was ignored."""
        logger.info(
            "Webhook %s from %s/%s (tenant %s)",
            event.event_type,
            event.source_kind,
            event.source_id,
            event.tenant_id,
        )
        if event.source_kind == SOURCE_HEYGEN:
            return await self.heygen.handle_webhook_event(event.event_type, event.payload)
        if event.source_kind == SOURCE_STRIPE:
            return await self.billing.handle_webhook_event(event.event_type, event.payload)
        service = self.registrations[RegistrationKind(event.source_kind)]
        if event.tenant_id is None or event.source_id is None:
            raise ValidationException("Registration events need a tenant and source")
        return await service.handle_webhook_event(
            event.tenant_id, event.source_id, event.event_type, event.payload
        )

    async def receive_registration_webhook(
        self,
        kind: RegistrationKind,
        tenant_id: str,
        source_id: str,
        body: bytes,
        signature: str | None,
    ) -> WebhookEvent:
        """Verify a registration webhook against its secret, then dispatch it."""
        secret = await self.registrations[kind].get_webhook_secret(tenant_id, source_id)
        if not verify_prefixed_signature(body, signature, secret):
            logger.warning("Bad webhook signature for %s %s", kind.value, source_id)
            raise WebhookSignatureException()
        event = normalize_registration_event(kind, tenant_id, source_id, parse_json_object(body))
        await self.dispatch(event)
        return event

    async def receive_heygen_webhook(
        self, body: bytes, signature: str | None
    ) -> tuple[WebhookEvent, bool]:
        secret = self.settings.heygen_webhook_secret
        if secret is None or not secret.get_secret_value():
            raise IntegrationNotConfiguredException("HeyGen webhook", "HEYGEN_WEBHOOK_SECRET")
        if not verify_plain_signature(body, signature, secret.get_secret_value()):
            logger.warning("Bad HeyGen webhook signature")
            raise WebhookSignatureException()
        event = normalize_heygen_event(parse_json_object(body))
        return event, await self.dispatch(event)

    async def receive_stripe_webhook(
        self, body: bytes, signature: str | None
    ) -> tuple[WebhookEvent, bool]:
        secret = self.settings.stripe_webhook_secret
        if secret is None or not secret.get_secret_value():
            raise IntegrationNotConfiguredException("Stripe webhook", "STRIPE_WEBHOOK_SECRET")
        if not verify_stripe_signature(
            body,
            signature,
            secret.get_secret_value(),
            tolerance_seconds=self.settings.stripe_webhook_tolerance_seconds,
        ):
            logger.warning("Bad Stripe webhook signature")
            raise WebhookSignatureException()
        event = normalize_stripe_event(parse_json_object(body))
        return event, await self.dispatch(event)
