"""Normalized inbound webhook event."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.shared.utils.datetime import utc_now


@dataclass(frozen=True)
class WebhookEvent:
    """One inbound event after signature verification and normalization. Not persisted."""

    tenant_id: str | None
    source_kind: str
    source_id: str | None
    event_type: str
    payload: dict[str, Any]
    received_at: datetime = field(default_factory=utc_now)
