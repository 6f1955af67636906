"""DTOs for HeyGen avatar videos and billing subscriptions."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class VideoGenerateRequest:
    title: str
    script: str
    avatar_id: str
    voice_id: str
    width: int = 1280
    height: int = 720


@dataclass(frozen=True)
class VideoResult:
    id: str
    tenant_id: str
    video_id: str
    title: str
    status: str
    url: str | None
    thumbnail_url: str | None
    duration: float | None
    error: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class SubscriptionResult:
    tenant_id: str
    status: str
    stripe_customer_id: str | None
    stripe_subscription_id: str | None
    price_id: str | None
    current_period_end: datetime | None
    cancel_at_period_end: bool
    updated_at: datetime
