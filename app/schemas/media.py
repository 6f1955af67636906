"""HeyGen video and billing subscription schemas."""

from datetime import datetime

from pydantic import Field

from app.application.dtos.media import VideoGenerateRequest
from app.schemas.base import ApiModel


class VideoCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=255)
    script: str = Field(..., min_length=1, max_length=5000)
    avatar_id: str = Field(..., min_length=1)
    voice_id: str = Field(..., min_length=1)
    width: int = Field(default=1280, ge=128, le=3840)
    height: int = Field(default=720, ge=128, le=3840)

    def to_dto(self) -> VideoGenerateRequest:
        return VideoGenerateRequest(**self.model_dump())


class VideoResponse(ApiModel):
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


class SubscriptionResponse(ApiModel):
    tenant_id: str
    status: str
    stripe_customer_id: str | None
    stripe_subscription_id: str | None
    price_id: str | None
    current_period_end: datetime | None
    cancel_at_period_end: bool
    updated_at: datetime
