"""Content provider catalog, usage and recommendation schemas."""

from datetime import datetime
from typing import Any

from pydantic import Field

from app.application.dtos.content import ContentUsageCreate
from app.schemas.base import ApiModel


class UsageCreate(ApiModel):
    content_item_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    context_id: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: int | None = Field(default=None, ge=0)
    progress: float | None = Field(default=None, ge=0, le=100)
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_dto(self) -> ContentUsageCreate:
        return ContentUsageCreate(**self.model_dump())


class UsageCreatedResponse(ApiModel):
    id: str


class ProviderSummaryResponse(ApiModel):
    id: str
    name: str
    type: str


class ContentItemResponse(ApiModel):
    id: str
    external_id: str
    title: str
    description: str | None
    url: str | None
    format: str | None
    subject: str | None
    key_stage: str | None
    topics: list[str]
    metadata: dict[str, Any]
    provider: ProviderSummaryResponse | None


class RecommendationResponse(ApiModel):
    content_item_id: str
    title: str
    reason: str
    priority: int
