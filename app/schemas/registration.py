"""Registration, search and webhook schemas shared by every integration family."""

from datetime import datetime
from typing import Any

from pydantic import Field

from app.application.dtos.registration import RegistrationConfig, SearchQuery
from app.core.constants import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT
from app.schemas.base import ApiModel


class RegistrationCreate(ApiModel):
    """Body for POST /{family}/register/{tenantId}."""

    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=64)
    base_url: str = Field(..., min_length=1, max_length=2048)
    description: str | None = Field(default=None, max_length=2000)
    credentials: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_config(self) -> RegistrationConfig:
        return RegistrationConfig(
            name=self.name,
            type=self.type,
            base_url=self.base_url,
            credentials=self.credentials,
            description=self.description,
            settings=self.settings,
            metadata=self.metadata,
        )


class RegistrationCreatedResponse(ApiModel):
    id: str
    webhook_secret: str
    status: str


class RegistrationResponse(ApiModel):
    """Registration without credentials."""

    id: str
    tenant_id: str
    kind: str
    name: str
    type: str
    base_url: str
    description: str | None
    settings: dict[str, Any]
    metadata: dict[str, Any]
    status: str
    status_reason: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime


class StatusUpdate(ApiModel):
    status: str = Field(..., min_length=1, max_length=32)
    reason: str | None = Field(default=None, max_length=1000)


class SearchRequest(ApiModel):
    """Body for POST /{family}/search/{tenantId}. Range checks happen in the service."""

    q: str | None = Field(default=None, max_length=500)
    limit: int = DEFAULT_SEARCH_LIMIT
    offset: int = 0
    sources: list[str] | None = Field(default=None, max_length=MAX_SEARCH_LIMIT)
    filters: dict[str, Any] = Field(default_factory=dict)

    def to_query(self) -> SearchQuery:
        return SearchQuery(
            q=self.q,
            limit=self.limit,
            offset=self.offset,
            sources=self.sources,
            filters=self.filters,
        )


class SearchResponse(ApiModel):
    items: list[dict[str, Any]]
    merged: int
    limit: int
    offset: int
    failed_sources: list[str]


class WebhookAck(ApiModel):
    received: bool = True
    event_type: str
    handled: bool = True
