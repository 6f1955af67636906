"""DTOs for the content catalog, usage and recommendations."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ContentUsageCreate:
    """Input for record_usage(). content_item_id and user_id are required."""

    content_item_id: str
    user_id: str
    context_id: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: int | None = None
    progress: float | None = None
    score: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderSummary:
    id: str
    name: str
    type: str


@dataclass(frozen=True)
class ContentItemResult:
    """Catalog item enriched with its provider."""

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
    provider: ProviderSummary | None


@dataclass(frozen=True)
class Recommendation:
    content_item_id: str
    title: str
    reason: str
    priority: int
