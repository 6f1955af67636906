"""DTOs for integration registrations and federated search."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class RegistrationConfig:
    """Input for register(). credentials are encrypted before storage."""

    name: str
    type: str
    base_url: str
    credentials: dict[str, Any] = field(default_factory=dict)
    description: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegistrationResult:
    """Result of register(). webhook_secret is returned once and never again."""

    id: str
    webhook_secret: str
    status: str = "pending"


@dataclass(frozen=True)
class RegistrationSummary:
    """Registration as exposed to API clients (credentials omitted)."""

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


@dataclass(frozen=True)
class SearchQuery:
    """Federated search input. filters are passed through to providers."""

    q: str | None = None
    limit: int = 20
    offset: int = 0
    sources: list[str] | None = None
    filters: dict[str, Any] = field(default_factory=dict)

    def remote_params(self) -> dict[str, Any]:
        """Canonical parameters sent to (and memoized per) each registration.

        offset is applied after merging, so it is not part of the remote query.
        """
        params: dict[str, Any] = {k: v for k, v in self.filters.items() if v is not None}
        if self.q:
            params["q"] = self.q
        params["limit"] = self.limit + self.offset
        return params


@dataclass(frozen=True)
class SearchResult:
    """Merged search page plus the registrations that failed to answer.

    merged counts the items gathered across sources before paging. Each
    source is asked for at most offset + limit items, so it is a lower bound
    on the catalog size, not a total.
    """

    items: list[dict[str, Any]]
    merged: int
    limit: int
    offset: int
    failed_sources: list[str]
