"""DTOs for API keys and bearer tokens (no ORM dependency)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class IssuedToken:
    """Bearer token returned by authenticate()."""

    token: str
    expires_at: datetime
    permissions: list[str]
    token_type: str = "Bearer"


@dataclass(frozen=True)
class TokenPayload:
    """Verified claims of a bearer token."""

    key_id: str
    tenant_id: str
    permissions: list[str]
    expires_at: datetime


@dataclass(frozen=True)
class ApiKeyResult:
    """API key metadata. Never carries the secret or its hash."""

    id: str
    tenant_id: str
    name: str
    key_prefix: str
    permissions: list[str]
    revoked: bool
    created_by: str | None
    created_at: datetime
    last_used_at: datetime | None = None
    revoked_at: datetime | None = None


@dataclass(frozen=True)
class GeneratedApiKey:
    """A newly created key. The secret is only ever returned here."""

    api_key: ApiKeyResult
    key: str
    secret: str
