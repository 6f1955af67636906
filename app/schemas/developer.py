"""Developer API schemas: token issuance and API key management."""

from datetime import datetime

from pydantic import Field

from app.schemas.base import ApiModel


class AuthRequest(ApiModel):
    """Body for POST /developer/auth/{tenantId}."""

    api_key: str = Field(..., min_length=1, max_length=128)
    api_secret: str = Field(..., min_length=1, max_length=256)


class TokenResponse(ApiModel):
    token: str
    token_type: str = "Bearer"
    expires_at: datetime
    permissions: list[str]


class ApiKeyCreateRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    permissions: list[str] = Field(..., min_length=1, max_length=32)


class ApiKeyResponse(ApiModel):
    """API key metadata (never the secret)."""

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


class ApiKeyCreatedResponse(ApiModel):
    """Returned once on creation; the secret cannot be retrieved again."""

    api_key: ApiKeyResponse
    key: str
    secret: str


class RevokeResponse(ApiModel):
    revoked: bool = True
