"""Developer API: exchange an API key for a bearer token and manage tenant keys."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.api.v1.dependencies import get_credential_service, get_tenant_id, require_key_manager
from app.application.services.credential_service import CredentialService
from app.core.limiter import limit_auth, limit_writes
from app.schemas.developer import (
    ApiKeyCreatedResponse,
    ApiKeyCreateRequest,
    ApiKeyResponse,
    AuthRequest,
    RevokeResponse,
    TokenResponse,
)

router = APIRouter()


@router.post("/auth/{tenant_id}", response_model=TokenResponse)
@limit_auth
async def authenticate(
    request: Request,
    body: AuthRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    credential_service: Annotated[CredentialService, Depends(get_credential_service)],
):
    """Issue a one-hour bearer token for an API key and secret of this tenant."""
    issued = await credential_service.authenticate(body.api_key, body.api_secret, tenant_id)
    return TokenResponse.model_validate(issued)


@router.get("/keys/{tenant_id}", response_model=list[ApiKeyResponse])
async def list_keys(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    credential_service: Annotated[CredentialService, Depends(get_credential_service)],
    _: Annotated[str | None, Depends(require_key_manager)],
):
    keys = await credential_service.list_api_keys(tenant_id)
    return [ApiKeyResponse.model_validate(k) for k in keys]


@router.post("/keys/{tenant_id}", response_model=ApiKeyCreatedResponse, status_code=201)
@limit_writes
async def create_key(
    request: Request,
    body: ApiKeyCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    credential_service: Annotated[CredentialService, Depends(get_credential_service)],
    actor_id: Annotated[str | None, Depends(require_key_manager)],
):
    """Create an API key. The secret is in this response only."""
    generated = await credential_service.generate_api_key(
        tenant_id, body.name, body.permissions, created_by=actor_id
    )
    return ApiKeyCreatedResponse.model_validate(generated)


@router.delete("/keys/{tenant_id}/{key_id}", response_model=RevokeResponse)
@limit_writes
async def revoke_key(
    request: Request,
    key_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    credential_service: Annotated[CredentialService, Depends(get_credential_service)],
    _: Annotated[str | None, Depends(require_key_manager)],
):
    """Revoke (never delete) a key. Revoking twice is not an error."""
    return RevokeResponse(revoked=await credential_service.revoke_api_key(key_id, tenant_id))
