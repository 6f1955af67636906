"""Presentation-layer dependency injection (composition root).

Routes depend only on these: services come from the AppContext on
app.state, and every tenant-scoped route goes through require_permission,
which authenticates the bearer token, checks the token tenant against the
{tenant_id} path parameter and then checks the permission, all before the
handler body runs.
"""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.application.dtos.credential import TokenPayload
from app.application.services.assessment_tool_service import AssessmentToolService
from app.application.services.billing_service import BillingService
from app.application.services.content_provider_service import ContentProviderService
from app.application.services.credential_service import CredentialService
from app.application.services.heygen_service import HeyGenService
from app.application.services.lti_service import LtiService
from app.application.services.webhook_dispatcher import WebhookDispatcher
from app.core.app_context import AppContext
from app.core.constants import ADMIN_SECRET_HEADER
from app.core.tenant_validation import is_valid_tenant_id_format
from app.domain.enums import ApiPermission
from app.domain.exceptions import InvalidTokenException, ValidationException
from app.shared.context import set_request_context

_http_bearer = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_credential_service(ctx: Annotated[AppContext, Depends(get_context)]) -> CredentialService:
    return ctx.credentials


def get_content_service(ctx: Annotated[AppContext, Depends(get_context)]) -> ContentProviderService:
    return ctx.content


def get_assessment_service(ctx: Annotated[AppContext, Depends(get_context)]) -> AssessmentToolService:
    return ctx.assessments


def get_lti_service(ctx: Annotated[AppContext, Depends(get_context)]) -> LtiService:
    return ctx.lti


def get_heygen_service(ctx: Annotated[AppContext, Depends(get_context)]) -> HeyGenService:
    return ctx.heygen


def get_billing_service(ctx: Annotated[AppContext, Depends(get_context)]) -> BillingService:
    return ctx.billing


def get_webhook_dispatcher(ctx: Annotated[AppContext, Depends(get_context)]) -> WebhookDispatcher:
    return ctx.webhooks


def get_tenant_id(tenant_id: str) -> str:
    """The {tenant_id} path parameter, format-checked."""
    if not is_valid_tenant_id_format(tenant_id):
        raise ValidationException("Invalid tenant id", field="tenant_id")
    return tenant_id


async def get_token_payload(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
    credential_service: Annotated[CredentialService, Depends(get_credential_service)],
) -> TokenPayload:
    """Verify the bearer token; 401 when absent, malformed or invalid."""
    if credentials is None or not credentials.credentials:
        raise InvalidTokenException("Missing or malformed Authorization header")
    payload = credential_service.verify_token(credentials.credentials)
    set_request_context(payload.tenant_id, payload.key_id)
    return payload


async def get_tenant_token(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    payload: Annotated[TokenPayload, Depends(get_token_payload)],
) -> TokenPayload:
    """Token whose tenant matches the path tenant (403 otherwise)."""
    CredentialService.require_tenant(payload, tenant_id)
    return payload


def require_permission(permission: str | ApiPermission):
    """Dependency factory: tenant-matched token that grants permission."""
    required = permission.value if isinstance(permission, ApiPermission) else permission

    async def _require(
        payload: Annotated[TokenPayload, Depends(get_tenant_token)],
    ) -> TokenPayload:
        CredentialService.require_permission(payload, required)
        return payload

    return _require


async def require_key_manager(
    request: Request,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
    ctx: Annotated[AppContext, Depends(get_context)],
) -> str | None:
    """Allow key management with keys:manage, or X-Admin-Secret when configured.

    Returns the acting key id, or None for the admin secret.
    """
    configured = ctx.settings.admin_api_secret
    supplied = request.headers.get(ADMIN_SECRET_HEADER)
    if (
        configured is not None
        and configured.get_secret_value()
        and supplied
        and hmac.compare_digest(supplied.encode(), configured.get_secret_value().encode())
    ):
        set_request_context(tenant_id, None)
        return None
    payload = await get_token_payload(credentials, ctx.credentials)
    CredentialService.require_tenant(payload, tenant_id)
    CredentialService.require_permission(payload, ApiPermission.KEYS_MANAGE.value)
    return payload.key_id
