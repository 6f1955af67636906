"""Routes shared by every integration family (content providers, assessment tools, SIS, LTI).

build_registration_router() produces the same surface for each family:
register, list, get, status changes, federated search (when the family is
searchable) and signed inbound webhooks. Every path starts with a literal
segment, so no tenant id can be mistaken for a family route such as
/assessment-tools/assessments/... or /lti/login/....
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import get_context, get_tenant_id, require_permission
from app.application.dtos.credential import TokenPayload
from app.application.services.registration_service import RegistrationService
from app.core.app_context import AppContext
from app.core.constants import WEBHOOK_SIGNATURE_HEADER
from app.core.limiter import limit_webhooks, limit_writes
from app.domain.enums import RegistrationKind
from app.schemas.registration import (
    RegistrationCreate,
    RegistrationCreatedResponse,
    RegistrationResponse,
    SearchRequest,
    SearchResponse,
    StatusUpdate,
    WebhookAck,
)


def build_registration_router(
    kind: RegistrationKind, resource: str, *, searchable: bool = True
) -> APIRouter:
    """Router for one family; resource is the permission prefix (e.g. "content")."""
    router = APIRouter()
    can_read = require_permission(f"{resource}:read")
    can_write = require_permission(f"{resource}:write")

    def get_service(ctx: Annotated[AppContext, Depends(get_context)]) -> RegistrationService:
        return ctx.registration_service(kind)

    Service = Annotated[RegistrationService, Depends(get_service)]

    @router.post("/register/{tenant_id}", response_model=RegistrationCreatedResponse, status_code=201)
    @limit_writes
    async def register(
        request: Request,
        body: RegistrationCreate,
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        service: Service,
        payload: Annotated[TokenPayload, Depends(can_write)],
    ):
        """Register an integration (starts as pending). The webhook secret is returned once."""
        result = await service.register(tenant_id, body.to_config(), created_by=payload.key_id)
        return RegistrationCreatedResponse.model_validate(result)

    if searchable:

        @router.post("/search/{tenant_id}", response_model=SearchResponse)
        async def search(
            body: SearchRequest,
            tenant_id: Annotated[str, Depends(get_tenant_id)],
            service: Service,
            _: Annotated[TokenPayload, Depends(can_read)],
        ):
            """Search every active registration of this family for the tenant."""
            result = await service.search(tenant_id, body.to_query())
            return SearchResponse.model_validate(result)

    @router.post("/webhooks/{tenant_id}/{registration_id}", response_model=WebhookAck)
    @limit_webhooks
    async def receive_webhook(
        request: Request,
        registration_id: str,
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        ctx: Annotated[AppContext, Depends(get_context)],
    ):
        """Inbound callback from the integration, signed with its webhook secret."""
        event = await ctx.webhooks.receive_registration_webhook(
            kind,
            tenant_id,
            registration_id,
            await request.body(),
            request.headers.get(WEBHOOK_SIGNATURE_HEADER),
        )
        return WebhookAck(event_type=event.event_type)

    @router.get("/registrations/{tenant_id}", response_model=list[RegistrationResponse])
    async def list_registrations(
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        service: Service,
        _: Annotated[TokenPayload, Depends(can_read)],
        status: Annotated[str | None, Query(max_length=32)] = None,
    ):
        rows = await service.list_registrations(tenant_id, status=status)
        return [RegistrationResponse.model_validate(r) for r in rows]

    @router.get("/registrations/{tenant_id}/{registration_id}", response_model=RegistrationResponse)
    async def get_registration(
        registration_id: str,
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        service: Service,
        _: Annotated[TokenPayload, Depends(can_read)],
    ):
        return RegistrationResponse.model_validate(
            await service.get_registration(tenant_id, registration_id)
        )

    @router.patch("/registrations/{tenant_id}/{registration_id}/status", response_model=RegistrationResponse)
    @limit_writes
    async def set_status(
        request: Request,
        registration_id: str,
        body: StatusUpdate,
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        service: Service,
        _: Annotated[TokenPayload, Depends(can_write)],
    ):
        """Move a registration through pending/active/inactive/error (409 on illegal moves)."""
        summary = await service.set_status(tenant_id, registration_id, body.status, body.reason)
        return RegistrationResponse.model_validate(summary)

    return router
