"""Content provider routes beyond registration: usage, catalog items, recommendations."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import get_content_service, get_tenant_id, require_permission
from app.application.dtos.credential import TokenPayload
from app.application.services.content_provider_service import ContentProviderService
from app.core.limiter import limit_writes
from app.domain.enums import ApiPermission
from app.schemas.content import (
    ContentItemResponse,
    RecommendationResponse,
    UsageCreate,
    UsageCreatedResponse,
)

router = APIRouter()


@router.post("/usage/{tenant_id}", response_model=UsageCreatedResponse, status_code=201)
@limit_writes
async def record_usage(
    request: Request,
    body: UsageCreate,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[ContentProviderService, Depends(get_content_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.CONTENT_WRITE))],
):
    """Record that a learner used a catalog item."""
    return UsageCreatedResponse(id=await service.record_usage(tenant_id, body.to_dto()))


@router.get("/items/{tenant_id}/{item_id}", response_model=ContentItemResponse)
async def get_content_item(
    item_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[ContentProviderService, Depends(get_content_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.CONTENT_READ))],
):
    return ContentItemResponse.model_validate(await service.get_content_item(tenant_id, item_id))


@router.get("/recommendations/{tenant_id}/{user_id}", response_model=list[RecommendationResponse])
async def get_recommendations(
    user_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[ContentProviderService, Depends(get_content_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.CONTENT_READ))],
    context_id: Annotated[str | None, Query(alias="contextId")] = None,
    limit: int = 5,
):
    """Catalog items the learner has not completed, best match first."""
    recommendations = await service.get_recommendations(
        tenant_id, user_id, context_id=context_id, limit=limit
    )
    return [RecommendationResponse.model_validate(r) for r in recommendations]
