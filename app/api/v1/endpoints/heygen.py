"""HeyGen avatar video routes and the HeyGen status webhook."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import (
    get_heygen_service,
    get_tenant_id,
    get_webhook_dispatcher,
    require_permission,
)
from app.application.dtos.credential import TokenPayload
from app.application.services.heygen_service import HeyGenService
from app.application.services.webhook_dispatcher import WebhookDispatcher
from app.core.constants import HEYGEN_SIGNATURE_HEADER
from app.core.limiter import limit_webhooks, limit_writes
from app.domain.enums import ApiPermission
from app.schemas.media import VideoCreate, VideoResponse
from app.schemas.registration import WebhookAck

router = APIRouter()


@router.post("/webhook", response_model=WebhookAck)
@limit_webhooks
async def heygen_webhook(
    request: Request,
    dispatcher: Annotated[WebhookDispatcher, Depends(get_webhook_dispatcher)],
):
    """Video status callback. Missing video_id is rejected before anything changes."""
    event, handled = await dispatcher.receive_heygen_webhook(
        await request.body(), request.headers.get(HEYGEN_SIGNATURE_HEADER)
    )
    return WebhookAck(event_type=event.event_type, handled=handled)


@router.post("/videos/{tenant_id}", response_model=VideoResponse, status_code=201)
@limit_writes
async def generate_video(
    request: Request,
    body: VideoCreate,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[HeyGenService, Depends(get_heygen_service)],
    payload: Annotated[TokenPayload, Depends(require_permission(ApiPermission.MEDIA_WRITE))],
):
    """Ask HeyGen to render a video; it is tracked as processing until the webhook arrives."""
    video = await service.generate_video(tenant_id, body.to_dto(), created_by=payload.key_id)
    return VideoResponse.model_validate(video)


@router.get("/videos/{tenant_id}", response_model=list[VideoResponse])
async def list_videos(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[HeyGenService, Depends(get_heygen_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.MEDIA_READ))],
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 100,
):
    videos = await service.list_videos(tenant_id, skip=skip, limit=limit)
    return [VideoResponse.model_validate(v) for v in videos]


@router.get("/videos/{tenant_id}/{video_pk}", response_model=VideoResponse)
async def get_video(
    video_pk: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[HeyGenService, Depends(get_heygen_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.MEDIA_READ))],
):
    return VideoResponse.model_validate(await service.get_video(tenant_id, video_pk))


@router.post("/videos/{tenant_id}/{video_pk}/refresh", response_model=VideoResponse)
@limit_writes
async def refresh_video(
    request: Request,
    video_pk: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[HeyGenService, Depends(get_heygen_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.MEDIA_WRITE))],
):
    """Poll HeyGen for a video whose webhook has not arrived."""
    return VideoResponse.model_validate(await service.refresh_status(tenant_id, video_pk))
