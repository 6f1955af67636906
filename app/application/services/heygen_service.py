"""HeyGen avatar video service: generation, status tracking and webhook updates."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.application.dtos.media import VideoGenerateRequest, VideoResult
from app.application.services.registration_service import optional_float
from app.core.config import Settings
from app.domain.enums import VideoStatus
from app.domain.exceptions import (
    IntegrationNotConfiguredException,
    ResourceNotFoundException,
    ValidationException,
)
from app.infrastructure.external.heygen_client import HeyGenClient
from app.infrastructure.persistence.database import Database
from app.infrastructure.persistence.models.heygen_video import HeyGenVideo
from app.infrastructure.persistence.repositories.heygen_video_repo import HeyGenVideoRepository
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

COMPLETED_EVENTS = frozenset({"video.completed", "avatar_video.success"})
FAILED_EVENTS = frozenset({"video.failed", "avatar_video.fail"})

# HeyGen status strings mapped to ours; anything else is still processing.
_REMOTE_STATUS = {
    "completed": VideoStatus.COMPLETED,
    "failed": VideoStatus.FAILED,
    "pending": VideoStatus.PENDING,
    "waiting": VideoStatus.PENDING,
    "processing": VideoStatus.PROCESSING,
}
_FINAL_STATUSES = frozenset({VideoStatus.COMPLETED.value, VideoStatus.FAILED.value})


def _video_to_result(video: HeyGenVideo) -> VideoResult:
    return VideoResult(
        id=video.id,
        tenant_id=video.tenant_id,
        video_id=video.video_id,
        title=video.title,
        status=video.status,
        url=video.url,
        thumbnail_url=video.thumbnail_url,
        duration=video.duration,
        error=video.error,
        created_by=video.created_by,
        created_at=ensure_utc(video.created_at),  # type: ignore[arg-type]
        updated_at=ensure_utc(video.updated_at),  # type: ignore[arg-type]
    )


class HeyGenService:
    """Avatar videos rendered by HeyGen, stored per tenant.

    Generation needs HEYGEN_API_KEY; without it the integration reports
    "not configured". Webhook updates only need the stored video rows.
    """

    def __init__(self, db: Database, settings: Settings, http: httpx.AsyncClient) -> None:
        self.db = db
        self.settings = settings
        self.http = http

    @property
    def client(self) -> HeyGenClient:
        if self.settings.heygen_api_key is None or not self.settings.heygen_api_key.get_secret_value():
            raise IntegrationNotConfiguredException("HeyGen", "HEYGEN_API_KEY")
        return HeyGenClient(
            self.http,
            self.settings.heygen_api_key.get_secret_value(),
            self.settings.heygen_api_base_url,
        )

    @traced("heygen.generate_video")
    async def generate_video(
        self,
        tenant_id: str,
        request: VideoGenerateRequest,
        created_by: str | None = None,
    ) -> VideoResult:
        for field_name in ("title", "script", "avatar_id", "voice_id"):
            if not getattr(request, field_name).strip():
                raise ValidationException(f"{field_name} is required", field=field_name)
        client = self.client
        video_id = await client.generate_video(
            title=request.title,
            script=request.script,
            avatar_id=request.avatar_id,
            voice_id=request.voice_id,
            width=request.width,
            height=request.height,
            callback_id=tenant_id,
        )
        async with self.db.transaction() as session:
            video = await HeyGenVideoRepository(session).create(
                HeyGenVideo(
                    tenant_id=tenant_id,
                    video_id=video_id,
                    title=request.title,
                    status=VideoStatus.PROCESSING.value,
                    created_by=created_by,
                )
            )
            result = _video_to_result(video)
        logger.info("HeyGen video %s requested for tenant %s", video_id, tenant_id)
        return result

    async def list_videos(self, tenant_id: str, skip: int = 0, limit: int = 100) -> list[VideoResult]:
        async with self.db.session() as session:
            rows = await HeyGenVideoRepository(session).get_by_tenant(tenant_id, skip=skip, limit=limit)
            return [_video_to_result(v) for v in rows]

    async def get_video(self, tenant_id: str, video_pk: str) -> VideoResult:
        async with self.db.session() as session:
            video = await HeyGenVideoRepository(session).get_by_id_and_tenant(video_pk, tenant_id)
            if video is None:
                raise ResourceNotFoundException("heygen_video", video_pk)
            return _video_to_result(video)

    async def refresh_status(self, tenant_id: str, video_pk: str) -> VideoResult:
        """Poll HeyGen for a video that is not finished yet.

        No session is open while HeyGen is called; the update is written in
        a second short transaction.
        """
        async with self.db.session() as session:
            video = await HeyGenVideoRepository(session).get_by_id_and_tenant(video_pk, tenant_id)
            if video is None:
                raise ResourceNotFoundException("heygen_video", video_pk)
            if video.status in _FINAL_STATUSES:
                return _video_to_result(video)
            remote_video_id = video.video_id

        remote = await self.client.get_video_status(remote_video_id)

        async with self.db.transaction() as session:
            repo = HeyGenVideoRepository(session)
            video = await repo.get_by_id_and_tenant(video_pk, tenant_id)
            if video is None:
                raise ResourceNotFoundException("heygen_video", video_pk)
            if video.status in _FINAL_STATUSES:
                # Finished by a webhook while HeyGen was being polled.
                return _video_to_result(video)
            video.status = _REMOTE_STATUS.get(remote.status, VideoStatus.PROCESSING).value
            video.url = remote.video_url or video.url
            video.thumbnail_url = remote.thumbnail_url or video.thumbnail_url
            video.duration = remote.duration if remote.duration is not None else video.duration
            video.error = remote.error
            await repo.update(video)
            return _video_to_result(video)

    @traced("heygen.handle_webhook_event")
    async def handle_webhook_event(self, event_type: str, event_data: dict[str, Any]) -> bool:
        """Apply a HeyGen callback. Returns False when the event type is ignored.

        Raises:
            ValidationException: video_id missing (nothing is changed).
            ResourceNotFoundException: video_id unknown.
        """
        video_id = event_data.get("video_id")
        if not video_id:
            raise ValidationException("video_id is required", field="video_id")
        if event_type not in COMPLETED_EVENTS and event_type not in FAILED_EVENTS:
            logger.warning("Ignoring HeyGen event %r for video %s", event_type, video_id)
            return False
        duration = optional_float(event_data.get("duration"), "duration")

        async with self.db.transaction() as session:
            repo = HeyGenVideoRepository(session)
            video = await repo.get_by_video_id(str(video_id))
            if video is None:
                raise ResourceNotFoundException("heygen_video", str(video_id))
            if event_type in COMPLETED_EVENTS:
                video.status = VideoStatus.COMPLETED.value
                video.url = event_data.get("url") or event_data.get("video_url") or video.url
                video.thumbnail_url = event_data.get("thumbnail_url") or video.thumbnail_url
                if duration is not None:
                    video.duration = duration
                video.error = None
            else:
                video.status = VideoStatus.FAILED.value
                video.error = str(event_data.get("msg") or event_data.get("error") or "Video rendering failed")
            await repo.update(video)
        logger.info("HeyGen video %s -> %s", video_id, video.status)
        return True
