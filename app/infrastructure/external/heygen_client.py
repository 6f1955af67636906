"""HeyGen API client (avatar video generation and status)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from app.infrastructure.exceptions import UpstreamPayloadError
from app.infrastructure.external.http import request_json


@dataclass(frozen=True)
class HeyGenVideoStatus:
    """Normalized video status response."""

    status: str
    video_url: str | None = None
    thumbnail_url: str | None = None
    duration: float | None = None
    error: str | None = None


class HeyGenClient:
    """Calls HeyGen with the X-Api-Key header on the shared HTTP client."""

    SERVICE_NAME = "heygen"

    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str) -> None:
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def _headers(self) -> dict[str, str]:
        return {"X-Api-Key": self.api_key, "Accept": "application/json"}

    async def generate_video(
        self,
        title: str,
        script: str,
        avatar_id: str,
        voice_id: str,
        width: int = 1280,
        height: int = 720,
        callback_id: str | None = None,
    ) -> str:
        """Submit a render job; return HeyGen's video_id."""
        payload: dict[str, Any] = {
            "title": title,
            "video_inputs": [
                {
                    "character": {"type": "avatar", "avatar_id": avatar_id, "avatar_style": "normal"},
                    "voice": {"type": "text", "input_text": script, "voice_id": voice_id},
                }
            ],
            "dimension": {"width": width, "height": height},
        }
        if callback_id:
            payload["callback_id"] = callback_id
        body = await request_json(
            self.http,
            "POST",
            f"{self.base_url}/v2/video/generate",
            service=self.SERVICE_NAME,
            action="generate avatar video",
            json=payload,
            headers=self._headers,
        )
        video_id = (body.get("data") or {}).get("video_id") if isinstance(body, dict) else None
        if not video_id:
            raise UpstreamPayloadError(self.SERVICE_NAME, "generate avatar video")
        return str(video_id)

    async def get_video_status(self, video_id: str) -> HeyGenVideoStatus:
        body = await request_json(
            self.http,
            "GET",
            f"{self.base_url}/v1/video_status.get",
            service=self.SERVICE_NAME,
            action="fetch video status",
            params={"video_id": video_id},
            headers=self._headers,
        )
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict) or "status" not in data:
            raise UpstreamPayloadError(self.SERVICE_NAME, "fetch video status")
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message") or error.get("detail")
        return HeyGenVideoStatus(
            status=str(data["status"]),
            video_url=data.get("video_url"),
            thumbnail_url=data.get("thumbnail_url"),
            duration=_number_or_none(data.get("duration")),
            error=error,
        )


def _number_or_none(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
