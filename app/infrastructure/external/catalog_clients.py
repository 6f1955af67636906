"""Remote catalog search clients for content providers and assessment tools.

Each provider exposes a JSON search endpoint under its base_url and
authenticates with a bearer API key. Responses are normalized to the
gateway's item shape so search results from different providers merge.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

from app.infrastructure.exceptions import UpstreamPayloadError
from app.infrastructure.external.http import request_json


def _as_str_list(value: Any) -> list[str]:
    """Providers send topics as a list or, sometimes, a single string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v) for v in value if isinstance(v, (str, int, float))]
    return []


class CatalogSearchClient(ABC):
    """Abstract catalog search: build request, call provider, normalize items."""

    SERVICE_NAME: ClassVar[str]
    SEARCH_PATH: ClassVar[str]

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    async def search(
        self,
        base_url: str,
        credentials: dict[str, Any],
        registration_id: str,
        query: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Search one provider and return normalized items.

        Args:
            base_url: Provider API root (no trailing slash required).
            credentials: Decrypted registration credentials (optional api_key).
            registration_id: Stamped onto each item as its source.
            query: Canonical query (q, limit and optional filters).
        """
        params = {k: v for k, v in query.items() if v is not None and k != "sources"}
        headers = {"Accept": "application/json"}
        if credentials.get("api_key"):
            headers["Authorization"] = f"Bearer {credentials['api_key']}"
        body = await request_json(
            self.http,
            "GET",
            f"{base_url.rstrip('/')}{self.SEARCH_PATH}",
            service=self.SERVICE_NAME,
            action="search provider catalog",
            params=params,
            headers=headers,
        )
        raw_items = body.get("items") if isinstance(body, dict) else body
        if not isinstance(raw_items, list):
            raise UpstreamPayloadError(self.SERVICE_NAME, "search provider catalog")
        return [
            self.normalize(raw, registration_id)
            for raw in raw_items
            if isinstance(raw, dict)
        ]

    @abstractmethod
    def normalize(self, raw: dict[str, Any], registration_id: str) -> dict[str, Any]:
        """Map one provider item to the gateway item shape."""
        ...


class ContentProviderClient(CatalogSearchClient):
    """Content provider search (e.g. BBC Bitesize, Oak National Academy)."""

    SERVICE_NAME = "content_provider"
    SEARCH_PATH = "/search"

    def normalize(self, raw: dict[str, Any], registration_id: str) -> dict[str, Any]:
        return {
            "id": str(raw.get("id", "")),
            "provider_id": registration_id,
            "title": raw.get("title") or raw.get("name") or "",
            "description": raw.get("description"),
            "url": raw.get("url"),
            "format": raw.get("format") or raw.get("type"),
            "subject": raw.get("subject"),
            "key_stage": raw.get("key_stage") or raw.get("keyStage"),
            "topics": _as_str_list(raw.get("topics")),
        }


class AssessmentToolClient(CatalogSearchClient):
    """Assessment tool search (quizzes, diagnostics, screeners)."""

    SERVICE_NAME = "assessment_tool"
    SEARCH_PATH = "/assessments"

    def normalize(self, raw: dict[str, Any], registration_id: str) -> dict[str, Any]:
        return {
            "id": str(raw.get("id", "")),
            "tool_id": registration_id,
            "title": raw.get("title") or raw.get("name") or "",
            "description": raw.get("description"),
            "type": raw.get("type") or "quiz",
        }
