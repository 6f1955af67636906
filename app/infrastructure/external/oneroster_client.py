"""OneRoster 1.1 REST client for student information systems.

Authenticates with OAuth2 client credentials and reads roster resources
(users, classes, orgs, enrollments) from /ims/oneroster/v1p1/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from app.infrastructure.exceptions import UpstreamPayloadError
from app.infrastructure.external.http import request_json

ONEROSTER_PATH = "/ims/oneroster/v1p1"
ROSTER_READONLY_SCOPE = "https://purl.imsglobal.org/spec/or/v1p1/scope/roster-core.readonly"

# Field used for free-text filtering, per resource.
_FILTER_FIELD = {
    "users": "familyName",
    "classes": "title",
    "orgs": "name",
    "enrollments": "role",
}


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    expires_in: int


class OneRosterClient:
    """Thin OneRoster client on the shared HTTP client."""

    SERVICE_NAME = "sis"
    RESOURCES = tuple(_FILTER_FIELD)

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    async def fetch_access_token(
        self, token_url: str, client_id: str, client_secret: str, scope: str = ROSTER_READONLY_SCOPE
    ) -> AccessToken:
        body = await request_json(
            self.http,
            "POST",
            token_url,
            service=self.SERVICE_NAME,
            action="obtain SIS access token",
            data={"grant_type": "client_credentials", "scope": scope},
            auth=(client_id, client_secret),
        )
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise UpstreamPayloadError(self.SERVICE_NAME, "obtain SIS access token")
        return AccessToken(access_token=token, expires_in=int(body.get("expires_in", 3600)))

    async def search(
        self,
        base_url: str,
        access_token: str,
        registration_id: str,
        resource: str,
        text: str | None,
        limit: int,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Read one roster resource, filtered on its display field when text is given."""
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if text:
            safe = text.replace("'", "")
            params["filter"] = f"{_FILTER_FIELD[resource]}~'{safe}'"
        body = await request_json(
            self.http,
            "GET",
            f"{base_url.rstrip('/')}{ONEROSTER_PATH}/{resource}",
            service=self.SERVICE_NAME,
            action="search SIS roster",
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        records = body.get(resource) if isinstance(body, dict) else None
        if not isinstance(records, list):
            raise UpstreamPayloadError(self.SERVICE_NAME, "search SIS roster")
        return [self.normalize(r, resource, registration_id) for r in records if isinstance(r, dict)]

    @staticmethod
    def normalize(raw: dict[str, Any], resource: str, registration_id: str) -> dict[str, Any]:
        if resource == "users":
            name = " ".join(p for p in (raw.get("givenName"), raw.get("familyName")) if p)
        else:
            name = raw.get("title") or raw.get("name") or ""
        return {
            "id": str(raw.get("sourcedId", "")),
            "sis_id": registration_id,
            "resource": resource,
            "name": name,
            "role": raw.get("role"),
            "email": raw.get("email"),
            "status": raw.get("status"),
        }
