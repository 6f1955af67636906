"""LTI 1.3 platform client: JWKS retrieval, service tokens, AGS score publishing."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit, urlunsplit

import httpx

from app.infrastructure.exceptions import UpstreamPayloadError
from app.infrastructure.external.http import request_json
from app.infrastructure.external.oneroster_client import AccessToken

AGS_SCORE_SCOPE = "https://purl.imsglobal.org/spec/lti-ags/scope/score"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
SCORE_CONTENT_TYPE = "application/vnd.ims.lis.v1.score+json"


def scores_url(line_item_url: str) -> str:
    """Return "<line item>/scores", keeping any query string on the line item URL."""
    parts = urlsplit(line_item_url)
    path = parts.path.rstrip("/") + "/scores"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


class LtiPlatformClient:
    """Outbound calls from the tool to an LTI platform (LMS)."""

    SERVICE_NAME = "lti_platform"

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    async def fetch_jwks(self, keyset_url: str) -> dict[str, Any]:
        body = await request_json(
            self.http,
            "GET",
            keyset_url,
            service=self.SERVICE_NAME,
            action="fetch platform keys",
        )
        if not isinstance(body, dict) or not isinstance(body.get("keys"), list):
            raise UpstreamPayloadError(self.SERVICE_NAME, "fetch platform keys")
        return body

    async def request_access_token(
        self, token_url: str, client_assertion: str, scopes: list[str]
    ) -> AccessToken:
        """Exchange a signed client assertion for a service access token."""
        body = await request_json(
            self.http,
            "POST",
            token_url,
            service=self.SERVICE_NAME,
            action="obtain platform access token",
            data={
                "grant_type": "client_credentials",
                "client_assertion_type": CLIENT_ASSERTION_TYPE,
                "client_assertion": client_assertion,
                "scope": " ".join(scopes),
            },
        )
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise UpstreamPayloadError(self.SERVICE_NAME, "obtain platform access token")
        return AccessToken(access_token=token, expires_in=int(body.get("expires_in", 3600)))

    async def post_score(self, line_item_url: str, access_token: str, score: dict[str, Any]) -> None:
        await request_json(
            self.http,
            "POST",
            scores_url(line_item_url),
            service=self.SERVICE_NAME,
            action="send grade to LMS",
            json=score,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": SCORE_CONTENT_TYPE,
            },
        )
