"""Student information system integration (OneRoster 1.1)."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.registration import SearchQuery, SearchResult
from app.application.services.registration_service import (
    EventHandler,
    RegistrationService,
    SearchTarget,
)
from app.core.config import Settings
from app.domain.enums import RegistrationKind
from app.domain.exceptions import ValidationException
from app.infrastructure.cache.keys import access_token_key
from app.infrastructure.cache.memo import MemoCache
from app.infrastructure.external.oneroster_client import ROSTER_READONLY_SCOPE, OneRosterClient
from app.infrastructure.persistence.database import Database
from app.infrastructure.persistence.models.registration import IntegrationRegistration
from app.infrastructure.security.encryption import CredentialEncryptor

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE = "users"
# Tokens are reused until this many seconds before they expire.
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class SisService(RegistrationService):
    """SIS connections searched through OneRoster with client-credentials tokens."""

    KIND = RegistrationKind.SIS
    RESOURCE_NAME = "sis"
    CREDENTIAL_FIELDS = ("client_id", "client_secret", "token_url")

    def __init__(
        self,
        db: Database,
        cache: MemoCache,
        encryptor: CredentialEncryptor,
        settings: Settings,
        http: httpx.AsyncClient,
    ) -> None:
        super().__init__(db, cache, encryptor, settings)
        self.client = OneRosterClient(http)

    async def access_token(self, registration_id: str, credentials: dict[str, Any]) -> str:
        """Return a cached OAuth2 token for the registration, fetching one when needed."""
        scope = credentials.get("scope") or ROSTER_READONLY_SCOPE
        key = access_token_key(registration_id, scope)
        cached = await self.cache.get(key)
        if cached is not None:
            return str(cached)
        token = await self.client.fetch_access_token(
            credentials["token_url"],
            credentials["client_id"],
            credentials["client_secret"],
            scope,
        )
        ttl = token.expires_in - TOKEN_EXPIRY_MARGIN_SECONDS
        if ttl > 0:
            await self.cache.set(key, token.access_token, ttl_seconds=ttl)
        return token.access_token

    async def search(self, tenant_id: str, query: SearchQuery) -> SearchResult:
        resource = query.filters.get("resource") or DEFAULT_RESOURCE
        if resource not in OneRosterClient.RESOURCES:
            raise ValidationException(f"Unknown roster resource: {resource}", field="resource")
        return await super().search(tenant_id, query)

    async def remote_search(
        self,
        target: SearchTarget,
        credentials: dict[str, Any],
        params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        resource = params.get("resource") or DEFAULT_RESOURCE
        token = await self.access_token(target.id, credentials)
        return await self.client.search(
            target.base_url,
            token,
            target.id,
            resource,
            params.get("q"),
            limit=int(params.get("limit", 20)),
        )

    def event_handlers(self) -> dict[str, EventHandler]:
        return {"roster.updated": self._on_roster_updated}

    async def _on_roster_updated(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> None:
        # Memoized roster results are dropped by handle_webhook_event after this returns.
        logger.info("Roster updated for SIS %s", registration.id)
