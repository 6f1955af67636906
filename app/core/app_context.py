"""Application context: every long-lived object the API needs, built once.

AppContext replaces module-level singletons (engine, cache, HTTP client)
so tests can build one against an in-memory database and a fake
transport. The lifespan owns startup()/shutdown(); routes reach it via
request.app.state.context.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

import httpx

from app.application.services.assessment_tool_service import AssessmentToolService
from app.application.services.billing_service import BillingService
from app.application.services.content_provider_service import ContentProviderService
from app.application.services.credential_service import CredentialService
from app.application.services.heygen_service import HeyGenService
from app.application.services.lti_service import LtiService
from app.application.services.registration_service import RegistrationService
from app.application.services.sis_service import SisService
from app.application.services.webhook_dispatcher import WebhookDispatcher
from app.core.config import Settings
from app.domain.enums import RegistrationKind
from app.infrastructure.cache import CacheProtocol, InMemoryCache, MemoCache, create_cache_backend
from app.infrastructure.persistence.database import Database
from app.infrastructure.security.encryption import CredentialEncryptor
from app.shared.telemetry.telemetry import GatewayTelemetry

logger = logging.getLogger(__name__)


class AppContext:
    """Composition root for services and their infrastructure."""

    def __init__(
        self,
        settings: Settings,
        *,
        database: Database | None = None,
        cache_backend: CacheProtocol | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.db = database or Database.from_settings(settings)
        self.cache_backend = cache_backend or create_cache_backend(settings)
        self.cache = MemoCache(self.cache_backend, default_ttl=settings.cache_ttl_search)
        self.http = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self.encryptor = CredentialEncryptor(settings)
        self.telemetry = GatewayTelemetry.from_settings(settings)
        if self.telemetry is not None:
            self.telemetry.instrument_client(self.http)
        self._sweep_task: asyncio.Task[None] | None = None

        self.credentials = CredentialService(self.db, settings)
        family_args = (self.db, self.cache, self.encryptor, settings, self.http)
        self.content = ContentProviderService(*family_args)
        self.assessments = AssessmentToolService(*family_args)
        self.sis = SisService(*family_args)
        self.lti = LtiService(*family_args)
        self.heygen = HeyGenService(self.db, settings, self.http)
        self.billing = BillingService(self.db)
        self.webhooks = WebhookDispatcher(
            settings,
            self.registrations,
            heygen=self.heygen,
            billing=self.billing,
        )

    @property
    def registrations(self) -> dict[RegistrationKind, RegistrationService]:
        return {
            RegistrationKind.CONTENT_PROVIDER: self.content,
            RegistrationKind.ASSESSMENT_TOOL: self.assessments,
            RegistrationKind.SIS: self.sis,
            RegistrationKind.LTI: self.lti,
        }

    def registration_service(self, kind: RegistrationKind) -> RegistrationService:
        return self.registrations[kind]

    async def startup(self) -> None:
        """Connect the cache, create SQLite tables and start the expiry sweep (memory backend)."""
        await self.cache_backend.connect()
        if self.db.is_sqlite:
            await self.db.create_all()
        else:
            logger.info("Schema is managed by Alembic migrations; run: alembic upgrade head")
        if isinstance(self.cache_backend, InMemoryCache) and self._sweep_task is None:
            self._sweep_task = asyncio.create_task(
                self._sweep_loop(self.cache_backend, self.settings.cache_sweep_interval_seconds)
            )
        logger.info("Application context started (cache=%s)", self.settings.cache_backend)

    @staticmethod
    async def _sweep_loop(cache: InMemoryCache, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            cache.sweep()

    async def shutdown(self) -> None:
        """Stop background work and release connections (reverse of startup)."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        await self.http.aclose()
        await self.cache_backend.disconnect()
        if self.telemetry is not None:
            self.telemetry.shutdown()
            self.telemetry = None
        await self.db.dispose()
        logger.info("Application context stopped")
