"""Generic registration service shared by every integration family.

One integration_registration table holds content providers, assessment
tools, SIS connections and LTI platforms; each family subclasses
RegistrationService with its kind, required credential fields, remote
search and webhook event handlers.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, ClassVar
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.registration import (
    RegistrationConfig,
    RegistrationResult,
    RegistrationSummary,
    SearchQuery,
    SearchResult,
)
from app.core.config import Settings
from app.core.constants import MAX_SEARCH_LIMIT
from app.domain.enums import RegistrationKind, RegistrationStatus
from app.domain.exceptions import (
    InvalidStatusTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from app.infrastructure.cache.keys import search_key, search_registration_pattern
from app.infrastructure.cache.memo import MemoCache
from app.infrastructure.persistence.database import Database
from app.infrastructure.persistence.models.registration import IntegrationRegistration
from app.infrastructure.persistence.repositories.registration_repo import RegistrationRepository
from app.infrastructure.security.encryption import CredentialEncryptor
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import ensure_utc
from app.shared.utils.generators import generate_secret

logger = logging.getLogger(__name__)

# Work a handler defers until its transaction has committed (outbound HTTP).
PostCommit = Callable[[], Awaitable[None]]
EventHandler = Callable[
    [AsyncSession, IntegrationRegistration, dict[str, Any]], Awaitable[PostCommit | None]
]


@dataclass(frozen=True)
class SearchTarget:
    """Registration fields needed for one remote search, detached from the session."""

    id: str
    name: str
    base_url: str
    credentials_encrypted: str
    settings: dict[str, Any]


def registration_to_summary(row: IntegrationRegistration) -> RegistrationSummary:
    return RegistrationSummary(
        id=row.id,
        tenant_id=row.tenant_id,
        kind=row.kind,
        name=row.name,
        type=row.type,
        base_url=row.base_url,
        description=row.description,
        settings=dict(row.settings or {}),
        metadata=dict(row.extra_metadata or {}),
        status=row.status,
        status_reason=row.status_reason,
        created_by=row.created_by,
        created_at=ensure_utc(row.created_at),  # type: ignore[arg-type]
        updated_at=ensure_utc(row.updated_at),  # type: ignore[arg-type]
    )


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class RegistrationService:
    """Register, list, search and receive webhooks for one integration kind."""

    KIND: ClassVar[RegistrationKind]
    RESOURCE_NAME: ClassVar[str]
    CREDENTIAL_FIELDS: ClassVar[tuple[str, ...]] = ()
    REQUIRED_SETTINGS: ClassVar[tuple[str, ...]] = ()
    SEARCHABLE: ClassVar[bool] = True

    def __init__(
        self,
        db: Database,
        cache: MemoCache,
        encryptor: CredentialEncryptor,
        settings: Settings,
    ) -> None:
        self.db = db
        self.cache = cache
        self.encryptor = encryptor
        self.settings = settings

    def _validate_config(self, config: RegistrationConfig) -> None:
        """Raise ValidationException naming the first missing or malformed field."""
        for field_name in ("name", "type", "base_url"):
            value = getattr(config, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationException(f"{field_name} is required", field=field_name)
        if not _is_http_url(config.base_url):
            raise ValidationException("base_url must be an http(s) URL", field="base_url")
        for field_name in self.CREDENTIAL_FIELDS:
            value = config.credentials.get(field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationException(
                    f"credentials.{field_name} is required", field=f"credentials.{field_name}"
                )
        for field_name in self.REQUIRED_SETTINGS:
            value = config.settings.get(field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationException(
                    f"settings.{field_name} is required", field=f"settings.{field_name}"
                )

    async def _prepare_registration(
        self, credentials: dict[str, Any], settings: dict[str, Any]
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Hook for families that add generated material before storage."""
        return credentials, settings

    @traced("registration.register")
    async def register(
        self,
        tenant_id: str,
        config: RegistrationConfig,
        created_by: str | None = None,
    ) -> RegistrationResult:
        """Validate and store a registration in status pending.

        Credentials are encrypted at rest. The generated webhook secret is
        returned here only.
        """
        self._validate_config(config)
        credentials, reg_settings = await self._prepare_registration(
            dict(config.credentials), dict(config.settings)
        )
        webhook_secret = generate_secret(32)
        async with self.db.transaction() as session:
            row = await RegistrationRepository(session).create(
                IntegrationRegistration(
                    tenant_id=tenant_id,
                    kind=self.KIND.value,
                    name=config.name.strip(),
                    type=config.type.strip(),
                    base_url=config.base_url.strip().rstrip("/"),
                    description=config.description,
                    credentials_encrypted=self.encryptor.encrypt(credentials),
                    webhook_secret_encrypted=self.encryptor.encrypt_text(webhook_secret),
                    settings=reg_settings,
                    extra_metadata=dict(config.metadata),
                    status=RegistrationStatus.PENDING.value,
                    created_by=created_by,
                )
            )
            registration_id = row.id
        logger.info(
            "Registered %s %s for tenant %s", self.KIND.value, registration_id, tenant_id
        )
        return RegistrationResult(id=registration_id, webhook_secret=webhook_secret)

    async def list_registrations(
        self, tenant_id: str, status: str | None = None
    ) -> list[RegistrationSummary]:
        if status is not None and status not in RegistrationStatus.values():
            raise ValidationException(f"Unknown status: {status}", field="status")
        async with self.db.session() as session:
            rows = await RegistrationRepository(session).get_by_tenant_and_kind(
                tenant_id, self.KIND.value, status=status
            )
            return [registration_to_summary(r) for r in rows]

    async def get_registration(self, tenant_id: str, registration_id: str) -> RegistrationSummary:
        async with self.db.session() as session:
            row = await self._get_owned(session, tenant_id, registration_id)
            return registration_to_summary(row)

    async def set_status(
        self,
        tenant_id: str,
        registration_id: str,
        status: str,
        reason: str | None = None,
    ) -> RegistrationSummary:
        """Move a registration along the status machine.

        Raises:
            ValidationException: Unknown status value.
            InvalidStatusTransitionException: Transition not allowed.
        """
        if status not in RegistrationStatus.values():
            raise ValidationException(f"Unknown status: {status}", field="status")
        target = RegistrationStatus(status)
        async with self.db.transaction() as session:
            row = await self._get_owned(session, tenant_id, registration_id)
            current = RegistrationStatus(row.status)
            if not current.can_transition_to(target):
                raise InvalidStatusTransitionException(current.value, target.value)
            row.status = target.value
            row.status_reason = reason
            await RegistrationRepository(session).update(row)
            summary = registration_to_summary(row)
        await self.cache.invalidate_pattern(search_registration_pattern(tenant_id, registration_id))
        logger.info(
            "Registration %s status %s -> %s", registration_id, current.value, target.value
        )
        return summary

    async def get_webhook_secret(self, tenant_id: str, registration_id: str) -> str:
        """Return the decrypted webhook secret (404 if absent or another tenant's)."""
        async with self.db.session() as session:
            row = await self._get_owned(session, tenant_id, registration_id)
            encrypted = row.webhook_secret_encrypted
        return self.encryptor.decrypt_text(encrypted)

    async def _get_owned(
        self, session: AsyncSession, tenant_id: str, registration_id: str
    ) -> IntegrationRegistration:
        row = await RegistrationRepository(session).get_for_tenant(
            registration_id, tenant_id, self.KIND.value
        )
        if row is None:
            raise ResourceNotFoundException(self.RESOURCE_NAME, registration_id)
        return row

    @traced("registration.search")
    async def search(self, tenant_id: str, query: SearchQuery) -> SearchResult:
        """Search every active registration of this kind for tenant concurrently.

        A failing registration is logged and listed in failed_sources; the
        rest of the results are still returned.
        """
        if not self.SEARCHABLE:
            raise ValidationException(f"{self.RESOURCE_NAME} registrations are not searchable")
        if not 1 <= query.limit <= MAX_SEARCH_LIMIT:
            raise ValidationException(
                f"limit must be between 1 and {MAX_SEARCH_LIMIT}", field="limit"
            )
        if query.offset < 0:
            raise ValidationException("offset must not be negative", field="offset")

        async with self.db.session() as session:
            rows = await RegistrationRepository(session).get_by_tenant_and_kind(
                tenant_id,
                self.KIND.value,
                status=RegistrationStatus.ACTIVE.value,
                ids=query.sources,
            )
            targets = [
                SearchTarget(
                    id=r.id,
                    name=r.name,
                    base_url=r.base_url,
                    credentials_encrypted=r.credentials_encrypted,
                    settings=dict(r.settings or {}),
                )
                for r in rows
            ]

        params = query.remote_params()
        results = await asyncio.gather(
            *(self._search_one(tenant_id, target, params) for target in targets),
            return_exceptions=True,
        )
        items: list[dict[str, Any]] = []
        failed_sources: list[str] = []
        for target, result in zip(targets, results, strict=True):
            if isinstance(result, Exception):
                logger.warning(
                    "Search failed for %s %s (%s): %s",
                    self.KIND.value,
                    target.id,
                    target.name,
                    result,
                )
                failed_sources.append(target.id)
            elif isinstance(result, BaseException):
                raise result
            else:
                items.extend(result)

        page = items[query.offset : query.offset + query.limit]
        return SearchResult(
            items=page,
            merged=len(items),
            limit=query.limit,
            offset=query.offset,
            failed_sources=failed_sources,
        )

    async def _search_one(
        self, tenant_id: str, target: SearchTarget, params: dict[str, Any]
    ) -> list[dict[str, Any]]:
        key = search_key(tenant_id, target.id, params)

        async def compute() -> list[dict[str, Any]]:
            logger.debug("Cache MISS %s", key)
            credentials = self.encryptor.decrypt(target.credentials_encrypted)
            return await self.remote_search(target, credentials, params)

        return await self.cache.get_or_compute(key, compute, ttl_seconds=self.settings.cache_ttl_search)

    async def remote_search(
        self,
        target: SearchTarget,
        credentials: dict[str, Any],
        params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Query one registration's remote API and return normalized items."""
        raise NotImplementedError

    def event_handlers(self) -> dict[str, EventHandler]:
        """Known event types for this family, mapped to handlers."""
        return {}

    @traced("registration.handle_webhook_event")
    async def handle_webhook_event(
        self,
        tenant_id: str,
        source_id: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> bool:
        """Apply one webhook event from a registration of this tenant.

        Unknown event types are accepted and logged. Memoized search results
        of the registration are invalidated afterwards. A handler may return
        a PostCommit callable; it runs once the session is closed so no
        connection is held during outbound calls.
        """
        handler = self.event_handlers().get(event_type)
        post_commit: PostCommit | None = None
        async with self.db.transaction() as session:
            registration = await self._get_owned(session, tenant_id, source_id)
            if handler is None:
                logger.warning(
                    "Ignoring unknown %s event %r from %s", self.KIND.value, event_type, source_id
                )
            else:
                post_commit = await handler(session, registration, payload)
        await self.cache.invalidate_pattern(search_registration_pattern(tenant_id, source_id))
        if post_commit is not None:
            await post_commit()
        await self._after_webhook(tenant_id, event_type, payload)
        return True

    async def _after_webhook(self, tenant_id: str, event_type: str, payload: dict[str, Any]) -> None:
        """Hook run after a webhook transaction commits (extra cache invalidation)."""
        return None


def pick(payload: dict[str, Any], *names: str) -> Any:
    """Return the first non-None value among names (snake_case and camelCase aliases)."""
    for name in names:
        value = payload.get(name)
        if value is not None:
            return value
    return None


def require_field(payload: dict[str, Any], *names: str) -> Any:
    """Like pick(), but raise ValidationException when every alias is missing."""
    value = pick(payload, *names)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationException(f"payload.{names[0]} is required", field=names[0])
    return value


def optional_float(value: Any, field: str) -> float | None:
    """float(value), None for None, ValidationException for anything non-numeric."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationException(f"{field} must be a number", field=field)
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationException(f"{field} must be a number", field=field) from e
    if not math.isfinite(number):
        raise ValidationException(f"{field} must be a number", field=field)
    return number


def optional_int(value: Any, field: str) -> int | None:
    number = optional_float(value, field)
    if number is None:
        return None
    if not number.is_integer():
        raise ValidationException(f"{field} must be a whole number", field=field)
    return int(number)
