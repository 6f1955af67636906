"""Content provider integration: federated search, catalog sync, usage and recommendations."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.content import (
    ContentItemResult,
    ContentUsageCreate,
    ProviderSummary,
    Recommendation,
)
from app.application.services.registration_service import (
    EventHandler,
    RegistrationService,
    SearchTarget,
    optional_float,
    optional_int,
    pick,
    require_field,
)
from app.core.config import Settings
from app.domain.enums import RegistrationKind, RegistrationStatus
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.infrastructure.cache.keys import (
    recommendations_key,
    recommendations_tenant_pattern,
    recommendations_user_pattern,
)
from app.infrastructure.cache.memo import MemoCache
from app.infrastructure.external.catalog_clients import ContentProviderClient
from app.infrastructure.persistence.database import Database
from app.infrastructure.persistence.models.content import ContentItem, ContentUsage
from app.infrastructure.persistence.models.registration import IntegrationRegistration
from app.infrastructure.persistence.repositories.content_repo import (
    ContentItemRepository,
    ContentUsageRepository,
)
from app.infrastructure.persistence.repositories.registration_repo import RegistrationRepository
from app.infrastructure.security.encryption import CredentialEncryptor
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import parse_iso_datetime

logger = logging.getLogger(__name__)

MAX_PRIORITY = 10
# Score weights for recommendation ranking.
_CONTEXT_SUBJECT_WEIGHT = 3
_TOPIC_WEIGHT = 2
_SUBJECT_WEIGHT = 1


def _item_to_result(item: ContentItem, provider: IntegrationRegistration | None) -> ContentItemResult:
    return ContentItemResult(
        id=item.id,
        external_id=item.external_id,
        title=item.title,
        description=item.description,
        url=item.url,
        format=item.format,
        subject=item.subject,
        key_stage=item.key_stage,
        topics=list(item.topics or []),
        metadata=dict(item.extra_metadata or {}),
        provider=(
            ProviderSummary(id=provider.id, name=provider.name, type=provider.type)
            if provider is not None
            else None
        ),
    )


def _topics(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise ValidationException("payload.topics must be a list of strings", field="topics")
    return [t for t in value if t.strip()]


def _metadata(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationException("payload.metadata must be an object", field="metadata")
    return dict(value)


class ContentProviderService(RegistrationService):
    """Content providers (e.g. BBC Bitesize, Oak National Academy)."""

    KIND = RegistrationKind.CONTENT_PROVIDER
    RESOURCE_NAME = "content_provider"

    def __init__(
        self,
        db: Database,
        cache: MemoCache,
        encryptor: CredentialEncryptor,
        settings: Settings,
        http: httpx.AsyncClient,
    ) -> None:
        super().__init__(db, cache, encryptor, settings)
        self.client = ContentProviderClient(http)

    async def remote_search(
        self,
        target: SearchTarget,
        credentials: dict[str, Any],
        params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        return await self.client.search(target.base_url, credentials, target.id, params)

    def event_handlers(self) -> dict[str, EventHandler]:
        return {
            "content.created": self._on_content_upsert,
            "content.updated": self._on_content_upsert,
            "content.deleted": self._on_content_deleted,
            "usage.recorded": self._on_usage_recorded,
        }

    async def _on_content_upsert(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> None:
        external_id = str(require_field(payload, "id", "contentId"))
        title = require_field(payload, "title")
        repo = ContentItemRepository(session)
        item = await repo.get_by_external_id(registration.tenant_id, registration.id, external_id)
        if item is None:
            item = ContentItem(
                tenant_id=registration.tenant_id,
                registration_id=registration.id,
                external_id=external_id,
                title=title,
            )
            session.add(item)
        item.title = title
        item.description = payload.get("description")
        item.url = payload.get("url")
        item.format = pick(payload, "format", "type")
        item.subject = payload.get("subject")
        item.key_stage = pick(payload, "key_stage", "keyStage")
        item.topics = _topics(payload.get("topics"))
        item.extra_metadata = _metadata(payload.get("metadata"))
        await repo.update(item)
        logger.info("Catalog item %s upserted from %s", external_id, registration.id)

    async def _on_content_deleted(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> None:
        external_id = str(require_field(payload, "id", "contentId"))
        repo = ContentItemRepository(session)
        item = await repo.get_by_external_id(registration.tenant_id, registration.id, external_id)
        if item is not None:
            await repo.delete(item)
            logger.info("Catalog item %s deleted from %s", external_id, registration.id)

    async def _on_usage_recorded(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> None:
        external_id = str(require_field(payload, "content_id", "contentId", "id"))
        item = await ContentItemRepository(session).get_by_external_id(
            registration.tenant_id, registration.id, external_id
        )
        if item is None:
            raise ResourceNotFoundException("content_item", external_id)
        usage = ContentUsageCreate(
            content_item_id=item.id,
            user_id=str(require_field(payload, "user_id", "userId")),
            context_id=pick(payload, "context_id", "contextId"),
            started_at=parse_iso_datetime(pick(payload, "started_at", "startedAt")),
            completed_at=parse_iso_datetime(pick(payload, "completed_at", "completedAt")),
            duration_seconds=optional_int(pick(payload, "duration_seconds", "duration"), "duration_seconds"),
            progress=optional_float(payload.get("progress"), "progress"),
            score=optional_float(payload.get("score"), "score"),
            metadata=_metadata(payload.get("metadata")),
        )
        await ContentUsageRepository(session).create(self._usage_row(registration.tenant_id, usage))

    async def _after_webhook(self, tenant_id: str, event_type: str, payload: dict[str, Any]) -> None:
        if event_type in self.event_handlers():
            await self.cache.invalidate_pattern(recommendations_tenant_pattern(tenant_id))

    @staticmethod
    def _usage_row(tenant_id: str, usage: ContentUsageCreate) -> ContentUsage:
        return ContentUsage(
            tenant_id=tenant_id,
            content_item_id=usage.content_item_id,
            user_id=usage.user_id,
            context_id=usage.context_id,
            started_at=usage.started_at,
            completed_at=usage.completed_at,
            duration_seconds=usage.duration_seconds,
            progress=usage.progress,
            score=usage.score,
            extra_metadata=dict(usage.metadata),
        )

    async def record_usage(self, tenant_id: str, usage: ContentUsageCreate) -> str:
        """Store one usage record and return its id. The item must belong to tenant."""
        if not usage.content_item_id:
            raise ValidationException("content_item_id is required", field="content_item_id")
        if not usage.user_id:
            raise ValidationException("user_id is required", field="user_id")
        async with self.db.transaction() as session:
            item = await ContentItemRepository(session).get_by_id_and_tenant(
                usage.content_item_id, tenant_id
            )
            if item is None:
                raise ResourceNotFoundException("content_item", usage.content_item_id)
            row = await ContentUsageRepository(session).create(self._usage_row(tenant_id, usage))
            usage_id = row.id
        await self.cache.invalidate_pattern(recommendations_user_pattern(tenant_id, usage.user_id))
        return usage_id

    async def get_content_item(self, tenant_id: str, item_id: str) -> ContentItemResult:
        async with self.db.session() as session:
            item = await ContentItemRepository(session).get_by_id_and_tenant(item_id, tenant_id)
            if item is None:
                raise ResourceNotFoundException("content_item", item_id)
            provider = await RegistrationRepository(session).get_by_id_and_tenant(
                item.registration_id, tenant_id
            )
            return _item_to_result(item, provider)

    @traced("content.get_recommendations")
    async def get_recommendations(
        self,
        tenant_id: str,
        user_id: str,
        context_id: str | None = None,
        limit: int = 5,
    ) -> list[Recommendation]:
        """Rank catalog items the user has not completed. Memoized per user/context/limit."""
        if not 1 <= limit <= 50:
            raise ValidationException("limit must be between 1 and 50", field="limit")
        key = recommendations_key(tenant_id, user_id, context_id, limit)

        async def compute() -> list[dict[str, Any]]:
            ranked = await self._rank(tenant_id, user_id, context_id, limit)
            return [asdict(r) for r in ranked]

        cached = await self.cache.get_or_compute(
            key, compute, ttl_seconds=self.settings.cache_ttl_recommendations
        )
        return [Recommendation(**r) for r in cached]

    async def _rank(
        self, tenant_id: str, user_id: str, context_id: str | None, limit: int
    ) -> list[Recommendation]:
        async with self.db.session() as session:
            usages = await ContentUsageRepository(session).get_by_user(tenant_id, user_id)
            items_repo = ContentItemRepository(session)
            used_items = {
                i.id: i
                for i in await items_repo.get_by_ids(
                    tenant_id, list({u.content_item_id for u in usages})
                )
            }
            providers = await RegistrationRepository(session).get_by_tenant_and_kind(
                tenant_id, self.KIND.value, status=RegistrationStatus.ACTIVE.value
            )
            candidates = await items_repo.get_candidates(tenant_id, [p.id for p in providers])

        completed = {u.content_item_id for u in usages if u.completed_at is not None}
        topic_counts: Counter[str] = Counter()
        subject_counts: Counter[str] = Counter()
        context_subjects: set[str] = set()
        for usage in usages:
            used = used_items.get(usage.content_item_id)
            if used is None:
                continue
            topic_counts.update(used.topics or [])
            if used.subject:
                subject_counts[used.subject] += 1
                if context_id is not None and usage.context_id == context_id:
                    context_subjects.add(used.subject)

        scored: list[tuple[int, ContentItem, str]] = []
        for item in candidates:
            if item.id in completed:
                continue
            score = 0
            reason = "Recently added to your catalog"
            shared_topics = [t for t in item.topics or [] if t in topic_counts]
            if shared_topics:
                score += _TOPIC_WEIGHT * len(shared_topics)
                reason = f"Related to topics you have studied: {', '.join(shared_topics[:3])}"
            if item.subject and item.subject in subject_counts:
                score += _SUBJECT_WEIGHT
                if not shared_topics:
                    reason = f"More {item.subject} content"
            if item.subject and item.subject in context_subjects:
                score += _CONTEXT_SUBJECT_WEIGHT
                reason = f"Matches the {item.subject} work in this class"
            scored.append((score, item, reason))

        # Stable sort keeps the repository's recency order among equal scores.
        scored.sort(key=lambda entry: entry[0], reverse=True)
        return [
            Recommendation(
                content_item_id=item.id,
                title=item.title,
                reason=reason,
                priority=max(1, min(MAX_PRIORITY, score)),
            )
            for score, item, reason in scored[:limit]
        ]
