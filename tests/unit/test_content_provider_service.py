"""Tests for content catalog sync (webhooks), usage and recommendations."""

from datetime import UTC, datetime

import pytest

from app.application.dtos.content import ContentUsageCreate
from app.application.dtos.registration import RegistrationConfig
from app.application.services.content_provider_service import ContentProviderService
from app.core.app_context import AppContext
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from tests.conftest import OTHER_TENANT, TENANT


@pytest.fixture
def service(context: AppContext) -> ContentProviderService:
    return context.content


@pytest.fixture
async def provider_id(service: ContentProviderService) -> str:
    result = await service.register(
        TENANT, RegistrationConfig(name="Oak", type="catalog", base_url="https://oak.test")
    )
    await service.set_status(TENANT, result.id, "active")
    return result.id


async def _publish(service: ContentProviderService, provider_id: str, **item: object) -> None:
    await service.handle_webhook_event(TENANT, provider_id, "content.created", dict(item))


async def _ids_by_title(service: ContentProviderService, user_id: str = "nobody") -> dict[str, str]:
    recs = await service.get_recommendations(TENANT, user_id, limit=50)
    return {r.title: r.content_item_id for r in recs}


async def test_content_created_webhook_upserts_catalog_item(
    service: ContentProviderService, provider_id: str
) -> None:
    """content.created stores an item; content.updated changes it in place."""
    await _publish(service, provider_id, id="ext-1", title="Fractions", subject="maths", keyStage="KS2")
    await service.handle_webhook_event(
        TENANT, provider_id, "content.updated", {"contentId": "ext-1", "title": "Fractions 2"}
    )
    ids = await _ids_by_title(service)
    assert list(ids) == ["Fractions 2"]
    item = await service.get_content_item(TENANT, ids["Fractions 2"])
    assert item.external_id == "ext-1"
    assert item.provider is not None
    assert item.provider.id == provider_id
    assert item.provider.name == "Oak"


async def test_content_deleted_webhook_removes_item(
    service: ContentProviderService, provider_id: str
) -> None:
    """content.deleted drops the item; deleting a missing one is harmless."""
    await _publish(service, provider_id, id="ext-1", title="Fractions")
    await service.handle_webhook_event(TENANT, provider_id, "content.deleted", {"id": "ext-1"})
    await service.handle_webhook_event(TENANT, provider_id, "content.deleted", {"id": "ext-1"})
    assert await _ids_by_title(service, "other-user") == {}


async def test_content_webhook_requires_item_fields(
    service: ContentProviderService, provider_id: str
) -> None:
    """Items without an id or title are rejected."""
    with pytest.raises(ValidationException):
        await service.handle_webhook_event(TENANT, provider_id, "content.created", {"title": "x"})
    with pytest.raises(ValidationException):
        await service.handle_webhook_event(TENANT, provider_id, "content.created", {"id": "x"})


@pytest.mark.parametrize(
    "fields",
    [
        {"topics": "fractions"},
        {"topics": ["fractions", {"name": "x"}]},
        {"metadata": "ks2"},
    ],
)
async def test_content_webhook_rejects_malformed_topics_and_metadata(
    service: ContentProviderService, provider_id: str, fields: dict[str, object]
) -> None:
    """topics must be a list of strings and metadata an object; nothing is stored otherwise."""
    with pytest.raises(ValidationException):
        await _publish(service, provider_id, id="ext-1", title="Fractions", **fields)
    assert await _ids_by_title(service) == {}


async def test_usage_recorded_rejects_non_numeric_progress(
    service: ContentProviderService, provider_id: str
) -> None:
    await _publish(service, provider_id, id="ext-1", title="Halves")
    with pytest.raises(ValidationException):
        await service.handle_webhook_event(
            TENANT, provider_id, "usage.recorded", {"contentId": "ext-1", "userId": "u1", "progress": "half"}
        )


async def test_record_usage_and_tenant_scope(service: ContentProviderService, provider_id: str) -> None:
    """Usage can only be recorded against this tenant's catalog."""
    await _publish(service, provider_id, id="ext-1", title="Fractions")
    item_id = (await _ids_by_title(service))["Fractions"]
    usage_id = await service.record_usage(
        TENANT, ContentUsageCreate(content_item_id=item_id, user_id="u1", progress=0.5)
    )
    assert usage_id
    with pytest.raises(ResourceNotFoundException):
        await service.record_usage(OTHER_TENANT, ContentUsageCreate(content_item_id=item_id, user_id="u1"))
    with pytest.raises(ValidationException):
        await service.record_usage(TENANT, ContentUsageCreate(content_item_id=item_id, user_id=""))
    with pytest.raises(ResourceNotFoundException):
        await service.get_content_item(OTHER_TENANT, item_id)


async def test_recommendations_rank_related_topics_and_skip_completed(
    service: ContentProviderService, provider_id: str
) -> None:
    """Completed items are excluded; shared topics and subject raise priority."""
    await _publish(service, provider_id, id="1", title="Halves", subject="maths", topics=["fractions"])
    await _publish(
        service, provider_id, id="2", title="Thirds", subject="maths", topics=["fractions", "division"]
    )
    await _publish(service, provider_id, id="3", title="Poems", subject="english", topics=["poetry"])
    ids = await _ids_by_title(service)

    before = await service.get_recommendations(TENANT, "u1", limit=10)
    assert {r.priority for r in before} == {1}
    assert all(r.reason == "Recently added to your catalog" for r in before)

    await service.record_usage(
        TENANT,
        ContentUsageCreate(
            content_item_id=ids["Halves"], user_id="u1", completed_at=datetime.now(UTC)
        ),
    )
    after = await service.get_recommendations(TENANT, "u1", limit=10)

    assert [r.title for r in after] == ["Thirds", "Poems"]
    assert after[0].priority == 3
    assert "fractions" in after[0].reason
    assert after[1].priority == 1


async def test_recommendations_boost_subject_of_context(
    service: ContentProviderService, provider_id: str
) -> None:
    """Items in the subject the user studies in the given class get the largest boost."""
    await _publish(service, provider_id, id="1", title="Halves", subject="maths")
    await _publish(service, provider_id, id="2", title="Angles", subject="maths")
    ids = await _ids_by_title(service)
    await service.record_usage(
        TENANT,
        ContentUsageCreate(
            content_item_id=ids["Halves"],
            user_id="u1",
            context_id="class-4b",
            completed_at=datetime.now(UTC),
        ),
    )
    [rec] = await service.get_recommendations(TENANT, "u1", context_id="class-4b")
    assert rec.title == "Angles"
    assert rec.priority == 4
    assert rec.reason == "Matches the maths work in this class"


async def test_recommendations_are_memoized_until_usage_changes(
    service: ContentProviderService, provider_id: str
) -> None:
    """Recording usage invalidates only that user's cached recommendations."""
    await _publish(service, provider_id, id="1", title="Halves")
    ids = await _ids_by_title(service)
    assert len(await service.get_recommendations(TENANT, "u1")) == 1
    await service.record_usage(
        TENANT,
        ContentUsageCreate(content_item_id=ids["Halves"], user_id="u1", completed_at=datetime.now(UTC)),
    )
    assert await service.get_recommendations(TENANT, "u1") == []


async def test_usage_recorded_webhook(service: ContentProviderService, provider_id: str) -> None:
    """usage.recorded resolves the provider's external id to the catalog item."""
    await _publish(service, provider_id, id="ext-1", title="Halves")
    await service.handle_webhook_event(
        TENANT,
        provider_id,
        "usage.recorded",
        {"contentId": "ext-1", "userId": "u1", "completedAt": "2026-01-05T10:00:00Z"},
    )
    assert await service.get_recommendations(TENANT, "u1") == []
    with pytest.raises(ResourceNotFoundException):
        await service.handle_webhook_event(
            TENANT, provider_id, "usage.recorded", {"contentId": "missing", "userId": "u1"}
        )


@pytest.mark.parametrize("limit", [0, 51])
async def test_recommendations_validate_limit(service: ContentProviderService, limit: int) -> None:
    """limit must be between 1 and 50."""
    with pytest.raises(ValidationException):
        await service.get_recommendations(TENANT, "u1", limit=limit)
