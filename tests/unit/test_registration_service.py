"""Tests for the shared registration lifecycle and federated search.

Uses the content provider family; every family shares this behavior.
"""

import pytest

from app.application.dtos.registration import RegistrationConfig, SearchQuery
from app.application.services.content_provider_service import ContentProviderService
from app.core.app_context import AppContext
from app.domain.exceptions import (
    InvalidStatusTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from tests.conftest import OTHER_TENANT, TENANT, Upstream

ACME = "https://acme.test/api"
OAK = "https://oak.test/api"


@pytest.fixture
def service(context: AppContext) -> ContentProviderService:
    return context.content


async def _active_provider(
    service: ContentProviderService, base_url: str, tenant_id: str = TENANT, name: str = "Acme"
) -> str:
    result = await service.register(
        tenant_id,
        RegistrationConfig(name=name, type="catalog", base_url=base_url, credentials={"api_key": "k"}),
    )
    await service.set_status(tenant_id, result.id, "active")
    return result.id


async def test_register_starts_pending_and_returns_secret_once(service: ContentProviderService) -> None:
    """New registrations are pending; the summary never carries credentials."""
    result = await service.register(
        TENANT, RegistrationConfig(name=" Acme ", type="catalog", base_url=ACME + "/")
    )
    assert result.status == "pending"
    assert len(result.webhook_secret) >= 32
    summary = await service.get_registration(TENANT, result.id)
    assert summary.status == "pending"
    assert summary.name == "Acme"
    assert summary.base_url == ACME
    assert summary.kind == "content_provider"
    assert not hasattr(summary, "credentials")
    assert await service.get_webhook_secret(TENANT, result.id) == result.webhook_secret


@pytest.mark.parametrize(
    ("config", "field"),
    [
        (RegistrationConfig(name="", type="catalog", base_url=ACME), "name"),
        (RegistrationConfig(name="Acme", type=" ", base_url=ACME), "type"),
        (RegistrationConfig(name="Acme", type="catalog", base_url="ftp://acme.test"), "base_url"),
        (RegistrationConfig(name="Acme", type="catalog", base_url="not a url"), "base_url"),
    ],
)
async def test_register_validates_config(
    service: ContentProviderService, config: RegistrationConfig, field: str
) -> None:
    """Missing or malformed fields are rejected with the field name."""
    with pytest.raises(ValidationException) as exc_info:
        await service.register(TENANT, config)
    assert exc_info.value.details == {"field": field}


async def test_status_transitions(service: ContentProviderService) -> None:
    """pending -> active -> inactive -> active is allowed; pending -> inactive is not."""
    result = await service.register(TENANT, RegistrationConfig(name="Acme", type="catalog", base_url=ACME))
    with pytest.raises(InvalidStatusTransitionException):
        await service.set_status(TENANT, result.id, "inactive")
    assert (await service.set_status(TENANT, result.id, "active")).status == "active"
    summary = await service.set_status(TENANT, result.id, "inactive", reason="contract ended")
    assert summary.status_reason == "contract ended"
    assert (await service.set_status(TENANT, result.id, "active")).status == "active"
    with pytest.raises(ValidationException):
        await service.set_status(TENANT, result.id, "deleted")


async def test_list_registrations_filters_by_status(service: ContentProviderService) -> None:
    """list_registrations() returns only this tenant's rows, optionally by status."""
    active_id = await _active_provider(service, ACME)
    await service.register(TENANT, RegistrationConfig(name="Oak", type="catalog", base_url=OAK))
    await _active_provider(service, ACME, tenant_id=OTHER_TENANT)
    assert len(await service.list_registrations(TENANT)) == 2
    active = await service.list_registrations(TENANT, status="active")
    assert [r.id for r in active] == [active_id]
    with pytest.raises(ValidationException):
        await service.list_registrations(TENANT, status="unknown")


async def test_other_tenant_registration_is_not_found(service: ContentProviderService) -> None:
    """A registration id of another tenant behaves like a missing one."""
    reg_id = await _active_provider(service, ACME)
    with pytest.raises(ResourceNotFoundException):
        await service.get_registration(OTHER_TENANT, reg_id)
    with pytest.raises(ResourceNotFoundException):
        await service.set_status(OTHER_TENANT, reg_id, "inactive")


async def test_search_merges_active_sources_and_reports_failures(
    service: ContentProviderService, upstream: Upstream
) -> None:
    """A failing provider is listed in failed_sources; the others still answer."""
    upstream.json("GET", ACME + "/search", {"items": [{"id": "a1", "title": "Fractions"}]})
    acme_id = await _active_provider(service, ACME)
    broken_id = await _active_provider(service, "https://broken.test", name="Broken")
    await service.register(TENANT, RegistrationConfig(name="Oak", type="catalog", base_url=OAK))

    result = await service.search(TENANT, SearchQuery(q="fractions"))

    assert [item["id"] for item in result.items] == ["a1"]
    assert result.items[0]["provider_id"] == acme_id
    assert result.failed_sources == [broken_id]
    assert upstream.calls_to(OAK) == []
    request = upstream.calls_to(ACME)[0]
    assert request.headers["Authorization"] == "Bearer k"
    assert request.url.params["q"] == "fractions"


async def test_search_paginates_merged_items(service: ContentProviderService, upstream: Upstream) -> None:
    """offset/limit apply to the merged list; providers are asked for limit+offset."""
    upstream.json("GET", ACME + "/search", {"items": [{"id": f"a{i}", "title": "t"} for i in range(3)]})
    upstream.json("GET", OAK + "/search", [{"id": f"o{i}", "title": "t"} for i in range(3)])
    await _active_provider(service, ACME)
    await _active_provider(service, OAK, name="Oak")

    result = await service.search(TENANT, SearchQuery(limit=2, offset=1))

    assert result.merged == 6
    assert len(result.items) == 2
    assert result.offset == 1
    assert upstream.calls_to(ACME)[0].url.params["limit"] == "3"


async def test_search_restricted_to_requested_sources(
    service: ContentProviderService, upstream: Upstream
) -> None:
    """sources limits the fan-out to the listed registrations."""
    upstream.json("GET", ACME + "/search", {"items": []})
    upstream.json("GET", OAK + "/search", {"items": []})
    await _active_provider(service, ACME)
    oak_id = await _active_provider(service, OAK, name="Oak")
    await service.search(TENANT, SearchQuery(sources=[oak_id]))
    assert upstream.calls_to(ACME) == []
    assert len(upstream.calls_to(OAK)) == 1


async def test_search_is_memoized_per_query(service: ContentProviderService, upstream: Upstream) -> None:
    """The same query within the TTL does not call the provider again."""
    upstream.json("GET", ACME + "/search", {"items": [{"id": "a1", "title": "Fractions"}]})
    await _active_provider(service, ACME)
    first = await service.search(TENANT, SearchQuery(q="fractions"))
    second = await service.search(TENANT, SearchQuery(q="fractions"))
    assert first.items == second.items
    assert len(upstream.calls_to(ACME)) == 1
    await service.search(TENANT, SearchQuery(q="decimals"))
    assert len(upstream.calls_to(ACME)) == 2


async def test_search_cache_is_tenant_scoped(service: ContentProviderService, upstream: Upstream) -> None:
    """Another tenant never sees this tenant's providers or cached results."""
    upstream.json("GET", ACME + "/search", {"items": [{"id": "a1", "title": "Fractions"}]})
    await _active_provider(service, ACME)
    await service.search(TENANT, SearchQuery(q="fractions"))
    other = await service.search(OTHER_TENANT, SearchQuery(q="fractions"))
    assert other.items == []
    assert other.merged == 0


async def test_webhook_event_invalidates_search_cache(
    service: ContentProviderService, upstream: Upstream
) -> None:
    """After a webhook from a provider its memoized searches are recomputed."""
    upstream.json("GET", ACME + "/search", {"items": []})
    reg_id = await _active_provider(service, ACME)
    await service.search(TENANT, SearchQuery(q="x"))
    await service.handle_webhook_event(TENANT, reg_id, "provider.ping", {})
    await service.search(TENANT, SearchQuery(q="x"))
    assert len(upstream.calls_to(ACME)) == 2


async def test_status_change_invalidates_search_cache(
    service: ContentProviderService, upstream: Upstream
) -> None:
    """Deactivating and reactivating a provider drops its cached results."""
    upstream.json("GET", ACME + "/search", {"items": []})
    reg_id = await _active_provider(service, ACME)
    await service.search(TENANT, SearchQuery(q="x"))
    await service.set_status(TENANT, reg_id, "inactive")
    await service.set_status(TENANT, reg_id, "active")
    await service.search(TENANT, SearchQuery(q="x"))
    assert len(upstream.calls_to(ACME)) == 2


@pytest.mark.parametrize(("limit", "offset"), [(0, 0), (101, 0), (10, -1)])
async def test_search_validates_paging(service: ContentProviderService, limit: int, offset: int) -> None:
    """limit must be 1..100 and offset non-negative."""
    with pytest.raises(ValidationException):
        await service.search(TENANT, SearchQuery(limit=limit, offset=offset))
