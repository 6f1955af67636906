"""Developer API: token issuance, bearer auth, tenant isolation and key management."""

from collections.abc import Callable
from typing import Any

from httpx import AsyncClient

from app.core.app_context import AppContext
from tests.conftest import ADMIN_SECRET, OTHER_TENANT, TENANT

ADMIN = {"X-Admin-Secret": ADMIN_SECRET}


async def _create_key(client: AsyncClient, permissions: list[str], tenant_id: str = TENANT) -> dict[str, Any]:
    response = await client.post(
        f"/api/developer/keys/{tenant_id}",
        headers=ADMIN,
        json={"name": "lms", "permissions": permissions},
    )
    assert response.status_code == 201
    return response.json()


async def test_create_key_and_authenticate(client: AsyncClient) -> None:
    """A created key/secret pair is exchanged for a one-hour bearer token."""
    created = await _create_key(client, ["content:read"])
    assert created["apiKey"]["permissions"] == ["content:read"]
    assert created["apiKey"]["createdBy"] is None

    response = await client.post(
        f"/api/developer/auth/{TENANT}",
        json={"apiKey": created["key"], "apiSecret": created["secret"]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["tokenType"] == "Bearer"
    assert data["permissions"] == ["content:read"]
    assert data["token"]


async def test_authenticate_accepts_snake_case_body(client: AsyncClient) -> None:
    """Request bodies may use snake_case field names too."""
    created = await _create_key(client, ["read"])
    response = await client.post(
        f"/api/developer/auth/{TENANT}",
        json={"api_key": created["key"], "api_secret": created["secret"]},
    )
    assert response.status_code == 200


async def test_authenticate_failures_are_indistinguishable(client: AsyncClient) -> None:
    """Wrong secret, unknown key and wrong tenant all return the same 401."""
    created = await _create_key(client, ["read"])
    attempts = [
        (TENANT, {"apiKey": created["key"], "apiSecret": "wrong"}),
        (TENANT, {"apiKey": "edp_unknown", "apiSecret": created["secret"]}),
        (OTHER_TENANT, {"apiKey": created["key"], "apiSecret": created["secret"]}),
    ]
    bodies = []
    for tenant_id, body in attempts:
        response = await client.post(f"/api/developer/auth/{tenant_id}", json=body)
        assert response.status_code == 401
        bodies.append(response.json())
    assert bodies[0] == bodies[1] == bodies[2]
    assert bodies[0]["error"]["code"] == "AUTHENTICATION_ERROR"


async def test_missing_or_invalid_bearer_token(client: AsyncClient) -> None:
    """Protected routes return 401 without a valid bearer token."""
    response = await client.get(f"/api/content-providers/registrations/{TENANT}")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"
    response = await client.get(
        f"/api/content-providers/registrations/{TENANT}", headers={"Authorization": "Bearer not.a.jwt"}
    )
    assert response.status_code == 401


async def test_token_for_other_tenant_is_forbidden_without_side_effects(
    client: AsyncClient, make_headers: Callable[..., Any], context: AppContext
) -> None:
    """A valid token used on another tenant's path gets 403 and changes nothing."""
    headers = await make_headers(TENANT, ("admin",))
    response = await client.post(
        f"/api/content-providers/register/{OTHER_TENANT}",
        headers=headers,
        json={"name": "Oak", "type": "catalog", "baseUrl": "https://oak.test"},
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"
    assert await context.content.list_registrations(OTHER_TENANT) == []


async def test_keys_managed_with_keys_manage_permission(
    client: AsyncClient, make_headers: Callable[..., Any]
) -> None:
    """keys:manage can list and create keys; other permissions cannot."""
    manager = await make_headers(TENANT, ("keys:manage",))
    reader = await make_headers(TENANT, ("read",))

    response = await client.post(
        f"/api/developer/keys/{TENANT}", headers=manager, json={"name": "sis", "permissions": ["roster:read"]}
    )
    assert response.status_code == 201
    assert response.json()["apiKey"]["createdBy"] is not None

    response = await client.get(f"/api/developer/keys/{TENANT}", headers=manager)
    assert response.status_code == 200
    assert all("secret" not in key for key in response.json())

    response = await client.get(f"/api/developer/keys/{TENANT}", headers=reader)
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


async def test_create_key_rejects_unknown_permission(client: AsyncClient) -> None:
    """Permissions outside the fixed vocabulary are a 400."""
    response = await client.post(
        f"/api/developer/keys/{TENANT}", headers=ADMIN, json={"name": "x", "permissions": ["root"]}
    )
    assert response.status_code == 400


async def test_wrong_admin_secret_falls_back_to_token_auth(client: AsyncClient) -> None:
    """A wrong X-Admin-Secret without a token is a 401."""
    response = await client.get(f"/api/developer/keys/{TENANT}", headers={"X-Admin-Secret": "guess"})
    assert response.status_code == 401


async def test_revoke_is_idempotent_and_blocks_auth(client: AsyncClient) -> None:
    """Revoking twice returns 200; the revoked key can no longer authenticate."""
    created = await _create_key(client, ["read"])
    key_id = created["apiKey"]["id"]
    for _ in range(2):
        response = await client.delete(f"/api/developer/keys/{TENANT}/{key_id}", headers=ADMIN)
        assert response.status_code == 200
        assert response.json() == {"revoked": True}
    response = await client.post(
        f"/api/developer/auth/{TENANT}",
        json={"apiKey": created["key"], "apiSecret": created["secret"]},
    )
    assert response.status_code == 401
    response = await client.delete(f"/api/developer/keys/{OTHER_TENANT}/{key_id}", headers=ADMIN)
    assert response.status_code == 404
