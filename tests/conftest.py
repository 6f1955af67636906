"""Pytest configuration and fixtures for the integration gateway.

Every test gets its own AppContext: an in-memory SQLite database, an
in-process cache and an httpx client whose transport is the `upstream`
route table, so no test touches the network.
"""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.app_context import AppContext
from app.core.config import Settings
from app.infrastructure.security.signatures import compute_signature
from app.main import create_app

TENANT = "school-1"
OTHER_TENANT = "school-2"
HEYGEN_WEBHOOK_SECRET = "heygen-webhook-secret"
STRIPE_WEBHOOK_SECRET = "whsec_test"
ADMIN_SECRET = "test-admin-secret"


class Upstream:
    """Route table behind httpx.MockTransport.

    Routes match on method and URL prefix; the first match wins. Every
    request is recorded in `calls`. Unmatched requests get a 599.
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, str, Callable[[httpx.Request], httpx.Response]]] = []
        self.calls: list[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        response: httpx.Response | Callable[[httpx.Request], httpx.Response],
    ) -> None:
        handler = response if callable(response) else (lambda _req, r=response: r)
        self.routes.append((method.upper(), url, handler))

    def json(self, method: str, url: str, body: Any, status_code: int = 200) -> None:
        self.add(method, url, lambda _req: httpx.Response(status_code, json=body))

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.calls if str(r.url).startswith(url)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        for method, url, handler in self.routes:
            if request.method == method and str(request.url).startswith(url):
                return handler(request)
        return httpx.Response(599, json={"error": f"no route for {request.method} {request.url}"})


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: in-memory DB, cheap bcrypt, no rate limits, all secrets set."""
    return Settings(
        _env_file=None,
        secret_key="test-secret-key-" + "x" * 32,
        encryption_salt="test-salt-0123456789",
        database_url="sqlite+aiosqlite:///:memory:",
        api_secret_hash_rounds=4,
        rate_limit_enabled=False,
        cache_backend="memory",
        heygen_api_key="heygen-test-key",
        heygen_api_base_url="https://api.heygen.test",
        heygen_webhook_secret=HEYGEN_WEBHOOK_SECRET,
        stripe_webhook_secret=STRIPE_WEBHOOK_SECRET,
        admin_api_secret=ADMIN_SECRET,
        lti_tool_base_url="https://tool.test",
    )


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
async def context(settings: Settings, upstream: Upstream) -> AppContext:
    """Started AppContext. ASGITransport does not run the lifespan, so start it here."""
    ctx = AppContext(
        settings,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(upstream)),
    )
    await ctx.startup()
    yield ctx
    await ctx.shutdown()


@pytest.fixture
async def client(settings: Settings, context: AppContext) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    app = create_app(settings, context)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class ConnectionTracker:
    """Counts pooled DB connections currently checked out of the engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.open = 0
        event.listen(engine.sync_engine, "checkout", self._checkout)
        event.listen(engine.sync_engine, "checkin", self._checkin)

    def _checkout(self, *_args: Any) -> None:
        self.open += 1

    def _checkin(self, *_args: Any) -> None:
        self.open -= 1


@pytest.fixture
def connections(context: AppContext) -> ConnectionTracker:
    return ConnectionTracker(context.db.engine)


@pytest.fixture
def make_headers(context: AppContext) -> Callable[..., Any]:
    """Factory: create an API key with permissions and return bearer headers for it."""

    async def _make(tenant_id: str = TENANT, permissions: tuple[str, ...] = ("admin",)) -> dict[str, str]:
        generated = await context.credentials.generate_api_key(
            tenant_id, "test key", list(permissions), created_by=None
        )
        issued = await context.credentials.authenticate(generated.key, generated.secret, tenant_id)
        return {"Authorization": f"Bearer {issued.token}"}

    return _make


def signed(body: dict[str, Any], secret: str) -> tuple[bytes, str]:
    """Serialize a webhook body and return it with its X-Webhook-Signature-256 value."""
    raw = json.dumps(body).encode()
    return raw, "sha256=" + compute_signature(raw, secret)
