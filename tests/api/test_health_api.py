"""Health, readiness and cross-cutting HTTP behavior (request id, headers, error envelope)."""

from httpx import AsyncClient


async def test_health_returns_ok(client: AsyncClient) -> None:
    """GET /api/health returns 200 and the app version."""
    response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "version" in data


async def test_readiness_checks_database_and_cache(client: AsyncClient) -> None:
    """GET /api/health/ready reports both dependencies."""
    response = await client.get("/api/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "cache": True, "database": True}


async def test_request_id_is_echoed_or_generated(client: AsyncClient) -> None:
    """A safe client X-Request-ID is echoed; unsafe ones are replaced."""
    response = await client.get("/api/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"
    response = await client.get("/api/health", headers={"X-Request-ID": "bad id with spaces"})
    assert response.headers["X-Request-ID"] != "bad id with spaces"
    assert len(response.headers["X-Request-ID"]) == 32


async def test_security_headers(client: AsyncClient) -> None:
    """API responses forbid framing; LTI responses may be framed by the LMS."""
    response = await client.get("/api/health")
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    lti = await client.get("/api/lti/jwks/school-1/missing")
    assert "X-Frame-Options" not in lti.headers
    assert "frame-ancestors *" in lti.headers["Content-Security-Policy"]


async def test_unknown_route_uses_error_envelope(client: AsyncClient) -> None:
    """404 from the router has the same envelope as domain errors."""
    response = await client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


async def test_invalid_tenant_id_is_rejected(client: AsyncClient) -> None:
    """Tenant ids outside [A-Za-z0-9_-]{1,64} are a validation error."""
    response = await client.get("/api/content-providers/bad.tenant")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
