"""Assessment tool API: synced assessments, attempts, submission and results."""

from collections.abc import Callable
from typing import Any

import pytest
from httpx import AsyncClient

from app.application.dtos.registration import RegistrationConfig
from app.core.app_context import AppContext
from tests.conftest import OTHER_TENANT, TENANT

BASE = "/api/assessment-tools"
QUESTIONS = [
    {"id": "q1", "type": "multiple_choice", "correct_answer": "b"},
    {"id": "q2", "type": "short_answer", "correct_answer": "Paris"},
]


@pytest.fixture
async def assessment_id(context: AppContext) -> str:
    """An active tool with one synced assessment (pass mark 50, two attempts)."""
    service = context.assessments
    result = await service.register(
        TENANT, RegistrationConfig(name="Quizzer", type="quiz", base_url="https://quiz.test")
    )
    await service.set_status(TENANT, result.id, "active")
    await service.handle_webhook_event(
        TENANT,
        result.id,
        "assessment.created",
        {"id": "ext-quiz", "title": "Capitals", "questions": QUESTIONS, "passingScore": 50, "maxAttempts": 2},
    )
    [summary] = await service.list_assessments(TENANT)
    return summary.id


async def test_list_assessments_hides_questions(
    client: AsyncClient, make_headers: Callable[..., Any], assessment_id: str
) -> None:
    """Synced assessments are listed with a question count but no answers."""
    headers = await make_headers(TENANT, ("assessment:read",))
    response = await client.get(f"{BASE}/assessments/{TENANT}", headers=headers)
    assert response.status_code == 200
    [assessment] = response.json()
    assert assessment["id"] == assessment_id
    assert assessment["questionCount"] == 2
    assert assessment["passingScore"] == 50
    assert "questions" not in assessment


async def test_attempt_submit_and_results(
    client: AsyncClient, make_headers: Callable[..., Any], assessment_id: str
) -> None:
    """Start, submit and read back a completed attempt."""
    headers = await make_headers(TENANT, ("assessment:read", "assessment:write"))
    response = await client.post(
        f"{BASE}/attempts/{TENANT}",
        headers=headers,
        json={"assessmentId": assessment_id, "userId": "u1", "contextId": "class-4b"},
    )
    assert response.status_code == 201
    attempt = response.json()
    assert attempt["status"] == "in_progress"

    response = await client.post(
        f"{BASE}/attempts/{TENANT}/{attempt['id']}/submit",
        headers=headers,
        json={"answers": [{"questionId": "q1", "answer": "b"}, {"questionId": "q2", "answer": "Rome"}]},
    )
    assert response.status_code == 200
    submission = response.json()
    assert submission["attemptId"] == attempt["id"]
    assert submission["score"] == 50.0
    assert submission["passed"] is True

    response = await client.post(
        f"{BASE}/attempts/{TENANT}/{attempt['id']}/submit", headers=headers, json={"answers": []}
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ATTEMPT_ALREADY_COMPLETED"

    response = await client.get(
        f"{BASE}/results/{TENANT}/u1", headers=headers, params={"contextId": "class-4b"}
    )
    [result] = response.json()
    assert result["status"] == "completed"
    assert result["score"] == 50.0


async def test_max_attempts_is_conflict(
    client: AsyncClient, make_headers: Callable[..., Any], assessment_id: str
) -> None:
    """The third attempt on a two-attempt assessment is a 409."""
    headers = await make_headers()
    body = {"assessmentId": assessment_id, "userId": "u1"}
    for _ in range(2):
        assert (await client.post(f"{BASE}/attempts/{TENANT}", headers=headers, json=body)).status_code == 201
    response = await client.post(f"{BASE}/attempts/{TENANT}", headers=headers, json=body)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "LIMIT_EXCEEDED"


async def test_attempts_require_write_and_same_tenant(
    client: AsyncClient, make_headers: Callable[..., Any], assessment_id: str
) -> None:
    """assessment:read cannot start attempts; another tenant's token is forbidden."""
    reader = await make_headers(TENANT, ("assessment:read",))
    body = {"assessmentId": assessment_id, "userId": "u1"}
    response = await client.post(f"{BASE}/attempts/{TENANT}", headers=reader, json=body)
    assert response.status_code == 403

    other = await make_headers(OTHER_TENANT, ("admin",))
    response = await client.post(f"{BASE}/attempts/{OTHER_TENANT}", headers=other, json=body)
    assert response.status_code == 404
    response = await client.post(f"{BASE}/attempts/{TENANT}", headers=other, json=body)
    assert response.status_code == 403


async def test_results_limit_is_validated(client: AsyncClient, make_headers: Callable[..., Any]) -> None:
    headers = await make_headers()
    response = await client.get(f"{BASE}/results/{TENANT}/u1", headers=headers, params={"limit": 0})
    assert response.status_code == 422


@pytest.mark.parametrize(("tenant", "base"), [("assessments", BASE), ("attempts", BASE), ("login", "/api/lti")])
async def test_tenant_named_like_a_route_reads_its_registrations(
    client: AsyncClient, make_headers: Callable[..., Any], tenant: str, base: str
) -> None:
    """Tenant ids that match a family route segment still reach the generic registration routes."""
    resource = "assessment" if base == BASE else "lti"
    headers = await make_headers(tenant, (f"{resource}:read", f"{resource}:write"))
    body = {"name": "Tool", "type": "quiz", "baseUrl": "https://tool.test"}
    if resource == "lti":
        body = {
            "name": "Moodle",
            "type": "moodle",
            "baseUrl": "https://moodle.test",
            "credentials": {"client_id": "tool-1"},
            "settings": {
                "issuer": "https://moodle.test",
                "auth_login_url": "https://moodle.test/auth",
                "token_url": "https://moodle.test/token",
                "keyset_url": "https://moodle.test/jwks",
            },
        }
    created = await client.post(f"{base}/register/{tenant}", headers=headers, json=body)
    assert created.status_code == 201, created.text
    registration_id = created.json()["id"]

    response = await client.get(f"{base}/registrations/{tenant}/{registration_id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["id"] == registration_id
    response = await client.get(f"{base}/registrations/{tenant}", headers=headers)
    assert [r["id"] for r in response.json()] == [registration_id]
