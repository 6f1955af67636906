"""Tests for the LTI 1.3 tool flow: OIDC login, launch, deep linking, JWKS and grades.

The platform side is simulated with its own RSA key pair; its JWKS and
token/score endpoints are served through the upstream route table.
"""

import json
from collections.abc import Callable
from datetime import timedelta
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from app.application.dtos.lti import GradeSubmission, LoginInitiation
from app.application.dtos.registration import RegistrationConfig, SearchQuery
from app.application.services.lti_service import CLAIM, LtiService
from app.core.app_context import AppContext
from app.domain.exceptions import (
    InvalidTokenException,
    ResourceNotFoundException,
    ValidationException,
)
from app.infrastructure.security.jwt import decode_rs256, encode_rs256
from app.infrastructure.security.rsa_keys import RsaKeyPair, generate_rsa_keypair, public_jwk
from app.shared.utils.datetime import utc_now
from tests.conftest import OTHER_TENANT, TENANT, ConnectionTracker, Upstream

ISSUER = "https://moodle.test"
CLIENT_ID = "tool-client-1"
AUTH_URL = "https://moodle.test/mod/lti/auth.php"
TOKEN_URL = "https://moodle.test/mod/lti/token.php"
KEYSET_URL = "https://moodle.test/mod/lti/certs.php"
LINE_ITEM = "https://moodle.test/mod/lti/services.php/2/lineitems/7/lineitem?type_id=1"
SCORES_URL = "https://moodle.test/mod/lti/services.php/2/lineitems/7/lineitem/scores"


@pytest.fixture(scope="module")
def platform_keys() -> RsaKeyPair:
    return generate_rsa_keypair()


@pytest.fixture
def service(context: AppContext, upstream: Upstream, platform_keys: RsaKeyPair) -> LtiService:
    upstream.json(
        "GET", KEYSET_URL, {"keys": [public_jwk(platform_keys.public_key_pem, platform_keys.kid)]}
    )
    return context.lti


async def _register(service: LtiService, tenant_id: str = TENANT, activate: bool = True) -> str:
    result = await service.register(
        tenant_id,
        RegistrationConfig(
            name="Moodle",
            type="moodle",
            base_url=ISSUER,
            credentials={"client_id": CLIENT_ID},
            settings={
                "issuer": ISSUER,
                "auth_login_url": AUTH_URL,
                "token_url": TOKEN_URL,
                "keyset_url": KEYSET_URL,
            },
        ),
    )
    if activate:
        await service.set_status(tenant_id, result.id, "active")
    return result.id


def _login(**overrides: Any) -> LoginInitiation:
    params = {
        "iss": ISSUER,
        "login_hint": "user-42",
        "target_link_uri": "https://tool.test/lesson/1",
        "client_id": CLIENT_ID,
        "lti_message_hint": "hint-1",
    }
    params.update(overrides)
    return LoginInitiation(**params)


def _id_token(keys: RsaKeyPair, nonce: str, **extra: Any) -> str:
    now = utc_now()
    claims: dict[str, Any] = {
        "iss": ISSUER,
        "aud": CLIENT_ID,
        "sub": "user-42",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "nonce": nonce,
        "name": "Ada Lovelace",
        f"{CLAIM}message_type": "LtiResourceLinkRequest",
        f"{CLAIM}version": "1.3.0",
        f"{CLAIM}deployment_id": "dep-1",
        f"{CLAIM}roles": ["http://purl.imsglobal.org/vocab/lis/v2/membership#Learner"],
        f"{CLAIM}context": {"id": "course-9", "title": "Year 5 Maths"},
        "https://purl.imsglobal.org/spec/lti-ags/claim/endpoint": {"lineitem": LINE_ITEM},
    }
    claims.update(extra)
    return encode_rs256(claims, keys.private_key_pem, keys.kid)


async def test_register_generates_tool_keys(service: LtiService) -> None:
    """Registration creates an RSA key; only the public half is exposed as JWKS."""
    platform_id = await _register(service)
    jwks = await service.jwks(TENANT, platform_id)
    [key] = jwks["keys"]
    assert key["kty"] == "RSA"
    assert key["alg"] == "RS256"
    assert "d" not in key
    summary = await service.get_registration(TENANT, platform_id)
    assert "private_key_pem" not in json.dumps(summary.settings)
    with pytest.raises(ResourceNotFoundException):
        await service.jwks(OTHER_TENANT, platform_id)


async def test_register_requires_platform_settings(service: LtiService) -> None:
    """issuer, auth_login_url, token_url and keyset_url are required settings."""
    with pytest.raises(ValidationException) as exc_info:
        await service.register(
            TENANT,
            RegistrationConfig(
                name="Moodle",
                type="moodle",
                base_url=ISSUER,
                credentials={"client_id": CLIENT_ID},
                settings={"issuer": ISSUER, "auth_login_url": AUTH_URL, "token_url": TOKEN_URL},
            ),
        )
    assert exc_info.value.details == {"field": "settings.keyset_url"}


async def test_login_initiation_redirects_to_platform(service: LtiService) -> None:
    """The redirect carries state, nonce and the tool's launch URL."""
    await _register(service)
    redirect = await service.login_initiation(TENANT, _login())
    parts = urlsplit(redirect.redirect_url)
    query = {k: v[0] for k, v in parse_qs(parts.query).items()}
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == AUTH_URL
    assert query["state"] == redirect.state
    assert query["nonce"] == redirect.nonce
    assert query["client_id"] == CLIENT_ID
    assert query["redirect_uri"] == f"https://tool.test/api/lti/launch/{TENANT}"
    assert query["response_mode"] == "form_post"
    assert query["lti_message_hint"] == "hint-1"


@pytest.mark.parametrize("missing", ["iss", "login_hint", "target_link_uri", "client_id"])
async def test_login_initiation_requires_params(service: LtiService, missing: str) -> None:
    """Each OIDC login parameter is required."""
    with pytest.raises(ValidationException):
        await service.login_initiation(TENANT, _login(**{missing: ""}))


async def test_login_initiation_needs_active_platform(service: LtiService) -> None:
    """Unknown issuers, other tenants and pending platforms are not found."""
    await _register(service, activate=False)
    with pytest.raises(ResourceNotFoundException):
        await service.login_initiation(TENANT, _login())
    await _register(service, tenant_id=OTHER_TENANT)
    with pytest.raises(ResourceNotFoundException):
        await service.login_initiation(TENANT, _login())
    await _register(service)
    with pytest.raises(ResourceNotFoundException):
        await service.login_initiation(TENANT, _login(iss="https://canvas.test"))


async def test_launch_verifies_id_token(service: LtiService, platform_keys: RsaKeyPair) -> None:
    """A valid id_token for a pending login yields the launch context."""
    platform_id = await _register(service)
    redirect = await service.login_initiation(TENANT, _login())

    context = await service.launch(TENANT, redirect.state, _id_token(platform_keys, redirect.nonce))

    assert context.platform_id == platform_id
    assert context.message_type == "LtiResourceLinkRequest"
    assert context.user_id == "user-42"
    assert context.deployment_id == "dep-1"
    assert context.context == {"id": "course-9", "title": "Year 5 Maths"}
    assert context.line_item_url == LINE_ITEM
    assert context.target_link_uri == "https://tool.test/lesson/1"


async def test_launch_state_is_single_use(service: LtiService, platform_keys: RsaKeyPair) -> None:
    """Replaying a state after a launch fails."""
    await _register(service)
    redirect = await service.login_initiation(TENANT, _login())
    token = _id_token(platform_keys, redirect.nonce)
    await service.launch(TENANT, redirect.state, token)
    with pytest.raises(InvalidTokenException):
        await service.launch(TENANT, redirect.state, token)


async def test_launch_rejects_bad_tokens(service: LtiService, platform_keys: RsaKeyPair) -> None:
    """Wrong nonce, audience, signer or state are all rejected."""
    await _register(service)
    cases = [
        lambda nonce: _id_token(platform_keys, "other-nonce"),
        lambda nonce: _id_token(platform_keys, nonce, aud="someone-else"),
        lambda nonce: _id_token(generate_rsa_keypair(), nonce),
    ]
    for build in cases:
        redirect = await service.login_initiation(TENANT, _login())
        with pytest.raises(InvalidTokenException):
            await service.launch(TENANT, redirect.state, build(redirect.nonce))
    with pytest.raises(InvalidTokenException):
        await service.launch(TENANT, "unknown-state", _id_token(platform_keys, "n"))


async def test_launch_state_bound_to_tenant(service: LtiService, platform_keys: RsaKeyPair) -> None:
    """A state issued for one tenant cannot be redeemed on another."""
    await _register(service)
    redirect = await service.login_initiation(TENANT, _login())
    with pytest.raises(InvalidTokenException):
        await service.launch(OTHER_TENANT, redirect.state, _id_token(platform_keys, redirect.nonce))


async def test_launch_rejects_unsupported_message_type(
    service: LtiService, platform_keys: RsaKeyPair
) -> None:
    """Only resource link, deep linking and submission review launches are accepted."""
    await _register(service)
    redirect = await service.login_initiation(TENANT, _login())
    token = _id_token(platform_keys, redirect.nonce, **{f"{CLAIM}message_type": "LtiStartProctoring"})
    with pytest.raises(ValidationException):
        await service.launch(TENANT, redirect.state, token)


async def test_platform_jwks_is_memoized(
    service: LtiService, upstream: Upstream, platform_keys: RsaKeyPair
) -> None:
    """Two launches fetch the platform keys once."""
    await _register(service)
    for _ in range(2):
        redirect = await service.login_initiation(TENANT, _login())
        await service.launch(TENANT, redirect.state, _id_token(platform_keys, redirect.nonce))
    assert len(upstream.calls_to(KEYSET_URL)) == 1


async def test_deep_linking_response_is_signed_with_tool_key(service: LtiService) -> None:
    """The response JWT verifies against the tool JWKS and carries the content items."""
    platform_id = await _register(service)
    items = [{"type": "ltiResourceLink", "title": "Fractions", "url": "https://tool.test/lesson/1"}]
    response = await service.deep_linking_response(
        TENANT, platform_id, "dep-1", "https://moodle.test/dl/return", items, data="opaque"
    )
    claims = decode_rs256(
        response["jwt"], await service.jwks(TENANT, platform_id), audience=ISSUER, issuer=CLIENT_ID
    )
    assert claims[f"{CLAIM}message_type"] == "LtiDeepLinkingResponse"
    assert claims["https://purl.imsglobal.org/spec/lti-dl/claim/content_items"] == items
    assert claims["https://purl.imsglobal.org/spec/lti-dl/claim/data"] == "opaque"
    assert response["return_url"] == "https://moodle.test/dl/return"
    with pytest.raises(ValidationException):
        await service.deep_linking_response(TENANT, platform_id, "dep-1", "javascript:alert(1)", [])


async def test_send_grade_posts_score_with_service_token(
    service: LtiService, upstream: Upstream
) -> None:
    """Grades go to <lineitem>/scores with a bearer token that is reused."""
    platform_id = await _register(service)
    upstream.json("POST", TOKEN_URL, {"access_token": "ags-token", "expires_in": 3600})
    upstream.json("POST", SCORES_URL, {})

    grade = GradeSubmission(line_item_url=LINE_ITEM, user_id="user-42", score_given=8, score_maximum=10)
    assert await service.send_grade(TENANT, platform_id, grade) is True
    assert await service.send_grade(TENANT, platform_id, grade) is True

    [token_request] = upstream.calls_to(TOKEN_URL)
    assert b"client_assertion=" in token_request.content
    score_requests = upstream.calls_to(SCORES_URL)
    assert len(score_requests) == 2
    assert score_requests[0].url.params["type_id"] == "1"
    assert score_requests[0].headers["Authorization"] == "Bearer ags-token"
    assert score_requests[0].headers["Content-Type"] == "application/vnd.ims.lis.v1.score+json"
    body = json.loads(score_requests[0].content)
    assert body["scoreGiven"] == 8
    assert body["gradingProgress"] == "FullyGraded"


async def test_send_grade_validates_line_item(service: LtiService) -> None:
    """line_item_url must be an http(s) URL."""
    platform_id = await _register(service)
    with pytest.raises(ValidationException):
        await service.send_grade(
            TENANT, platform_id, GradeSubmission(line_item_url="file:///etc", user_id="u", score_given=1)
        )


async def test_grade_passback_webhook_publishes_score(service: LtiService, upstream: Upstream) -> None:
    """grade.passback events are forwarded to the platform."""
    platform_id = await _register(service)
    upstream.json("POST", TOKEN_URL, {"access_token": "ags-token", "expires_in": 3600})
    upstream.json("POST", SCORES_URL, {})
    await service.handle_webhook_event(
        TENANT,
        platform_id,
        "grade.passback",
        {"lineItemUrl": LINE_ITEM, "userId": "user-42", "scoreGiven": 5},
    )
    [request] = upstream.calls_to(SCORES_URL)
    assert json.loads(request.content)["scoreMaximum"] == 100.0


async def test_grade_passback_calls_platform_outside_the_transaction(
    service: LtiService, upstream: Upstream, connections: ConnectionTracker
) -> None:
    """The AGS token and score calls run after the webhook transaction has closed."""
    platform_id = await _register(service)
    open_during_calls: list[int] = []

    def respond(body: dict[str, Any]) -> Callable[[httpx.Request], httpx.Response]:
        def handler(_request: httpx.Request) -> httpx.Response:
            open_during_calls.append(connections.open)
            return httpx.Response(200, json=body)

        return handler

    upstream.add("POST", TOKEN_URL, respond({"access_token": "ags-token", "expires_in": 3600}))
    upstream.add("POST", SCORES_URL, respond({}))
    await service.handle_webhook_event(
        TENANT,
        platform_id,
        "grade.passback",
        {"lineItemUrl": LINE_ITEM, "userId": "user-42", "scoreGiven": 5},
    )
    assert open_during_calls == [0, 0]


@pytest.mark.parametrize(
    "scores",
    [{"scoreGiven": "ninety"}, {"scoreGiven": 5, "scoreMaximum": "all"}, {"scoreGiven": [5]}],
)
async def test_grade_passback_rejects_non_numeric_scores(
    service: LtiService, upstream: Upstream, scores: dict[str, Any]
) -> None:
    """Scores that are not numbers are a validation error and nothing is sent."""
    platform_id = await _register(service)
    with pytest.raises(ValidationException):
        await service.handle_webhook_event(
            TENANT,
            platform_id,
            "grade.passback",
            {"lineItemUrl": LINE_ITEM, "userId": "user-42", **scores},
        )
    assert upstream.calls_to(TOKEN_URL) == []
    assert upstream.calls_to(SCORES_URL) == []


async def test_lti_registrations_are_not_searchable(service: LtiService) -> None:
    """Search is not offered for LTI platforms."""
    with pytest.raises(ValidationException):
        await service.search(TENANT, SearchQuery())
