"""LTI 1.3 platform integration (tool side).

Flow: the platform calls login_initiation (third-party initiated login),
the tool redirects the browser to the platform's OIDC authorization
endpoint with a state and nonce, and the platform posts an id_token back
to launch. The tool signs deep-linking responses and AGS client
assertions with a per-platform RSA key whose public half is served as a
JWKS.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.lti import GradeSubmission, LaunchContext, LoginInitiation, LoginRedirect
from app.application.services.registration_service import (
    EventHandler,
    PostCommit,
    RegistrationService,
    optional_float,
    pick,
    require_field,
)
from app.core.config import Settings
from app.domain.enums import RegistrationKind, RegistrationStatus
from app.domain.exceptions import (
    InvalidTokenException,
    ResourceNotFoundException,
    ValidationException,
)
from app.infrastructure.cache.keys import access_token_key, jwks_key, lti_state_key
from app.infrastructure.cache.memo import MemoCache
from app.infrastructure.external.lti_platform_client import AGS_SCORE_SCOPE, LtiPlatformClient
from app.infrastructure.persistence.database import Database
from app.infrastructure.persistence.models.registration import IntegrationRegistration
from app.infrastructure.persistence.repositories.registration_repo import RegistrationRepository
from app.infrastructure.security.encryption import CredentialEncryptor
from app.infrastructure.security.jwt import decode_rs256, encode_rs256
from app.infrastructure.security.rsa_keys import generate_rsa_keypair, public_jwk
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_cuid, generate_secret

logger = logging.getLogger(__name__)

LTI_VERSION = "1.3.0"
CLAIM = "https://purl.imsglobal.org/spec/lti/claim/"
DL_CLAIM = "https://purl.imsglobal.org/spec/lti-dl/claim/"
AGS_CLAIM = "https://purl.imsglobal.org/spec/lti-ags/claim/endpoint"

MESSAGE_RESOURCE_LINK = "LtiResourceLinkRequest"
MESSAGE_DEEP_LINKING = "LtiDeepLinkingRequest"
MESSAGE_SUBMISSION_REVIEW = "LtiSubmissionReviewRequest"
MESSAGE_DEEP_LINKING_RESPONSE = "LtiDeepLinkingResponse"
SUPPORTED_MESSAGE_TYPES = frozenset(
    {MESSAGE_RESOURCE_LINK, MESSAGE_DEEP_LINKING, MESSAGE_SUBMISSION_REVIEW}
)

# Lifetime of JWTs the tool signs (deep-linking responses, client assertions).
TOOL_JWT_LIFETIME = timedelta(minutes=5)
TOKEN_EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class PlatformConfig:
    """Decrypted platform registration material."""

    id: str
    tenant_id: str
    status: str
    client_id: str
    issuer: str
    auth_login_url: str
    token_url: str
    keyset_url: str
    kid: str
    private_key_pem: str
    public_key_pem: str


class LtiService(RegistrationService):
    """LTI 1.3 platforms (LMSs such as Moodle, Canvas, Google Classroom)."""

    KIND = RegistrationKind.LTI
    RESOURCE_NAME = "lti_platform"
    CREDENTIAL_FIELDS = ("client_id",)
    REQUIRED_SETTINGS = ("issuer", "auth_login_url", "token_url", "keyset_url")
    SEARCHABLE = False

    def __init__(
        self,
        db: Database,
        cache: MemoCache,
        encryptor: CredentialEncryptor,
        settings: Settings,
        http: httpx.AsyncClient,
    ) -> None:
        super().__init__(db, cache, encryptor, settings)
        self.client = LtiPlatformClient(http)

    async def _prepare_registration(
        self, credentials: dict[str, Any], settings: dict[str, Any]
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Generate the tool's RSA key pair; the private key is stored encrypted."""
        keypair = await asyncio.to_thread(generate_rsa_keypair)
        credentials["private_key_pem"] = keypair.private_key_pem
        settings["kid"] = keypair.kid
        settings["public_key_pem"] = keypair.public_key_pem
        return credentials, settings

    def _to_config(self, row: IntegrationRegistration) -> PlatformConfig:
        credentials = self.encryptor.decrypt(row.credentials_encrypted)
        settings = row.settings or {}
        return PlatformConfig(
            id=row.id,
            tenant_id=row.tenant_id,
            status=row.status,
            client_id=credentials["client_id"],
            issuer=settings["issuer"],
            auth_login_url=settings["auth_login_url"],
            token_url=settings["token_url"],
            keyset_url=settings["keyset_url"],
            kid=settings["kid"],
            private_key_pem=credentials["private_key_pem"],
            public_key_pem=settings["public_key_pem"],
        )

    async def _get_platform(self, tenant_id: str, platform_id: str) -> PlatformConfig:
        async with self.db.session() as session:
            row = await self._get_owned(session, tenant_id, platform_id)
            return self._to_config(row)

    async def _find_active_platform(
        self, tenant_id: str, issuer: str, client_id: str
    ) -> PlatformConfig | None:
        async with self.db.session() as session:
            rows = await RegistrationRepository(session).get_by_tenant_and_kind(
                tenant_id, self.KIND.value, status=RegistrationStatus.ACTIVE.value
            )
            for row in rows:
                if (row.settings or {}).get("issuer") != issuer:
                    continue
                config = self._to_config(row)
                if config.client_id == client_id:
                    return config
        return None

    def launch_url(self, tenant_id: str) -> str:
        return f"{self.settings.lti_tool_base_url.rstrip('/')}/api/lti/launch/{tenant_id}"

    @traced("lti.login_initiation")
    async def login_initiation(self, tenant_id: str, params: LoginInitiation) -> LoginRedirect:
        """Start the OIDC login and return the platform authorization redirect."""
        for field_name in ("iss", "login_hint", "target_link_uri", "client_id"):
            if not getattr(params, field_name):
                raise ValidationException(f"{field_name} is required", field=field_name)
        platform = await self._find_active_platform(tenant_id, params.iss, params.client_id)
        if platform is None:
            raise ResourceNotFoundException(self.RESOURCE_NAME, params.iss)

        state = generate_secret(32)
        nonce = generate_secret(32)
        await self.cache.set(
            lti_state_key(state),
            {
                "tenant_id": tenant_id,
                "platform_id": platform.id,
                "nonce": nonce,
                "target_link_uri": params.target_link_uri,
                "login_hint": params.login_hint,
            },
            ttl_seconds=self.settings.lti_state_ttl_seconds,
        )
        query = {
            "client_id": platform.client_id,
            "login_hint": params.login_hint,
            "nonce": nonce,
            "prompt": "none",
            "redirect_uri": self.launch_url(tenant_id),
            "response_mode": "form_post",
            "response_type": "id_token",
            "scope": "openid",
            "state": state,
        }
        if params.lti_message_hint:
            query["lti_message_hint"] = params.lti_message_hint
        redirect_url = str(httpx.URL(platform.auth_login_url).copy_merge_params(query))
        return LoginRedirect(redirect_url=redirect_url, state=state, nonce=nonce)

    async def platform_jwks(self, keyset_url: str) -> dict[str, Any]:
        """Platform public keys, memoized for cache_ttl_jwks."""
        return await self.cache.get_or_compute(
            jwks_key(keyset_url),
            lambda: self.client.fetch_jwks(keyset_url),
            ttl_seconds=self.settings.cache_ttl_jwks,
        )

    @traced("lti.launch")
    async def launch(self, tenant_id: str, state: str, id_token: str) -> LaunchContext:
        """Verify the platform's id_token for a pending login and return the launch context.

        Raises:
            InvalidTokenException: Unknown or expired state, bad signature,
                audience, issuer, expiry or nonce.
            ValidationException: Unsupported message type.
        """
        if not state or not id_token:
            raise ValidationException("state and id_token are required")
        key = lti_state_key(state)
        pending = await self.cache.get(key)
        if not isinstance(pending, dict) or pending.get("tenant_id") != tenant_id:
            raise InvalidTokenException("Invalid or expired LTI state")
        await self.cache.delete(key)

        platform = await self._get_platform(tenant_id, pending["platform_id"])
        jwks = await self.platform_jwks(platform.keyset_url)
        try:
            claims = decode_rs256(id_token, jwks, audience=platform.client_id, issuer=platform.issuer)
        except ValueError as e:
            logger.warning("Rejected LTI id_token for platform %s: %s", platform.id, e)
            raise InvalidTokenException("Invalid LTI id_token") from e
        if claims.get("nonce") != pending["nonce"]:
            raise InvalidTokenException("Invalid LTI id_token")

        message_type = claims.get(f"{CLAIM}message_type")
        if message_type not in SUPPORTED_MESSAGE_TYPES:
            raise ValidationException(f"Unsupported LTI message type: {message_type}")
        ags = claims.get(AGS_CLAIM) or {}
        return LaunchContext(
            platform_id=platform.id,
            message_type=message_type,
            deployment_id=claims.get(f"{CLAIM}deployment_id"),
            user_id=str(claims.get("sub", "")),
            roles=list(claims.get(f"{CLAIM}roles") or []),
            name=claims.get("name"),
            email=claims.get("email"),
            context=claims.get(f"{CLAIM}context"),
            resource_link=claims.get(f"{CLAIM}resource_link"),
            line_item_url=ags.get("lineitem"),
            deep_linking_settings=claims.get(f"{DL_CLAIM}deep_linking_settings"),
            target_link_uri=claims.get(f"{CLAIM}target_link_uri") or pending.get("target_link_uri"),
            custom=dict(claims.get(f"{CLAIM}custom") or {}),
        )

    async def deep_linking_response(
        self,
        tenant_id: str,
        platform_id: str,
        deployment_id: str,
        return_url: str,
        content_items: list[dict[str, Any]],
        data: str | None = None,
    ) -> dict[str, Any]:
        """Build the signed LtiDeepLinkingResponse JWT to post back to return_url."""
        if not return_url.startswith(("http://", "https://")):
            raise ValidationException("return_url must be an http(s) URL", field="return_url")
        platform = await self._get_platform(tenant_id, platform_id)
        now = utc_now()
        claims: dict[str, Any] = {
            "iss": platform.client_id,
            "aud": platform.issuer,
            "iat": now,
            "exp": now + TOOL_JWT_LIFETIME,
            "nonce": generate_secret(16),
            f"{CLAIM}message_type": MESSAGE_DEEP_LINKING_RESPONSE,
            f"{CLAIM}version": LTI_VERSION,
            f"{CLAIM}deployment_id": deployment_id,
            f"{DL_CLAIM}content_items": content_items,
        }
        if data is not None:
            claims[f"{DL_CLAIM}data"] = data
        token = encode_rs256(claims, platform.private_key_pem, platform.kid)
        return {"jwt": token, "return_url": return_url}

    async def jwks(self, tenant_id: str, platform_id: str) -> dict[str, Any]:
        """Public JWKS of the tool key used with platform_id."""
        platform = await self._get_platform(tenant_id, platform_id)
        return {"keys": [public_jwk(platform.public_key_pem, platform.kid)]}

    async def _service_token(self, platform: PlatformConfig, scope: str) -> str:
        key = access_token_key(platform.id, scope)
        cached = await self.cache.get(key)
        if cached is not None:
            return str(cached)
        now = utc_now()
        assertion = encode_rs256(
            {
                "iss": platform.client_id,
                "sub": platform.client_id,
                "aud": platform.token_url,
                "iat": now,
                "exp": now + TOOL_JWT_LIFETIME,
                "jti": generate_cuid(),
            },
            platform.private_key_pem,
            platform.kid,
        )
        token = await self.client.request_access_token(platform.token_url, assertion, [scope])
        ttl = token.expires_in - TOKEN_EXPIRY_MARGIN_SECONDS
        if ttl > 0:
            await self.cache.set(key, token.access_token, ttl_seconds=ttl)
        return token.access_token

    async def _publish_score(self, platform: PlatformConfig, grade: GradeSubmission) -> None:
        if not grade.line_item_url.startswith(("http://", "https://")):
            raise ValidationException("line_item_url must be an http(s) URL", field="line_item_url")
        access_token = await self._service_token(platform, AGS_SCORE_SCOPE)
        score: dict[str, Any] = {
            "userId": grade.user_id,
            "scoreGiven": grade.score_given,
            "scoreMaximum": grade.score_maximum,
            "activityProgress": grade.activity_progress,
            "gradingProgress": grade.grading_progress,
            "timestamp": utc_now().isoformat(),
        }
        if grade.comment:
            score["comment"] = grade.comment
        await self.client.post_score(grade.line_item_url, access_token, score)
        logger.info("Grade sent to platform %s for user %s", platform.id, grade.user_id)

    @traced("lti.send_grade")
    async def send_grade(
        self, tenant_id: str, platform_id: str, grade: GradeSubmission
    ) -> bool:
        """Publish a score to the platform line item (AGS). Upstream failure -> 502."""
        platform = await self._get_platform(tenant_id, platform_id)
        await self._publish_score(platform, grade)
        return True

    def event_handlers(self) -> dict[str, EventHandler]:
        return {
            "grade.passback": self._on_grade_passback,
            "deep_linking.completed": self._on_deep_linking_completed,
        }

    async def _on_grade_passback(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> PostCommit:
        score_maximum = optional_float(pick(payload, "score_maximum", "scoreMaximum"), "score_maximum")
        grade = GradeSubmission(
            line_item_url=str(require_field(payload, "line_item_url", "lineItemUrl")),
            user_id=str(require_field(payload, "user_id", "userId")),
            score_given=optional_float(require_field(payload, "score_given", "scoreGiven"), "score_given"),
            score_maximum=score_maximum or 100.0,
            comment=payload.get("comment"),
        )
        platform = self._to_config(registration)

        async def publish() -> None:
            await self._publish_score(platform, grade)

        return publish

    async def _on_deep_linking_completed(
        self, session: AsyncSession, registration: IntegrationRegistration, payload: dict[str, Any]
    ) -> None:
        logger.info(
            "Deep linking completed on platform %s (%d items)",
            registration.id,
            len(payload.get("content_items") or payload.get("contentItems") or []),
        )
