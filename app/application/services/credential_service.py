"""Credential service: API keys, bearer token issuance and verification."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from app.application.dtos.credential import (
    ApiKeyResult,
    GeneratedApiKey,
    IssuedToken,
    TokenPayload,
)
from app.application.services import authorization_service
from app.core.config import Settings
from app.core.constants import API_KEY_DISPLAY_PREFIX_LENGTH, API_KEY_PREFIX
from app.domain.exceptions import (
    AuthenticationException,
    ForbiddenException,
    InvalidTokenException,
    ResourceNotFoundException,
    ValidationException,
)
from app.infrastructure.persistence.database import Database
from app.infrastructure.persistence.models.api_key import ApiKey
from app.infrastructure.persistence.repositories.api_key_repo import ApiKeyRepository
from app.infrastructure.security.jwt import create_access_token, verify_token
from app.infrastructure.security.secret_hashing import get_secret_hash, verify_secret
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import ensure_utc, from_timestamp_utc, utc_now
from app.shared.utils.generators import generate_secret

logger = logging.getLogger(__name__)

TOKEN_TYPE_API = "api"


def _api_key_to_result(row: ApiKey) -> ApiKeyResult:
    return ApiKeyResult(
        id=row.id,
        tenant_id=row.tenant_id,
        name=row.name,
        key_prefix=row.key_prefix,
        permissions=list(row.permissions or []),
        revoked=row.revoked,
        created_by=row.created_by,
        created_at=ensure_utc(row.created_at),  # type: ignore[arg-type]
        last_used_at=ensure_utc(row.last_used_at),
        revoked_at=ensure_utc(row.revoked_at),
    )


class CredentialService:
    """Issue and verify tenant-scoped bearer tokens from API key/secret pairs.

    Secrets are only stored as bcrypt hashes; hashing and verification run
    in a worker thread so the event loop is not blocked.
    """

    def __init__(self, db: Database, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    @traced("credential.authenticate")
    async def authenticate(self, api_key: str, api_secret: str, tenant_id: str) -> IssuedToken:
        """Exchange an API key/secret for a bearer token.

        Raises:
            AuthenticationException: Unknown, revoked, mismatched secret or
                other tenant's key. The message is the same in every case.
        """
        async with self.db.transaction() as session:
            repo = ApiKeyRepository(session)
            row = await repo.get_by_key(api_key)
            if row is None or row.revoked or row.tenant_id != tenant_id:
                logger.info("Authentication rejected for tenant %s", tenant_id)
                raise AuthenticationException()
            if not await asyncio.to_thread(verify_secret, api_secret, row.secret_hash):
                logger.info("Authentication rejected for tenant %s", tenant_id)
                raise AuthenticationException()
            row.last_used_at = utc_now()
            await repo.update(row)
            key_id = row.id
            permissions = list(row.permissions or [])

        lifetime = timedelta(minutes=self.settings.api_token_expire_minutes)
        issued_at = utc_now()
        token = create_access_token(
            {
                "sub": key_id,
                "tenant_id": tenant_id,
                "permissions": permissions,
                "typ": TOKEN_TYPE_API,
                "iat": issued_at,
            },
            self.settings,
            expires_delta=lifetime,
        )
        return IssuedToken(token=token, expires_at=issued_at + lifetime, permissions=permissions)

    def verify_token(self, token: str) -> TokenPayload:
        """Verify a bearer token and return its claims.

        Raises:
            InvalidTokenException: Malformed, expired, wrongly signed or not an API token.
        """
        try:
            claims = verify_token(token, self.settings)
        except ValueError as e:
            raise InvalidTokenException() from e
        tenant_id = claims.get("tenant_id")
        permissions = claims.get("permissions")
        if claims.get("typ") != TOKEN_TYPE_API or not tenant_id or not isinstance(permissions, list):
            raise InvalidTokenException()
        return TokenPayload(
            key_id=str(claims["sub"]),
            tenant_id=str(tenant_id),
            permissions=[str(p) for p in permissions],
            expires_at=from_timestamp_utc(float(claims["exp"])),
        )

    @traced("credential.generate_api_key")
    async def generate_api_key(
        self,
        tenant_id: str,
        name: str,
        permissions: list[str],
        created_by: str | None = None,
    ) -> GeneratedApiKey:
        """Create a key for tenant. The returned secret is not recoverable later."""
        if not name or not name.strip():
            raise ValidationException("Key name is required", field="name")
        valid_permissions = authorization_service.validate_permissions(permissions)
        key = f"{API_KEY_PREFIX}{generate_secret(24)}"
        secret = generate_secret(32)
        secret_hash = await asyncio.to_thread(
            get_secret_hash, secret, self.settings.api_secret_hash_rounds
        )
        async with self.db.transaction() as session:
            row = await ApiKeyRepository(session).create(
                ApiKey(
                    tenant_id=tenant_id,
                    name=name.strip(),
                    key=key,
                    key_prefix=key[:API_KEY_DISPLAY_PREFIX_LENGTH],
                    secret_hash=secret_hash,
                    permissions=valid_permissions,
                    created_by=created_by,
                    revoked=False,
                )
            )
            result = _api_key_to_result(row)
        logger.info("API key %s created for tenant %s", result.id, tenant_id)
        return GeneratedApiKey(api_key=result, key=key, secret=secret)

    async def revoke_api_key(self, key_id: str, tenant_id: str) -> bool:
        """Revoke a key. Revoking an already revoked key succeeds without change."""
        async with self.db.transaction() as session:
            repo = ApiKeyRepository(session)
            row = await repo.get_by_id_and_tenant(key_id, tenant_id)
            if row is None:
                raise ResourceNotFoundException("api_key", key_id)
            if not row.revoked:
                row.revoked = True
                row.revoked_at = utc_now()
                await repo.update(row)
                logger.info("API key %s revoked for tenant %s", key_id, tenant_id)
        return True

    async def list_api_keys(self, tenant_id: str) -> list[ApiKeyResult]:
        async with self.db.session() as session:
            rows = await ApiKeyRepository(session).get_by_tenant(tenant_id)
            return [_api_key_to_result(r) for r in rows]

    @staticmethod
    def require_tenant(payload: TokenPayload, tenant_id: str) -> None:
        """Raise ForbiddenException if the token was issued for another tenant."""
        if payload.tenant_id != tenant_id:
            raise ForbiddenException()

    @staticmethod
    def require_permission(payload: TokenPayload, permission: str) -> None:
        """Raise AuthorizationException if the token does not grant permission."""
        authorization_service.require_permission(payload.permissions, permission)
