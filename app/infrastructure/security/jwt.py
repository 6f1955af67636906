"""JWT creation and verification.

HS256 access tokens for API clients (secret from settings) and RS256
helpers for LTI 1.3 messages (per-registration RSA keys, platform JWKS).
"""

from datetime import timedelta
from typing import Any, cast

from jose import JWTError, jwt

from app.core.config import Settings
from app.shared.utils.datetime import utc_now


def create_access_token(
    data: dict[str, Any],
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token with the given claims.

    Args:
        data: Claims to encode (e.g. sub, tenant_id, permissions).
        settings: Provides secret_key, algorithm and the default lifetime.
        expires_delta: Optional TTL; else uses settings.api_token_expire_minutes.

    Returns:
        Encoded JWT string.
    """
    to_encode = data.copy()
    now = utc_now()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.api_token_expire_minutes)
    to_encode.setdefault("iat", now)
    to_encode["exp"] = now + expires_delta
    encoded = jwt.encode(
        to_encode,
        settings.secret_key.get_secret_value(),
        algorithm=settings.algorithm,
    )
    return cast(str, encoded)


def verify_token(token: str, settings: Settings) -> dict[str, Any]:
    """Verify and decode a JWT. Returns the payload.

    Enforces presence of exp and sub. Raises ValueError if the token is
    invalid, expired, or missing required claims.

    Raises:
        ValueError: If token is invalid, expired, or missing required claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if "sub" not in payload:
        raise ValueError("Token missing required claim: sub")
    return payload


def encode_rs256(claims: dict[str, Any], private_key_pem: str, kid: str) -> str:
    """Sign claims with an RSA private key (LTI tool messages, client assertions)."""
    return cast(
        str,
        jwt.encode(claims, private_key_pem, algorithm="RS256", headers={"kid": kid}),
    )


def decode_rs256(
    token: str,
    jwks: dict[str, Any],
    audience: str,
    issuer: str,
) -> dict[str, Any]:
    """Verify an RS256 token against a JWK Set and return its claims.

    Raises:
        ValueError: If the signature, audience, issuer or expiry is invalid.
    """
    try:
        return jwt.decode(
            token,
            jwks,
            algorithms=["RS256"],
            audience=audience,
            issuer=issuer,
            options={"require_exp": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid id_token: {e!s}") from e
