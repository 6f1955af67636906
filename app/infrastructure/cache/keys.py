"""Cache key builders. Single place for key format (DRY).

Keys are "<prefix>:<scope...>:<digest>". Scope components (tenant_id,
registration_id, user_id) must not contain CACHE_KEY_SEP so a whole scope
can be invalidated with a "<prefix>:<scope>:*" pattern. The digest is the
SHA-256 of the canonical JSON of the remaining arguments, so logically
equal arguments (same keys in any order) map to the same key.
"""

import hashlib
import json
from typing import Any

from app.core.constants import (
    CACHE_KEY_SEP,
    CACHE_PREFIX_ACCESS_TOKEN,
    CACHE_PREFIX_JWKS,
    CACHE_PREFIX_LTI_STATE,
    CACHE_PREFIX_RECOMMENDATIONS,
    CACHE_PREFIX_SEARCH,
)


def canonical_json(data: Any) -> str:
    """Canonical JSON for deterministic hashing (sorted keys, compact separators)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value contains CACHE_KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def _validate_key_components(components: list[tuple[str, str]]) -> None:
    for value, name in components:
        _validate_key_component(value, name)


def digest(*args: Any, **kwargs: Any) -> str:
    """Return the SHA-256 hex digest of the canonical form of args and kwargs."""
    payload = canonical_json({"args": list(args), "kwargs": kwargs})
    return hashlib.sha256(payload.encode()).hexdigest()


def derive_key(prefix: str, *args: Any, **kwargs: Any) -> str:
    """Derive a cache key from a prefix and arbitrary JSON-compatible arguments."""
    _validate_key_component(prefix, "prefix")
    return f"{prefix}{CACHE_KEY_SEP}{digest(*args, **kwargs)}"


def search_key(tenant_id: str, registration_id: str, query: dict[str, Any]) -> str:
    """Cache key for one registration's remote search results."""
    _validate_key_components([(tenant_id, "tenant_id"), (registration_id, "registration_id")])
    return (
        f"{CACHE_PREFIX_SEARCH}{CACHE_KEY_SEP}{tenant_id}{CACHE_KEY_SEP}"
        f"{registration_id}{CACHE_KEY_SEP}{digest(query)}"
    )


def search_registration_pattern(tenant_id: str, registration_id: str) -> str:
    """Pattern matching every memoized search result of one registration."""
    _validate_key_components([(tenant_id, "tenant_id"), (registration_id, "registration_id")])
    return f"{CACHE_PREFIX_SEARCH}{CACHE_KEY_SEP}{tenant_id}{CACHE_KEY_SEP}{registration_id}{CACHE_KEY_SEP}*"


def recommendations_key(
    tenant_id: str, user_id: str, context_id: str | None, limit: int
) -> str:
    """Cache key for a user's content recommendations."""
    _validate_key_components([(tenant_id, "tenant_id"), (user_id, "user_id")])
    return (
        f"{CACHE_PREFIX_RECOMMENDATIONS}{CACHE_KEY_SEP}{tenant_id}{CACHE_KEY_SEP}"
        f"{user_id}{CACHE_KEY_SEP}{digest(context_id=context_id, limit=limit)}"
    )


def recommendations_user_pattern(tenant_id: str, user_id: str) -> str:
    _validate_key_components([(tenant_id, "tenant_id"), (user_id, "user_id")])
    return f"{CACHE_PREFIX_RECOMMENDATIONS}{CACHE_KEY_SEP}{tenant_id}{CACHE_KEY_SEP}{user_id}{CACHE_KEY_SEP}*"


def recommendations_tenant_pattern(tenant_id: str) -> str:
    _validate_key_component(tenant_id, "tenant_id")
    return f"{CACHE_PREFIX_RECOMMENDATIONS}{CACHE_KEY_SEP}{tenant_id}{CACHE_KEY_SEP}*"


def access_token_key(registration_id: str, scope: str) -> str:
    """Cache key for an OAuth2 client-credentials token of one registration."""
    _validate_key_component(registration_id, "registration_id")
    return f"{CACHE_PREFIX_ACCESS_TOKEN}{CACHE_KEY_SEP}{registration_id}{CACHE_KEY_SEP}{digest(scope)}"


def jwks_key(keyset_url: str) -> str:
    """Cache key for a remote JSON Web Key Set."""
    return derive_key(CACHE_PREFIX_JWKS, keyset_url)


def lti_state_key(state: str) -> str:
    """Cache key for a pending LTI OIDC login (state -> nonce, platform).

    state comes back from the browser, so it is hashed rather than validated.
    """
    return derive_key(CACHE_PREFIX_LTI_STATE, state)
