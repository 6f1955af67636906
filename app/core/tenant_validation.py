"""Tenant ID format validation for path parameters and token claims.

Shared by route dependencies and cache key builders so malformed tenant
IDs are rejected consistently before they reach storage or cache keys.
"""

import re

# CUID/UUID/slug style: alphanumeric, hyphen, underscore; bounded length.
TENANT_ID_MAX_LENGTH = 64
_TENANT_ID_RE = re.compile(
    r"^[a-zA-Z0-9_-]{1," + str(TENANT_ID_MAX_LENGTH) + r"}$"
)


def is_valid_tenant_id_format(value: str) -> bool:
    """Return True if value is a well-formed tenant identifier."""
    if not value or len(value) > TENANT_ID_MAX_LENGTH:
        return False
    return bool(_TENANT_ID_RE.fullmatch(value))
