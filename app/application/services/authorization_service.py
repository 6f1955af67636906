"""Authorization: permission checks for API key tokens.

The vocabulary is fixed (ApiPermission). "admin" grants everything;
"read" and "write" grant every "<resource>:read" and "<resource>:write";
anything else must match exactly.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.domain.enums import ApiPermission
from app.domain.exceptions import AuthorizationException, ValidationException

_VALID_PERMISSIONS = frozenset(ApiPermission.values())


def is_granted(granted: Iterable[str], required: str) -> bool:
    """Return True if the granted permission set satisfies required."""
    granted_set = set(granted)
    if ApiPermission.ADMIN.value in granted_set or required in granted_set:
        return True
    _, _, action = required.partition(":")
    return action in (ApiPermission.READ.value, ApiPermission.WRITE.value) and action in granted_set


def require_permission(granted: Iterable[str], required: str) -> None:
    """Raise AuthorizationException unless required is granted."""
    if not is_granted(granted, required):
        raise AuthorizationException(permission=required)


def validate_permissions(permissions: Iterable[str]) -> list[str]:
    """Return permissions deduplicated in order; ValidationException if empty or unknown."""
    result: list[str] = []
    for permission in permissions:
        if permission not in _VALID_PERMISSIONS:
            raise ValidationException(f"Unknown permission: {permission}", field="permissions")
        if permission not in result:
            result.append(permission)
    if not result:
        raise ValidationException("At least one permission is required", field="permissions")
    return result
