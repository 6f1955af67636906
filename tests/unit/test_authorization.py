"""Tests for permission checks on API key tokens."""

import pytest

from app.application.services import authorization_service
from app.domain.exceptions import AuthorizationException, ValidationException


@pytest.mark.parametrize(
    ("granted", "required", "expected"),
    [
        (["admin"], "content:write", True),
        (["admin"], "keys:manage", True),
        (["content:read"], "content:read", True),
        (["content:read"], "content:write", False),
        (["read"], "assessment:read", True),
        (["read"], "assessment:write", False),
        (["write"], "roster:write", True),
        (["write"], "keys:manage", False),
        ([], "content:read", False),
    ],
)
def test_is_granted(granted: list[str], required: str, expected: bool) -> None:
    """admin grants all; read/write grant by action; others match exactly."""
    assert authorization_service.is_granted(granted, required) is expected


def test_require_permission_raises_with_permission_detail() -> None:
    """A missing permission raises AuthorizationException naming it."""
    with pytest.raises(AuthorizationException) as exc_info:
        authorization_service.require_permission(["content:read"], "content:write")
    assert exc_info.value.details == {"permission": "content:write"}


def test_validate_permissions_deduplicates_in_order() -> None:
    """Duplicates are dropped and order is kept."""
    result = authorization_service.validate_permissions(["content:read", "read", "content:read"])
    assert result == ["content:read", "read"]


@pytest.mark.parametrize("permissions", [[], ["content:delete"]])
def test_validate_permissions_rejects_empty_or_unknown(permissions: list[str]) -> None:
    """Empty and unknown permission lists are validation errors."""
    with pytest.raises(ValidationException):
        authorization_service.validate_permissions(permissions)
