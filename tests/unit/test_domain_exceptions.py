"""Tests for domain exceptions (error_code, message, details, envelope)."""

import pytest

from app.domain.exceptions import (
    AttemptAlreadyCompletedException,
    AuthenticationException,
    AuthorizationException,
    CredentialException,
    EdPsychException,
    ExternalServiceException,
    ForbiddenException,
    IntegrationNotConfiguredException,
    InvalidStatusTransitionException,
    InvalidTokenException,
    LimitExceededException,
    ResourceNotFoundException,
    ValidationException,
    WebhookSignatureException,
)


def test_base_exception_default_error_code() -> None:
    """Base EdPsychException uses class name as error_code when not provided."""
    exc = EdPsychException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "EdPsychException"
    assert exc.details == {}


def test_base_exception_custom_error_code_and_details() -> None:
    """EdPsychException accepts custom error_code and details."""
    exc = EdPsychException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.error_code == "CUSTOM"
    assert exc.details == {"key": "value"}


def test_to_dict_envelope_omits_empty_details() -> None:
    """to_dict() wraps code and message in an error object; details only when present."""
    assert InvalidTokenException().to_dict() == {
        "error": {"code": "INVALID_TOKEN", "message": "Invalid or expired token"}
    }
    body = ValidationException("Bad", field="limit").to_dict()
    assert body["error"]["details"] == {"field": "limit"}


def test_validation_exception() -> None:
    """ValidationException sets VALIDATION_ERROR and optional field in details."""
    exc = ValidationException("Invalid format", field="tenant_id")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "tenant_id"}
    assert ValidationException("Invalid").details == {}


def test_authentication_exception_message_is_generic() -> None:
    """AuthenticationException does not reveal which check failed."""
    exc = AuthenticationException()
    assert exc.error_code == "AUTHENTICATION_ERROR"
    assert exc.message == "Invalid API credentials"


def test_forbidden_exception() -> None:
    """ForbiddenException is the tenant-mismatch error."""
    assert ForbiddenException().error_code == "FORBIDDEN"


def test_authorization_exception_with_permission() -> None:
    """AuthorizationException names the missing permission."""
    exc = AuthorizationException(permission="content:write")
    assert exc.error_code == "PERMISSION_DENIED"
    assert "content:write" in exc.message
    assert exc.details == {"permission": "content:write"}


def test_authorization_exception_without_permission() -> None:
    """AuthorizationException without permission uses the default message."""
    exc = AuthorizationException()
    assert exc.message == "Permission denied"
    assert exc.details == {}


def test_resource_not_found_exception() -> None:
    """ResourceNotFoundException carries resource type and id."""
    exc = ResourceNotFoundException("registration", "reg-1")
    assert exc.error_code == "RESOURCE_NOT_FOUND"
    assert "reg-1" in exc.message
    assert exc.details == {"resource_type": "registration", "resource_id": "reg-1"}


def test_invalid_status_transition_exception() -> None:
    """InvalidStatusTransitionException reports both statuses."""
    exc = InvalidStatusTransitionException("pending", "inactive")
    assert exc.error_code == "INVALID_STATUS_TRANSITION"
    assert exc.details == {"current_status": "pending", "requested_status": "inactive"}


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (LimitExceededException("Too many attempts", limit=3), "LIMIT_EXCEEDED"),
        (WebhookSignatureException(), "WEBHOOK_SIGNATURE_INVALID"),
        (IntegrationNotConfiguredException("HeyGen", "HEYGEN_API_KEY"), "INTEGRATION_NOT_CONFIGURED"),
        (ExternalServiceException("Failed to search provider", service="acme"), "EXTERNAL_SERVICE_ERROR"),
        (CredentialException(), "CREDENTIAL_ERROR"),
        (AttemptAlreadyCompletedException("att-1"), "ATTEMPT_ALREADY_COMPLETED"),
    ],
)
def test_error_codes(exc: EdPsychException, code: str) -> None:
    """Each integration exception maps to its stable error code."""
    assert exc.error_code == code
    assert isinstance(exc, EdPsychException)


def test_integration_not_configured_names_setting() -> None:
    """The message names the missing setting, never its value."""
    exc = IntegrationNotConfiguredException("HeyGen", "HEYGEN_API_KEY")
    assert "HEYGEN_API_KEY" in exc.message
    assert exc.details == {"integration": "HeyGen"}
