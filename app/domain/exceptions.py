"""Domain exceptions for the integration gateway.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. Presentation
layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class EdPsychException(Exception):
    """Base exception for all gateway errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the error envelope: {"error": {"code", "message", "details"}}."""
        error: dict[str, Any] = {"code": self.error_code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationException(EdPsychException):
    """Raised when input validation fails (e.g. missing field or bad format)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(EdPsychException):
    """Raised when API key authentication fails.

    The message is identical for unknown keys, revoked keys, wrong secrets
    and keys of another tenant so callers cannot tell which one applied.
    """

    def __init__(self, message: str = "Invalid API credentials") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class InvalidTokenException(EdPsychException):
    """Raised when a bearer token is missing, malformed, expired or wrongly signed."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message, "INVALID_TOKEN")


class ForbiddenException(EdPsychException):
    """Raised when a token's tenant does not match the tenant addressed by the request."""

    def __init__(self, message: str = "Token is not valid for this tenant") -> None:
        super().__init__(message, "FORBIDDEN")


class AuthorizationException(EdPsychException):
    """Raised when the API key lacks the permission required for the operation."""

    def __init__(
        self,
        permission: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional permission and message.

        Args:
            permission: Permission that was required (e.g. 'content:write').
            message: Human-readable message; default used when permission omitted.
        """
        if permission:
            message = f"Permission denied: {permission} required"
        details = {"permission": permission} if permission else {}
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(EdPsychException):
    """Raised when a requested resource is not found (or belongs to another tenant)."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'api_key', 'registration').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class InvalidStatusTransitionException(EdPsychException):
    """Raised when a registration status change is not allowed from its current status."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot change status from {current} to {requested}",
            "INVALID_STATUS_TRANSITION",
            {"current_status": current, "requested_status": requested},
        )


class LimitExceededException(EdPsychException):
    """Raised when a counted limit is reached (e.g. assessment max attempts)."""

    def __init__(self, message: str, limit: int) -> None:
        super().__init__(message, "LIMIT_EXCEEDED", {"limit": limit})


class WebhookSignatureException(EdPsychException):
    """Raised when a webhook signature header is missing or does not verify."""

    def __init__(self, message: str = "Invalid or missing webhook signature") -> None:
        super().__init__(message, "WEBHOOK_SIGNATURE_INVALID")


class IntegrationNotConfiguredException(EdPsychException):
    """Raised when an integration is used but its credentials are not configured."""

    def __init__(self, integration: str, setting: str) -> None:
        super().__init__(
            f"{integration} integration is not configured ({setting} is not set).",
            "INTEGRATION_NOT_CONFIGURED",
            {"integration": integration},
        )


class ExternalServiceException(EdPsychException):
    """Raised when a call to a third-party service fails.

    The message is a generic "Failed to ..." string safe for clients; the
    underlying cause is logged by the caller, not returned.
    """

    def __init__(self, message: str, service: str | None = None) -> None:
        details = {"service": service} if service else {}
        super().__init__(message, "EXTERNAL_SERVICE_ERROR", details)


class CredentialException(EdPsychException):
    """Raised when stored credential decryption or format fails."""

    def __init__(self, message: str = "Credential operation failed") -> None:
        super().__init__(message, "CREDENTIAL_ERROR")


class AttemptAlreadyCompletedException(EdPsychException):
    """Raised when an assessment attempt is submitted a second time."""

    def __init__(self, attempt_id: str) -> None:
        super().__init__(
            "Assessment attempt already completed",
            "ATTEMPT_ALREADY_COMPLETED",
            {"attempt_id": attempt_id},
        )
