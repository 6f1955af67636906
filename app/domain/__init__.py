"""Domain layer: enums and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.enums import (
    ApiPermission,
    AttemptStatus,
    RegistrationKind,
    RegistrationStatus,
    SubscriptionStatus,
    VideoStatus,
)
from app.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    EdPsychException,
    ForbiddenException,
    InvalidTokenException,
    ResourceNotFoundException,
    ValidationException,
)

__all__ = [
    # Enums
    "ApiPermission",
    "AttemptStatus",
    "RegistrationKind",
    "RegistrationStatus",
    "SubscriptionStatus",
    "VideoStatus",
    # Exceptions
    "AuthenticationException",
    "AuthorizationException",
    "EdPsychException",
    "ForbiddenException",
    "InvalidTokenException",
    "ResourceNotFoundException",
    "ValidationException",
]
