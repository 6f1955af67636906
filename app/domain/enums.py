"""Domain enumerations for the integration gateway.

Enums represent fixed sets of domain values (registration kinds and
statuses, API permissions, video and subscription states).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class RegistrationKind(_ValuesMixin, str, Enum):
    """Integration family a registration belongs to."""

    CONTENT_PROVIDER = "content_provider"
    ASSESSMENT_TOOL = "assessment_tool"
    SIS = "sis"
    LTI = "lti"


class RegistrationStatus(_ValuesMixin, str, Enum):
    """Registration lifecycle status.

    New registrations start as PENDING. Only ACTIVE registrations take part
    in search fan-out and LTI launches.
    """

    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"

    def can_transition_to(self, target: "RegistrationStatus") -> bool:
        """Return True if moving from this status to target is allowed."""
        return target in _REGISTRATION_TRANSITIONS[self]


_REGISTRATION_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.PENDING: frozenset({RegistrationStatus.ACTIVE, RegistrationStatus.ERROR}),
    RegistrationStatus.ACTIVE: frozenset({RegistrationStatus.INACTIVE, RegistrationStatus.ERROR}),
    RegistrationStatus.INACTIVE: frozenset({RegistrationStatus.ACTIVE}),
    RegistrationStatus.ERROR: frozenset({RegistrationStatus.ACTIVE}),
}


class ApiPermission(_ValuesMixin, str, Enum):
    """Fixed permission vocabulary carried by API keys and tokens.

    ADMIN grants everything. READ and WRITE grant every "<resource>:read"
    and "<resource>:write" permission respectively.
    """

    READ = "read"
    WRITE = "write"
    ADMIN = "admin"
    CONTENT_READ = "content:read"
    CONTENT_WRITE = "content:write"
    ASSESSMENT_READ = "assessment:read"
    ASSESSMENT_WRITE = "assessment:write"
    ROSTER_READ = "roster:read"
    ROSTER_WRITE = "roster:write"
    LTI_READ = "lti:read"
    LTI_WRITE = "lti:write"
    MEDIA_READ = "media:read"
    MEDIA_WRITE = "media:write"
    BILLING_READ = "billing:read"
    KEYS_MANAGE = "keys:manage"


class VideoStatus(_ValuesMixin, str, Enum):
    """HeyGen video rendering status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AttemptStatus(_ValuesMixin, str, Enum):
    """Assessment attempt status."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SubscriptionStatus(_ValuesMixin, str, Enum):
    """Billing subscription status (mirrors Stripe subscription states)."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    UNPAID = "unpaid"
