"""DTOs for the LTI 1.3 OIDC login and launch flow."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class LoginInitiation:
    """Third-party initiated login parameters sent by the platform."""

    iss: str
    login_hint: str
    target_link_uri: str
    client_id: str
    lti_message_hint: str | None = None
    lti_deployment_id: str | None = None


@dataclass(frozen=True)
class LoginRedirect:
    redirect_url: str
    state: str
    nonce: str


@dataclass(frozen=True)
class LaunchContext:
    """Verified launch: who, where, and which LTI service endpoints apply."""

    platform_id: str
    message_type: str
    deployment_id: str | None
    user_id: str
    roles: list[str]
    name: str | None = None
    email: str | None = None
    context: dict[str, Any] | None = None
    resource_link: dict[str, Any] | None = None
    line_item_url: str | None = None
    deep_linking_settings: dict[str, Any] | None = None
    target_link_uri: str | None = None
    custom: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GradeSubmission:
    """Score to publish to a platform line item (AGS)."""

    line_item_url: str
    user_id: str
    score_given: float
    score_maximum: float = 100.0
    comment: str | None = None
    activity_progress: str = "Completed"
    grading_progress: str = "FullyGraded"
