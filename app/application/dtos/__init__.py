"""Application DTOs (no ORM dependency)."""

from app.application.dtos.assessment import AttemptResult, SubmissionResult
from app.application.dtos.content import (
    ContentItemResult,
    ContentUsageCreate,
    ProviderSummary,
    Recommendation,
)
from app.application.dtos.credential import (
    ApiKeyResult,
    GeneratedApiKey,
    IssuedToken,
    TokenPayload,
)
from app.application.dtos.lti import (
    GradeSubmission,
    LaunchContext,
    LoginInitiation,
    LoginRedirect,
)
from app.application.dtos.media import SubscriptionResult, VideoGenerateRequest, VideoResult
from app.application.dtos.registration import (
    RegistrationConfig,
    RegistrationResult,
    RegistrationSummary,
    SearchQuery,
    SearchResult,
)
from app.application.dtos.webhook import WebhookEvent

__all__ = [
    "ApiKeyResult",
    "AttemptResult",
    "ContentItemResult",
    "ContentUsageCreate",
    "GeneratedApiKey",
    "GradeSubmission",
    "IssuedToken",
    "LaunchContext",
    "LoginInitiation",
    "LoginRedirect",
    "ProviderSummary",
    "Recommendation",
    "RegistrationConfig",
    "RegistrationResult",
    "RegistrationSummary",
    "SearchQuery",
    "SearchResult",
    "SubmissionResult",
    "SubscriptionResult",
    "TokenPayload",
    "VideoGenerateRequest",
    "VideoResult",
    "WebhookEvent",
]
