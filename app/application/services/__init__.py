"""Application services: credentials, registrations per family, media, billing, webhooks."""

from app.application.services.assessment_tool_service import AssessmentToolService
from app.application.services.billing_service import BillingService
from app.application.services.content_provider_service import ContentProviderService
from app.application.services.credential_service import CredentialService
from app.application.services.heygen_service import HeyGenService
from app.application.services.lti_service import LtiService
from app.application.services.registration_service import RegistrationService
from app.application.services.sis_service import SisService
from app.application.services.webhook_dispatcher import WebhookDispatcher

__all__ = [
    "AssessmentToolService",
    "BillingService",
    "ContentProviderService",
    "CredentialService",
    "HeyGenService",
    "LtiService",
    "RegistrationService",
    "SisService",
    "WebhookDispatcher",
]
