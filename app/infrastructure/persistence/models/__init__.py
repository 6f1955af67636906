"""Persistence models: ORM entities and mixins."""

from app.infrastructure.persistence.models.api_key import ApiKey
from app.infrastructure.persistence.models.assessment import Assessment, AssessmentAttempt
from app.infrastructure.persistence.models.content import ContentItem, ContentUsage
from app.infrastructure.persistence.models.heygen_video import HeyGenVideo
from app.infrastructure.persistence.models.mixins import (
    CuidMixin,
    MultiTenantModel,
    TenantMixin,
    TimestampMixin,
)
from app.infrastructure.persistence.models.registration import IntegrationRegistration
from app.infrastructure.persistence.models.subscription import Subscription

__all__ = [
    "ApiKey",
    "Assessment",
    "AssessmentAttempt",
    "ContentItem",
    "ContentUsage",
    "HeyGenVideo",
    "IntegrationRegistration",
    "Subscription",
    "CuidMixin",
    "TenantMixin",
    "TimestampMixin",
    "MultiTenantModel",
]
