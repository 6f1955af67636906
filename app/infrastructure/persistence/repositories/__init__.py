"""Repositories: SQLAlchemy data access, one per aggregate."""

from app.infrastructure.persistence.repositories.api_key_repo import ApiKeyRepository
from app.infrastructure.persistence.repositories.assessment_repo import (
    AssessmentAttemptRepository,
    AssessmentRepository,
)
from app.infrastructure.persistence.repositories.base import BaseRepository
from app.infrastructure.persistence.repositories.content_repo import (
    ContentItemRepository,
    ContentUsageRepository,
)
from app.infrastructure.persistence.repositories.heygen_video_repo import HeyGenVideoRepository
from app.infrastructure.persistence.repositories.registration_repo import RegistrationRepository
from app.infrastructure.persistence.repositories.subscription_repo import SubscriptionRepository

__all__ = [
    "ApiKeyRepository",
    "AssessmentAttemptRepository",
    "AssessmentRepository",
    "BaseRepository",
    "ContentItemRepository",
    "ContentUsageRepository",
    "HeyGenVideoRepository",
    "RegistrationRepository",
    "SubscriptionRepository",
]
