"""External integrations: HTTP clients for providers, SIS, LTI platforms and HeyGen."""

from app.infrastructure.external.catalog_clients import (
    AssessmentToolClient,
    CatalogSearchClient,
    ContentProviderClient,
)
from app.infrastructure.external.heygen_client import HeyGenClient, HeyGenVideoStatus
from app.infrastructure.external.lti_platform_client import LtiPlatformClient
from app.infrastructure.external.oneroster_client import AccessToken, OneRosterClient

__all__ = [
    "AccessToken",
    "AssessmentToolClient",
    "CatalogSearchClient",
    "ContentProviderClient",
    "HeyGenClient",
    "HeyGenVideoStatus",
    "LtiPlatformClient",
    "OneRosterClient",
]
