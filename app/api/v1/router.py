"""API router aggregation.

Every family shares the registration surface from
build_registration_router(); family-specific routes are added on the same
prefix.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    assessment_tools,
    billing,
    content_providers,
    developer,
    health,
    heygen,
    lti,
)
from app.api.v1.endpoints.registrations import build_registration_router
from app.application.services.lti_service import LtiService
from app.domain.enums import RegistrationKind

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(developer.router, prefix="/developer", tags=["developer"])

api_router.include_router(
    content_providers.router, prefix="/content-providers", tags=["content-providers"]
)
api_router.include_router(
    build_registration_router(RegistrationKind.CONTENT_PROVIDER, "content"),
    prefix="/content-providers",
    tags=["content-providers"],
)
api_router.include_router(
    assessment_tools.router, prefix="/assessment-tools", tags=["assessment-tools"]
)
api_router.include_router(
    build_registration_router(RegistrationKind.ASSESSMENT_TOOL, "assessment"),
    prefix="/assessment-tools",
    tags=["assessment-tools"],
)
api_router.include_router(
    build_registration_router(RegistrationKind.SIS, "roster"),
    prefix="/sis",
    tags=["sis"],
)
api_router.include_router(lti.router, prefix="/lti", tags=["lti"])
api_router.include_router(
    build_registration_router(RegistrationKind.LTI, "lti", searchable=LtiService.SEARCHABLE),
    prefix="/lti",
    tags=["lti"],
)

api_router.include_router(heygen.router, prefix="/heygen", tags=["heygen"])
api_router.include_router(billing.stripe_router, prefix="/stripe", tags=["billing"])
api_router.include_router(billing.billing_router, prefix="/billing", tags=["billing"])
