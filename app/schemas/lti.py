"""LTI 1.3 login, launch, deep linking and grade passback schemas.

Login and launch arrive from the platform as form posts with the
OIDC/LTI parameter names, so those are plain snake_case forms.
"""

from typing import Any

from pydantic import Field

from app.application.dtos.lti import GradeSubmission
from app.schemas.base import ApiModel


class LaunchResponse(ApiModel):
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
    custom: dict[str, Any] = Field(default_factory=dict)


class DeepLinkingRequest(ApiModel):
    deployment_id: str = Field(..., min_length=1)
    return_url: str = Field(..., min_length=1)
    content_items: list[dict[str, Any]] = Field(default_factory=list, max_length=100)
    data: str | None = None


class DeepLinkingResponse(ApiModel):
    jwt: str
    return_url: str


class GradeRequest(ApiModel):
    line_item_url: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    score_given: float = Field(..., ge=0)
    score_maximum: float = Field(default=100.0, gt=0)
    comment: str | None = Field(default=None, max_length=2000)
    activity_progress: str = "Completed"
    grading_progress: str = "FullyGraded"

    def to_dto(self) -> GradeSubmission:
        return GradeSubmission(**self.model_dump())


class GradeResponse(ApiModel):
    sent: bool = True
