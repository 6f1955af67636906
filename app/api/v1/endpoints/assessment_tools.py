"""Assessment tool routes beyond registration: synced assessments, attempts and results."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import get_assessment_service, get_tenant_id, require_permission
from app.application.dtos.credential import TokenPayload
from app.application.services.assessment_tool_service import AssessmentToolService
from app.core.limiter import limit_writes
from app.domain.enums import ApiPermission
from app.schemas.assessment import (
    AssessmentResponse,
    AttemptResponse,
    AttemptStart,
    AttemptSubmit,
    SubmissionResponse,
)

router = APIRouter()


@router.get("/assessments/{tenant_id}", response_model=list[AssessmentResponse])
async def list_assessments(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssessmentToolService, Depends(get_assessment_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.ASSESSMENT_READ))],
    tool_id: Annotated[str | None, Query(alias="toolId")] = None,
):
    """Assessments available to start attempts on (questions are not exposed)."""
    rows = await service.list_assessments(tenant_id, tool_id)
    return [AssessmentResponse.model_validate(r) for r in rows]


@router.post("/attempts/{tenant_id}", response_model=AttemptResponse, status_code=201)
@limit_writes
async def start_attempt(
    request: Request,
    body: AttemptStart,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssessmentToolService, Depends(get_assessment_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.ASSESSMENT_WRITE))],
):
    """Start an attempt (409 once max_attempts is reached)."""
    attempt = await service.start_attempt(
        tenant_id, body.assessment_id, body.user_id, body.context_id
    )
    return AttemptResponse.model_validate(attempt)


@router.post("/attempts/{tenant_id}/{attempt_id}/submit", response_model=SubmissionResponse)
@limit_writes
async def submit_attempt(
    request: Request,
    attempt_id: str,
    body: AttemptSubmit,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssessmentToolService, Depends(get_assessment_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.ASSESSMENT_WRITE))],
):
    """Score and complete an attempt. A completed attempt cannot be resubmitted (409)."""
    answers = [a.model_dump() for a in body.answers]
    result = await service.submit_attempt(tenant_id, attempt_id, answers)
    return SubmissionResponse.model_validate(result)


@router.get("/results/{tenant_id}/{user_id}", response_model=list[AttemptResponse])
async def get_results(
    user_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[AssessmentToolService, Depends(get_assessment_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.ASSESSMENT_READ))],
    assessment_id: Annotated[str | None, Query(alias="assessmentId")] = None,
    context_id: Annotated[str | None, Query(alias="contextId")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    attempts = await service.get_results(
        tenant_id,
        user_id,
        assessment_id=assessment_id,
        context_id=context_id,
        limit=limit,
        offset=offset,
    )
    return [AttemptResponse.model_validate(a) for a in attempts]
