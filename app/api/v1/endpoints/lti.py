"""LTI 1.3 tool routes: OIDC login and launch, tool JWKS, deep linking and grades.

Login and launch are driven by the platform through the user's browser,
so they carry no bearer token; the state/nonce pair and the platform's
signed id_token protect them instead.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from app.api.v1.dependencies import get_lti_service, get_tenant_id, require_permission
from app.application.dtos.credential import TokenPayload
from app.application.dtos.lti import LoginInitiation
from app.application.services.lti_service import LtiService
from app.core.limiter import limit_auth, limit_writes
from app.domain.enums import ApiPermission
from app.schemas.lti import (
    DeepLinkingRequest,
    DeepLinkingResponse,
    GradeRequest,
    GradeResponse,
    LaunchResponse,
)

router = APIRouter()


async def _request_params(request: Request) -> dict[str, str]:
    """Query string merged with a form body (platforms use either)."""
    params = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        params.update({k: v for k, v in form.items() if isinstance(v, str)})
    return params


@router.api_route("/login/{tenant_id}", methods=["GET", "POST"], response_class=RedirectResponse)
@limit_auth
async def login_initiation(
    request: Request,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[LtiService, Depends(get_lti_service)],
):
    """Third-party initiated login: redirect the browser to the platform's auth endpoint."""
    params = await _request_params(request)
    redirect = await service.login_initiation(
        tenant_id,
        LoginInitiation(
            iss=params.get("iss", ""),
            login_hint=params.get("login_hint", ""),
            target_link_uri=params.get("target_link_uri", ""),
            client_id=params.get("client_id", ""),
            lti_message_hint=params.get("lti_message_hint"),
            lti_deployment_id=params.get("lti_deployment_id"),
        ),
    )
    return RedirectResponse(redirect.redirect_url, status_code=302)


@router.post("/launch/{tenant_id}", response_model=LaunchResponse)
@limit_auth
async def launch(
    request: Request,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[LtiService, Depends(get_lti_service)],
):
    """Verify the platform's id_token (form_post) and return the launch context."""
    params = await _request_params(request)
    context = await service.launch(tenant_id, params.get("state", ""), params.get("id_token", ""))
    return LaunchResponse.model_validate(context)


@router.get("/jwks/{tenant_id}/{platform_id}")
async def jwks(
    platform_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[LtiService, Depends(get_lti_service)],
) -> dict:
    """Public key set the platform uses to verify this tool's messages."""
    return await service.jwks(tenant_id, platform_id)


@router.post("/deep-linking/{tenant_id}/{platform_id}", response_model=DeepLinkingResponse)
@limit_writes
async def deep_linking(
    request: Request,
    platform_id: str,
    body: DeepLinkingRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[LtiService, Depends(get_lti_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.LTI_WRITE))],
):
    """Sign the deep-linking response the browser posts back to the platform."""
    response = await service.deep_linking_response(
        tenant_id,
        platform_id,
        body.deployment_id,
        body.return_url,
        body.content_items,
        body.data,
    )
    return DeepLinkingResponse.model_validate(response)


@router.post("/grades/{tenant_id}/{platform_id}", response_model=GradeResponse)
@limit_writes
async def send_grade(
    request: Request,
    platform_id: str,
    body: GradeRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    service: Annotated[LtiService, Depends(get_lti_service)],
    _: Annotated[TokenPayload, Depends(require_permission(ApiPermission.LTI_WRITE))],
):
    """Publish a score to the platform's line item (AGS)."""
    return GradeResponse(sent=await service.send_grade(tenant_id, platform_id, body.to_dto()))
