"""Health endpoints for liveness and readiness checks. No authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.dependencies import get_context
from app.core.app_context import AppContext
from app.schemas.health import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check(ctx: Annotated[AppContext, Depends(get_context)]) -> HealthResponse:
    """Return ok for liveness."""
    return HealthResponse(version=ctx.settings.app_version)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database or cache unreachable", "model": ReadinessResponse}},
)
async def readiness_check(
    ctx: Annotated[AppContext, Depends(get_context)],
) -> ReadinessResponse | JSONResponse:
    """Return 200 when the database answers and the cache backend is available; 503 otherwise."""
    try:
        async with ctx.db.session() as session:
            await session.execute(text("SELECT 1"))
        database_ok = True
    except SQLAlchemyError:
        database_ok = False
    result = ReadinessResponse(
        status="ok" if database_ok and ctx.cache_backend.is_available() else "not_ready",
        cache=ctx.cache_backend.is_available(),
        database=database_ok,
    )
    if result.status != "ok":
        return JSONResponse(status_code=503, content=result.model_dump())
    return result
