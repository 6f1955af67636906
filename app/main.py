"""FastAPI application entry point.

Wiring only: context, lifespan, exception handlers, middleware, routers.
No business logic here. See app.core.app_context and app.core.lifespan.

Settings are loaded inside create_app() so tests can set env (and clear the
get_settings cache) or pass their own Settings and AppContext.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.core.app_context import AppContext
from app.core.config import Settings, get_settings
from app.core.exception_handlers import register_exception_handlers
from app.core.lifespan import create_lifespan
from app.core.limiter import limiter
from app.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from app.shared.telemetry.logging import setup_logging


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(settings)
    context = context or AppContext(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )
    app.state.context = context

    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    register_exception_handlers(app)

    # Last added = outermost: request ID wraps everything so every log line carries it.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)

    if context.telemetry is not None:
        context.telemetry.instrument_app(app)

    app.include_router(api_router, prefix="/api")
    return app
