"""Application lifespan: startup and shutdown.

Single place for startup/shutdown wiring. The AppContext on app.state
owns the resources; this only calls startup() before serving and
shutdown() after.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.core.app_context import AppContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the application context, serve, then shut it down."""
    context: AppContext = app.state.context
    await context.startup()
    logger.info("%s %s ready", context.settings.app_name, context.settings.app_version)
    try:
        yield
    finally:
        await context.shutdown()
