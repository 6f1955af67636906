"""Pydantic request/response schemas for the API."""

from app.schemas.base import ApiModel
from app.schemas.health import HealthResponse, ReadinessResponse

__all__ = ["ApiModel", "HealthResponse", "ReadinessResponse"]
