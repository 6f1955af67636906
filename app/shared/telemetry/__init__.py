"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from app.shared.telemetry.logging import RequestContextFilter, get_logger, setup_logging
from app.shared.telemetry.telemetry import GatewayTelemetry
from app.shared.telemetry.tracing import traced

__all__ = [
    "setup_logging",
    "get_logger",
    "RequestContextFilter",
    "GatewayTelemetry",
    "traced",
]
