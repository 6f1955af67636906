"""OpenTelemetry setup, owned by the AppContext.

Spans come from inbound FastAPI requests, the shared httpx client (provider
searches, LTI token and score calls, HeyGen, OneRoster) and @traced service
methods. TELEMETRY_EXPORTER selects console, otlp or none.
"""

import logging

import httpx
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from app.core.config import Settings

logger = logging.getLogger(__name__)

# Liveness polling would drown out integration traffic.
UNTRACED_URLS = "/api/health.*"


def build_exporter(settings: Settings) -> SpanExporter | None:
    """Exporter for TELEMETRY_EXPORTER, or None when spans are not shipped."""
    exporter = settings.telemetry_exporter
    if exporter == "none":
        return None
    if exporter == "otlp":
        endpoint = settings.telemetry_otlp_endpoint
        if not endpoint:
            logger.warning("TELEMETRY_EXPORTER=otlp without TELEMETRY_OTLP_ENDPOINT; spans are not exported")
            return None
        return OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith("http://"))
    if exporter != "console":
        logger.warning("Unknown TELEMETRY_EXPORTER %r, using console", exporter)
    return ConsoleSpanExporter()


class GatewayTelemetry:
    """Tracer provider plus the instrumentation hooks the app needs."""

    def __init__(self, provider: TracerProvider) -> None:
        self.provider = provider

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayTelemetry | None":
        if not settings.telemetry_enabled:
            return None
        resource = Resource.create(
            {
                SERVICE_NAME: settings.app_name,
                SERVICE_VERSION: settings.app_version,
                "deployment.environment": settings.environment,
            }
        )
        provider = TracerProvider(
            resource=resource,
            sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_rate)),
        )
        exporter = build_exporter(settings)
        if exporter is not None:
            provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)
        logger.info(
            "Tracing enabled: service=%s exporter=%s sample_rate=%s",
            settings.app_name,
            settings.telemetry_exporter,
            settings.telemetry_sample_rate,
        )
        return cls(provider)

    def instrument_app(self, app: FastAPI) -> None:
        FastAPIInstrumentor.instrument_app(app, tracer_provider=self.provider, excluded_urls=UNTRACED_URLS)

    def instrument_client(self, client: httpx.AsyncClient) -> None:
        HTTPXClientInstrumentor.instrument_client(client, tracer_provider=self.provider)

    def shutdown(self) -> None:
        """Flush buffered spans."""
        self.provider.shutdown()
        logger.info("Tracing shut down")
