"""OpenTelemetry wiring: provider setup, FastAPI instrumentation and scan spans."""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from vaultswitch.common.config import settings
from vaultswitch.common.logging import logger


def setup_tracing(service_name: str) -> None:
    """Register an OTLP-exporting tracer provider unless tracing is disabled.

    With tracing disabled the API keeps its no-op provider, so spans opened by
    the scan still work and cost nothing.
    """

    if not settings.tracing_enabled:
        logger.info("tracing disabled service=%s", service_name)
        return
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
    trace.set_tracer_provider(provider)
    logger.info("tracing enabled service=%s endpoint=%s", service_name, settings.otel_exporter_otlp_endpoint)


def instrument_app(app: FastAPI) -> None:
    if settings.tracing_enabled:
        FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")


def get_tracer():
    """Tracer for scan and trigger spans; resolved lazily so setup order does not matter."""

    return trace.get_tracer("vaultswitch")
