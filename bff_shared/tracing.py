"""OpenTelemetry tracing setup for the Orchestrix BFF."""

from typing import Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from bff_shared.logging import get_logger

logger = get_logger("bff.tracing")


def configure_tracing(
    service_name: str,
    otel_exporter: Optional[str] = None,
    enable_console: bool = False,
) -> TracerProvider:
    """Install a tracer provider exporting spans over OTLP/gRPC (and optionally stdout)."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if otel_exporter:
        exporter = OTLPSpanExporter(endpoint=otel_exporter, insecure=otel_exporter.startswith("http://"))
        provider.add_span_processor(BatchSpanProcessor(exporter))
    if enable_console:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    # Outbound upstream calls become child spans of the inbound request span
    HTTPXClientInstrumentor().instrument()

    logger.info("Tracing configured", exporter=otel_exporter, console=enable_console)
    return provider


def instrument_app(app: FastAPI) -> None:
    FastAPIInstrumentor.instrument_app(app)
