"""
OpenTelemetry tracing for the storefront service

Spans are opened by the services themselves (orders, ratings, catalog,
users); this module wires the exporter and the FastAPI and SQLAlchemy
auto-instrumentation around them.
"""
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Probes are polled constantly and would drown the order traces
EXCLUDED_URLS = "health,ready"


def setup_opentelemetry(
    service_name: str,
    otlp_endpoint: str = "http://localhost:4317",
    service_version: str = "unknown",
    environment: str = "dev",
    enabled: bool = True
) -> Optional[TracerProvider]:
    """
    Install a tracer provider exporting to an OTLP collector

    Args:
        service_name: Name reported on every span
        otlp_endpoint: OTLP gRPC collector endpoint; plain http:// means no TLS
        service_version: Release reported on every span
        environment: Deployment environment (dev, staging, production)
        enabled: Whether to enable tracing
    """
    if not enabled:
        logger.info("OpenTelemetry disabled")
        return None

    resource = Resource(attributes={
        SERVICE_NAME: service_name,
        SERVICE_VERSION: service_version,
        "deployment.environment": environment,
    })

    provider = TracerProvider(resource=resource)
    otlp_exporter = OTLPSpanExporter(
        endpoint=otlp_endpoint,
        insecure=otlp_endpoint.startswith("http://")
    )
    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    trace.set_tracer_provider(provider)

    logger.info(f"OpenTelemetry initialized for {service_name} ({environment})")
    logger.info(f"Sending traces to {otlp_endpoint}")

    return provider


def shutdown_opentelemetry(provider: Optional[TracerProvider]) -> None:
    """Flush pending spans (the last orders before shutdown) and stop exporting"""
    if provider is None:
        return
    provider.shutdown()
    logger.info("OpenTelemetry shut down")


def instrument_fastapi(app):
    """Instrument FastAPI application, skipping the probe endpoints"""
    FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)
    logger.info("FastAPI instrumented with OpenTelemetry")


def instrument_sqlalchemy(engine):
    """Trace every statement, including the conditional stock and status updates"""
    SQLAlchemyInstrumentor().instrument(engine=engine)
    logger.info("SQLAlchemy instrumented with OpenTelemetry")
