"""
OpenTelemetry Distributed Tracing

Configures OpenTelemetry for the marketplace service. Spans are exported to
Jaeger when the exporter package is installed; otherwise they are recorded but
not shipped anywhere.
"""

import logging

from opentelemetry import trace
from opentelemetry.instrumentation.django import DjangoInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor


logger = logging.getLogger(__name__)

_initialized = False

# Proxy tracer: spans become real once setup_tracing installs a provider
tracer = trace.get_tracer("atelier.marketplace")


def setup_tracing(
    service_name: str = "marketplace-service",
    jaeger_host: str = "localhost",
    jaeger_port: int = 6831,
    enable: bool = True,
) -> None:
    """
    Initialize OpenTelemetry tracing with Jaeger exporter.

    Args:
        service_name: Name of the service for tracing
        jaeger_host: Jaeger agent hostname
        jaeger_port: Jaeger agent port (default: 6831 for UDP)
        enable: Enable/disable tracing
    """
    global _initialized

    if _initialized:
        logger.warning("Tracing already initialized. Skipping.")
        return

    if not enable:
        logger.info("Tracing disabled via configuration")
        return

    try:
        resource = Resource(attributes={SERVICE_NAME: service_name})
        tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(tracer_provider)

        try:
            from opentelemetry.exporter.jaeger.thrift import JaegerExporter

            jaeger_exporter = JaegerExporter(agent_host_name=jaeger_host, agent_port=jaeger_port)
            tracer_provider.add_span_processor(BatchSpanProcessor(jaeger_exporter))
            logger.info(f"Jaeger tracing configured: {jaeger_host}:{jaeger_port}")
        except ImportError:
            logger.warning("Jaeger exporter not available. Traces will not be exported.")

        # Auto-instrument Django (traces all HTTP requests)
        DjangoInstrumentor().instrument()

        _initialized = True
        logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")

    except Exception as e:
        logger.error(f"Failed to initialize tracing: {e}")


def add_span_attributes(span: trace.Span, **attributes) -> None:
    """Add custom attributes to a span, stringifying values."""
    for key, value in attributes.items():
        span.set_attribute(key, str(value))
