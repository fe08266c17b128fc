"""OpenTelemetry bootstrap helpers."""

from __future__ import annotations

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider

TRACER_NAME = "quizforge"


def init_otel(service_name: str) -> None:
    """Initialize local tracer provider.

    TODO: add OTLP exporter once a collector is deployed next to the generate service.
    """

    resource = Resource(attributes={SERVICE_NAME: service_name})
    trace.set_tracer_provider(TracerProvider(resource=resource))


def get_tracer() -> trace.Tracer:
    """Tracer used for provider tier spans; a no-op until init_otel runs."""

    return trace.get_tracer(TRACER_NAME)
