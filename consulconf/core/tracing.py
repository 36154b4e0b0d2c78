"""
consulconf - OpenTelemetry Tracing Module

Each refresh of a Consul source runs inside a span obtained from get_tracer().
Without configure_tracing() the global no-op provider is used, so spans cost
nothing until the host application opts in.
"""

from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from consulconf import __version__

# Module-level flag for one-time configuration
_configured: bool = False

SERVICE_NAME = "consulconf"


def configure_tracing(
    service_name: str = SERVICE_NAME,
    console_export: bool = True,
) -> None:
    """Configure OpenTelemetry tracing.

    This function must be called exactly ONCE at application startup.

    Args:
        service_name: Name of the service for trace attribution
        console_export: Whether to export spans to console (for development)
    """
    global _configured

    if _configured:
        return

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)

    if console_export:
        console_exporter = ConsoleSpanExporter()
        provider.add_span_processor(SimpleSpanProcessor(console_exporter))

    trace.set_tracer_provider(provider)

    _configured = True


def get_tracer(name: str) -> Any:
    """Get a tracer instance for creating spans.

    Args:
        name: Tracer name (typically module name)

    Returns:
        OpenTelemetry Tracer instance
    """
    return trace.get_tracer(name)


def reset_tracing() -> None:
    """Reset tracing configuration for testing."""
    global _configured
    _configured = False
