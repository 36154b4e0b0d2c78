"""
consulconf - Structured Logging Module

Patterns Applied:
- One-time configure_logging() owned by the host application
- structlog BoundLogger with JSON output

Anti-Patterns Avoided:
- structlog.configure() called per get_logger() - PREVENTED via _configured flag
- Library configuring logging on import - callers opt in explicitly
"""

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict

SERVICE_NAME = "consulconf"

# Module-level flag for one-time configuration
_configured: bool = False


def add_service_info(
    logger: logging.Logger,  # noqa: ARG001 - Required by structlog interface
    method_name: str,  # noqa: ARG001 - Required by structlog interface
    event_dict: EventDict,
) -> EventDict:
    """Add service metadata to every log entry.

    Args:
        logger: The logger instance (unused but required by structlog interface)
        method_name: The log method name (unused but required by structlog interface)
        event_dict: The event dictionary to modify

    Returns:
        Modified event dictionary with service info
    """
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structlog for the host application.

    Call this once at startup. Later calls are no-ops until reset_logging().

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to use JSON renderer (True for production)
    """
    global _configured

    if _configured:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_info,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        structlog BoundLogger instance
    """
    return structlog.get_logger(name)


def reset_logging() -> None:
    """Reset logging configuration for testing."""
    global _configured
    _configured = False
    structlog.reset_defaults()
