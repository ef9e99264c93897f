"""Structured logging configuration with structlog.

Production emits one JSON object per line for log aggregation;
development renders coloured console output. Both share the same
processor chain, so fields never differ between environments.

Log Entry Format:
    {
        "timestamp": "2026-01-01T00:00:00.000000Z",
        "level": "info",
        "event": "statement_inserted",
        "correlation_id": "uuid",
        "service": "StatementWriteService",
        ...additional context
    }

Usage:
    from lrs.infrastructure.observability import configure_structlog

    configure_structlog(environment="production")

    import structlog
    log = structlog.get_logger()
    log.info("event_name", key="value")
"""

import logging
import os
from typing import cast

import structlog
from structlog.typing import Processor

from lrs.infrastructure.observability.correlation import correlation_id_processor

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
DEVELOPMENT_ENVIRONMENTS = frozenset({"development", "dev", "local", "test"})


def _get_log_level() -> int:
    """Return the logging level named by LOG_LEVEL (INFO when unset or unknown)."""
    level_name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def configure_structlog(environment: str = "production") -> None:
    """Configure structlog for the application.

    Should be called once at startup.

    Args:
        environment: 'production' for JSON output; 'development', 'dev',
                     'local' or 'test' for console output.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment.lower() in DEVELOPMENT_ENVIRONMENTS:
        final_processor: Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        final_processor = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger_for_service(
    service_name: str, component: str = "statements"
) -> structlog.BoundLogger:
    """Return a logger with service and component already bound."""
    return structlog.get_logger().bind(
        service=service_name,
        component=component,
    )
