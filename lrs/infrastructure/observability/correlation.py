"""Correlation ID management for request tracing.

Correlation ids live in a contextvar so every log line emitted while one
statement request is processed (transform, void, insert, query) carries
the same id, across await points.

Usage:
    # At request start (presentation layer)
    set_correlation_id(headers.get("X-Correlation-ID") or generate_correlation_id())

    # Or scoped, e.g. in a script or test
    with correlation_scope() as correlation_id:
        await service.insert_one(payload)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

# Empty string rather than None keeps the processor branch-free for callers
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """Generate a new correlation ID (UUID4 string)."""
    return str(uuid4())


def get_correlation_id() -> str:
    """Return the current correlation ID, or "" when none is set."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block.

    Args:
        correlation_id: ID to bind; a fresh one is generated when omitted.

    Yields:
        The bound correlation ID.
    """
    token = _correlation_id.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding correlation_id to every log entry.

    Args:
        logger: The logger instance (unused, required by structlog).
        method_name: The log method name (unused, required by structlog).
        event_dict: The event dictionary being processed.

    Returns:
        The event dictionary, with correlation_id added when one is set.
    """
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict
