"""Bootstrap wiring for logging configuration."""

from __future__ import annotations

import os

from lrs.infrastructure.observability import configure_structlog as _configure_structlog


def configure_structlog(environment: str | None = None) -> None:
    """Configure structlog for `environment` (default: $ENVIRONMENT or production)."""
    _configure_structlog(
        environment=environment or os.environ.get("ENVIRONMENT", "production")
    )


__all__ = ["configure_structlog"]
