"""Statement engine configuration.

This module defines configuration for statement retrieval and insertion
with environment variable overrides for production tuning.

Environment Variables:
- LRS_DEFAULT_STATEMENT_FORMAT: Output format when a query names none
  (default: exact; one of ids, exact, canonical)
- LRS_STATEMENT_GET_LIMIT: Maximum statements per page (default: 100)
- LRS_ATTACHMENT_EXPOSED_URL: Path under the request base URL where
  attachments are served (default: /attachments)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

STATEMENT_FORMATS: Final[frozenset[str]] = frozenset({"ids", "exact", "canonical"})


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_str_env(key: str, default: str) -> str:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(frozen=True)
class StatementConfig:
    """Configuration for statement retrieval and insertion.

    All values can be overridden via environment variables for production tuning.

    Attributes:
        default_statement_format: Format reported to the view layer when
                                  the request does not specify one.
                                  Default: "exact".
        statement_get_limit: Upper bound on statements per page. Requested
                             limits of 0 or at/above this value fall back
                             to it. Default: 100.
        attachment_exposed_url: Path, relative to the request base URL,
                                under which stored attachments are served.
                                Default: "/attachments".
    """

    default_statement_format: str = "exact"
    statement_get_limit: int = 100
    attachment_exposed_url: str = "/attachments"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.default_statement_format not in STATEMENT_FORMATS:
            raise ValueError(
                f"default_statement_format must be one of {sorted(STATEMENT_FORMATS)}, "
                f"got {self.default_statement_format!r}"
            )
        if self.statement_get_limit < 1:
            raise ValueError(
                f"statement_get_limit must be positive, got {self.statement_get_limit}"
            )

    def attachment_base(self, base_url: str) -> str:
        """Absolute URL prefix for attachment links on this request.

        Example:
            >>> StatementConfig().attachment_base("https://lrs.example.com/")
            'https://lrs.example.com/attachments'
        """
        path = self.attachment_exposed_url.strip("/")
        base = base_url.rstrip("/")
        return f"{base}/{path}" if path else base

    @classmethod
    def from_environment(cls) -> StatementConfig:
        """Create config from environment variables with defaults.

        Returns:
            StatementConfig with values from environment or defaults.
        """
        return cls(
            default_statement_format=_get_str_env("LRS_DEFAULT_STATEMENT_FORMAT", "exact"),
            statement_get_limit=_get_int_env("LRS_STATEMENT_GET_LIMIT", 100),
            attachment_exposed_url=_get_str_env("LRS_ATTACHMENT_EXPOSED_URL", "/attachments"),
        )


# Default config (code defaults, not the environment)
DEFAULT_STATEMENT_CONFIG = StatementConfig()

# Testing config with a small page size for pagination tests
TEST_STATEMENT_CONFIG = StatementConfig(statement_get_limit=5)
