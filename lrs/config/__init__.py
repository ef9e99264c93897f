"""Configuration module for the statement store.

Available Configurations:
- StatementConfig: Output format, page size, attachment path
"""

from lrs.config.statement_config import (
    DEFAULT_STATEMENT_CONFIG,
    TEST_STATEMENT_CONFIG,
    StatementConfig,
)

__all__ = [
    "StatementConfig",
    "DEFAULT_STATEMENT_CONFIG",
    "TEST_STATEMENT_CONFIG",
]
