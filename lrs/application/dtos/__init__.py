"""Application-layer DTOs."""

from lrs.application.dtos.statement_query import (
    StatementFormat,
    StatementQueryParameters,
)

__all__: list[str] = ["StatementFormat", "StatementQueryParameters"]
