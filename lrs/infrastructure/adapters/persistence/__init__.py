"""PostgreSQL persistence adapters."""

from lrs.infrastructure.adapters.persistence.expression_compiler import (
    CompiledPredicate,
    ExpressionCompiler,
)
from lrs.infrastructure.adapters.persistence.postgres_document_store import (
    PostgresDocumentStore,
)

__all__: list[str] = [
    "CompiledPredicate",
    "ExpressionCompiler",
    "PostgresDocumentStore",
]
