"""Domain errors for the statement store.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from LrsError.
"""

from lrs.domain.errors.document_store import (
    DocumentStoreConnectionError,
    DocumentStoreError,
    DuplicateKeyError,
)
from lrs.domain.errors.statement import (
    DuplicateBatchStatementIdError,
    InvalidIdentifierError,
    InvalidQueryParameterError,
    InvalidTimestampError,
    MissingStatementIdError,
    ReferencedStatementNotFoundError,
    StatementBadRequestError,
    StatementConflictError,
    StatementDeletionError,
    StatementError,
    StatementIdMismatchError,
    StatementInternalError,
    StatementNotFoundError,
    UnsupportedAgentQueryError,
    VoidingConflictError,
)

__all__: list[str] = [
    "DocumentStoreConnectionError",
    "DocumentStoreError",
    "DuplicateBatchStatementIdError",
    "DuplicateKeyError",
    "InvalidIdentifierError",
    "InvalidQueryParameterError",
    "InvalidTimestampError",
    "MissingStatementIdError",
    "ReferencedStatementNotFoundError",
    "StatementBadRequestError",
    "StatementConflictError",
    "StatementDeletionError",
    "StatementError",
    "StatementIdMismatchError",
    "StatementInternalError",
    "StatementNotFoundError",
    "UnsupportedAgentQueryError",
    "VoidingConflictError",
]
