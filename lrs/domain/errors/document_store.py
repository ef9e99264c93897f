"""Document store errors.

Raised by DocumentStorePort implementations when storage-related failures
occur. Statement-level conditions (conflicts, missing references) use the
errors in lrs.domain.errors.statement instead.
"""

from lrs.domain.exceptions import ErrorKind, LrsError


class DocumentStoreError(LrsError):
    """Base exception for document store operations.

    Raised when storage-related failures occur in DocumentStorePort
    implementations. This includes:
    - Connection failures
    - Transaction failures
    - Query errors

    Usage:
        raise DocumentStoreError("Failed to insert document: connection timeout")
    """

    kind = ErrorKind.INTERNAL_ERROR


class DocumentStoreConnectionError(DocumentStoreError):
    """Raised when connection to the document store fails.

    This indicates infrastructure issues that may require
    operational intervention.
    """

    pass


class DuplicateKeyError(DocumentStoreError):
    """Raised when an insert violates a unique index.

    Only unique-index violations map here. The write service re-checks the
    stored twin and turns the collision into an idempotent no-op or a
    conflict; if no twin can be found the error propagates unchanged
    as an internal storage failure.

    Attributes:
        collection: Collection the insert targeted.
        index_name: Name of the violated unique index.
        key_value: Value of the indexed field on the rejected document.
    """

    def __init__(self, collection: str, index_name: str, key_value: object) -> None:
        self.collection = collection
        self.index_name = index_name
        self.key_value = key_value
        super().__init__(
            f"Duplicate key {key_value!r} for unique index {index_name} "
            f"on collection {collection}"
        )
