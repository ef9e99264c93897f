"""Document Store port definition.

Defines the abstract interface for the document store the statement
engine runs against. Infrastructure adapters must implement this
protocol; the in-memory stub and the PostgreSQL adapter both do.

Predicates are lrs.domain.models.expression trees. Implementations MUST
honour the path semantics documented there (list fan-out, any-match,
missing path never matches).

Ordering:
- `orderingKey` is assigned by the store on insert and is strictly
  increasing in insertion order. It is the only cursor and sort key.

Exceptions:
- DuplicateKeyError: An insert violated a unique index
- DocumentStoreError: For other storage-related failures
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lrs.domain.models.expression import Expression


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class FindOptions:
    """Sort and limit options for `find`.

    Attributes:
        sort_path: Document path to sort on, or None for store order.
        sort_direction: Direction of the sort.
        limit: Maximum documents to return, or None for no limit.
    """

    sort_path: str | None = None
    sort_direction: SortDirection = SortDirection.ASCENDING
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 1:
            raise ValueError(f"limit must be positive, got {self.limit}")


@dataclass(frozen=True)
class IndexSpec:
    """Declarative index definition.

    Attributes:
        name: Index name, unique per collection.
        keys: (path, direction) pairs; direction is 1 or -1.
        unique: Whether the index rejects duplicate values.
    """

    name: str
    keys: tuple[tuple[str, int], ...]
    unique: bool = False


class DocumentStorePort(ABC):
    """Abstract protocol for document store operations.

    All document store implementations must implement this interface.
    This enables dependency inversion and allows the application layer
    to remain independent of specific storage implementations.

    Note:
        This port deliberately does NOT include delete methods.
        Statements are never physically removed.
    """

    @abstractmethod
    async def find(
        self,
        collection: str,
        expression: Expression,
        options: FindOptions | None = None,
    ) -> list[dict[str, Any]]:
        """Return all documents matching `expression`.

        Args:
            collection: Collection name.
            expression: Predicate to match.
            options: Optional sort and limit.

        Returns:
            Matching documents (copies), including `orderingKey`.

        Raises:
            DocumentStoreError: For storage-related failures.
        """
        ...

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        expression: Expression,
    ) -> dict[str, Any] | None:
        """Return the first matching document in store order, or None.

        Raises:
            DocumentStoreError: For storage-related failures.
        """
        ...

    @abstractmethod
    async def count(self, collection: str, expression: Expression) -> int:
        """Count documents matching `expression`.

        Raises:
            DocumentStoreError: For storage-related failures.
        """
        ...

    @abstractmethod
    async def insert_one(
        self,
        collection: str,
        document: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Insert one document.

        Returns:
            The stored document with `orderingKey` filled in.

        Raises:
            DuplicateKeyError: If a unique index rejects the document.
            DocumentStoreError: For other storage-related failures.
        """
        ...

    @abstractmethod
    async def insert_many(
        self,
        collection: str,
        documents: Sequence[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        """Insert documents as one batch, in order.

        The batch is all-or-nothing: on DuplicateKeyError no document of
        the batch has been stored.

        Returns:
            The stored documents with `orderingKey` filled in, in order.

        Raises:
            DuplicateKeyError: If a unique index rejects any document.
            DocumentStoreError: For other storage-related failures.
        """
        ...

    @abstractmethod
    async def upsert(
        self,
        collection: str,
        expression: Expression,
        document: Mapping[str, Any],
    ) -> None:
        """Replace the first document matching `expression`, or insert it.

        Raises:
            DocumentStoreError: For storage-related failures.
        """
        ...

    @abstractmethod
    async def update(
        self,
        collection: str,
        expression: Expression,
        changes: Mapping[str, Any],
    ) -> int:
        """Set top-level fields on every document matching `expression`.

        Args:
            collection: Collection name.
            expression: Predicate selecting the documents.
            changes: Top-level field values to set; other fields are kept.

        Returns:
            Number of documents matched.

        Raises:
            DocumentStoreError: For storage-related failures.
        """
        ...

    @abstractmethod
    async def create_collection(self, collection: str) -> None:
        """Create `collection` if it does not exist yet."""
        ...

    @abstractmethod
    async def create_indexes(
        self,
        collection: str,
        indexes: Sequence[IndexSpec],
    ) -> None:
        """Create the given indexes if they do not exist yet.

        Raises:
            DocumentStoreError: For storage-related failures.
        """
        ...
