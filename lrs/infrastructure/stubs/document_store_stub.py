"""Document Store stub for testing and local runs.

In-memory implementation of DocumentStorePort. Evaluates expression
trees directly with the documented path semantics (list fan-out,
any-match, missing path never matches), enforces unique indexes, and
assigns strictly increasing ordering keys.

Test hooks:
- queue_concurrent_insert(): stores a document right before the next
  insert, simulating a concurrent writer winning a race
- documents(): raw view of a collection for assertions

WARNING: This stub is for development/testing only.
Production should use PostgresDocumentStore.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Mapping, Sequence
from typing import Any

from lrs.application.ports.document_store import (
    DocumentStorePort,
    FindOptions,
    IndexSpec,
    SortDirection,
)
from lrs.domain.errors.document_store import DuplicateKeyError
from lrs.domain.models.expression import (
    And,
    Equals,
    Expression,
    GreaterOrEqual,
    GreaterThan,
    LessOrEqual,
    LessThan,
    Or,
)
from lrs.domain.models.statement_document import ORDERING_KEY_PATH

_MISSING = object()


def resolve_path(node: Any, path: str) -> list[Any]:
    """Return every value reachable at `path`, fanning out over lists."""
    return _resolve(node, path.split("."))


def _resolve(node: Any, segments: list[str]) -> list[Any]:
    if not segments:
        return [node]
    if isinstance(node, list):
        return [value for item in node for value in _resolve(item, segments)]
    if isinstance(node, Mapping) and segments[0] in node:
        return _resolve(node[segments[0]], segments[1:])
    return []


def _candidates(node: Any, path: str) -> list[Any]:
    """Resolved leaves plus the elements of any list leaf."""
    values: list[Any] = []
    for leaf in resolve_path(node, path):
        values.append(leaf)
        if isinstance(leaf, list):
            values.extend(leaf)
    return values


def _hashable(value: Any) -> Any:
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def _equal(left: Any, right: Any) -> bool:
    # bool is an int subclass; False must not match 0
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return bool(left == right)


def _compare(left: Any, right: Any, operator: str) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return False
    try:
        if operator == "gt":
            return bool(left > right)
        if operator == "gte":
            return bool(left >= right)
        if operator == "lt":
            return bool(left < right)
        return bool(left <= right)
    except TypeError:
        return False


def matches(expression: Expression, document: Mapping[str, Any]) -> bool:
    """Evaluate an expression tree against one document."""
    if isinstance(expression, And):
        return all(matches(operand, document) for operand in expression.operands)
    if isinstance(expression, Or):
        return any(matches(operand, document) for operand in expression.operands)
    if isinstance(expression, Equals):
        return any(
            _equal(value, expression.value)
            for value in _candidates(document, expression.path)
        )
    operator = {
        GreaterThan: "gt",
        GreaterOrEqual: "gte",
        LessThan: "lt",
        LessOrEqual: "lte",
    }.get(type(expression))
    if operator is None:
        raise TypeError(f"Unsupported expression node: {expression!r}")
    return any(
        _compare(value, expression.value, operator)
        for value in _candidates(document, expression.path)
    )


class DocumentStoreStub(DocumentStorePort):
    """In-memory document store implementation for testing.

    Collections are lists of documents in insertion order. Mutations are
    serialized behind one asyncio lock.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._collections: dict[str, list[dict[str, Any]]] = {}
        self._indexes: dict[str, dict[str, IndexSpec]] = {}
        self._next_ordering_key = 1
        self._pending_concurrent: list[tuple[str, dict[str, Any]]] = []
        self._lock = asyncio.Lock()

    # =========================================================================
    # Reads
    # =========================================================================

    async def find(
        self,
        collection: str,
        expression: Expression,
        options: FindOptions | None = None,
    ) -> list[dict[str, Any]]:
        found = [
            document
            for document in self._collections.get(collection, [])
            if matches(expression, document)
        ]
        if options is not None and options.sort_path is not None:
            found = self._sorted(found, options.sort_path, options.sort_direction)
        if options is not None and options.limit is not None:
            found = found[: options.limit]
        return [copy.deepcopy(document) for document in found]

    async def find_one(
        self,
        collection: str,
        expression: Expression,
    ) -> dict[str, Any] | None:
        for document in self._collections.get(collection, []):
            if matches(expression, document):
                return copy.deepcopy(document)
        return None

    async def count(self, collection: str, expression: Expression) -> int:
        return sum(
            1
            for document in self._collections.get(collection, [])
            if matches(expression, document)
        )

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert_one(
        self,
        collection: str,
        document: Mapping[str, Any],
    ) -> dict[str, Any]:
        async with self._lock:
            self._apply_concurrent_inserts()
            self._check_unique(collection, [document])
            return copy.deepcopy(self._store(collection, document))

    async def insert_many(
        self,
        collection: str,
        documents: Sequence[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        async with self._lock:
            self._apply_concurrent_inserts()
            self._check_unique(collection, documents)
            return [copy.deepcopy(self._store(collection, doc)) for doc in documents]

    async def upsert(
        self,
        collection: str,
        expression: Expression,
        document: Mapping[str, Any],
    ) -> None:
        async with self._lock:
            stored = self._collections.setdefault(collection, [])
            for position, existing in enumerate(stored):
                if matches(expression, existing):
                    replacement = copy.deepcopy(dict(document))
                    replacement[ORDERING_KEY_PATH] = existing[ORDERING_KEY_PATH]
                    stored[position] = replacement
                    return
            self._check_unique(collection, [document])
            self._store(collection, document)

    async def update(
        self,
        collection: str,
        expression: Expression,
        changes: Mapping[str, Any],
    ) -> int:
        async with self._lock:
            matched = 0
            for document in self._collections.get(collection, []):
                if matches(expression, document):
                    document.update(copy.deepcopy(dict(changes)))
                    matched += 1
            return matched

    async def create_collection(self, collection: str) -> None:
        self._collections.setdefault(collection, [])

    async def create_indexes(
        self,
        collection: str,
        indexes: Sequence[IndexSpec],
    ) -> None:
        declared = self._indexes.setdefault(collection, {})
        for index in indexes:
            declared[index.name] = index

    # =========================================================================
    # Test Helpers
    # =========================================================================

    def queue_concurrent_insert(
        self, collection: str, document: Mapping[str, Any]
    ) -> None:
        """Store `document` just before the next insert runs.

        Simulates another writer passing the same read checks and
        inserting first.
        """
        self._pending_concurrent.append((collection, copy.deepcopy(dict(document))))

    def documents(self, collection: str) -> list[dict[str, Any]]:
        """Return copies of every document in `collection`, in insert order."""
        return copy.deepcopy(self._collections.get(collection, []))

    def indexes(self, collection: str) -> list[IndexSpec]:
        return list(self._indexes.get(collection, {}).values())

    def clear(self) -> None:
        """Remove all documents and indexes."""
        self._collections.clear()
        self._indexes.clear()
        self._pending_concurrent.clear()
        self._next_ordering_key = 1

    # =========================================================================
    # Internals
    # =========================================================================

    def _store(self, collection: str, document: Mapping[str, Any]) -> dict[str, Any]:
        stored = copy.deepcopy(dict(document))
        stored[ORDERING_KEY_PATH] = self._next_ordering_key
        self._next_ordering_key += 1
        self._collections.setdefault(collection, []).append(stored)
        return stored

    def _apply_concurrent_inserts(self) -> None:
        pending, self._pending_concurrent = self._pending_concurrent, []
        for collection, document in pending:
            self._store(collection, document)

    def _check_unique(
        self, collection: str, documents: Sequence[Mapping[str, Any]]
    ) -> None:
        """Raise DuplicateKeyError if any document breaks a unique index.

        Checks against stored documents and within the batch itself.
        """
        for index in self._indexes.get(collection, {}).values():
            if not index.unique:
                continue
            seen = {
                key
                for key in (
                    self._index_key(index, existing)
                    for existing in self._collections.get(collection, [])
                )
                if key is not None
            }
            for document in documents:
                key = self._index_key(index, document)
                if key is None:
                    continue
                if key in seen:
                    raise DuplicateKeyError(
                        collection, index.name, key[0] if len(key) == 1 else key
                    )
                seen.add(key)

    @staticmethod
    def _index_key(index: IndexSpec, document: Mapping[str, Any]) -> tuple[Any, ...] | None:
        values = []
        for path, _direction in index.keys:
            resolved = resolve_path(document, path)
            if not resolved:
                return None
            values.append(_hashable(resolved[0]))
        return tuple(values)

    @staticmethod
    def _sorted(
        documents: list[dict[str, Any]], path: str, direction: SortDirection
    ) -> list[dict[str, Any]]:
        def sort_key(document: dict[str, Any]) -> Any:
            resolved = resolve_path(document, path)
            return resolved[0] if resolved else _MISSING

        present = [d for d in documents if sort_key(d) is not _MISSING]
        missing = [d for d in documents if sort_key(d) is _MISSING]
        present.sort(key=sort_key, reverse=direction == SortDirection.DESCENDING)
        return present + missing
