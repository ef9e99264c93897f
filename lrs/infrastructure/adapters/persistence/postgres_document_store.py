"""PostgreSQL implementation of DocumentStorePort.

One table per collection:

    CREATE TABLE <collection> (
        ordering_key BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        document JSONB NOT NULL
    )

The identity column is the store-assigned `orderingKey`; it is never
written into the JSONB document itself and is merged back in on read.
Unique indexes are expression indexes over `document #>> '{path}'`.

Datetimes are written as ISO-8601 strings and come back as strings.

Error mapping:
- IntegrityError with SQLSTATE 23505 (unique violation) -> DuplicateKeyError
- any other IntegrityError -> DocumentStoreError
- OperationalError -> DocumentStoreConnectionError
- other DBAPIError -> DocumentStoreError
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from lrs.application.ports.document_store import (
    DocumentStorePort,
    FindOptions,
    IndexSpec,
    SortDirection,
)
from lrs.domain.errors.document_store import (
    DocumentStoreConnectionError,
    DocumentStoreError,
    DuplicateKeyError,
)
from lrs.domain.models.expression import Expression
from lrs.domain.models.statement_document import ORDERING_KEY_PATH
from lrs.infrastructure.adapters.persistence.expression_compiler import (
    DOCUMENT_COLUMN,
    ORDERING_KEY_COLUMN,
    ExpressionCompiler,
    dump_json,
    text_path_literal,
)

logger = get_logger()

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")

# SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def table_name(collection: str) -> str:
    """Validate a collection name for use as a table identifier.

    Raises:
        ValueError: If the name is not a plain lower-case identifier.
    """
    if not _IDENTIFIER.match(collection):
        raise ValueError(f"Invalid collection name: {collection!r}")
    return collection


def index_name(collection: str, index: IndexSpec) -> str:
    """Postgres index name for `index`, e.g. statements__statementid_unique."""
    sanitized = re.sub(r"[^a-z0-9_]", "_", index.name.lower())
    return f"{table_name(collection)}__{sanitized}"


def _sqlstate(exc: IntegrityError) -> str | None:
    return getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)


def _row_to_document(ordering_key: int, document: Any) -> dict[str, Any]:
    if isinstance(document, str):
        document = json.loads(document)
    result = dict(document)
    result[ORDERING_KEY_PATH] = ordering_key
    return result


def _without_ordering_key(document: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in document.items() if key != ORDERING_KEY_PATH}


class PostgresDocumentStore(DocumentStorePort):
    """JSONB-backed document store.

    Every public method runs in its own session and transaction.

    Attributes:
        _session_factory: SQLAlchemy async session factory.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the store.

        Args:
            session_factory: Factory from lrs.bootstrap.database.
        """
        self._session_factory = session_factory

    # =========================================================================
    # Reads
    # =========================================================================

    async def find(
        self,
        collection: str,
        expression: Expression,
        options: FindOptions | None = None,
    ) -> list[dict[str, Any]]:
        predicate = ExpressionCompiler().compile(expression)
        params = dict(predicate.params)
        sql = (
            f"SELECT {ORDERING_KEY_COLUMN}, {DOCUMENT_COLUMN} "
            f"FROM {table_name(collection)} WHERE {predicate.sql}"
        )
        if options is not None and options.sort_path is not None:
            direction = (
                "DESC" if options.sort_direction == SortDirection.DESCENDING else "ASC"
            )
            if options.sort_path == ORDERING_KEY_PATH:
                sql += f" ORDER BY {ORDERING_KEY_COLUMN} {direction}"
            else:
                sort_path = text_path_literal(options.sort_path)
                sql += f" ORDER BY {DOCUMENT_COLUMN} #> {sort_path} {direction} NULLS LAST"
        else:
            sql += f" ORDER BY {ORDERING_KEY_COLUMN} ASC"
        if options is not None and options.limit is not None:
            sql += " LIMIT :limit"
            params["limit"] = options.limit

        with self._translate_errors(collection, "find"):
            async with self._session_factory() as session:
                result = await session.execute(text(sql), params)
                rows = result.all()
        return [_row_to_document(row[0], row[1]) for row in rows]

    async def find_one(
        self,
        collection: str,
        expression: Expression,
    ) -> dict[str, Any] | None:
        found = await self.find(collection, expression, FindOptions(limit=1))
        return found[0] if found else None

    async def count(self, collection: str, expression: Expression) -> int:
        predicate = ExpressionCompiler().compile(expression)
        sql = f"SELECT count(*) FROM {table_name(collection)} WHERE {predicate.sql}"
        with self._translate_errors(collection, "count"):
            async with self._session_factory() as session:
                result = await session.execute(text(sql), predicate.params)
                return int(result.scalar_one())

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert_one(
        self,
        collection: str,
        document: Mapping[str, Any],
    ) -> dict[str, Any]:
        stored = await self.insert_many(collection, [document])
        return stored[0]

    async def insert_many(
        self,
        collection: str,
        documents: Sequence[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        statement = text(
            f"INSERT INTO {table_name(collection)} ({DOCUMENT_COLUMN}) "
            f"VALUES (CAST(:document AS jsonb)) RETURNING {ORDERING_KEY_COLUMN}"
        )
        stored: list[dict[str, Any]] = []
        with self._translate_errors(collection, "insert"):
            async with self._session_factory() as session, session.begin():
                for document in documents:
                    body = _without_ordering_key(document)
                    result = await session.execute(
                        statement, {"document": dump_json(body)}
                    )
                    body[ORDERING_KEY_PATH] = int(result.scalar_one())
                    stored.append(body)
        return stored

    async def upsert(
        self,
        collection: str,
        expression: Expression,
        document: Mapping[str, Any],
    ) -> None:
        table = table_name(collection)
        predicate = ExpressionCompiler().compile(expression)
        body = dump_json(_without_ordering_key(document))
        update_sql = text(
            f"UPDATE {table} SET {DOCUMENT_COLUMN} = CAST(:document AS jsonb) "
            f"WHERE {ORDERING_KEY_COLUMN} = ("
            f"SELECT {ORDERING_KEY_COLUMN} FROM {table} WHERE {predicate.sql} "
            f"ORDER BY {ORDERING_KEY_COLUMN} LIMIT 1)"
        )
        insert_sql = text(
            f"INSERT INTO {table} ({DOCUMENT_COLUMN}) VALUES (CAST(:document AS jsonb))"
        )
        # Two writers can both miss the UPDATE; the loser's INSERT then hits
        # the unique index and the second round finds the winner's row.
        for attempt in (1, 2):
            try:
                with self._translate_errors(collection, "upsert"):
                    async with self._session_factory() as session, session.begin():
                        result = await session.execute(
                            update_sql, {**predicate.params, "document": body}
                        )
                        if result.rowcount == 0:
                            await session.execute(insert_sql, {"document": body})
                return
            except DuplicateKeyError:
                if attempt == 2:
                    raise
                logger.info("upsert_retried_after_conflict", collection=collection)

    async def update(
        self,
        collection: str,
        expression: Expression,
        changes: Mapping[str, Any],
    ) -> int:
        predicate = ExpressionCompiler().compile(expression)
        statement = text(
            f"UPDATE {table_name(collection)} "
            f"SET {DOCUMENT_COLUMN} = {DOCUMENT_COLUMN} || CAST(:changes AS jsonb) "
            f"WHERE {predicate.sql}"
        )
        params = {**predicate.params, "changes": dump_json(_without_ordering_key(changes))}
        with self._translate_errors(collection, "update"):
            async with self._session_factory() as session, session.begin():
                result = await session.execute(statement, params)
                return int(result.rowcount)

    async def create_collection(self, collection: str) -> None:
        statement = text(
            f"CREATE TABLE IF NOT EXISTS {table_name(collection)} ("
            f"{ORDERING_KEY_COLUMN} BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY, "
            f"{DOCUMENT_COLUMN} JSONB NOT NULL)"
        )
        with self._translate_errors(collection, "create_collection"):
            async with self._session_factory() as session, session.begin():
                await session.execute(statement)
        logger.info("collection_created", collection=collection)

    async def create_indexes(
        self,
        collection: str,
        indexes: Sequence[IndexSpec],
    ) -> None:
        with self._translate_errors(collection, "create_indexes"):
            async with self._session_factory() as session, session.begin():
                for index in indexes:
                    columns = ", ".join(
                        f"({DOCUMENT_COLUMN} #>> {text_path_literal(path)})"
                        + (" DESC" if direction < 0 else "")
                        for path, direction in index.keys
                    )
                    unique = "UNIQUE " if index.unique else ""
                    await session.execute(
                        text(
                            f"CREATE {unique}INDEX IF NOT EXISTS "
                            f"{index_name(collection, index)} "
                            f"ON {table_name(collection)} ({columns})"
                        )
                    )
                    logger.info(
                        "index_created",
                        collection=collection,
                        index=index.name,
                        unique=index.unique,
                    )

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _translate_errors(self, collection: str, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            if _sqlstate(exc) != UNIQUE_VIOLATION:
                logger.error(
                    "document_store_integrity_violation",
                    collection=collection,
                    operation=operation,
                    error=str(exc),
                )
                raise DocumentStoreError(
                    f"Integrity violation during {operation} on {collection}: {exc}"
                ) from exc
            constraint = getattr(
                getattr(exc.orig, "__cause__", None), "constraint_name", None
            )
            raise DuplicateKeyError(
                collection, constraint or "unknown", None
            ) from exc
        except OperationalError as exc:
            logger.error(
                "document_store_connection_failed",
                collection=collection,
                operation=operation,
                error=str(exc),
            )
            raise DocumentStoreConnectionError(
                f"Document store unavailable during {operation} on {collection}: {exc}"
            ) from exc
        except DBAPIError as exc:
            logger.error(
                "document_store_operation_failed",
                collection=collection,
                operation=operation,
                error=str(exc),
            )
            raise DocumentStoreError(
                f"Failed to {operation} on {collection}: {exc}"
            ) from exc
