"""Unit tests for PostgresDocumentStore with a recording session double.

These tests check the SQL the store issues and its error mapping; the
SQL itself runs against PostgreSQL only in deployment.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from lrs.application.ports.document_store import FindOptions, IndexSpec, SortDirection
from lrs.domain.errors.document_store import (
    DocumentStoreConnectionError,
    DocumentStoreError,
    DuplicateKeyError,
)
from lrs.domain.models.expression import and_, where
from lrs.infrastructure.adapters.persistence.postgres_document_store import (
    PostgresDocumentStore,
    index_name,
    table_name,
)


class FakeSession:
    """Records executed SQL; returns (or raises) queued results in order."""

    def __init__(self, results: list[Any], error: Exception | None = None) -> None:
        self.executed: list[tuple[str, dict[str, Any]]] = []
        self._results = results
        self._error = error

    async def execute(self, statement: Any, params: dict[str, Any] | None = None) -> Any:
        self.executed.append((str(statement), params or {}))
        if self._error is not None:
            raise self._error
        result = self._results.pop(0) if self._results else MagicMock(rowcount=0)
        if isinstance(result, Exception):
            raise result
        return result

    def begin(self) -> FakeSession:
        return self

    async def __aenter__(self) -> FakeSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None


class UniqueViolation(Exception):
    sqlstate = "23505"


class NotNullViolation(Exception):
    sqlstate = "23502"


def unique_violation() -> IntegrityError:
    return IntegrityError("INSERT", {}, UniqueViolation("duplicate key"))


def make_store(session: FakeSession) -> PostgresDocumentStore:
    return PostgresDocumentStore(session_factory=lambda: session)  # type: ignore[arg-type]


def rows_result(rows: list[tuple[int, Any]]) -> MagicMock:
    result = MagicMock()
    result.all.return_value = rows
    return result


def scalar_result(value: int) -> MagicMock:
    result = MagicMock()
    result.scalar_one.return_value = value
    return result


class TestNames:
    def test_table_name_validation(self) -> None:
        assert table_name("statements") == "statements"
        with pytest.raises(ValueError):
            table_name("statements; DROP TABLE x")

    def test_index_name(self) -> None:
        index = IndexSpec(name="statementId.unique", keys=(("statement.id", 1),), unique=True)

        assert index_name("statements", index) == "statements__statementid_unique"


class TestReads:
    """Tests for find and count."""

    @pytest.mark.asyncio
    async def test_find_merges_ordering_key(self) -> None:
        session = FakeSession([rows_result([(7, {"statement": {"id": "a"}})])])

        found = await make_store(session).find(
            "statements",
            where("voided", False),
            FindOptions(sort_path="orderingKey", sort_direction=SortDirection.DESCENDING, limit=5),
        )

        assert found == [{"statement": {"id": "a"}, "orderingKey": 7}]
        sql, params = session.executed[0]
        assert "FROM statements WHERE jsonb_path_exists" in sql
        assert "ORDER BY ordering_key DESC LIMIT :limit" in sql
        assert params["limit"] == 5

    @pytest.mark.asyncio
    async def test_find_decodes_text_documents(self) -> None:
        session = FakeSession([rows_result([(1, '{"a": 1}')])])

        found = await make_store(session).find("things", and_())

        assert found == [{"a": 1, "orderingKey": 1}]

    @pytest.mark.asyncio
    async def test_find_one_returns_none(self) -> None:
        session = FakeSession([rows_result([])])

        assert await make_store(session).find_one("things", and_()) is None

    @pytest.mark.asyncio
    async def test_count(self) -> None:
        session = FakeSession([scalar_result(3)])

        assert await make_store(session).count("things", and_()) == 3
        assert session.executed[0][0] == "SELECT count(*) FROM things WHERE TRUE"


class TestWrites:
    """Tests for inserts, updates and schema statements."""

    @pytest.mark.asyncio
    async def test_insert_strips_and_returns_ordering_key(self) -> None:
        session = FakeSession([scalar_result(11)])

        stored = await make_store(session).insert_one(
            "statements", {"statement": {"id": "a"}, "orderingKey": 99}
        )

        assert stored == {"statement": {"id": "a"}, "orderingKey": 11}
        sql, params = session.executed[0]
        assert sql.startswith("INSERT INTO statements (document)")
        assert "orderingKey" not in params["document"]

    @pytest.mark.asyncio
    async def test_update_merges_changes(self) -> None:
        session = FakeSession([MagicMock(rowcount=1)])

        matched = await make_store(session).update(
            "statements", where("statement.id", "a"), {"voided": True}
        )

        assert matched == 1
        sql, params = session.executed[0]
        assert "SET document = document || CAST(:changes AS jsonb)" in sql
        assert params["changes"] == '{"voided":true}'

    @pytest.mark.asyncio
    async def test_upsert_inserts_when_nothing_updated(self) -> None:
        session = FakeSession([MagicMock(rowcount=0), MagicMock()])

        await make_store(session).upsert("activities", where("id", "x"), {"id": "x"})

        assert session.executed[0][0].startswith("UPDATE activities")
        assert session.executed[1][0].startswith("INSERT INTO activities")

    @pytest.mark.asyncio
    async def test_upsert_skips_insert_after_update(self) -> None:
        session = FakeSession([MagicMock(rowcount=1)])

        await make_store(session).upsert("activities", where("id", "x"), {"id": "x"})

        assert len(session.executed) == 1

    @pytest.mark.asyncio
    async def test_upsert_retries_after_losing_insert_race(self) -> None:
        session = FakeSession(
            [MagicMock(rowcount=0), unique_violation(), MagicMock(rowcount=1)]
        )

        await make_store(session).upsert("activities", where("id", "x"), {"id": "x"})

        statements = [sql.split(" ", 1)[0] for sql, _ in session.executed]
        assert statements == ["UPDATE", "INSERT", "UPDATE"]

    @pytest.mark.asyncio
    async def test_upsert_gives_up_after_second_conflict(self) -> None:
        session = FakeSession(
            [
                MagicMock(rowcount=0),
                unique_violation(),
                MagicMock(rowcount=0),
                unique_violation(),
            ]
        )

        with pytest.raises(DuplicateKeyError):
            await make_store(session).upsert("activities", where("id", "x"), {"id": "x"})

    @pytest.mark.asyncio
    async def test_id_lookup_uses_index_expression(self) -> None:
        session = FakeSession([rows_result([])])

        await make_store(session).find_one("statements", where("statement.id", "a"))

        sql, params = session.executed[0]
        assert "WHERE document #>> '{statement,id}' = :p0" in sql
        assert params["p0"] == "a"

    @pytest.mark.asyncio
    async def test_create_collection_and_unique_index(self) -> None:
        session = FakeSession([])
        store = make_store(session)
        index = IndexSpec(name="statementId.unique", keys=(("statement.id", 1),), unique=True)

        await store.create_collection("statements")
        await store.create_indexes("statements", [index])

        assert "CREATE TABLE IF NOT EXISTS statements" in session.executed[0][0]
        assert session.executed[1][0] == (
            "CREATE UNIQUE INDEX IF NOT EXISTS statements__statementid_unique "
            "ON statements ((document #>> '{statement,id}'))"
        )


class TestErrorMapping:
    """Tests for driver error translation."""

    @pytest.mark.asyncio
    async def test_unique_violation_is_duplicate_key(self) -> None:
        session = FakeSession([], error=unique_violation())

        with pytest.raises(DuplicateKeyError) as exc_info:
            await make_store(session).insert_one("statements", {"statement": {"id": "a"}})

        assert exc_info.value.collection == "statements"

    @pytest.mark.asyncio
    async def test_other_integrity_errors_are_store_errors(self) -> None:
        error = IntegrityError("INSERT", {}, NotNullViolation("null value"))
        session = FakeSession([], error=error)

        with pytest.raises(DocumentStoreError) as exc_info:
            await make_store(session).insert_one("statements", {"statement": {}})

        assert not isinstance(exc_info.value, DuplicateKeyError)

    @pytest.mark.asyncio
    async def test_operational_error_is_connection_error(self) -> None:
        session = FakeSession([], error=OperationalError("SELECT", {}, Exception("down")))

        with pytest.raises(DocumentStoreConnectionError):
            await make_store(session).count("statements", and_())

    @pytest.mark.asyncio
    async def test_other_driver_errors_are_store_errors(self) -> None:
        session = FakeSession([], error=ProgrammingError("SELECT", {}, Exception("no table")))

        with pytest.raises(DocumentStoreError) as exc_info:
            await make_store(session).find("statements", and_())

        assert not isinstance(exc_info.value, DocumentStoreConnectionError)
