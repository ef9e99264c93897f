"""End-to-end statement store flows against the in-memory document store.

Each test drives the write and query services together the way an
HTTP layer would: insert, void, reference and page through statements.
"""

from __future__ import annotations

import json

import pytest

from lrs.application.services.statement_query_service import StatementQueryService
from lrs.application.services.statement_write_service import StatementWriteService
from lrs.domain.errors.statement import (
    StatementConflictError,
    StatementNotFoundError,
)
from lrs.domain.models.statement_document import STATEMENTS_COLLECTION
from lrs.infrastructure.stubs import AuthorizationStub, DocumentStoreStub
from tests.helpers import (
    ACTIVITY_ID,
    make_agent,
    make_statement,
    make_voiding_statement,
)

pytestmark = pytest.mark.integration

STATEMENT_A = "11111111-1111-1111-1111-111111111111"
STATEMENT_B = "22222222-2222-2222-2222-222222222222"
STATEMENT_C = "33333333-3333-3333-3333-333333333333"
VOIDING_ID = "99999999-9999-9999-9999-999999999999"
CONTEXT_ONLY_ID = "44444444-4444-4444-4444-444444444444"
BASE_URL = "https://lrs.example.com"


def ids(result) -> list[str]:
    return [document["statement"]["id"] for document in result.statements]


class TestVoidingFlow:
    """Insert, void, then read back through every lookup kind."""

    @pytest.mark.asyncio
    async def test_voided_statement_leaves_default_queries(
        self,
        write_service: StatementWriteService,
        query_service: StatementQueryService,
        document_store: DocumentStoreStub,
        caller: AuthorizationStub,
    ) -> None:
        await write_service.insert_one(make_statement(STATEMENT_A), caller, BASE_URL)
        stored = await query_service.get_by_id(STATEMENT_A)
        assert stored["voided"] is False

        await write_service.insert_one(
            make_voiding_statement(STATEMENT_A, VOIDING_ID), caller, BASE_URL
        )

        target = await query_service.get_by_id(STATEMENT_A)
        assert target["voided"] is True

        listing = await query_service.get({}, caller)
        assert ids(listing) == [VOIDING_ID]
        assert listing.total_count == 1

        voided = await query_service.get({"voidedStatementId": STATEMENT_A}, caller)
        assert ids(voided) == [STATEMENT_A]
        assert voided.single_statement_request

        with pytest.raises(StatementNotFoundError):
            await query_service.get({"statementId": STATEMENT_A}, caller)

        voiding = await query_service.get({"statementId": VOIDING_ID}, caller)
        assert voiding.statements[0]["references"][0]["id"] == STATEMENT_A
        assert len(document_store.documents(STATEMENTS_COLLECTION)) == 2


class TestReferenceChains:
    """StatementRef chains and related-activity expansion."""

    @pytest.mark.asyncio
    async def test_related_activities_follow_references(
        self,
        write_service: StatementWriteService,
        query_service: StatementQueryService,
        caller: AuthorizationStub,
    ) -> None:
        await write_service.insert_one(make_statement(STATEMENT_A), caller, BASE_URL)
        await write_service.insert_one(
            make_statement(
                STATEMENT_B,
                statement_object={"objectType": "StatementRef", "id": STATEMENT_A},
            ),
            caller,
            BASE_URL,
        )
        chained = await write_service.insert_one(
            make_statement(
                STATEMENT_C,
                statement_object={"objectType": "StatementRef", "id": STATEMENT_B},
            ),
            caller,
            BASE_URL,
        )

        references = chained.statements[0]["references"]
        assert [reference["id"] for reference in references] == [STATEMENT_A, STATEMENT_B]

        await write_service.insert_one(
            make_statement(
                CONTEXT_ONLY_ID,
                statement_object={"objectType": "Activity", "id": "http://example.com/other"},
                context={"contextActivities": {"parent": [{"id": ACTIVITY_ID}]}},
            ),
            caller,
            BASE_URL,
        )

        direct = await query_service.get({"activity": ACTIVITY_ID, "ascending": "true"}, caller)
        assert ids(direct) == [STATEMENT_A, STATEMENT_B, STATEMENT_C]

        related = await query_service.get(
            {"activity": ACTIVITY_ID, "related_activities": "true", "ascending": "true"},
            caller,
        )
        assert ids(related) == [STATEMENT_A, STATEMENT_B, STATEMENT_C, CONTEXT_ONLY_ID]


class TestPagination:
    """Cursor paging over more statements than one page holds."""

    @pytest.mark.asyncio
    async def test_pages_cover_every_statement_once(
        self,
        write_service: StatementWriteService,
        query_service: StatementQueryService,
        caller: AuthorizationStub,
    ) -> None:
        await write_service.insert_many(
            [make_statement() for _ in range(7)], caller, BASE_URL
        )

        first = await query_service.get({}, caller)
        assert len(first) == 5
        assert first.total_count == first.remaining_count == 7
        assert first.has_more

        second = await query_service.get(
            {"until_id": str(first.last_ordering_key)}, caller
        )
        assert len(second) == 2
        assert second.total_count == 7
        assert second.remaining_count == 2
        assert not second.has_more

        keys = [document["orderingKey"] for document in first.statements + second.statements]
        assert keys == [7, 6, 5, 4, 3, 2, 1]


class TestVisibilityAndIdempotency:
    @pytest.mark.asyncio
    async def test_mine_only_callers_see_their_own_statements(
        self,
        write_service: StatementWriteService,
        query_service: StatementQueryService,
    ) -> None:
        alice = AuthorizationStub.read_mine_only("alice")
        bob = AuthorizationStub.read_mine_only("bob")
        await write_service.insert_one(make_statement(STATEMENT_A), alice, BASE_URL)
        await write_service.insert_one(make_statement(STATEMENT_B), bob, BASE_URL)

        mine = await query_service.get({}, alice)

        assert ids(mine) == [STATEMENT_A]
        assert mine.total_count == 1

    @pytest.mark.asyncio
    async def test_agent_query_matches_actor(
        self,
        write_service: StatementWriteService,
        query_service: StatementQueryService,
        caller: AuthorizationStub,
    ) -> None:
        await write_service.insert_one(
            make_statement(STATEMENT_A, actor=make_agent("ann@example.com")), caller, BASE_URL
        )
        await write_service.insert_one(
            make_statement(STATEMENT_B, actor=make_agent("ben@example.com")), caller, BASE_URL
        )

        result = await query_service.get(
            {"agent": json.dumps({"mbox": "mailto:ann@example.com"})}, caller
        )

        assert ids(result) == [STATEMENT_A]

    @pytest.mark.asyncio
    async def test_resubmission_is_idempotent_and_changes_conflict(
        self,
        write_service: StatementWriteService,
        query_service: StatementQueryService,
        caller: AuthorizationStub,
    ) -> None:
        await write_service.insert_one(make_statement(STATEMENT_A), caller, BASE_URL)
        await write_service.insert_one(make_statement(STATEMENT_A), caller, BASE_URL)

        with pytest.raises(StatementConflictError):
            await write_service.insert_one(
                make_statement(STATEMENT_A, verb_id="http://example.com/verbs/left"),
                caller,
                BASE_URL,
            )

        result = await query_service.get({}, caller)
        assert ids(result) == [STATEMENT_A]
