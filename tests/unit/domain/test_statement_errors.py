"""Unit tests for the statement error taxonomy."""

from __future__ import annotations

import pytest

from lrs.domain.errors import (
    DocumentStoreConnectionError,
    DocumentStoreError,
    DuplicateBatchStatementIdError,
    DuplicateKeyError,
    InvalidQueryParameterError,
    MissingStatementIdError,
    ReferencedStatementNotFoundError,
    StatementConflictError,
    StatementDeletionError,
    StatementIdMismatchError,
    StatementNotFoundError,
    UnsupportedAgentQueryError,
    VoidingConflictError,
)
from lrs.domain.exceptions import ErrorKind, LrsError

STATEMENT_ID = "11111111-1111-1111-1111-111111111111"


class TestErrorKinds:
    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (InvalidQueryParameterError("bad"), ErrorKind.BAD_REQUEST),
            (UnsupportedAgentQueryError("bad"), ErrorKind.BAD_REQUEST),
            (MissingStatementIdError(), ErrorKind.BAD_REQUEST),
            (StatementIdMismatchError(STATEMENT_ID, "other"), ErrorKind.BAD_REQUEST),
            (DuplicateBatchStatementIdError(STATEMENT_ID), ErrorKind.BAD_REQUEST),
            (StatementConflictError(STATEMENT_ID), ErrorKind.CONFLICT),
            (VoidingConflictError(STATEMENT_ID), ErrorKind.CONFLICT),
            (StatementNotFoundError(STATEMENT_ID), ErrorKind.NOT_FOUND),
            (ReferencedStatementNotFoundError(STATEMENT_ID), ErrorKind.NOT_FOUND),
            (StatementDeletionError(), ErrorKind.INTERNAL_ERROR),
            (DocumentStoreError("down"), ErrorKind.INTERNAL_ERROR),
            (DocumentStoreConnectionError("down"), ErrorKind.INTERNAL_ERROR),
        ],
    )
    def test_kind(self, error: LrsError, kind: ErrorKind) -> None:
        assert isinstance(error, LrsError)
        assert error.kind == kind

    def test_voiding_conflict_message(self) -> None:
        assert "Voiding statements cannot be voided" in str(VoidingConflictError(STATEMENT_ID))

    def test_deletion_message(self) -> None:
        assert "only voided" in str(StatementDeletionError())

    def test_duplicate_key_attributes(self) -> None:
        error = DuplicateKeyError("statements", "statementId.unique", STATEMENT_ID)

        assert error.collection == "statements"
        assert error.index_name == "statementId.unique"
        assert error.key_value == STATEMENT_ID
        assert isinstance(error, DocumentStoreError)
