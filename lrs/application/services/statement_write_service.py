"""Statement write service - insert, put and (refused) delete.

Runs payloads through StatementTransformService and stores the result.
The unique index on `statement.id` settles races between concurrent
submissions of the same new id: the loser gets DuplicateKeyError from
the store, re-checks its content against the winner, and either reports
a conflict or treats its own submission as an idempotent resubmission.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any, NoReturn

from lrs.application.ports.authorization import AuthorizationPort
from lrs.application.ports.document_store import DocumentStorePort
from lrs.application.services.base import LoggingMixin
from lrs.application.services.statement_transform_service import (
    StatementTransformService,
)
from lrs.config.statement_config import DEFAULT_STATEMENT_CONFIG, StatementConfig
from lrs.domain.errors.document_store import DuplicateKeyError
from lrs.domain.errors.statement import (
    DuplicateBatchStatementIdError,
    MissingStatementIdError,
    StatementDeletionError,
    StatementIdMismatchError,
)
from lrs.domain.models.expression import where
from lrs.domain.models.statement_document import (
    STATEMENT_ID_PATH,
    STATEMENTS_COLLECTION,
    StatementDocument,
)
from lrs.domain.models.statement_result import StatementResult
from lrs.domain.services.xapi import normalize_uuid


class StatementWriteService(LoggingMixin):
    """Write side of the statement store.

    Statements are only ever added. Deletion is refused; a statement is
    retracted by storing a voiding statement that references it.
    """

    def __init__(
        self,
        store: DocumentStorePort,
        transformer: StatementTransformService,
        config: StatementConfig = DEFAULT_STATEMENT_CONFIG,
    ) -> None:
        """Initialize the write service.

        Args:
            store: Document store holding statements.
            transformer: Insert-time pipeline.
            config: Statement settings.
        """
        self._store = store
        self._transformer = transformer
        self._config = config
        self._init_logger()

    async def insert_one(
        self,
        payload: Mapping[str, Any],
        authorization: AuthorizationPort,
        base_url: str,
    ) -> StatementResult:
        """Store one statement.

        Returns:
            Result carrying the stored document, or the already stored
            one for an identical resubmission.

        Raises:
            StatementConflictError: If the id is taken by different content.
            StatementBadRequestError: For malformed content.
            StatementNotFoundError: If a StatementRef target is missing.
            DuplicateKeyError: If the unique index rejects the insert but no
                stored twin can be found.
        """
        log = self._log_operation("insert_one", statement_id=payload.get("id"))
        log.info("statement_insert_started")

        document = await self._transformer.transform_for_insert(
            payload, authorization, base_url
        )
        if document.skip_insert:
            stored = document.to_dict()
        else:
            try:
                stored = await self._store.insert_one(
                    STATEMENTS_COLLECTION, document.to_dict()
                )
            except DuplicateKeyError:
                log.warning("statement_insert_race", statement_id=document.statement_id)
                existing = await self._find_conflicting(document, base_url)
                if existing is None:
                    raise
                stored = existing

        log.info("statement_insert_completed", statement_id=document.statement_id)
        return StatementResult(statements=(stored,), total_count=1, remaining_count=1)

    async def insert_many(
        self,
        payloads: Sequence[Mapping[str, Any]],
        authorization: AuthorizationPort,
        base_url: str,
    ) -> StatementResult:
        """Store a batch of statements.

        Duplicate ids inside the batch are rejected before anything is
        processed. Payloads are transformed in order (side effects
        included) and the new documents are written as one batch.

        Returns:
            Result listing one document per payload, in input order.

        Raises:
            DuplicateBatchStatementIdError: If two payloads share an id.
            StatementConflictError: If an id is taken by different content.
            DuplicateKeyError: If the unique index rejects the batch and none
                of its ids is found stored.
        """
        log = self._log_operation("insert_many", batch_size=len(payloads))
        log.info("statement_batch_started")

        seen: set[str] = set()
        for payload in payloads:
            if payload.get("id") is None:
                continue
            statement_id = normalize_uuid(payload["id"])
            if statement_id in seen:
                raise DuplicateBatchStatementIdError(statement_id)
            seen.add(statement_id)

        results: list[dict[str, Any] | None] = [None] * len(payloads)
        pending: dict[int, StatementDocument] = {}
        for position, payload in enumerate(payloads):
            document = await self._transformer.transform_for_insert(
                payload, authorization, base_url
            )
            if document.skip_insert:
                results[position] = document.to_dict()
            else:
                pending[position] = document

        inserted = 0
        while pending:
            try:
                stored = await self._store.insert_many(
                    STATEMENTS_COLLECTION,
                    [document.to_dict() for document in pending.values()],
                )
            except DuplicateKeyError:
                log.warning("statement_batch_race", pending=len(pending))
                collided = await self._resolve_batch_collisions(pending, base_url)
                if not collided:
                    raise
                for position, existing in collided.items():
                    results[position] = existing
                    del pending[position]
                continue
            for position, document in zip(pending, stored):
                results[position] = document
            inserted = len(stored)
            break

        log.info(
            "statement_batch_completed",
            batch_size=len(payloads),
            inserted=inserted,
        )
        statements = tuple(result for result in results if result is not None)
        return StatementResult(
            statements=statements,
            total_count=len(statements),
            remaining_count=len(statements),
        )

    async def put(
        self,
        parameters: Mapping[str, Any],
        payload: Mapping[str, Any],
        authorization: AuthorizationPort,
        base_url: str,
    ) -> StatementResult:
        """Store one statement under the id given as `statementId` parameter.

        Raises:
            MissingStatementIdError: If `statementId` is not supplied.
            InvalidIdentifierError: If it is not a UUID.
            StatementIdMismatchError: If the payload carries another id.
        """
        raw_id = parameters.get("statementId")
        if raw_id is None or raw_id == "":
            raise MissingStatementIdError()
        statement_id = normalize_uuid(raw_id)

        statement = copy.deepcopy(dict(payload))
        if statement.get("id") is not None:
            if normalize_uuid(statement["id"]) != statement_id:
                raise StatementIdMismatchError(statement_id, statement["id"])
        else:
            statement["id"] = statement_id

        return await self.insert_one(statement, authorization, base_url)

    async def delete(self, parameters: Mapping[str, Any]) -> NoReturn:
        """Refuse deletion; statements can only be voided.

        Raises:
            StatementDeletionError: Always.
        """
        self._log_operation("delete", statement_id=parameters.get("statementId")).warning(
            "statement_delete_refused"
        )
        raise StatementDeletionError()

    async def _find_conflicting(
        self, document: StatementDocument, base_url: str
    ) -> dict[str, Any] | None:
        """Return the stored twin of `document`, checking its content.

        Raises:
            StatementConflictError: If the stored twin differs.
        """
        existing = await self._store.find_one(
            STATEMENTS_COLLECTION, where(STATEMENT_ID_PATH, document.statement_id)
        )
        if existing is not None:
            self._transformer.check_immutability(
                document.statement, existing, self._config.attachment_base(base_url)
            )
        return existing

    async def _resolve_batch_collisions(
        self, pending: dict[int, StatementDocument], base_url: str
    ) -> dict[int, dict[str, Any]]:
        collided: dict[int, dict[str, Any]] = {}
        for position, document in pending.items():
            existing = await self._find_conflicting(document, base_url)
            if existing is not None:
                collided[position] = existing
        return collided
