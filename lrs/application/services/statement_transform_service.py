"""Statement transformation service - insert-time normalization pipeline.

Turns one raw statement payload into the document that gets stored.
Besides normalizing the content, the pipeline enforces the write-side
rules of the log:

- Immutability: an id that is already taken may only be resubmitted
  with identical content (authority, stored, timestamp and version may
  differ). An identical resubmission is flagged `skip_insert`.
- No double voiding: a voiding statement may not target another
  voiding statement.
- Reference flattening: a statement pointing at another statement
  carries that statement's ancestor chain plus the statement itself.

Side effects happen here, before the caller inserts the new document:
the voided flag of a voiding target and the activity definitions the
caller may define. They are not rolled back if the insert then fails.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from lrs.application.ports.authorization import (
    DEFINE_PERMISSION,
    SUPER_PERMISSION,
    AuthorizationPort,
)
from lrs.application.ports.document_store import DocumentStorePort
from lrs.application.ports.time_authority import TimeAuthorityProtocol
from lrs.application.services.base import LoggingMixin
from lrs.config.statement_config import DEFAULT_STATEMENT_CONFIG, StatementConfig
from lrs.domain.errors.statement import (
    ReferencedStatementNotFoundError,
    StatementConflictError,
    VoidingConflictError,
)
from lrs.domain.models.expression import where
from lrs.domain.models.statement_document import (
    ACTIVITIES_COLLECTION,
    STATEMENT_ID_PATH,
    STATEMENTS_COLLECTION,
    VOIDED_PATH,
    StatementDocument,
    canonicalize_statement,
    statements_match,
)
from lrs.domain.services.xapi import normalize_uuid


class StatementTransformService(LoggingMixin):
    """Insert-time transformation of statement payloads.

    Usage:
        transformer = StatementTransformService(store, time_authority)
        document = await transformer.transform_for_insert(
            payload, authorization, base_url="https://lrs.example.com"
        )
        if not document.skip_insert:
            await store.insert_one(STATEMENTS_COLLECTION, document.to_dict())
    """

    def __init__(
        self,
        store: DocumentStorePort,
        time_authority: TimeAuthorityProtocol,
        config: StatementConfig = DEFAULT_STATEMENT_CONFIG,
    ) -> None:
        """Initialize the transformation service.

        Args:
            store: Document store holding statements and activities.
            time_authority: Clock for `stored`/`storedAt`.
            config: Statement settings (attachment exposed path).
        """
        self._store = store
        self._time = time_authority
        self._config = config
        self._init_logger()

    async def transform_for_insert(
        self,
        payload: Mapping[str, Any],
        authorization: AuthorizationPort,
        base_url: str,
    ) -> StatementDocument:
        """Build the document to store for `payload`.

        The payload is copied; the caller's mapping is never changed.

        Args:
            payload: JSON-decoded statement.
            authorization: The acting caller.
            base_url: Request base URL, for attachment links.

        Returns:
            The document to insert, or the already stored document
            flagged `skip_insert` for an identical resubmission.

        Raises:
            InvalidIdentifierError: If an id-valued field is not a UUID.
            StatementConflictError: If the id is taken by different content.
            ReferencedStatementNotFoundError: If a StatementRef target is missing.
            VoidingConflictError: If a voiding statement targets another
                voiding statement.
        """
        attachment_base = self._config.attachment_base(base_url)
        statement = copy.deepcopy(dict(payload))
        log = self._log_operation("transform_for_insert", statement_id=statement.get("id"))

        if statement.get("id") is not None:
            statement_id = normalize_uuid(statement["id"])
            existing = await self._store.find_one(
                STATEMENTS_COLLECTION, where(STATEMENT_ID_PATH, statement_id)
            )
            if existing is not None:
                self.check_immutability(statement, existing, attachment_base)
                log.info("statement_resubmitted", statement_id=statement_id)
                document = StatementDocument(existing)
                document.skip_insert = True
                return document

        document = StatementDocument.from_statement(statement)

        if (
            not authorization.has_permission(SUPER_PERMISSION)
            or document.statement.get("authority") is None
        ):
            document.set_authority(authorization.generate_authority())

        document.set_stored(self._time.utcnow())
        document.set_default_timestamp()
        document.normalize_existing_ids()
        document.fix_attachment_links(attachment_base)
        document.convert_extension_keys()
        document.set_default_id()
        document.legacy_context_activities()

        if document.is_referencing():
            await self._flatten_references(document)

        if authorization.has_permission(DEFINE_PERMISSION):
            await self._upsert_activities(document)

        document.user_id = authorization.caller_user_id()
        document.voided = False

        log.debug(
            "statement_transformed",
            statement_id=document.statement_id,
            referencing=document.is_referencing(),
        )
        return document

    def check_immutability(
        self,
        statement: Mapping[str, Any],
        existing: Mapping[str, Any],
        attachment_base: str,
    ) -> None:
        """Raise unless `statement` matches the stored document `existing`.

        Raises:
            StatementConflictError: If the content differs outside the
                exempt fields.
        """
        canonical = canonicalize_statement(statement, attachment_base)
        if not statements_match(canonical, existing.get("statement", {})):
            self._log.warning(
                "statement_conflict",
                statement_id=canonical.get("id"),
            )
            raise StatementConflictError(canonical.get("id", ""))

    async def _flatten_references(self, document: StatementDocument) -> None:
        """Copy the target's chain onto `document` and void it if asked to.

        Raises:
            ReferencedStatementNotFoundError: If the target is not stored.
            VoidingConflictError: If both `document` and the target void.
        """
        target_id = document.get_referenced_statement_id()
        target = await self._store.find_one(
            STATEMENTS_COLLECTION, where(STATEMENT_ID_PATH, target_id)
        )
        if target is None:
            raise ReferencedStatementNotFoundError(target_id)

        target_document = StatementDocument(target)
        document.references = list(target_document.references or []) + [
            target_document.statement
        ]

        if not document.is_voiding():
            return
        if target_document.is_voiding():
            raise VoidingConflictError(target_id)
        await self._store.update(
            STATEMENTS_COLLECTION,
            where(STATEMENT_ID_PATH, target_id),
            {VOIDED_PATH: True},
        )
        self._log_operation("void", statement_id=document.statement_id).info(
            "statement_voided", target_statement_id=target_id
        )

    async def _upsert_activities(self, document: StatementDocument) -> None:
        for activity in document.extract_activities():
            await self._store.upsert(
                ACTIVITIES_COLLECTION, where("id", activity["id"]), activity
            )
