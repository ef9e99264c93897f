"""Statement schema service - installs the store's collections and indexes.

Run once at provisioning time (scripts/install_schema.py), never on the
request path. Installing is idempotent.
"""

from __future__ import annotations

from typing import Final

from lrs.application.ports.document_store import DocumentStorePort, IndexSpec
from lrs.application.services.base import LoggingMixin
from lrs.domain.models.statement_document import (
    ACTIVITIES_COLLECTION,
    STATEMENT_ID_PATH,
    STATEMENTS_COLLECTION,
)

STATEMENT_ID_UNIQUE_INDEX: Final[str] = "statementId.unique"
ACTIVITY_ID_UNIQUE_INDEX: Final[str] = "activityId.unique"

STATEMENT_INDEXES: Final[tuple[IndexSpec, ...]] = (
    IndexSpec(
        name=STATEMENT_ID_UNIQUE_INDEX,
        keys=((STATEMENT_ID_PATH, 1),),
        unique=True,
    ),
)

# Activity upserts are create-or-replace by id; the index keeps racing
# upserts from storing the same activity twice.
ACTIVITY_INDEXES: Final[tuple[IndexSpec, ...]] = (
    IndexSpec(name=ACTIVITY_ID_UNIQUE_INDEX, keys=(("id", 1),), unique=True),
)

SCHEMA: Final[dict[str, tuple[IndexSpec, ...]]] = {
    STATEMENTS_COLLECTION: STATEMENT_INDEXES,
    ACTIVITIES_COLLECTION: ACTIVITY_INDEXES,
}


class StatementSchemaService(LoggingMixin):
    """Declares and installs the statement store's indexes."""

    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store
        self._init_logger(component="schema")

    def get_indexes(self, collection: str = STATEMENTS_COLLECTION) -> tuple[IndexSpec, ...]:
        """Indexes declared for `collection` (none for unknown collections)."""
        return SCHEMA.get(collection, ())

    def get_collections(self) -> tuple[str, ...]:
        return tuple(SCHEMA)

    async def install(self) -> None:
        """Create the statements and activities collections and their indexes.

        Raises:
            DocumentStoreError: If the store rejects the schema changes.
        """
        log = self._log_operation("install")
        for collection in self.get_collections():
            await self._store.create_collection(collection)
            await self._store.create_indexes(collection, self.get_indexes(collection))
        log.info(
            "statement_schema_installed",
            indexes={
                collection: [index.name for index in self.get_indexes(collection)]
                for collection in self.get_collections()
            },
        )
