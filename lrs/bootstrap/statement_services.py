"""Bootstrap wiring for the statement store.

Singletons for the document store, clock and configuration, plus
factories for the statement services built on top of them.
"""

from __future__ import annotations

import os

from structlog import get_logger

from lrs.application.ports.document_store import DocumentStorePort
from lrs.application.ports.time_authority import TimeAuthorityProtocol
from lrs.application.services.statement_query_service import StatementQueryService
from lrs.application.services.statement_schema_service import StatementSchemaService
from lrs.application.services.statement_transform_service import (
    StatementTransformService,
)
from lrs.application.services.statement_write_service import StatementWriteService
from lrs.config.statement_config import StatementConfig
from lrs.infrastructure.adapters.time import SystemTimeAuthority
from lrs.infrastructure.stubs.document_store_stub import DocumentStoreStub

logger = get_logger()

_document_store: DocumentStorePort | None = None
_time_authority: TimeAuthorityProtocol | None = None
_statement_config: StatementConfig | None = None


def get_document_store() -> DocumentStorePort:
    """Get document store instance.

    Returns the PostgreSQL store if DATABASE_URL is configured,
    otherwise falls back to the in-memory stub.
    """
    global _document_store
    if _document_store is None:
        database_url = os.environ.get("DATABASE_URL")
        if database_url:
            try:
                from lrs.bootstrap.database import get_session_factory
                from lrs.infrastructure.adapters.persistence.postgres_document_store import (
                    PostgresDocumentStore,
                )

                _document_store = PostgresDocumentStore(
                    session_factory=get_session_factory()
                )
                logger.info(
                    "document_store_initialized",
                    store_type="PostgreSQL",
                )
            except Exception as e:
                logger.error(
                    "postgres_document_store_init_failed",
                    error=str(e),
                    message="Falling back to in-memory stub",
                )
                _document_store = DocumentStoreStub()
        else:
            logger.warning(
                "document_store_initialized",
                store_type="InMemoryStub",
                message="DATABASE_URL not set - using in-memory stub (data will not persist)",
            )
            _document_store = DocumentStoreStub()
    return _document_store


def get_time_authority() -> TimeAuthorityProtocol:
    """Get time authority instance."""
    global _time_authority
    if _time_authority is None:
        _time_authority = SystemTimeAuthority()
    return _time_authority


def get_statement_config() -> StatementConfig:
    """Get statement configuration."""
    global _statement_config
    if _statement_config is None:
        _statement_config = StatementConfig.from_environment()
    return _statement_config


def get_statement_query_service() -> StatementQueryService:
    return StatementQueryService(get_document_store(), get_statement_config())


def get_statement_transform_service() -> StatementTransformService:
    return StatementTransformService(
        get_document_store(), get_time_authority(), get_statement_config()
    )


def get_statement_write_service() -> StatementWriteService:
    return StatementWriteService(
        get_document_store(),
        get_statement_transform_service(),
        get_statement_config(),
    )


def get_statement_schema_service() -> StatementSchemaService:
    return StatementSchemaService(get_document_store())


def set_document_store(store: DocumentStorePort) -> None:
    """Set custom document store (testing override)."""
    global _document_store
    _document_store = store


def set_time_authority(time_authority: TimeAuthorityProtocol) -> None:
    """Set custom time authority (testing override)."""
    global _time_authority
    _time_authority = time_authority


def set_statement_config(config: StatementConfig) -> None:
    """Set custom statement configuration (testing override)."""
    global _statement_config
    _statement_config = config


def reset_statement_services() -> None:
    """Reset all statement singletons."""
    global _document_store, _time_authority, _statement_config
    _document_store = None
    _time_authority = None
    _statement_config = None
