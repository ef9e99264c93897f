"""
Pytest configuration and shared fixtures for the statement store tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Ports are replaced by the in-memory stubs from lrs.infrastructure.stubs
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from lrs.application.services.statement_query_service import StatementQueryService
from lrs.application.services.statement_schema_service import StatementSchemaService
from lrs.application.services.statement_transform_service import (
    StatementTransformService,
)
from lrs.application.services.statement_write_service import StatementWriteService
from lrs.config.statement_config import TEST_STATEMENT_CONFIG, StatementConfig
from lrs.infrastructure.stubs import AuthorizationStub, DocumentStoreStub
from tests.helpers import FakeTimeAuthority

BASE_URL = "https://lrs.example.com"


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from lrs import __version__

    return __version__


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def statement_config() -> StatementConfig:
    """Small page size so pagination is cheap to exercise."""
    return TEST_STATEMENT_CONFIG


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    """Clock that moves one second per read, so storedAt is strictly increasing."""
    return FakeTimeAuthority(tick=timedelta(seconds=1))


@pytest.fixture
async def document_store() -> DocumentStoreStub:
    """Document store stub with the statement schema installed."""
    store = DocumentStoreStub()
    await StatementSchemaService(store).install()
    return store


@pytest.fixture
def caller() -> AuthorizationStub:
    return AuthorizationStub.full_access()


@pytest.fixture
def transformer(
    document_store: DocumentStoreStub,
    fake_time_authority: FakeTimeAuthority,
    statement_config: StatementConfig,
) -> StatementTransformService:
    return StatementTransformService(document_store, fake_time_authority, statement_config)


@pytest.fixture
def write_service(
    document_store: DocumentStoreStub,
    transformer: StatementTransformService,
    statement_config: StatementConfig,
) -> StatementWriteService:
    return StatementWriteService(document_store, transformer, statement_config)


@pytest.fixture
def query_service(
    document_store: DocumentStoreStub,
    statement_config: StatementConfig,
) -> StatementQueryService:
    return StatementQueryService(document_store, statement_config)
