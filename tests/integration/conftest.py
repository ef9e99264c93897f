"""
Integration test configuration with testcontainers.

Provides a session-scoped PostgreSQL 16 container and a function-scoped
PostgresDocumentStore on top of it. Tables are dropped between tests so
every test starts from an empty schema.

Usage:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_example(postgres_store: PostgresDocumentStore) -> None:
        ...

Note: Docker must be running; tests using these fixtures are skipped
when no container can be started.
"""

from collections.abc import AsyncGenerator, Generator

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from testcontainers.postgres import PostgresContainer

from lrs.domain.models.statement_document import (
    ACTIVITIES_COLLECTION,
    STATEMENTS_COLLECTION,
)
from lrs.infrastructure.adapters.persistence import PostgresDocumentStore


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Session-scoped PostgreSQL 16 container, started once."""
    try:
        container = PostgresContainer("postgres:16-alpine")
        container.start()
    except Exception as exc:  # docker missing or not running
        pytest.skip(f"PostgreSQL container unavailable: {exc}")
    try:
        yield container
    finally:
        container.stop()


@pytest.fixture(scope="session")
def postgres_async_url(postgres_container: PostgresContainer) -> str:
    """Connection URL rewritten for the asyncpg driver."""
    url = postgres_container.get_connection_url()
    return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://").replace(
        "postgresql://", "postgresql+asyncpg://"
    )


@pytest.fixture
async def postgres_store(
    postgres_async_url: str,
) -> AsyncGenerator[PostgresDocumentStore, None]:
    """Document store over a clean database."""
    engine = create_async_engine(postgres_async_url)
    async with engine.begin() as conn:
        for collection in (STATEMENTS_COLLECTION, ACTIVITIES_COLLECTION):
            await conn.execute(text(f"DROP TABLE IF EXISTS {collection}"))

    yield PostgresDocumentStore(async_sessionmaker(engine, expire_on_commit=False))

    await engine.dispose()
