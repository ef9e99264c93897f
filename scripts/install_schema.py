#!/usr/bin/env python3
"""Install the statement store schema.

Creates the statements and activities collections and the unique index
on statement ids. Safe to run more than once.

Usage:
    python scripts/install_schema.py [--list]

Options:
    --list    Print the declared indexes without touching the store

Environment Variables:
    DATABASE_URL    PostgreSQL connection string. Without it the schema is
                    installed into the in-memory stub, which only makes
                    sense as a smoke test. When it is set but the database
                    cannot be reached, the install fails with exit code 1.

Exit Codes:
    0 - Schema installed
    1 - Installation failed (check logs)
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Add project root to path for imports
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from sqlalchemy.exc import SQLAlchemyError
from structlog import get_logger

from lrs.application.services import StatementSchemaService
from lrs.bootstrap.database import close_database_engine, get_session_factory
from lrs.bootstrap.logging import configure_structlog
from lrs.bootstrap.statement_services import get_statement_schema_service
from lrs.domain.errors.document_store import DocumentStoreError
from lrs.infrastructure.adapters.persistence import PostgresDocumentStore

logger = get_logger()


def build_schema_service() -> StatementSchemaService:
    """Schema service over the store the install must reach.

    With DATABASE_URL set the PostgreSQL store is built directly; a
    failure to build it is an install failure, never a silent switch to
    the in-memory stub.
    """
    if os.environ.get("DATABASE_URL"):
        return StatementSchemaService(PostgresDocumentStore(get_session_factory()))
    logger.warning(
        "schema_install_without_database",
        message="DATABASE_URL not set - installing into the in-memory stub",
    )
    return get_statement_schema_service()


async def install() -> None:
    try:
        service = build_schema_service()
        await service.install()
    finally:
        await close_database_engine()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Install statement store collections and indexes"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print the declared indexes and exit",
    )
    args = parser.parse_args(argv)

    configure_structlog()

    if args.list:
        service = get_statement_schema_service()
        for collection in service.get_collections():
            print(f"{collection}:")
            for index in service.get_indexes(collection):
                keys = ", ".join(f"{path} ({direction})" for path, direction in index.keys)
                unique = " unique" if index.unique else ""
                print(f"  {index.name}:{unique} {keys}")
        return 0

    try:
        asyncio.run(install())
    except (DocumentStoreError, SQLAlchemyError, OSError, ValueError) as e:
        logger.error("schema_install_failed", error=str(e))
        return 1

    print("Schema installed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
