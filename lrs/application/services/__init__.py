"""Application services for the statement store.

Services:
- StatementTransformService: insert-time normalization pipeline
- StatementQueryService: filtered, paginated reads and single lookups
- StatementWriteService: insert, batch insert, put, refused delete
- StatementSchemaService: collection and index installation
"""

from lrs.application.services.base import LoggingMixin
from lrs.application.services.statement_query_service import StatementQueryService
from lrs.application.services.statement_schema_service import (
    ACTIVITY_ID_UNIQUE_INDEX,
    STATEMENT_ID_UNIQUE_INDEX,
    StatementSchemaService,
)
from lrs.application.services.statement_transform_service import (
    StatementTransformService,
)
from lrs.application.services.statement_write_service import StatementWriteService

__all__: list[str] = [
    "LoggingMixin",
    "ACTIVITY_ID_UNIQUE_INDEX",
    "STATEMENT_ID_UNIQUE_INDEX",
    "StatementQueryService",
    "StatementSchemaService",
    "StatementTransformService",
    "StatementWriteService",
]
