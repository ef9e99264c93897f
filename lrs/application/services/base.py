"""LoggingMixin - structured logging shared by the statement services.

Usage:
    class StatementSomethingService(LoggingMixin):
        def __init__(self, store: DocumentStorePort) -> None:
            self._store = store
            self._init_logger()

        async def run(self, statement_id: str) -> None:
            log = self._log_operation("run", statement_id=statement_id)
            log.info("statement_something_started")
"""

import structlog

from lrs.infrastructure.observability.correlation import get_correlation_id
from lrs.infrastructure.observability.logging import get_logger_for_service


class LoggingMixin:
    """Gives a service a logger bound to its class name and component.

    Attributes:
        _log: Logger carrying `service` and `component`.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "statements") -> None:
        """Bind the service logger; call from __init__."""
        self._log = get_logger_for_service(self.__class__.__name__, component)

    def _log_operation(self, operation: str, **context: object) -> structlog.BoundLogger:
        """Logger for one call, carrying `operation`, the correlation id and `context`."""
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )
