"""Statement query service - filtered, paginated statement retrieval.

Two kinds of reads:

1. Single lookups by `statementId` (non-voided) or `voidedStatementId`
   (voided). These ignore every other filter.
2. Multi-document queries. Filter groups are ANDed together with
   `voided == false`; the result is sorted by ordering key and cut to
   one page.

Paging arithmetic for multi-document queries:
- total_count: matches before the since_id/until_id cursor bounds
- remaining_count: matches after the cursor bounds, current page included
- has_more: remaining_count > page limit

Statements handed back have their extension keys decoded; get_by_id
returns the raw stored document.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lrs.application.dtos.statement_query import StatementQueryParameters
from lrs.application.ports.authorization import (
    STATEMENTS_READ_MINE_PERMISSION,
    STATEMENTS_READ_PERMISSION,
    AuthorizationPort,
)
from lrs.application.ports.document_store import (
    DocumentStorePort,
    FindOptions,
    SortDirection,
)
from lrs.application.services.base import LoggingMixin
from lrs.config.statement_config import DEFAULT_STATEMENT_CONFIG, StatementConfig
from lrs.domain.errors.statement import (
    InvalidQueryParameterError,
    StatementNotFoundError,
)
from lrs.domain.models.expression import ExpressionBuilder, where
from lrs.domain.models.statement_document import (
    ORDERING_KEY_PATH,
    STATEMENT_ID_PATH,
    STATEMENTS_COLLECTION,
    STORED_AT_PATH,
    USER_ID_PATH,
    VOIDED_PATH,
    present_document,
)
from lrs.domain.models.statement_result import StatementResult
from lrs.domain.services.dates import parse_iso8601
from lrs.domain.services.statement_filters import (
    activity_filter,
    agent_filter,
    registration_filter,
    single_statement_filter,
    verb_filter,
)
from lrs.domain.services.xapi import normalize_uuid


class StatementQueryService(LoggingMixin):
    """Read side of the statement store.

    Usage:
        queries = StatementQueryService(store, config)
        result = await queries.get({"verb": verb_id, "limit": "10"}, caller)
        next_page = await queries.get(
            {"verb": verb_id, "limit": "10", "until_id": str(result.last_ordering_key)},
            caller,
        )
    """

    def __init__(
        self,
        store: DocumentStorePort,
        config: StatementConfig = DEFAULT_STATEMENT_CONFIG,
    ) -> None:
        self._store = store
        self._config = config
        self._init_logger()

    async def get(
        self,
        parameters: Mapping[str, Any] | StatementQueryParameters,
        authorization: AuthorizationPort,
    ) -> StatementResult:
        """Run a statement query.

        Args:
            parameters: Raw query-string parameters or parsed parameters.
            authorization: The acting caller; decides "mine" visibility.

        Returns:
            One page of matching documents with paging metadata.

        Raises:
            InvalidQueryParameterError: For unknown or unparsable parameters,
                or statementId combined with voidedStatementId.
            InvalidIdentifierError: For malformed ids or registrations.
            InvalidTimestampError: For unparsable since/until.
            UnsupportedAgentQueryError: For agents that cannot be queried.
            StatementNotFoundError: When a single lookup matches nothing.
        """
        params = (
            parameters
            if isinstance(parameters, StatementQueryParameters)
            else StatementQueryParameters.from_query_params(parameters)
        )
        requested_format = params.format or self._config.default_statement_format

        if params.is_single_statement_request:
            return await self._get_single(params, requested_format)

        log = self._log_operation("get")
        builder = self._build_filters(params, authorization)

        total_count = await self._store.count(STATEMENTS_COLLECTION, builder.build())

        bounded = builder.copy()
        if params.since_id is not None:
            bounded.where_greater(ORDERING_KEY_PATH, params.since_id)
        if params.until_id is not None:
            bounded.where_less(ORDERING_KEY_PATH, params.until_id)

        direction = (
            SortDirection.ASCENDING if params.ascending else SortDirection.DESCENDING
        )
        expression = bounded.build()
        remaining_count = await self._store.count(STATEMENTS_COLLECTION, expression)
        limit = self._page_limit(params.limit)

        statements = await self._store.find(
            STATEMENTS_COLLECTION,
            expression,
            FindOptions(sort_path=ORDERING_KEY_PATH, sort_direction=direction, limit=limit),
        )

        log.info(
            "statement_query_completed",
            total_count=total_count,
            remaining_count=remaining_count,
            returned=len(statements),
            limit=limit,
        )
        return StatementResult(
            statements=tuple(present_document(document) for document in statements),
            total_count=total_count,
            remaining_count=remaining_count,
            has_more=remaining_count > limit,
            sort_ascending=params.ascending,
            requested_format=requested_format,
        )

    async def get_by_id(self, statement_id: str) -> dict[str, Any]:
        """Return the stored document for `statement_id`, voided or not.

        Raises:
            InvalidIdentifierError: If `statement_id` is not a UUID.
            StatementNotFoundError: If no such statement is stored.
        """
        normalized = normalize_uuid(statement_id)
        document = await self._store.find_one(
            STATEMENTS_COLLECTION, where(STATEMENT_ID_PATH, normalized)
        )
        if document is None:
            raise StatementNotFoundError(normalized)
        return document

    async def _get_single(
        self, params: StatementQueryParameters, requested_format: str
    ) -> StatementResult:
        if params.statement_id is not None and params.voided_statement_id is not None:
            raise InvalidQueryParameterError(
                "statementId and voidedStatementId cannot be combined"
            )
        voided = params.voided_statement_id is not None
        raw_id = params.voided_statement_id if voided else params.statement_id
        expression = single_statement_filter(raw_id, voided)

        document = await self._store.find_one(STATEMENTS_COLLECTION, expression)
        if document is None:
            raise StatementNotFoundError(normalize_uuid(raw_id))

        self._log_operation("get_single", voided=voided).debug(
            "statement_found", statement_id=document["statement"].get("id")
        )
        return StatementResult(
            statements=(present_document(document),),
            total_count=1,
            remaining_count=1,
            has_more=False,
            sort_ascending=params.ascending,
            requested_format=requested_format,
            single_statement_request=True,
        )

    def _build_filters(
        self, params: StatementQueryParameters, authorization: AuthorizationPort
    ) -> ExpressionBuilder:
        builder = ExpressionBuilder().where(VOIDED_PATH, False)

        if params.agent is not None:
            builder.where_or(*agent_filter(params.agent, params.related_agents).operands)
        if params.verb is not None:
            builder.where_or(*verb_filter(params.verb).operands)
        if params.activity is not None:
            builder.where_or(
                *activity_filter(params.activity, params.related_activities).operands
            )
        if params.registration is not None:
            builder.where_or(*registration_filter(params.registration).operands)
        if params.since is not None:
            builder.where_greater_or_equal(STORED_AT_PATH, parse_iso8601(params.since))
        if params.until is not None:
            builder.where_less_or_equal(STORED_AT_PATH, parse_iso8601(params.until))

        if authorization.has_permission(
            STATEMENTS_READ_MINE_PERMISSION
        ) and not authorization.has_permission(STATEMENTS_READ_PERMISSION):
            builder.where(USER_ID_PATH, authorization.caller_user_id())

        return builder

    def _page_limit(self, requested: int | None) -> int:
        maximum = self._config.statement_get_limit
        if requested is not None and 0 < requested < maximum:
            return requested
        return maximum
