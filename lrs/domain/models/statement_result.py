"""Statement result carrier handed to the presentation layer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from lrs.domain.models.statement_document import ORDERING_KEY_PATH


@dataclass(frozen=True)
class StatementResult:
    """Immutable bundle of matched statement documents plus paging metadata.

    Attributes:
        statements: Matched documents in result order (possibly one).
        total_count: Matches before cursor bounds were applied.
        remaining_count: Matches after cursor bounds, before the page
            limit. Includes the documents of the current page.
        has_more: True when remaining_count exceeds the page limit.
        sort_ascending: Result order by ordering key.
        requested_format: Output format the view layer should render.
        single_statement_request: True for statementId/voidedStatementId
            lookups, which the view renders as a bare statement.
    """

    statements: tuple[Mapping[str, Any], ...] = ()
    total_count: int = 0
    remaining_count: int = 0
    has_more: bool = False
    sort_ascending: bool = False
    requested_format: str | None = None
    single_statement_request: bool = False

    def __post_init__(self) -> None:
        if self.total_count < 0:
            raise ValueError(f"total_count must be non-negative, got {self.total_count}")
        if self.remaining_count < 0:
            raise ValueError(
                f"remaining_count must be non-negative, got {self.remaining_count}"
            )

    @property
    def sort_descending(self) -> bool:
        return not self.sort_ascending

    @property
    def last_ordering_key(self) -> int | None:
        """Ordering key of the last document, for the next page cursor.

        Pass it as `until_id` for descending pages and `since_id` for
        ascending pages.
        """
        if not self.statements:
            return None
        return self.statements[-1].get(ORDERING_KEY_PATH)

    def __len__(self) -> int:
        return len(self.statements)
