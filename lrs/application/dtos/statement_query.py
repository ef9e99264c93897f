"""Statement query parameter DTO.

Typed replacement for the loosely-typed query-string bag a statement GET
arrives with. Every recognized filter is an explicit optional field;
unrecognized names are rejected at this boundary instead of being
silently ignored.

Raw values are strings (straight from the query string). Flags accept
true/false/1/0, numbers are parsed leniently, and `agent` is decoded from
JSON. Identifier and timestamp fields stay strings here: the query
service normalizes them so their failures surface as the specific
InvalidIdentifierError / InvalidTimestampError.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lrs.domain.errors.statement import InvalidQueryParameterError

StatementFormat = Literal["ids", "exact", "canonical"]

_TRUE_VALUES = frozenset({"true", "1"})
_FALSE_VALUES = frozenset({"false", "0", ""})


class StatementQueryParameters(BaseModel):
    """Recognized statement query parameters (wire names as aliases)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    statement_id: str | None = Field(default=None, alias="statementId")
    voided_statement_id: str | None = Field(default=None, alias="voidedStatementId")
    agent: dict[str, Any] | None = Field(
        default=None, description="JSON-encoded Agent or Group"
    )
    verb: str | None = Field(default=None, description="Verb IRI")
    activity: str | None = Field(default=None, description="Activity IRI")
    registration: str | None = Field(default=None, description="Registration UUID")
    related_activities: bool = False
    related_agents: bool = False
    since: str | None = Field(default=None, description="ISO-8601 lower bound on stored")
    until: str | None = Field(default=None, description="ISO-8601 upper bound on stored")
    limit: int | None = Field(default=None, ge=0)
    format: StatementFormat | None = None
    ascending: bool = False
    since_id: int | None = Field(default=None, ge=0)
    until_id: int | None = Field(default=None, ge=0)

    @field_validator("related_activities", "related_agents", "ascending", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(f"expected true or false, got {value!r}")
        return value

    @field_validator("agent", mode="before")
    @classmethod
    def _decode_agent(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value)
        return value

    @property
    def is_single_statement_request(self) -> bool:
        return self.statement_id is not None or self.voided_statement_id is not None

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any]) -> StatementQueryParameters:
        """Validate a raw parameter mapping.

        Args:
            params: Query-string parameters keyed by wire name.

        Returns:
            The parsed parameters.

        Raises:
            InvalidQueryParameterError: If a name is not recognized or a
                value cannot be parsed.
        """
        try:
            return cls.model_validate(dict(params))
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'parameters'}: "
                f"{error['msg']}"
                for error in exc.errors()
            )
            raise InvalidQueryParameterError(
                f"Invalid statement query parameters: {problems}"
            ) from exc
