"""Compile expression trees into PostgreSQL predicates over a JSONB column.

Documents live in a `document JSONB` column next to an identity column
holding the ordering key. Path comparisons compile to `jsonb_path_exists`
calls: in lax mode a jsonpath accessor applied to an array is applied to
each element and a filter on an array tests each element, which gives
the list fan-out and any-match semantics the document store promises.
Missing paths yield no items, so they never match.

Comparison values are passed as jsonpath variables (`$v`) through a bound
JSONB parameter; only the path, which comes from code, is inlined.

Datetime values are stored as ISO-8601 strings, so comparisons against a
datetime cast the text at the path to timestamptz instead.

Equality on `statement.id` compiles to `document #>> '{statement,id}' = :v`
instead, the exact expression the unique index is built on, so id
lookups are index scans.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final

from lrs.domain.models.expression import (
    And,
    Equals,
    Expression,
    GreaterOrEqual,
    GreaterThan,
    LessOrEqual,
    LessThan,
    Or,
)
from lrs.domain.models.statement_document import (
    ORDERING_KEY_PATH,
    STATEMENT_ID_PATH,
)

DOCUMENT_COLUMN: Final[str] = "document"
ORDERING_KEY_COLUMN: Final[str] = "ordering_key"

# Scalar text paths backed by an expression index on `document #>> path`
INDEXED_TEXT_PATHS: Final[frozenset[str]] = frozenset({STATEMENT_ID_PATH})

_JSONPATH_OPERATORS: Final[dict[type, str]] = {
    Equals: "==",
    GreaterThan: ">",
    GreaterOrEqual: ">=",
    LessThan: "<",
    LessOrEqual: "<=",
}

_SQL_OPERATORS: Final[dict[type, str]] = {
    Equals: "=",
    GreaterThan: ">",
    GreaterOrEqual: ">=",
    LessThan: "<",
    LessOrEqual: "<=",
}


def json_default(value: Any) -> Any:
    """json.dumps hook: datetimes become ISO-8601 strings."""
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dump_json(value: Any) -> str:
    return json.dumps(value, default=json_default, separators=(",", ":"))


def jsonpath_for(path: str) -> str:
    """Render a dotted document path as a jsonpath accessor chain.

    Example:
        >>> jsonpath_for("statement.actor.mbox")
        '$."statement"."actor"."mbox"'
    """
    segments = "".join(
        '."' + segment.replace("\\", "\\\\").replace('"', '\\"') + '"'
        for segment in path.split(".")
    )
    return "$" + segments


def text_path_literal(path: str) -> str:
    """Render a dotted path as a text[] literal for `#>` and `#>>`.

    Example:
        >>> text_path_literal("statement.id")
        "'{statement,id}'"
    """
    return "'{" + ",".join(path.split(".")) + "}'"


def _sql_literal(value: str) -> str:
    # ':' is escaped so text() does not read it as a bind parameter
    return "'" + value.replace("'", "''").replace(":", "\\:") + "'"


@dataclass
class CompiledPredicate:
    """SQL boolean expression plus its bind parameters."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)


class ExpressionCompiler:
    """Turns an expression tree into a `CompiledPredicate`.

    One compiler instance numbers its bind parameters uniquely, so
    several predicates compiled by the same instance can share a
    statement.
    """

    def __init__(self, prefix: str = "p") -> None:
        self._prefix = prefix
        self._counter = 0

    def compile(self, expression: Expression) -> CompiledPredicate:
        params: dict[str, Any] = {}
        sql = self._compile(expression, params)
        return CompiledPredicate(sql=sql, params=params)

    def _bind(self, params: dict[str, Any], value: Any) -> str:
        name = f"{self._prefix}{self._counter}"
        self._counter += 1
        params[name] = value
        return f":{name}"

    def _compile(self, expression: Expression, params: dict[str, Any]) -> str:
        if isinstance(expression, And):
            if not expression.operands:
                return "TRUE"
            return "(" + " AND ".join(
                self._compile(operand, params) for operand in expression.operands
            ) + ")"
        if isinstance(expression, Or):
            if not expression.operands:
                return "FALSE"
            return "(" + " OR ".join(
                self._compile(operand, params) for operand in expression.operands
            ) + ")"
        if type(expression) not in _JSONPATH_OPERATORS:
            raise TypeError(f"Unsupported expression node: {expression!r}")

        if expression.path == ORDERING_KEY_PATH:
            operator = _SQL_OPERATORS[type(expression)]
            return f"{ORDERING_KEY_COLUMN} {operator} {self._bind(params, expression.value)}"

        if (
            isinstance(expression, Equals)
            and expression.path in INDEXED_TEXT_PATHS
            and isinstance(expression.value, str)
        ):
            return (
                f"{DOCUMENT_COLUMN} #>> {text_path_literal(expression.path)} "
                f"= {self._bind(params, expression.value)}"
            )

        if isinstance(expression.value, datetime):
            operator = _SQL_OPERATORS[type(expression)]
            path = self._bind(params, expression.path.split("."))
            value = self._bind(params, expression.value)
            return (
                f"CAST({DOCUMENT_COLUMN} #>> CAST({path} AS text[]) AS timestamptz) "
                f"{operator} {value}"
            )

        operator = _JSONPATH_OPERATORS[type(expression)]
        jsonpath = f"{jsonpath_for(expression.path)} ? (@ {operator} $v)"
        variables = self._bind(params, dump_json({"v": expression.value}))
        return (
            f"jsonb_path_exists({DOCUMENT_COLUMN}, {_sql_literal(jsonpath)}::jsonpath, "
            f"CAST({variables} AS jsonb))"
        )
