"""Predicate expression tree for document store queries.

Expressions are immutable tagged variants over dot-separated document
paths. They are pure data: the in-memory store evaluates them directly and
persistence adapters compile them once to their native query form.

Path semantics (every store implementation MUST honour these):
- Segments are separated by "."
- When a segment resolves to a list, the rest of the path is applied to
  every element of that list
- A comparison matches when ANY resolved leaf satisfies it; a list leaf
  matches when any of its elements does
- A path that does not resolve never matches

Usage:
    from lrs.domain.models.expression import ExpressionBuilder, or_, where

    builder = ExpressionBuilder()
    builder.where("voided", False)
    builder.where_or(
        where("statement.verb.id", verb_id),
        where("references.verb.id", verb_id),
    )
    expression = builder.build()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Equals:
    """Document value at `path` equals `value`."""

    path: str
    value: Any


@dataclass(frozen=True)
class GreaterThan:
    """Document value at `path` is strictly greater than `value`."""

    path: str
    value: Any


@dataclass(frozen=True)
class GreaterOrEqual:
    """Document value at `path` is greater than or equal to `value`."""

    path: str
    value: Any


@dataclass(frozen=True)
class LessThan:
    """Document value at `path` is strictly less than `value`."""

    path: str
    value: Any


@dataclass(frozen=True)
class LessOrEqual:
    """Document value at `path` is less than or equal to `value`."""

    path: str
    value: Any


@dataclass(frozen=True)
class And:
    """All operands match. An empty conjunction matches every document."""

    operands: tuple[Expression, ...] = ()


@dataclass(frozen=True)
class Or:
    """At least one operand matches. An empty disjunction matches nothing."""

    operands: tuple[Expression, ...] = ()


Comparison = Union[Equals, GreaterThan, GreaterOrEqual, LessThan, LessOrEqual]
Expression = Union[Equals, GreaterThan, GreaterOrEqual, LessThan, LessOrEqual, And, Or]


def where(path: str, value: Any) -> Equals:
    return Equals(path, value)


def where_greater(path: str, value: Any) -> GreaterThan:
    return GreaterThan(path, value)


def where_greater_or_equal(path: str, value: Any) -> GreaterOrEqual:
    return GreaterOrEqual(path, value)


def where_less(path: str, value: Any) -> LessThan:
    return LessThan(path, value)


def where_less_or_equal(path: str, value: Any) -> LessOrEqual:
    return LessOrEqual(path, value)


def and_(*operands: Expression) -> And:
    return And(tuple(operands))


def or_(*operands: Expression) -> Or:
    return Or(tuple(operands))


class ExpressionBuilder:
    """Accumulates top-level conjuncts and builds an And expression.

    Every `where*` method appends one conjunct and returns the builder so
    calls can be chained. `copy()` snapshots the conjuncts gathered so
    far, which lets callers count matches before adding cursor bounds.
    """

    def __init__(self, conjuncts: tuple[Expression, ...] = ()) -> None:
        self._conjuncts: list[Expression] = list(conjuncts)

    def where(self, path: str, value: Any) -> ExpressionBuilder:
        self._conjuncts.append(Equals(path, value))
        return self

    def where_greater(self, path: str, value: Any) -> ExpressionBuilder:
        self._conjuncts.append(GreaterThan(path, value))
        return self

    def where_greater_or_equal(self, path: str, value: Any) -> ExpressionBuilder:
        self._conjuncts.append(GreaterOrEqual(path, value))
        return self

    def where_less(self, path: str, value: Any) -> ExpressionBuilder:
        self._conjuncts.append(LessThan(path, value))
        return self

    def where_less_or_equal(self, path: str, value: Any) -> ExpressionBuilder:
        self._conjuncts.append(LessOrEqual(path, value))
        return self

    def where_and(self, *operands: Expression) -> ExpressionBuilder:
        self._conjuncts.append(And(tuple(operands)))
        return self

    def where_or(self, *operands: Expression) -> ExpressionBuilder:
        self._conjuncts.append(Or(tuple(operands)))
        return self

    def copy(self) -> ExpressionBuilder:
        return ExpressionBuilder(tuple(self._conjuncts))

    def build(self) -> And:
        """Return the conjunction of everything added so far."""
        return And(tuple(self._conjuncts))
