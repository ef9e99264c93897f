"""Domain models for the statement store."""

from lrs.domain.models.expression import (
    And,
    Equals,
    Expression,
    ExpressionBuilder,
    GreaterOrEqual,
    GreaterThan,
    LessOrEqual,
    LessThan,
    Or,
)
from lrs.domain.models.statement_document import StatementDocument
from lrs.domain.models.statement_result import StatementResult

__all__: list[str] = [
    "And",
    "Equals",
    "Expression",
    "ExpressionBuilder",
    "GreaterOrEqual",
    "GreaterThan",
    "LessOrEqual",
    "LessThan",
    "Or",
    "StatementDocument",
    "StatementResult",
]
