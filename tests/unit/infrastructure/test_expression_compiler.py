"""Unit tests for the JSONB expression compiler."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from lrs.domain.models.expression import (
    Equals,
    and_,
    or_,
    where,
    where_greater,
    where_greater_or_equal,
    where_less,
)
from lrs.infrastructure.adapters.persistence.expression_compiler import (
    ExpressionCompiler,
    dump_json,
    jsonpath_for,
    text_path_literal,
)


class TestJsonpath:
    def test_segments_are_quoted(self) -> None:
        assert jsonpath_for("statement.actor.mbox") == '$."statement"."actor"."mbox"'

    def test_quotes_are_escaped(self) -> None:
        assert jsonpath_for('a"b') == '$."a\\"b"'


class TestTextPathLiteral:
    def test_segments_become_array_literal(self) -> None:
        assert text_path_literal("statement.id") == "'{statement,id}'"


class TestExpressionCompiler:
    """Tests for predicate compilation."""

    def test_equals_compiles_to_jsonb_path_exists(self) -> None:
        compiled = ExpressionCompiler().compile(where("statement.verb.id", "abc"))

        assert compiled.sql == (
            "jsonb_path_exists(document, "
            "'$.\"statement\".\"verb\".\"id\" ? (@ == $v)'::jsonpath, "
            "CAST(:p0 AS jsonb))"
        )
        assert json.loads(compiled.params["p0"]) == {"v": "abc"}

    def test_statement_id_equality_matches_index_expression(self) -> None:
        compiled = ExpressionCompiler().compile(where("statement.id", "abc"))

        assert compiled.sql == "document #>> '{statement,id}' = :p0"
        assert compiled.params == {"p0": "abc"}

    def test_statement_id_range_keeps_jsonpath(self) -> None:
        compiled = ExpressionCompiler().compile(where_greater("statement.id", "abc"))

        assert compiled.sql.startswith("jsonb_path_exists(")

    def test_bool_value_stays_json_bool(self) -> None:
        compiled = ExpressionCompiler().compile(where("voided", False))

        assert compiled.params["p0"] == '{"v":false}'

    @pytest.mark.parametrize(
        ("expression", "operator"),
        [
            (where_greater("orderingKey", 3), ">"),
            (where_less("orderingKey", 3), "<"),
            (where("orderingKey", 3), "="),
        ],
    )
    def test_ordering_key_uses_identity_column(self, expression, operator: str) -> None:
        compiled = ExpressionCompiler().compile(expression)

        assert compiled.sql == f"ordering_key {operator} :p0"
        assert compiled.params == {"p0": 3}

    def test_datetime_comparison_casts_to_timestamptz(self) -> None:
        moment = datetime(2026, 1, 15, tzinfo=timezone.utc)

        compiled = ExpressionCompiler().compile(where_greater_or_equal("storedAt", moment))

        assert compiled.sql == (
            "CAST(document #>> CAST(:p0 AS text[]) AS timestamptz) >= :p1"
        )
        assert compiled.params == {"p0": ["storedAt"], "p1": moment}

    def test_boolean_composition_numbers_parameters(self) -> None:
        expression = and_(where("voided", False), or_(where("a", 1), where("b", 2)))

        compiled = ExpressionCompiler().compile(expression)

        assert compiled.sql.startswith("(jsonb_path_exists(")
        assert " AND (" in compiled.sql
        assert " OR " in compiled.sql
        assert sorted(compiled.params) == ["p0", "p1", "p2"]

    def test_empty_and_or(self) -> None:
        assert ExpressionCompiler().compile(and_()).sql == "TRUE"
        assert ExpressionCompiler().compile(or_()).sql == "FALSE"

    def test_unknown_node_rejected(self) -> None:
        with pytest.raises(TypeError):
            ExpressionCompiler().compile("voided")  # type: ignore[arg-type]

    def test_equals_node_is_accepted_directly(self) -> None:
        assert "jsonb_path_exists" in ExpressionCompiler().compile(Equals("a", 1)).sql


class TestDumpJson:
    def test_datetimes_are_iso_strings(self) -> None:
        moment = datetime(2026, 1, 15, tzinfo=timezone.utc)

        assert json.loads(dump_json({"storedAt": moment})) == {
            "storedAt": "2026-01-15T00:00:00+00:00"
        }

    def test_unknown_types_raise(self) -> None:
        with pytest.raises(TypeError):
            dump_json({"value": object()})
