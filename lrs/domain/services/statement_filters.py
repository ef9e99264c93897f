"""Predicate builders for statement queries.

Each builder is a pure function from filter values to an expression tree
over stored statement documents. The query service ANDs the groups
together; stores compile or evaluate the result. Keeping this free of
storage concerns lets the filter logic be tested on its own.

Every filter looks at two places: the statement itself (`statement.*`)
and, where noted, the ancestor chain materialized at insert time
(`references.*`). Because `references` is a list, one path there covers
every ancestor at once.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from lrs.domain.errors.statement import UnsupportedAgentQueryError
from lrs.domain.models.expression import (
    And,
    Equals,
    Expression,
    Or,
    and_,
    or_,
    where,
)
from lrs.domain.models.statement_document import (
    REFERENCES_PATH,
    STATEMENT_ID_PATH,
    VOIDED_PATH,
)
from lrs.domain.services.xapi import (
    CONTEXT_ACTIVITY_CATEGORIES,
    GROUP,
    SUB_STATEMENT,
    extract_object_type,
    extract_unique_identifier,
    normalize_uuid,
)

STATEMENT_ROOT: Final[str] = "statement"
REFERENCES_ROOT: Final[str] = REFERENCES_PATH

# Places an agent can appear, relative to a statement root
AGENT_PATHS: Final[tuple[str, ...]] = (
    "actor",
    "object",
    "authority",
    "context.team",
    "context.instructor",
)


def single_statement_filter(statement_id: str, voided: bool) -> And:
    """Match one statement by id in the given voided state.

    Raises:
        InvalidIdentifierError: If `statement_id` is not a UUID.
    """
    return and_(
        where(STATEMENT_ID_PATH, normalize_uuid(statement_id)),
        where(VOIDED_PATH, voided),
    )


def agent_filter(agent: Mapping[str, Any], related_agents: bool = False) -> Or:
    """Match statements in which `agent` appears.

    Looks at actor, object, authority, context team and instructor, and
    the object of a SubStatement. With `related_agents` the same places
    along the reference chain are searched too. Account identifiers must
    match on both homePage and name at the same place.

    Raises:
        UnsupportedAgentQueryError: For anonymous groups, or agents whose
            identifier is missing or ambiguous.
    """
    identifier = extract_unique_identifier(agent)
    if identifier is None and extract_object_type(agent) == GROUP:
        raise UnsupportedAgentQueryError("No support for querying Anonymous Groups")
    if identifier is None:
        raise UnsupportedAgentQueryError("Unknown or invalid agent type")

    value = agent[identifier]
    if identifier == "account" and not (
        isinstance(value, Mapping) and "homePage" in value and "name" in value
    ):
        raise UnsupportedAgentQueryError("Agent account requires homePage and name")

    roots = [STATEMENT_ROOT, REFERENCES_ROOT] if related_agents else [STATEMENT_ROOT]
    operands: list[Expression] = []
    for root in roots:
        for path in AGENT_PATHS:
            operands.append(_identifier_match(f"{root}.{path}", identifier, value))
        operands.append(
            and_(
                where(f"{root}.object.objectType", SUB_STATEMENT),
                _identifier_match(f"{root}.object.object", identifier, value),
            )
        )
    return or_(*operands)


def verb_filter(verb_id: str) -> Or:
    return or_(
        where(f"{STATEMENT_ROOT}.verb.id", verb_id),
        where(f"{REFERENCES_ROOT}.verb.id", verb_id),
    )


def activity_filter(activity_id: str, related_activities: bool = False) -> Or:
    """Match statements whose object (or ancestor's object) is the activity.

    With `related_activities` the context activities of every category
    and the object of a SubStatement are searched as well, for both the
    statement and its reference chain.
    """
    operands: list[Expression] = []
    for root in (STATEMENT_ROOT, REFERENCES_ROOT):
        operands.append(where(f"{root}.object.id", activity_id))
        if not related_activities:
            continue
        for category in CONTEXT_ACTIVITY_CATEGORIES:
            operands.append(
                where(f"{root}.context.contextActivities.{category}.id", activity_id)
            )
        operands.append(
            and_(
                where(f"{root}.object.objectType", SUB_STATEMENT),
                where(f"{root}.object.object.id", activity_id),
            )
        )
    return or_(*operands)


def registration_filter(registration: str) -> Or:
    """Match on context registration, directly or along the reference chain.

    Raises:
        InvalidIdentifierError: If `registration` is not a UUID.
    """
    normalized = normalize_uuid(registration)
    return or_(
        where(f"{STATEMENT_ROOT}.context.registration", normalized),
        where(f"{REFERENCES_ROOT}.context.registration", normalized),
    )


def _identifier_match(path: str, identifier: str, value: Any) -> Expression:
    if identifier == "account":
        return and_(
            Equals(f"{path}.account.homePage", value["homePage"]),
            Equals(f"{path}.account.name", value["name"]),
        )
    return Equals(f"{path}.{identifier}", value)
