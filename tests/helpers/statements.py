"""Statement payload builders for tests."""

from __future__ import annotations

from typing import Any

ATTENDED_VERB_ID = "http://adlnet.gov/expapi/verbs/attended"
VOIDED_VERB_ID = "http://adlnet.gov/expapi/verbs/voided"
ACTIVITY_ID = "http://www.example.com/meetings/occurances/34534"


def make_agent(email: str = "xapi@adlnet.gov", name: str | None = None) -> dict[str, Any]:
    agent: dict[str, Any] = {"objectType": "Agent", "mbox": f"mailto:{email}"}
    if name is not None:
        agent["name"] = name
    return agent


def make_statement(
    statement_id: str | None = None,
    *,
    actor: dict[str, Any] | None = None,
    verb_id: str = ATTENDED_VERB_ID,
    statement_object: dict[str, Any] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a minimal statement payload.

    Example:
        >>> make_statement("11111111-1111-1111-1111-111111111111")["verb"]["id"]
        'http://adlnet.gov/expapi/verbs/attended'
    """
    statement: dict[str, Any] = {
        "actor": actor or make_agent(),
        "verb": {"id": verb_id, "display": {"en-US": verb_id.rsplit("/", 1)[-1]}},
        "object": statement_object
        or {"objectType": "Activity", "id": ACTIVITY_ID},
    }
    if statement_id is not None:
        statement["id"] = statement_id
    statement.update(extra)
    return statement


def make_voiding_statement(
    target_id: str, statement_id: str | None = None
) -> dict[str, Any]:
    return make_statement(
        statement_id,
        actor=make_agent("admin@example.com"),
        verb_id=VOIDED_VERB_ID,
        statement_object={"objectType": "StatementRef", "id": target_id},
    )
