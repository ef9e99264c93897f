"""Identity and normalization helpers for xAPI statement content.

Pure functions shared by the transformation pipeline and the query
engine. Nothing here touches storage.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Final

from lrs.domain.errors.statement import InvalidIdentifierError

VOIDED_VERB_ID: Final[str] = "http://adlnet.gov/expapi/verbs/voided"

STATEMENT_REF: Final[str] = "StatementRef"
SUB_STATEMENT: Final[str] = "SubStatement"
AGENT: Final[str] = "Agent"
GROUP: Final[str] = "Group"

# Inverse functional identifiers, in the order they are reported
UNIQUE_IDENTIFIERS: Final[tuple[str, ...]] = (
    "mbox",
    "mbox_sha1sum",
    "openid",
    "account",
)

CONTEXT_ACTIVITY_CATEGORIES: Final[tuple[str, ...]] = (
    "parent",
    "category",
    "grouping",
    "other",
)

_UUID_PATTERN = re.compile(
    r"^(?:urn:uuid:)?\{?"
    r"([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})"
    r"\}?$",
    re.IGNORECASE,
)

# Extension IRIs routinely contain "." which collides with path syntax,
# and "$" which document stores reserve for operators.
_EXTENSION_KEY_ESCAPES: Final[tuple[tuple[str, str], ...]] = (
    (".", "\uff0e"),
    ("$", "\uff04"),
)


def is_valid_uuid(raw: object) -> bool:
    """Check whether `raw` is a syntactically valid UUID string."""
    return isinstance(raw, str) and _UUID_PATTERN.match(raw.strip()) is not None


def normalize_uuid(raw: object) -> str:
    """Return the canonical (lower-case, hyphenated) form of a UUID.

    Accepts the plain hyphenated form, optionally wrapped in braces or
    prefixed with "urn:uuid:".

    Args:
        raw: Candidate identifier.

    Returns:
        Canonical UUID string.

    Raises:
        InvalidIdentifierError: If `raw` is not a valid UUID.
    """
    if not isinstance(raw, str):
        raise InvalidIdentifierError(raw)
    match = _UUID_PATTERN.match(raw.strip())
    if match is None:
        raise InvalidIdentifierError(raw)
    return match.group(1).lower()


def extract_unique_identifier(agent: Mapping[str, Any] | None) -> str | None:
    """Return which inverse functional identifier an agent or group carries.

    Exactly one of mbox, mbox_sha1sum, openid or account must be present.
    Anything else (none, or several at once) is ambiguous and yields None.
    """
    if not isinstance(agent, Mapping):
        return None
    present = [key for key in UNIQUE_IDENTIFIERS if agent.get(key) is not None]
    if len(present) != 1:
        return None
    return present[0]


def extract_object_type(agent: Mapping[str, Any] | None) -> str:
    """Return "Group" for groups and "Agent" for everything else."""
    if isinstance(agent, Mapping) and agent.get("objectType") == GROUP:
        return GROUP
    return AGENT


def is_statement_ref(statement_object: object) -> bool:
    return (
        isinstance(statement_object, Mapping)
        and statement_object.get("objectType") == STATEMENT_REF
    )


def is_sub_statement(statement_object: object) -> bool:
    return (
        isinstance(statement_object, Mapping)
        and statement_object.get("objectType") == SUB_STATEMENT
    )


def is_activity(statement_object: object) -> bool:
    """Activities may omit objectType; anything without one is an Activity."""
    return isinstance(statement_object, Mapping) and statement_object.get(
        "objectType", "Activity"
    ) == "Activity"


def encode_extension_key(key: str) -> str:
    for raw, escaped in _EXTENSION_KEY_ESCAPES:
        key = key.replace(raw, escaped)
    return key


def decode_extension_key(key: str) -> str:
    for raw, escaped in _EXTENSION_KEY_ESCAPES:
        key = key.replace(escaped, raw)
    return key
