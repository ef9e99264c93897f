"""Stored statement document and its insert-time normalizations.

A statement is persisted wrapped in a document that carries server-side
bookkeeping next to the client content:

    {
        "statement": {...},     # client statement, normalized
        "voided": False,        # flips to True once, never back
        "storedAt": datetime,   # native ingestion time (since/until)
        "references": [...],    # flattened ancestor chain, optional
        "userId": "...",        # owning principal ("mine" visibility)
        "orderingKey": 42,      # assigned by the store on insert
    }

The normalization helpers are plain functions over a statement mapping so
the immutability check can canonicalize an incoming payload exactly the
way an accepted one was canonicalized, without any side effects.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Final
from uuid import uuid4

from lrs.domain.services.dates import to_iso8601
from lrs.domain.services.xapi import (
    CONTEXT_ACTIVITY_CATEGORIES,
    VOIDED_VERB_ID,
    decode_extension_key,
    encode_extension_key,
    is_activity,
    is_statement_ref,
    is_sub_statement,
    normalize_uuid,
)

STATEMENTS_COLLECTION: Final[str] = "statements"
ACTIVITIES_COLLECTION: Final[str] = "activities"

# Document paths used by queries and updates
STATEMENT_ID_PATH: Final[str] = "statement.id"
VOIDED_PATH: Final[str] = "voided"
STORED_AT_PATH: Final[str] = "storedAt"
ORDERING_KEY_PATH: Final[str] = "orderingKey"
USER_ID_PATH: Final[str] = "userId"
REFERENCES_PATH: Final[str] = "references"

# Fields that may differ between two submissions of the same statement
IMMUTABILITY_EXEMPT_FIELDS: Final[frozenset[str]] = frozenset(
    {"authority", "stored", "timestamp", "version"}
)


# =============================================================================
# Statement-level normalizations
# =============================================================================


def normalize_existing_ids(statement: dict[str, Any]) -> None:
    """Canonicalize every UUID-valued field that is present.

    Raises:
        InvalidIdentifierError: If one of those fields is not a UUID.
    """
    if statement.get("id") is not None:
        statement["id"] = normalize_uuid(statement["id"])

    for node in _statement_nodes(statement):
        context = node.get("context")
        if isinstance(context, dict) and context.get("registration") is not None:
            context["registration"] = normalize_uuid(context["registration"])

    statement_object = statement.get("object")
    if is_statement_ref(statement_object) and statement_object.get("id") is not None:
        statement_object["id"] = normalize_uuid(statement_object["id"])


def fix_attachment_links(statement: dict[str, Any], attachment_base: str) -> None:
    """Point attachments that lack an absolute fileUrl at the exposed store.

    Attachments without a fileUrl resolve to `<attachment_base>/<sha2>`;
    relative fileUrls are resolved against `attachment_base`.
    """
    base = attachment_base.rstrip("/")
    for node in _statement_nodes(statement):
        attachments = node.get("attachments")
        if not isinstance(attachments, list):
            continue
        for attachment in attachments:
            if not isinstance(attachment, dict):
                continue
            file_url = attachment.get("fileUrl")
            if file_url is None:
                if attachment.get("sha2"):
                    attachment["fileUrl"] = f"{base}/{attachment['sha2']}"
            elif isinstance(file_url, str) and "://" not in file_url:
                attachment["fileUrl"] = f"{base}/{file_url.lstrip('/')}"


def convert_extension_keys(node: Any) -> None:
    """Escape the keys of every `extensions` map found under `node`.

    Extension values are opaque and are left untouched.
    """
    if isinstance(node, dict):
        for key, value in list(node.items()):
            if key == "extensions" and isinstance(value, dict):
                node[key] = {encode_extension_key(k): v for k, v in value.items()}
            else:
                convert_extension_keys(value)
    elif isinstance(node, list):
        for item in node:
            convert_extension_keys(item)


def restore_extension_keys(node: Any) -> None:
    """Undo convert_extension_keys in place, giving back the original IRIs."""
    if isinstance(node, dict):
        for key, value in list(node.items()):
            if key == "extensions" and isinstance(value, dict):
                node[key] = {decode_extension_key(k): v for k, v in value.items()}
            else:
                restore_extension_keys(value)
    elif isinstance(node, list):
        for item in node:
            restore_extension_keys(item)


def present_document(document: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of a stored document as handed to readers.

    Extension keys in the statement and its reference chain are decoded;
    everything else is returned as stored.
    """
    presented = copy.deepcopy(dict(document))
    restore_extension_keys(presented.get("statement"))
    restore_extension_keys(presented.get("references"))
    return presented


def migrate_legacy_context_activities(statement: dict[str, Any]) -> None:
    """Wrap single-object context activity categories into lists."""
    for node in _statement_nodes(statement):
        context = node.get("context")
        if not isinstance(context, dict):
            continue
        context_activities = context.get("contextActivities")
        if not isinstance(context_activities, dict):
            continue
        for category in CONTEXT_ACTIVITY_CATEGORIES:
            if isinstance(context_activities.get(category), dict):
                context_activities[category] = [context_activities[category]]


def canonicalize_statement(
    statement: Mapping[str, Any], attachment_base: str
) -> dict[str, Any]:
    """Return a normalized deep copy of `statement`.

    Applies the content normalizations of the insert pipeline (ids,
    attachment links, extension keys, context activity shape) so the
    result can be compared against an accepted statement.
    """
    canonical = copy.deepcopy(dict(statement))
    normalize_existing_ids(canonical)
    fix_attachment_links(canonical, attachment_base)
    convert_extension_keys(canonical)
    migrate_legacy_context_activities(canonical)
    return canonical


def strip_exempt_fields(statement: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: value
        for key, value in statement.items()
        if key not in IMMUTABILITY_EXEMPT_FIELDS
    }


def statements_match(incoming: Mapping[str, Any], existing: Mapping[str, Any]) -> bool:
    """Compare two statements, ignoring authority/stored/timestamp/version."""
    return strip_exempt_fields(incoming) == strip_exempt_fields(existing)


def _statement_nodes(statement: dict[str, Any]) -> list[dict[str, Any]]:
    """The statement itself plus its SubStatement, if it carries one."""
    nodes = [statement]
    statement_object = statement.get("object")
    if is_sub_statement(statement_object):
        nodes.append(statement_object)
    return nodes


# =============================================================================
# Document wrapper
# =============================================================================


class StatementDocument:
    """Mutable wrapper around one stored (or to-be-stored) statement document.

    Built fresh for every insert, mutated step by step by the
    transformation pipeline, then handed to the store as a plain dict.

    Attributes:
        skip_insert: True when the payload is an identical resubmission
            of an accepted statement and must not be written again.
    """

    def __init__(self, document: Mapping[str, Any] | None = None) -> None:
        self._document: dict[str, Any] = (
            copy.deepcopy(dict(document)) if document is not None else {}
        )
        self._document.setdefault("statement", {})
        self._document.setdefault(VOIDED_PATH, False)
        self.skip_insert = False

    @classmethod
    def from_statement(cls, statement: Mapping[str, Any]) -> StatementDocument:
        return cls({"statement": statement, VOIDED_PATH: False})

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def statement(self) -> dict[str, Any]:
        return self._document["statement"]

    @property
    def statement_id(self) -> str | None:
        return self.statement.get("id")

    @property
    def voided(self) -> bool:
        return bool(self._document.get(VOIDED_PATH, False))

    @voided.setter
    def voided(self, value: bool) -> None:
        self._document[VOIDED_PATH] = value

    @property
    def references(self) -> list[dict[str, Any]] | None:
        return self._document.get(REFERENCES_PATH)

    @references.setter
    def references(self, value: list[dict[str, Any]]) -> None:
        self._document[REFERENCES_PATH] = value

    @property
    def user_id(self) -> str | None:
        return self._document.get(USER_ID_PATH)

    @user_id.setter
    def user_id(self, value: str) -> None:
        self._document[USER_ID_PATH] = value

    @property
    def ordering_key(self) -> int | None:
        return self._document.get(ORDERING_KEY_PATH)

    @property
    def stored_at(self) -> datetime | None:
        return self._document.get(STORED_AT_PATH)

    # -------------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------------

    def set_authority(self, authority: Mapping[str, Any]) -> None:
        self.statement["authority"] = copy.deepcopy(dict(authority))

    def set_stored(self, moment: datetime) -> None:
        """Stamp both the client-visible `stored` string and native `storedAt`."""
        self.statement["stored"] = to_iso8601(moment)
        self._document[STORED_AT_PATH] = moment

    def set_default_timestamp(self) -> None:
        if self.statement.get("timestamp") is None:
            self.statement["timestamp"] = self.statement["stored"]

    def set_default_id(self) -> None:
        if self.statement.get("id") is None:
            self.statement["id"] = str(uuid4())

    def normalize_existing_ids(self) -> None:
        normalize_existing_ids(self.statement)

    def fix_attachment_links(self, attachment_base: str) -> None:
        fix_attachment_links(self.statement, attachment_base)

    def convert_extension_keys(self) -> None:
        convert_extension_keys(self.statement)

    def legacy_context_activities(self) -> None:
        migrate_legacy_context_activities(self.statement)

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    def is_referencing(self) -> bool:
        """True when the statement object is a StatementRef."""
        return is_statement_ref(self.statement.get("object"))

    def is_voiding(self) -> bool:
        """True when the statement voids the statement it references."""
        verb = self.statement.get("verb")
        return (
            isinstance(verb, Mapping)
            and verb.get("id") == VOIDED_VERB_ID
            and self.is_referencing()
        )

    def get_referenced_statement_id(self) -> str:
        """Return the normalized id of the referenced statement.

        Raises:
            InvalidIdentifierError: If the StatementRef id is not a UUID.
        """
        return normalize_uuid(self.statement["object"].get("id"))

    def extract_activities(self) -> list[dict[str, Any]]:
        """Collect embedded Activities that carry a definition, keyed by id.

        Looks at the statement object, every context activity, and the
        same places inside a SubStatement. Later occurrences of an id
        replace earlier ones.
        """
        found: dict[str, dict[str, Any]] = {}
        for node in _statement_nodes(self.statement):
            candidates: list[Any] = [node.get("object")]
            context = node.get("context")
            if isinstance(context, dict) and isinstance(
                context.get("contextActivities"), dict
            ):
                for category in CONTEXT_ACTIVITY_CATEGORIES:
                    entries = context["contextActivities"].get(category)
                    if isinstance(entries, list):
                        candidates.extend(entries)
            for candidate in candidates:
                if (
                    is_activity(candidate)
                    and candidate.get("id") is not None
                    and candidate.get("definition") is not None
                ):
                    found[candidate["id"]] = copy.deepcopy(dict(candidate))
        return list(found.values())

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._document)

    def __repr__(self) -> str:
        return (
            f"StatementDocument(id={self.statement_id!r}, voided={self.voided}, "
            f"skip_insert={self.skip_insert})"
        )
