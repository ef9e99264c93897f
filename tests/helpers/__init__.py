"""Test helpers for the statement store tests.

Helpers:
    FakeTimeAuthority: Controllable clock for deterministic tests
    make_statement: Minimal valid statement payload builder

Usage:
    from tests.helpers import FakeTimeAuthority, make_statement
"""

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.statements import (
    ACTIVITY_ID,
    ATTENDED_VERB_ID,
    VOIDED_VERB_ID,
    make_agent,
    make_statement,
    make_voiding_statement,
)

__all__ = [
    "ACTIVITY_ID",
    "ATTENDED_VERB_ID",
    "FakeTimeAuthority",
    "VOIDED_VERB_ID",
    "make_agent",
    "make_statement",
    "make_voiding_statement",
]
