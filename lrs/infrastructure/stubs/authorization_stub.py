"""Authorization stub for testing and local runs.

Describes one caller with a fixed capability set. Factory methods cover
the common caller shapes the statement engine distinguishes.

WARNING: This stub is for development/testing only.
Production resolves capabilities from the caller's access token.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from lrs.application.ports.authorization import (
    DEFINE_PERMISSION,
    STATEMENTS_READ_MINE_PERMISSION,
    STATEMENTS_READ_PERMISSION,
    SUPER_PERMISSION,
    AuthorizationPort,
)

DEFAULT_USER_ID = "user-1"


class AuthorizationStub(AuthorizationPort):
    """Fixed-capability caller.

    Attributes:
        permissions: Capabilities the caller holds.
        user_id: Principal id returned by caller_user_id().
        authority: Authority returned by generate_authority().
    """

    def __init__(
        self,
        permissions: Iterable[str] = (),
        user_id: str = DEFAULT_USER_ID,
        authority: Mapping[str, Any] | None = None,
    ) -> None:
        self.permissions = set(permissions)
        self.user_id = user_id
        self.authority = dict(authority) if authority is not None else {
            "objectType": "Agent",
            "name": user_id,
            "account": {"homePage": "http://lrs.example.com/users", "name": user_id},
        }

    @classmethod
    def full_access(cls, user_id: str = DEFAULT_USER_ID) -> AuthorizationStub:
        """Caller that may read everything and define activities."""
        return cls({STATEMENTS_READ_PERMISSION, DEFINE_PERMISSION}, user_id=user_id)

    @classmethod
    def super_user(cls, user_id: str = DEFAULT_USER_ID) -> AuthorizationStub:
        """Elevated caller allowed to assert its own authority."""
        return cls(
            {SUPER_PERMISSION, STATEMENTS_READ_PERMISSION, DEFINE_PERMISSION},
            user_id=user_id,
        )

    @classmethod
    def read_mine_only(cls, user_id: str = DEFAULT_USER_ID) -> AuthorizationStub:
        """Caller that only sees statements it stored itself."""
        return cls({STATEMENTS_READ_MINE_PERMISSION}, user_id=user_id)

    def has_permission(self, capability: str) -> bool:
        return capability in self.permissions

    def caller_user_id(self) -> str:
        return self.user_id

    def generate_authority(self) -> dict[str, Any]:
        return copy.deepcopy(self.authority)
