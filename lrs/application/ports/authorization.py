"""Authorization port - capability checks for the acting principal.

Authentication and permission decisions happen outside the statement
engine. By the time a request reaches it, the caller's access token has
been resolved; this port only answers yes/no capability questions about
it and derives the values the engine stamps onto statements.
"""

from abc import ABC, abstractmethod
from typing import Any, Final

# Capabilities the statement engine consumes
SUPER_PERMISSION: Final[str] = "super"
DEFINE_PERMISSION: Final[str] = "define"
STATEMENTS_READ_PERMISSION: Final[str] = "statements/read"
STATEMENTS_READ_MINE_PERMISSION: Final[str] = "statements/read/mine"


class AuthorizationPort(ABC):
    """Abstract interface for the acting principal's capabilities.

    Implementations are request scoped: one instance describes one
    caller.
    """

    @abstractmethod
    def has_permission(self, capability: str) -> bool:
        """Check whether the caller holds `capability`."""
        ...

    @abstractmethod
    def caller_user_id(self) -> str:
        """Return the id of the principal that owns the access token."""
        ...

    @abstractmethod
    def generate_authority(self) -> dict[str, Any]:
        """Return the authority (Agent or Group) derived from the token.

        Returns:
            An xAPI Agent/Group mapping identifying the asserting principal.
        """
        ...
