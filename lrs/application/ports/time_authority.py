"""Clock port for the statement store.

The insert pipeline never reads the system clock itself: `stored`,
`storedAt` and the default `timestamp` all come from an injected
TimeAuthorityProtocol, so tests can pin them with FakeTimeAuthority.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    """Source of wall-clock and elapsed time.

    Implementations:
        SystemTimeAuthority (lrs.infrastructure.adapters.time) in deployment,
        FakeTimeAuthority (tests.helpers) in tests.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware (UTC for the system clock)."""
        ...

    @abstractmethod
    def utcnow(self) -> datetime:
        """Current UTC time; this is what statements are stamped with."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds from an arbitrary origin; only differences mean anything."""
        ...
