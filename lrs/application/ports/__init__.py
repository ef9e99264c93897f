"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.

Available ports:
- DocumentStorePort: Query/insert/update primitives over expression trees
- AuthorizationPort: Capability checks for the acting principal
- TimeAuthorityProtocol: Injected clock
"""

from lrs.application.ports.authorization import AuthorizationPort
from lrs.application.ports.document_store import (
    DocumentStorePort,
    FindOptions,
    IndexSpec,
    SortDirection,
)
from lrs.application.ports.time_authority import TimeAuthorityProtocol

__all__: list[str] = [
    "AuthorizationPort",
    "DocumentStorePort",
    "FindOptions",
    "IndexSpec",
    "SortDirection",
    "TimeAuthorityProtocol",
]
