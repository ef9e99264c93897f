"""Infrastructure stubs for development and testing.

Available stubs:
- DocumentStoreStub: In-memory document store with unique indexes and
  a concurrent-insert hook for race tests
- AuthorizationStub: Fixed-capability caller with factory methods

WARNING: These stubs are NOT for production use.
Production implementations are in lrs/infrastructure/adapters/.
"""

from lrs.infrastructure.stubs.authorization_stub import AuthorizationStub
from lrs.infrastructure.stubs.document_store_stub import DocumentStoreStub

__all__: list[str] = ["AuthorizationStub", "DocumentStoreStub"]
