"""
Document store.

Cache-augmented access to the remote document database, shared by every
domain service.

Public API:
- IDocumentStore / IDocumentBackend: Interfaces
- DocumentStore: The cache + remote facade
- InMemoryDocumentBackend / SupabaseDocumentBackend: Remote variants
- LiveSequence: Cancellable stream returned by listeners
- Store exceptions: RemoteUnavailableError, RemoteTimeoutError, etc.
"""

from .interfaces import IDocumentStore, IDocumentBackend
from .document_store import DocumentStore
from .memory_backend import InMemoryDocumentBackend
from .supabase_backend import SupabaseDocumentBackend
from .factory import get_document_backend
from .live import LiveSequence, combine_latest
from .models import (
    Collections,
    FilterOp,
    QueryFilter,
    BatchOperation,
    BatchOperationType,
    DocumentSnapshot,
)
from .exceptions import (
    DocumentStoreError,
    RemoteUnavailableError,
    RemoteTimeoutError,
    DocumentDecodeError,
    VersionConflictError,
    StoreConflictError,
    BatchCommitError,
    translate_store_errors,
)

__all__ = [
    # Interfaces
    "IDocumentStore",
    "IDocumentBackend",
    # Implementations
    "DocumentStore",
    "InMemoryDocumentBackend",
    "SupabaseDocumentBackend",
    "get_document_backend",
    "LiveSequence",
    "combine_latest",
    # Models
    "Collections",
    "FilterOp",
    "QueryFilter",
    "BatchOperation",
    "BatchOperationType",
    "DocumentSnapshot",
    # Exceptions
    "DocumentStoreError",
    "RemoteUnavailableError",
    "RemoteTimeoutError",
    "DocumentDecodeError",
    "VersionConflictError",
    "StoreConflictError",
    "BatchCommitError",
    "translate_store_errors",
]
