"""
Document store interfaces.

Domain services depend on IDocumentStore; the store depends on
IDocumentBackend, which each remote database variant implements.
"""

from typing import (
    Any,
    AsyncIterator,
    Callable,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
    runtime_checkable,
)

from pydantic import BaseModel

from .live import LiveSequence
from .models import BatchOperation, DocumentSnapshot, QueryFilter

T = TypeVar("T", bound=BaseModel)


@runtime_checkable
class IDocumentBackend(Protocol):
    """
    Contract for a remote document database.

    Every write bumps the document's integer version. Watchers are async
    iterators; closing one must release the remote subscription.
    """

    async def get(self, collection: str, document_id: str) -> Optional[DocumentSnapshot]:
        """
        Fetch one document.

        Returns:
            The snapshot, or None if no such document exists

        Raises:
            RemoteUnavailableError: On transport failure
        """
        ...

    async def set(
        self,
        collection: str,
        document_id: str,
        data: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Create or replace a document.

        Args:
            collection: Collection name
            document_id: Document id
            data: Full record
            expected_version: If given, the write only applies when the stored
                version matches (0 means the document must not exist)

        Returns:
            The new version

        Raises:
            VersionConflictError: If expected_version does not match
            RemoteUnavailableError: On transport failure
        """
        ...

    async def delete(self, collection: str, document_id: str) -> None:
        """Delete a document. Missing documents are not an error."""
        ...

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter],
        limit: int,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[DocumentSnapshot]:
        """Return up to ``limit`` documents matching every filter."""
        ...

    async def commit_batch(self, operations: Sequence[BatchOperation]) -> None:
        """
        Apply all operations as one commit.

        Raises:
            BatchCommitError: If any operation is rejected; nothing is applied
        """
        ...

    def watch_document(
        self, collection: str, document_id: str
    ) -> AsyncIterator[Optional[DocumentSnapshot]]:
        """Yield the current snapshot (or None), then one per change."""
        ...

    def watch_collection(
        self, collection: str, filters: Sequence[QueryFilter]
    ) -> AsyncIterator[list[DocumentSnapshot]]:
        """Yield the current result set, then the full set after each change."""
        ...


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Cache-augmented document access shared by every domain service.

    Absence is reported as None, never as an exception.
    """

    async def set_document(
        self,
        collection: str,
        document_id: str,
        value: BaseModel,
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Write a document through to the remote store, then cache it.

        Returns:
            The stored version
        """
        ...

    async def get_document(
        self, collection: str, document_id: str, model: type[T]
    ) -> Optional[T]:
        """
        Read a document, from cache while the entry is fresh.

        Raises:
            DocumentDecodeError: If the document is not a ``model``
            RemoteTimeoutError: If the remote read exceeds its bounded wait
        """
        ...

    async def delete_document(self, collection: str, document_id: str) -> None:
        """Delete a document and evict it from the cache. Idempotent."""
        ...

    async def query_documents(
        self,
        collection: str,
        model: type[T],
        filters: Sequence[QueryFilter] = (),
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[T]:
        """Query the remote store directly; results are never cached."""
        ...

    async def update_document(
        self,
        collection: str,
        document_id: str,
        model: type[T],
        mutate: Callable[[T], Optional[T]],
    ) -> Optional[T]:
        """
        Atomically read, transform and write one document.

        Returns:
            The stored value after the update, or None if the document is absent

        Raises:
            StoreConflictError: If concurrent writers keep winning the race
        """
        ...

    async def perform_batch(self, operations: Sequence[BatchOperation]) -> None:
        """Commit several writes all-or-nothing."""
        ...

    def listen_to_document(
        self, collection: str, document_id: str, model: type[T]
    ) -> LiveSequence[Optional[T]]:
        """Live snapshots of one document."""
        ...

    def listen_to_collection(
        self,
        collection: str,
        model: type[T],
        filters: Sequence[QueryFilter] = (),
    ) -> LiveSequence[list[T]]:
        """Live result sets of a filtered collection."""
        ...

    def clear_cache(self, key: Optional[str] = None) -> None:
        """Drop one cache entry, or all of them."""
        ...
