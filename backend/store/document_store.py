"""
Document store implementation.

Wraps a remote document database with a TTL cache, bounded waits, retry of
transient failures, per-document serialization of read-modify-write, and
live sequences that unsubscribe when their consumer goes away.
"""

import asyncio
import logging
import time
import weakref
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional, Sequence, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from shared.config import Settings, get_settings
from shared.retry import retry_async

from .cache import CacheEntry, TTLCache
from .exceptions import (
    DocumentDecodeError,
    RemoteTimeoutError,
    RemoteUnavailableError,
    StoreConflictError,
    VersionConflictError,
)
from .interfaces import IDocumentBackend, IDocumentStore
from .live import LiveSequence
from .models import BatchOperation, DocumentSnapshot, QueryFilter

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")


class DocumentStore:
    """
    Cache-augmented CRUD, query, batch and subscription facade.

    One instance is shared by all services of a process so they see the
    same cache. Writes go to the remote store first and update the cache
    only after the remote write succeeded.
    """

    def __init__(
        self,
        backend: IDocumentBackend,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the document store.

        Args:
            backend: Remote document database
            settings: Timeouts, retry and cache configuration
            clock: Monotonic clock for cache expiry (injectable for tests)
        """
        self._backend = backend
        self._settings = settings or get_settings()
        self._cache = TTLCache(self._settings.document_cache_ttl_seconds, clock)
        # Entries vanish once no update holds or waits on the lock.
        self._key_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def backend(self) -> IDocumentBackend:
        return self._backend

    @staticmethod
    def cache_key(collection: str, document_id: str) -> str:
        return f"{collection}/{document_id}"

    # -------------------------------------------------------------------------
    # Remote call plumbing
    # -------------------------------------------------------------------------

    async def _remote(
        self,
        operation: str,
        call: Callable[[], Awaitable[R]],
        retry: bool = True,
    ) -> R:
        """Run one remote call under the bounded wait, retrying transport failures."""
        timeout = self._settings.remote_timeout_seconds

        async def attempt() -> R:
            try:
                return await asyncio.wait_for(call(), timeout=timeout)
            except asyncio.TimeoutError:
                raise RemoteTimeoutError(operation, timeout)

        if not retry:
            return await attempt()

        return await retry_async(
            attempt,
            max_retries=self._settings.remote_max_retries,
            initial_backoff=self._settings.remote_initial_backoff_seconds,
            max_backoff=self._settings.remote_max_backoff_seconds,
            retryable_exceptions=(RemoteUnavailableError,),
            description=f"document store {operation}",
        )

    def _decode(self, snapshot: DocumentSnapshot, model: type[T]) -> T:
        try:
            return model.model_validate(snapshot.data)
        except PydanticValidationError as e:
            raise DocumentDecodeError(snapshot.key, model.__name__, str(e)) from e

    def _cached_as(self, key: str, entry: CacheEntry, model: type[T]) -> T:
        if not isinstance(entry.value, model):
            raise DocumentDecodeError(
                key,
                model.__name__,
                f"cached value is a {type(entry.value).__name__}",
            )
        return entry.value

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def set_document(
        self,
        collection: str,
        document_id: str,
        value: BaseModel,
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Upsert a document. Last writer wins unless ``expected_version`` is given.

        Conditional writes are not retried: a retry after an ambiguous
        transport failure could report a conflict with our own write.
        """
        key = self.cache_key(collection, document_id)
        data = value.model_dump(mode="json", by_alias=True)
        version = await self._remote(
            "set",
            lambda: self._backend.set(collection, document_id, data, expected_version),
            retry=expected_version is None,
        )
        self._cache.put(key, value, version)
        logger.debug(f"Stored {key} (version {version})")
        return version

    async def get_document(
        self, collection: str, document_id: str, model: type[T]
    ) -> Optional[T]:
        key = self.cache_key(collection, document_id)
        entry = self._cache.get(key)
        if entry is not None:
            logger.debug(f"Cache hit: {key}")
            return self._cached_as(key, entry, model)

        logger.debug(f"Cache miss: {key}")
        snapshot = await self._remote("get", lambda: self._backend.get(collection, document_id))
        if snapshot is None:
            return None

        value = self._decode(snapshot, model)
        self._cache.put(key, value, snapshot.version)
        return value

    async def delete_document(self, collection: str, document_id: str) -> None:
        key = self.cache_key(collection, document_id)
        await self._remote("delete", lambda: self._backend.delete(collection, document_id))
        self._cache.evict(key)
        logger.debug(f"Deleted {key}")

    async def query_documents(
        self,
        collection: str,
        model: type[T],
        filters: Sequence[QueryFilter] = (),
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[T]:
        if limit is None:
            limit = self._settings.default_query_limit
        if limit < 1:
            raise ValueError(f"Query limit must be positive, got {limit}")
        limit = min(limit, self._settings.max_query_limit)

        snapshots = await self._remote(
            "query",
            lambda: self._backend.query(collection, list(filters), limit, order_by, descending),
        )
        if len(snapshots) >= self._settings.max_query_limit:
            logger.warning(
                f"Query on {collection} hit the limit of {limit} results; "
                f"further matches were not returned"
            )
        return [self._decode(snapshot, model) for snapshot in snapshots]

    async def update_document(
        self,
        collection: str,
        document_id: str,
        model: type[T],
        mutate: Callable[[T], Optional[T]],
    ) -> Optional[T]:
        """
        Read-modify-write one document atomically.

        Callers in this process are serialized per document; writers in other
        processes are detected through the version check and the whole cycle
        is retried with fresh data. ``mutate`` returning None (or the value it
        was given) means no write is needed. Exceptions raised by ``mutate``
        propagate unchanged and nothing is written.
        """
        key = self.cache_key(collection, document_id)
        lock = self._key_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[key] = lock
        attempts = self._settings.conflict_retries + 1

        async with lock:
            for attempt in range(attempts):
                snapshot = await self._remote(
                    "get", lambda: self._backend.get(collection, document_id)
                )
                if snapshot is None:
                    self._cache.evict(key)
                    return None

                current = self._decode(snapshot, model)
                updated = mutate(current)
                if updated is None or updated is current:
                    self._cache.put(key, current, snapshot.version)
                    return current

                data = updated.model_dump(mode="json", by_alias=True)
                try:
                    version = await self._remote(
                        "set",
                        lambda: self._backend.set(collection, document_id, data, snapshot.version),
                        retry=False,
                    )
                except VersionConflictError:
                    logger.warning(
                        f"Version conflict updating {key} "
                        f"(attempt {attempt + 1}/{attempts}), retrying with fresh data"
                    )
                    continue

                self._cache.put(key, updated, version)
                return updated

        logger.error(f"Giving up on {key} after {attempts} conflicting attempts")
        raise StoreConflictError(key, attempts)

    async def perform_batch(self, operations: Sequence[BatchOperation]) -> None:
        """
        Commit the operations atomically.

        Touched keys are evicted after the commit: ``update`` payloads are
        partial, so the cache cannot hold the merged result.
        """
        operations = list(operations)
        if not operations:
            return

        await self._remote("batch", lambda: self._backend.commit_batch(operations))
        for op in operations:
            self._cache.evict(op.key)
        logger.debug(f"Committed batch of {len(operations)} operation(s)")

    # -------------------------------------------------------------------------
    # Live sequences
    # -------------------------------------------------------------------------

    def listen_to_document(
        self, collection: str, document_id: str, model: type[T]
    ) -> LiveSequence[Optional[T]]:
        key = self.cache_key(collection, document_id)

        async def snapshots() -> AsyncGenerator[Optional[T], None]:
            watcher = self._backend.watch_document(collection, document_id)
            logger.debug(f"Listening to {key}")
            try:
                async for snapshot in watcher:
                    if snapshot is None:
                        self._cache.evict(key)
                        yield None
                        continue
                    value = self._decode(snapshot, model)
                    self._cache.put(key, value, snapshot.version)
                    yield value
            finally:
                await _close_iterator(watcher)
                logger.debug(f"Stopped listening to {key}")

        return LiveSequence(snapshots(), name=key)

    def listen_to_collection(
        self,
        collection: str,
        model: type[T],
        filters: Sequence[QueryFilter] = (),
    ) -> LiveSequence[list[T]]:
        filters = list(filters)

        async def result_sets() -> AsyncGenerator[list[T], None]:
            watcher = self._backend.watch_collection(collection, filters)
            logger.debug(f"Listening to collection {collection} ({len(filters)} filter(s))")
            try:
                async for snapshots in watcher:
                    values = []
                    for snapshot in snapshots:
                        value = self._decode(snapshot, model)
                        self._cache.put(snapshot.key, value, snapshot.version)
                        values.append(value)
                    yield values
            finally:
                await _close_iterator(watcher)
                logger.debug(f"Stopped listening to collection {collection}")

        return LiveSequence(result_sets(), name=collection)

    # -------------------------------------------------------------------------
    # Cache control
    # -------------------------------------------------------------------------

    def clear_cache(self, key: Optional[str] = None) -> None:
        if key is None:
            self._cache.clear()
            logger.debug("Cleared document cache")
        else:
            self._cache.evict(key)


async def _close_iterator(iterator: Any) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()


# Verify the implementation satisfies the interface
def _verify_interface(backend: IDocumentBackend) -> IDocumentStore:
    """Type check that DocumentStore implements IDocumentStore."""
    store: IDocumentStore = DocumentStore(backend)
    return store
