"""
In-memory document database.

For testing and development. Use SupabaseDocumentBackend for production.
Change notifications are pushed to watchers through per-subscriber queues,
so listeners see writes in the order they were applied.
"""

import asyncio
import copy
import logging
from collections import Counter, defaultdict
from typing import Any, AsyncIterator, Optional, Sequence

from .exceptions import BatchCommitError, VersionConflictError
from .models import BatchOperation, BatchOperationType, DocumentSnapshot, QueryFilter

logger = logging.getLogger(__name__)


class InMemoryDocumentBackend:
    """
    Dict-backed implementation of IDocumentBackend.

    Versions are per key and never reused, even across delete and re-create.
    ``fail_next`` queues exceptions to raise from the next remote calls and
    ``calls`` counts round trips, which tests use to observe cache behaviour.
    """

    def __init__(self, latency: float = 0.0):
        self._documents: dict[str, dict[str, DocumentSnapshot]] = defaultdict(dict)
        self._versions: Counter[str] = Counter()
        self._document_watchers: dict[str, list[asyncio.Queue]] = defaultdict(list)
        self._collection_watchers: list[tuple[str, list[QueryFilter], asyncio.Queue]] = []
        self._failures: list[BaseException] = []
        self.latency = latency
        self.calls: Counter[str] = Counter()

    @property
    def active_watchers(self) -> int:
        return sum(len(queues) for queues in self._document_watchers.values()) + len(
            self._collection_watchers
        )

    def fail_next(self, error: BaseException, times: int = 1) -> None:
        """Raise ``error`` from the next ``times`` remote calls."""
        self._failures.extend([error] * times)

    def document_count(self, collection: str) -> int:
        return len(self._documents.get(collection, {}))

    async def _round_trip(self, operation: str) -> None:
        self.calls[operation] += 1
        if self.latency:
            await asyncio.sleep(self.latency)
        if self._failures:
            raise self._failures.pop(0)

    @staticmethod
    def _key(collection: str, document_id: str) -> str:
        return f"{collection}/{document_id}"

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def get(self, collection: str, document_id: str) -> Optional[DocumentSnapshot]:
        await self._round_trip("get")
        return self._documents[collection].get(document_id)

    async def set(
        self,
        collection: str,
        document_id: str,
        data: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        await self._round_trip("set")
        key = self._key(collection, document_id)
        current = self._documents[collection].get(document_id)
        current_version = current.version if current else 0
        if expected_version is not None and expected_version != current_version:
            raise VersionConflictError(key, expected_version, current_version)

        snapshot = self._write(collection, document_id, data)
        self._notify(collection, document_id)
        return snapshot.version

    async def delete(self, collection: str, document_id: str) -> None:
        await self._round_trip("delete")
        if self._documents[collection].pop(document_id, None) is not None:
            self._notify(collection, document_id)

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter],
        limit: int,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[DocumentSnapshot]:
        await self._round_trip("query")
        return self._run_query(collection, filters, limit, order_by, descending)

    async def commit_batch(self, operations: Sequence[BatchOperation]) -> None:
        await self._round_trip("batch")

        # Stage every write first so a rejected operation leaves nothing applied.
        staged: dict[tuple[str, str], Optional[dict[str, Any]]] = {}
        for op in operations:
            slot = (op.collection, op.document_id)
            if slot in staged:
                existing = staged[slot]
            else:
                snapshot = self._documents[op.collection].get(op.document_id)
                existing = snapshot.data if snapshot else None

            if op.type == BatchOperationType.SET:
                staged[slot] = copy.deepcopy(op.data)
            elif op.type == BatchOperationType.UPDATE:
                if existing is None:
                    raise BatchCommitError(
                        f"cannot update missing document {op.key}",
                        details={"key": op.key},
                    )
                staged[slot] = {**existing, **copy.deepcopy(op.data)}
            else:
                staged[slot] = None

        for (collection, document_id), data in staged.items():
            if data is None:
                self._documents[collection].pop(document_id, None)
            else:
                self._write(collection, document_id, data)

        for collection, document_id in staged:
            self._notify(collection, document_id)

    # -------------------------------------------------------------------------
    # Watchers
    # -------------------------------------------------------------------------

    async def watch_document(
        self, collection: str, document_id: str
    ) -> AsyncIterator[Optional[DocumentSnapshot]]:
        key = self._key(collection, document_id)
        queue: asyncio.Queue = asyncio.Queue()
        self._document_watchers[key].append(queue)
        try:
            yield self._documents[collection].get(document_id)
            while True:
                yield await queue.get()
        finally:
            self._document_watchers[key].remove(queue)
            if not self._document_watchers[key]:
                del self._document_watchers[key]

    async def watch_collection(
        self, collection: str, filters: Sequence[QueryFilter]
    ) -> AsyncIterator[list[DocumentSnapshot]]:
        queue: asyncio.Queue = asyncio.Queue()
        entry = (collection, list(filters), queue)
        self._collection_watchers.append(entry)
        try:
            yield self._run_query(collection, filters, limit=None)
            while True:
                yield await queue.get()
        finally:
            self._collection_watchers.remove(entry)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _write(self, collection: str, document_id: str, data: dict[str, Any]) -> DocumentSnapshot:
        key = self._key(collection, document_id)
        self._versions[key] += 1
        snapshot = DocumentSnapshot(
            collection=collection,
            id=document_id,
            data=copy.deepcopy(data),
            version=self._versions[key],
        )
        self._documents[collection][document_id] = snapshot
        return snapshot

    def _run_query(
        self,
        collection: str,
        filters: Sequence[QueryFilter],
        limit: Optional[int],
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[DocumentSnapshot]:
        matches = [
            snapshot
            for snapshot in self._documents[collection].values()
            if all(f.matches(snapshot.data) for f in filters)
        ]
        if order_by:
            present = [s for s in matches if s.data.get(order_by) is not None]
            missing = [s for s in matches if s.data.get(order_by) is None]
            present.sort(key=lambda s: s.data[order_by], reverse=descending)
            matches = present + missing
        return matches if limit is None else matches[:limit]

    def _notify(self, collection: str, document_id: str) -> None:
        snapshot = self._documents[collection].get(document_id)
        for queue in self._document_watchers.get(self._key(collection, document_id), []):
            queue.put_nowait(snapshot)
        for watched, filters, queue in self._collection_watchers:
            if watched == collection:
                queue.put_nowait(self._run_query(collection, filters, limit=None))
