"""
Supabase-backed document database.

All collections share one Postgres table (see migrations/001_documents.sql).
Conditional writes and batches run inside SQL functions so each is a single
transaction. Supabase realtime is not used; watchers poll and emit only when
the observed versions change.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Optional, Sequence

from postgrest.exceptions import APIError
from supabase import Client

from shared.repository import BaseRepository

from .exceptions import BatchCommitError, RemoteUnavailableError, VersionConflictError
from .models import BatchOperation, DocumentSnapshot, FilterOp, QueryFilter

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "documents"
DEFAULT_POLL_INTERVAL = 2.0


class SupabaseDocumentBackend(BaseRepository[DocumentSnapshot]):
    """IDocumentBackend over a Supabase ``documents`` table."""

    def __init__(
        self,
        db: Client,
        table: str = DEFAULT_TABLE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        super().__init__(db)
        self._table_name = table
        self._poll_interval = poll_interval
        self._active_watchers = 0

    @property
    def active_watchers(self) -> int:
        return self._active_watchers

    def _table(self):
        return self._db.table(self._table_name)

    def _translate_error(self, operation: str, error: Exception) -> Exception:
        if operation == "batch" and isinstance(error, APIError):
            return BatchCommitError(error.message or str(error), details={"code": error.code})
        return RemoteUnavailableError(operation, error)

    def _map_to_snapshot(self, row: dict[str, Any]) -> DocumentSnapshot:
        return DocumentSnapshot(
            collection=row["collection"],
            id=row["id"],
            data=row.get("data") or {},
            version=row["version"],
        )

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def get(self, collection: str, document_id: str) -> Optional[DocumentSnapshot]:
        result = await self._execute(
            "get",
            lambda: self._table()
            .select("collection, id, data, version")
            .eq("collection", collection)
            .eq("id", document_id)
            .limit(1),
        )
        if not result.data:
            return None
        return self._map_to_snapshot(result.data[0])

    async def set(
        self,
        collection: str,
        document_id: str,
        data: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        result = await self._execute(
            "set",
            lambda: self._db.rpc(
                "set_document_versioned",
                {
                    "p_collection": collection,
                    "p_id": document_id,
                    "p_data": data,
                    "p_expected_version": expected_version,
                },
            ),
        )
        outcome = result.data or {}
        if not outcome.get("applied"):
            raise VersionConflictError(
                f"{collection}/{document_id}",
                expected_version if expected_version is not None else -1,
                int(outcome.get("version") or 0),
            )
        return int(outcome["version"])

    async def delete(self, collection: str, document_id: str) -> None:
        await self._execute(
            "delete",
            lambda: self._table()
            .delete()
            .eq("collection", collection)
            .eq("id", document_id),
        )

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter],
        limit: int,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[DocumentSnapshot]:
        def build():
            query = self._apply_filters(
                self._table().select("collection, id, data, version").eq("collection", collection),
                filters,
            )
            if order_by:
                query = query.order(f"data->>{order_by}", desc=descending)
            return query.limit(limit)

        result = await self._execute("query", build)
        return [self._map_to_snapshot(row) for row in result.data or []]

    async def commit_batch(self, operations: Sequence[BatchOperation]) -> None:
        payload = [op.model_dump(mode="json") for op in operations]
        await self._execute(
            "batch",
            lambda: self._db.rpc("apply_document_batch", {"p_operations": payload}),
        )

    @staticmethod
    def _apply_filters(query, filters: Sequence[QueryFilter]):
        for f in filters:
            if f.op == FilterOp.ARRAY_CONTAINS:
                query = query.filter(f"data->{f.field}", "cs", json.dumps([f.value]))
            elif f.op == FilterOp.LESS_EQUAL:
                query = query.lte(f"data->>{f.field}", f.value)
            elif f.op == FilterOp.GREATER_EQUAL:
                query = query.gte(f"data->>{f.field}", f.value)
            elif isinstance(f.value, bool) or f.value is None:
                # ->> renders booleans and null as text
                query = query.eq(f"data->>{f.field}", json.dumps(f.value))
            else:
                query = query.eq(f"data->>{f.field}", f.value)
        return query

    # -------------------------------------------------------------------------
    # Watchers
    # -------------------------------------------------------------------------

    async def watch_document(
        self, collection: str, document_id: str
    ) -> AsyncIterator[Optional[DocumentSnapshot]]:
        self._active_watchers += 1
        last_version: Any = _UNSEEN
        try:
            while True:
                try:
                    snapshot = await self.get(collection, document_id)
                except RemoteUnavailableError as e:
                    logger.warning(f"Polling {collection}/{document_id} failed: {e.message}")
                else:
                    version = snapshot.version if snapshot else None
                    if version != last_version:
                        last_version = version
                        yield snapshot
                await asyncio.sleep(self._poll_interval)
        finally:
            self._active_watchers -= 1

    async def watch_collection(
        self, collection: str, filters: Sequence[QueryFilter]
    ) -> AsyncIterator[list[DocumentSnapshot]]:
        self._active_watchers += 1
        last_signature: Any = _UNSEEN
        try:
            while True:
                try:
                    snapshots = await self._scan(collection, filters)
                except RemoteUnavailableError as e:
                    logger.warning(f"Polling collection {collection} failed: {e.message}")
                else:
                    signature = tuple((s.id, s.version) for s in snapshots)
                    if signature != last_signature:
                        last_signature = signature
                        yield snapshots
                await asyncio.sleep(self._poll_interval)
        finally:
            self._active_watchers -= 1

    async def _scan(
        self, collection: str, filters: Sequence[QueryFilter]
    ) -> list[DocumentSnapshot]:
        result = await self._execute(
            "watch",
            lambda: self._apply_filters(
                self._table().select("collection, id, data, version").eq("collection", collection),
                filters,
            ).order("id"),
        )
        return [self._map_to_snapshot(row) for row in result.data or []]


_UNSEEN = object()
