"""Tests for the in-memory document backend."""

import pytest

from store.exceptions import BatchCommitError, RemoteUnavailableError, VersionConflictError
from store.memory_backend import InMemoryDocumentBackend
from store.models import BatchOperation, QueryFilter


class TestInMemoryDocumentBackend:
    @pytest.mark.asyncio
    async def test_set_and_get(self):
        backend = InMemoryDocumentBackend()
        version = await backend.set("users", "u1", {"name": "Alice"})

        snapshot = await backend.get("users", "u1")

        assert snapshot.data == {"name": "Alice"}
        assert snapshot.version == version == 1

    @pytest.mark.asyncio
    async def test_stored_data_is_copied(self):
        backend = InMemoryDocumentBackend()
        data = {"tags": ["a"]}
        await backend.set("users", "u1", data)
        data["tags"].append("b")

        assert (await backend.get("users", "u1")).data == {"tags": ["a"]}

    @pytest.mark.asyncio
    async def test_expected_version(self):
        backend = InMemoryDocumentBackend()
        await backend.set("users", "u1", {"n": 1}, expected_version=0)

        with pytest.raises(VersionConflictError) as exc_info:
            await backend.set("users", "u1", {"n": 2}, expected_version=5)
        assert exc_info.value.details["actual_version"] == 1

    @pytest.mark.asyncio
    async def test_fail_next(self):
        backend = InMemoryDocumentBackend()
        backend.fail_next(RemoteUnavailableError("get"))

        with pytest.raises(RemoteUnavailableError):
            await backend.get("users", "u1")
        assert await backend.get("users", "u1") is None
        assert backend.calls["get"] == 2

    @pytest.mark.asyncio
    async def test_query_ordering(self):
        backend = InMemoryDocumentBackend()
        await backend.set("messages", "m1", {"c": "x", "createdAt": "2024-01-02"})
        await backend.set("messages", "m2", {"c": "x", "createdAt": "2024-01-01"})
        await backend.set("messages", "m3", {"c": "y", "createdAt": "2024-01-03"})

        results = await backend.query(
            "messages", [QueryFilter(field="c", value="x")], limit=10, order_by="createdAt", descending=True
        )

        assert [s.id for s in results] == ["m1", "m2"]

    @pytest.mark.asyncio
    async def test_batch_applies_in_order(self):
        backend = InMemoryDocumentBackend()
        await backend.set("users", "u1", {"name": "Alice", "age": 30})

        await backend.commit_batch(
            [
                BatchOperation.update_fields("users", "u1", {"age": 31}),
                BatchOperation.update_fields("users", "u1", {"city": "Oslo"}),
                BatchOperation.delete_document("users", "u2"),
            ]
        )

        snapshot = await backend.get("users", "u1")
        assert snapshot.data == {"name": "Alice", "age": 31, "city": "Oslo"}

    @pytest.mark.asyncio
    async def test_rejected_batch_changes_nothing(self):
        backend = InMemoryDocumentBackend()
        await backend.set("users", "u1", {"name": "Alice"})

        with pytest.raises(BatchCommitError):
            await backend.commit_batch(
                [
                    BatchOperation.update_fields("users", "u1", {"name": "Changed"}),
                    BatchOperation.update_fields("users", "missing", {"name": "x"}),
                ]
            )

        snapshot = await backend.get("users", "u1")
        assert snapshot.data == {"name": "Alice"}
        assert snapshot.version == 1
