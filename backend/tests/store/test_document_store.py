"""Tests for the cache-augmented document store."""

import asyncio
import logging
from uuid import uuid4

import pytest

from shared.models import User
from store.document_store import DocumentStore
from store.exceptions import (
    BatchCommitError,
    DocumentDecodeError,
    RemoteTimeoutError,
    RemoteUnavailableError,
    StoreConflictError,
    VersionConflictError,
)
from store.memory_backend import InMemoryDocumentBackend
from store.models import BatchOperation, Collections, FilterOp, QueryFilter

from modules.groups.models import Group


def make_user(name: str = "Alice") -> User:
    return User(id=uuid4(), name=name, email=f"{name.lower()}@example.com")


class TestReadsAndCache:
    @pytest.mark.asyncio
    async def test_read_after_write_served_from_cache(self, store, backend):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        fetched = await store.get_document(Collections.USERS, str(user.id), User)

        assert fetched == user
        assert backend.calls["get"] == 0

    @pytest.mark.asyncio
    async def test_cache_miss_fetches_once(self, store, backend):
        user = make_user()
        await backend.set(Collections.USERS, str(user.id), user.to_document())

        first = await store.get_document(Collections.USERS, str(user.id), User)
        second = await store.get_document(Collections.USERS, str(user.id), User)

        assert first == second == user
        assert backend.calls["get"] == 1

    @pytest.mark.asyncio
    async def test_absent_document_is_none(self, store):
        assert await store.get_document(Collections.USERS, str(uuid4()), User) is None

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, store, backend, clock):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)
        renamed = user.model_copy(update={"name": "Alicia"})
        await backend.set(Collections.USERS, str(user.id), renamed.to_document())

        clock.advance(299)
        assert (await store.get_document(Collections.USERS, str(user.id), User)).name == "Alice"

        clock.advance(1)
        assert (await store.get_document(Collections.USERS, str(user.id), User)).name == "Alicia"

    @pytest.mark.asyncio
    async def test_clear_cache_forces_refetch(self, store, backend):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        store.clear_cache()
        await store.get_document(Collections.USERS, str(user.id), User)
        store.clear_cache(DocumentStore.cache_key(Collections.USERS, str(user.id)))
        await store.get_document(Collections.USERS, str(user.id), User)

        assert backend.calls["get"] == 2

    @pytest.mark.asyncio
    async def test_failed_write_leaves_cache_untouched(self, store, backend):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)
        backend.fail_next(BatchCommitError("rejected"))

        with pytest.raises(BatchCommitError):
            await store.set_document(
                Collections.USERS, str(user.id), user.model_copy(update={"name": "Changed"})
            )

        cached = await store.get_document(Collections.USERS, str(user.id), User)
        assert cached.name == "Alice"

    @pytest.mark.asyncio
    async def test_cached_type_mismatch_is_decode_error(self, store):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        with pytest.raises(DocumentDecodeError):
            await store.get_document(Collections.USERS, str(user.id), Group)

    @pytest.mark.asyncio
    async def test_remote_type_mismatch_is_decode_error(self, store, backend):
        await backend.set(Collections.GROUPS, "g1", {"description": "no name or admin"})

        with pytest.raises(DocumentDecodeError) as exc_info:
            await store.get_document(Collections.GROUPS, "g1", Group)
        assert exc_info.value.details["key"] == "groups/g1"

    @pytest.mark.asyncio
    async def test_delete_evicts(self, store):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        await store.delete_document(Collections.USERS, str(user.id))
        await store.delete_document(Collections.USERS, str(user.id))

        assert await store.get_document(Collections.USERS, str(user.id), User) is None


class TestRemoteFailures:
    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self, store, backend):
        user = make_user()
        backend.fail_next(RemoteUnavailableError("set"), times=2)

        await store.set_document(Collections.USERS, str(user.id), user)

        assert backend.calls["set"] == 3
        assert backend.document_count(Collections.USERS) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, store, backend):
        backend.fail_next(RemoteUnavailableError("get"), times=5)

        with pytest.raises(RemoteUnavailableError):
            await store.get_document(Collections.USERS, "u1", User)
        assert backend.calls["get"] == 3

    @pytest.mark.asyncio
    async def test_slow_remote_times_out(self, settings):
        backend = InMemoryDocumentBackend(latency=0.2)
        store = DocumentStore(backend, settings.model_copy(update={"remote_timeout_seconds": 0.05}))

        with pytest.raises(RemoteTimeoutError):
            await store.get_document(Collections.USERS, "u1", User)


class TestQueries:
    @pytest.mark.asyncio
    async def test_filters_and_limit(self, store):
        admin = uuid4()
        for i in range(5):
            group = Group(id=uuid4(), name=f"Group {i}", admin_id=admin)
            await store.set_document(Collections.GROUPS, str(group.id), group)
        other = Group(id=uuid4(), name="Other", admin_id=uuid4())
        await store.set_document(Collections.GROUPS, str(other.id), other)

        results = await store.query_documents(
            Collections.GROUPS, Group, [QueryFilter(field="adminId", value=str(admin))], limit=3
        )

        assert len(results) == 3
        assert all(g.admin_id == admin for g in results)

    @pytest.mark.asyncio
    async def test_array_contains(self, store):
        member = uuid4()
        joined = Group(id=uuid4(), name="Joined", admin_id=uuid4(), member_ids=[member])
        other = Group(id=uuid4(), name="Other", admin_id=uuid4())
        for group in (joined, other):
            await store.set_document(Collections.GROUPS, str(group.id), group)

        results = await store.query_documents(
            Collections.GROUPS,
            Group,
            [QueryFilter(field="memberIds", value=str(member), op=FilterOp.ARRAY_CONTAINS)],
        )

        assert [g.id for g in results] == [joined.id]

    @pytest.mark.asyncio
    async def test_default_and_maximum_limits(self, store, backend, settings):
        for i in range(settings.default_query_limit + 5):
            user = make_user(f"User{i}")
            await store.set_document(Collections.USERS, str(user.id), user)

        default = await store.query_documents(Collections.USERS, User)
        clamped = await store.query_documents(Collections.USERS, User, limit=10_000)

        assert len(default) == settings.default_query_limit
        assert len(clamped) == settings.default_query_limit + 5

    @pytest.mark.asyncio
    async def test_full_result_set_is_logged(self, backend, settings, clock, caplog):
        capped = settings.model_copy(update={"max_query_limit": 2})
        store = DocumentStore(backend, capped, clock=clock)
        for i in range(3):
            user = make_user(f"User{i}")
            await store.set_document(Collections.USERS, str(user.id), user)

        with caplog.at_level(logging.WARNING, logger="store.document_store"):
            results = await store.query_documents(Collections.USERS, User, limit=2)

        assert len(results) == 2
        assert "hit the limit of 2" in caplog.text

    @pytest.mark.asyncio
    async def test_non_positive_limit_rejected(self, store):
        with pytest.raises(ValueError):
            await store.query_documents(Collections.USERS, User, limit=0)

    @pytest.mark.asyncio
    async def test_queries_bypass_cache(self, store, backend):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        await store.query_documents(Collections.USERS, User)
        await store.query_documents(Collections.USERS, User)

        assert backend.calls["query"] == 2


class TestConditionalWrites:
    @pytest.mark.asyncio
    async def test_create_only_when_absent(self, store):
        user = make_user()
        version = await store.set_document(Collections.USERS, str(user.id), user, expected_version=0)
        assert version >= 1

        with pytest.raises(VersionConflictError):
            await store.set_document(Collections.USERS, str(user.id), user, expected_version=0)

    @pytest.mark.asyncio
    async def test_stale_version_rejected(self, store):
        user = make_user()
        first = await store.set_document(Collections.USERS, str(user.id), user)
        await store.set_document(Collections.USERS, str(user.id), user)

        with pytest.raises(VersionConflictError):
            await store.set_document(Collections.USERS, str(user.id), user, expected_version=first)

    @pytest.mark.asyncio
    async def test_versions_are_never_reused(self, store):
        user = make_user()
        first = await store.set_document(Collections.USERS, str(user.id), user)
        await store.delete_document(Collections.USERS, str(user.id))
        second = await store.set_document(Collections.USERS, str(user.id), user)
        assert second > first


class TestUpdateDocument:
    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self, store):
        group = Group(id=uuid4(), name="Hikers", admin_id=uuid4())
        await store.set_document(Collections.GROUPS, str(group.id), group)
        members = [uuid4() for _ in range(10)]

        await asyncio.gather(
            *(
                store.update_document(
                    Collections.GROUPS, str(group.id), Group, lambda g, m=m: g.adding(m)
                )
                for m in members
            )
        )

        store.clear_cache()
        stored = await store.get_document(Collections.GROUPS, str(group.id), Group)
        assert set(stored.member_ids) == set(members)

    @pytest.mark.asyncio
    async def test_retries_after_foreign_write(self, store, backend):
        group = Group(id=uuid4(), name="Hikers", admin_id=uuid4())
        await store.set_document(Collections.GROUPS, str(group.id), group)
        outsider, joiner = uuid4(), uuid4()
        raced = False

        def add_joiner(current: Group) -> Group:
            nonlocal raced
            if not raced:
                raced = True
                # Another process writes between our read and our write.
                foreign = current.adding(outsider)
                backend._write(Collections.GROUPS, str(group.id), foreign.to_document())
            return current.adding(joiner)

        updated = await store.update_document(Collections.GROUPS, str(group.id), Group, add_joiner)

        assert set(updated.member_ids) == {outsider, joiner}

    @pytest.mark.asyncio
    async def test_gives_up_when_always_conflicting(self, store, backend, settings):
        group = Group(id=uuid4(), name="Hikers", admin_id=uuid4())
        await store.set_document(Collections.GROUPS, str(group.id), group)

        def always_raced(current: Group) -> Group:
            backend._write(Collections.GROUPS, str(group.id), current.to_document())
            return current.adding(uuid4())

        with pytest.raises(StoreConflictError):
            await store.update_document(Collections.GROUPS, str(group.id), Group, always_raced)

    @pytest.mark.asyncio
    async def test_key_locks_released_after_updates(self, store):
        groups = [Group(id=uuid4(), name=f"G{i}", admin_id=uuid4()) for i in range(5)]
        for group in groups:
            await store.set_document(Collections.GROUPS, str(group.id), group)

        await asyncio.gather(
            *(
                store.update_document(
                    Collections.GROUPS, str(group.id), Group, lambda g: g.adding(uuid4())
                )
                for group in groups
                for _ in range(3)
            )
        )

        assert len(store._key_locks) == 0

    @pytest.mark.asyncio
    async def test_missing_document(self, store):
        result = await store.update_document(Collections.GROUPS, "missing", Group, lambda g: g)
        assert result is None

    @pytest.mark.asyncio
    async def test_mutate_errors_propagate_without_write(self, store, backend):
        group = Group(id=uuid4(), name="Hikers", admin_id=uuid4())
        await store.set_document(Collections.GROUPS, str(group.id), group)
        writes = backend.calls["set"]

        def refuse(current: Group) -> Group:
            raise PermissionError("nope")

        with pytest.raises(PermissionError):
            await store.update_document(Collections.GROUPS, str(group.id), Group, refuse)
        assert backend.calls["set"] == writes


class TestBatches:
    @pytest.mark.asyncio
    async def test_batch_is_all_or_nothing(self, store, backend):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        with pytest.raises(BatchCommitError):
            await store.perform_batch(
                [
                    BatchOperation.delete_document(Collections.USERS, str(user.id)),
                    BatchOperation.update_fields(Collections.GROUPS, "missing", {"name": "x"}),
                ]
            )

        store.clear_cache()
        assert await store.get_document(Collections.USERS, str(user.id), User) == user

    @pytest.mark.asyncio
    async def test_batch_evicts_touched_keys(self, store, backend):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        await store.perform_batch(
            [BatchOperation.update_fields(Collections.USERS, str(user.id), {"name": "Merged"})]
        )

        fetched = await store.get_document(Collections.USERS, str(user.id), User)
        assert fetched.name == "Merged"
        assert fetched.email == user.email

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self, store, backend):
        await store.perform_batch([])
        assert backend.calls["batch"] == 0


class TestListeners:
    @pytest.mark.asyncio
    async def test_document_listener_sees_writes_in_order(self, store, backend):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        async with store.listen_to_document(Collections.USERS, str(user.id), User) as updates:
            first = await asyncio.wait_for(updates.__anext__(), 1)
            await store.set_document(
                Collections.USERS, str(user.id), user.model_copy(update={"name": "Second"})
            )
            second = await asyncio.wait_for(updates.__anext__(), 1)
            await store.delete_document(Collections.USERS, str(user.id))
            gone = await asyncio.wait_for(updates.__anext__(), 1)

        assert first.name == "Alice"
        assert second.name == "Second"
        assert gone is None
        assert backend.active_watchers == 0

    @pytest.mark.asyncio
    async def test_listener_refreshes_cache(self, store, backend):
        user = make_user()
        await backend.set(Collections.USERS, str(user.id), user.to_document())

        async with store.listen_to_document(Collections.USERS, str(user.id), User) as updates:
            await asyncio.wait_for(updates.__anext__(), 1)

        await store.get_document(Collections.USERS, str(user.id), User)
        assert backend.calls["get"] == 0

    @pytest.mark.asyncio
    async def test_lagging_listener_keeps_newer_cache_entry(self, store, backend):
        user = make_user()
        await store.set_document(Collections.USERS, str(user.id), user)

        async with store.listen_to_document(Collections.USERS, str(user.id), User) as updates:
            await asyncio.wait_for(updates.__anext__(), 1)
            for name in ("v1", "v2"):
                await store.set_document(
                    Collections.USERS, str(user.id), user.model_copy(update={"name": name})
                )
            lagging = await asyncio.wait_for(updates.__anext__(), 1)

        cached = await store.get_document(Collections.USERS, str(user.id), User)
        assert lagging.name == "v1"
        assert cached.name == "v2"
        assert backend.calls["get"] == 0

    @pytest.mark.asyncio
    async def test_collection_listener(self, store, backend):
        admin = uuid4()
        filters = [QueryFilter(field="adminId", value=str(admin))]
        sequence = store.listen_to_collection(Collections.GROUPS, Group, filters)

        initial = await asyncio.wait_for(sequence.__anext__(), 1)
        group = Group(id=uuid4(), name="New", admin_id=admin)
        await store.set_document(Collections.GROUPS, str(group.id), group)
        updated = await asyncio.wait_for(sequence.__anext__(), 1)
        await sequence.aclose()

        assert initial == []
        assert [g.id for g in updated] == [group.id]
        assert backend.active_watchers == 0

    @pytest.mark.asyncio
    async def test_cancelled_consumer_unsubscribes(self, store, backend):
        sequence = store.listen_to_document(Collections.USERS, "u1", User)

        async def consume():
            async for _ in sequence:
                pass

        task = asyncio.create_task(consume())
        await asyncio.sleep(0.01)
        assert backend.active_watchers == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert backend.active_watchers == 0
