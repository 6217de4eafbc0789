"""Tests for live sequences."""

import asyncio

import pytest

from store.live import LiveSequence, combine_latest


class Source:
    """Async generator with observable cleanup."""

    def __init__(self, items=None):
        self.items = items
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def run(self):
        try:
            if self.items is not None:
                for item in self.items:
                    yield item
                return
            while True:
                yield await self.queue.get()
        finally:
            self.closed = True

    def sequence(self, name: str = "test") -> LiveSequence:
        return LiveSequence(self.run(), name=name)


class TestLiveSequence:
    @pytest.mark.asyncio
    async def test_iterates_source(self):
        source = Source(items=[1, 2, 3])
        assert [value async for value in source.sequence()] == [1, 2, 3]
        assert source.closed

    @pytest.mark.asyncio
    async def test_aclose_runs_cleanup(self):
        source = Source()
        sequence = source.sequence()
        source.queue.put_nowait("a")
        assert await sequence.__anext__() == "a"

        await sequence.aclose()

        assert source.closed
        assert sequence.closed
        with pytest.raises(StopAsyncIteration):
            await sequence.__anext__()

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        source = Source()
        source.queue.put_nowait("a")
        async with source.sequence() as updates:
            async for value in updates:
                assert value == "a"
                break
        assert source.closed

    @pytest.mark.asyncio
    async def test_cancelling_consumer_closes_source(self):
        source = Source()
        sequence = source.sequence()

        async def consume():
            async for _ in sequence:
                pass

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert source.closed
        assert sequence.closed


class TestCombineLatest:
    @pytest.mark.asyncio
    async def test_waits_for_every_source_then_tracks_latest(self):
        left, right = Source(), Source()
        combined = combine_latest(left.sequence("left"), right.sequence("right"))

        left.queue.put_nowait("L1")
        right.queue.put_nowait("R1")
        assert await asyncio.wait_for(combined.__anext__(), 1) == ("L1", "R1")

        right.queue.put_nowait("R2")
        assert await asyncio.wait_for(combined.__anext__(), 1) == ("L1", "R2")

        await combined.aclose()
        assert left.closed and right.closed

    @pytest.mark.asyncio
    async def test_source_failure_reaches_consumer(self):
        async def failing():
            raise RuntimeError("listener broke")
            yield  # pragma: no cover

        ok = Source()
        combined = combine_latest(LiveSequence(failing()), ok.sequence())

        with pytest.raises(RuntimeError, match="listener broke"):
            await asyncio.wait_for(combined.__anext__(), 1)
        assert ok.closed
