"""
Cancellable live sequences.

A LiveSequence wraps an async generator that holds a remote subscription.
Closing it (explicitly, by leaving an ``async with`` block, or by cancelling
the consuming task) runs the generator's cleanup, which unsubscribes.
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveSequence(Generic[T]):
    """
    Unbounded async sequence of updates with explicit unsubscribe.

    Usage:
        async with store.listen_to_document("groups", gid, Group) as updates:
            async for group in updates:
                ...
    """

    def __init__(self, source: AsyncGenerator[T, None], name: str = "live"):
        self._source = source
        self._name = name
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "LiveSequence[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._source.__anext__()
        except StopAsyncIteration:
            self._closed = True
            raise
        except asyncio.CancelledError:
            # Cancellation unwinds the generator; make sure it is finalized.
            await self.aclose()
            raise

    async def aclose(self) -> None:
        """Stop the sequence and release its remote subscription."""
        if self._closed:
            return
        self._closed = True
        await self._source.aclose()
        logger.debug(f"Live sequence closed: {self._name}")

    async def __aenter__(self) -> "LiveSequence[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def combine_latest(*sequences: LiveSequence[Any], name: str = "combined") -> LiveSequence[tuple]:
    """
    Merge live sequences into one that yields the latest value of each.

    The first tuple is produced once every source has delivered a value;
    after that, every update from any source produces a new tuple. Closing
    the combined sequence closes all sources. A failure in any source is
    re-raised to the consumer.
    """

    async def combined() -> AsyncGenerator[tuple, None]:
        queue: asyncio.Queue = asyncio.Queue()
        latest: list[Any] = [_PENDING] * len(sequences)

        async def pump(index: int, sequence: LiveSequence[Any]) -> None:
            try:
                async for value in sequence:
                    queue.put_nowait((index, value, None))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                queue.put_nowait((index, None, e))

        tasks = [asyncio.create_task(pump(i, seq)) for i, seq in enumerate(sequences)]
        try:
            while True:
                index, value, error = await queue.get()
                if error is not None:
                    raise error
                latest[index] = value
                if all(v is not _PENDING for v in latest):
                    yield tuple(latest)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            for sequence in sequences:
                if not sequence.closed:
                    await sequence.aclose()

    return LiveSequence(combined(), name=name)


_PENDING = object()
