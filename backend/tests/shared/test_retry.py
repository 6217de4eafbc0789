"""Tests for shared/retry.py."""

import pytest

from shared.retry import retry_async


class Flaky:
    def __init__(self, failures: int, error: Exception):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestRetryAsync:
    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        func = Flaky(0, ConnectionError("down"))
        assert await retry_async(func, initial_backoff=0) == "ok"
        assert func.calls == 1

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self):
        func = Flaky(2, ConnectionError("down"))
        assert await retry_async(func, max_retries=3, initial_backoff=0) == "ok"
        assert func.calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        func = Flaky(10, ConnectionError("down"))
        with pytest.raises(ConnectionError):
            await retry_async(func, max_retries=2, initial_backoff=0)
        assert func.calls == 3

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        func = Flaky(1, ValueError("bad input"))
        with pytest.raises(ValueError):
            await retry_async(func, max_retries=3, initial_backoff=0)
        assert func.calls == 1
