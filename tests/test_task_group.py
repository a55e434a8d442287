# tests/test_task_group.py
"""Fail-fast task group and retry helper tests."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from unittest.mock import AsyncMock, patch
from clipvault.utils.retry import retry_linear
from clipvault.utils.task_group import ErrGroup


class TestErrGroup:
    @pytest.mark.asyncio
    async def test_first_error_raised_after_all_finish(self):
        finished = []

        async def work(i):
            await asyncio.sleep(0.01 * i)
            if i in (1, 3):
                raise ValueError(f"task {i}")
            finished.append(i)

        group = ErrGroup()
        for i in range(5):
            group.go(work, i)
        with pytest.raises(ValueError, match="task 1"):
            await group.wait()
        assert sorted(finished) == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_limit_bounds_concurrency(self):
        running, peak = 0, 0

        async def work():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        group = ErrGroup(limit=3)
        for _ in range(10):
            group.go(work)
        await group.wait()
        assert peak == 3
        assert len(group) == 10

    @pytest.mark.asyncio
    async def test_permit_released_on_failure(self):
        async def fail():
            raise RuntimeError("boom")

        group = ErrGroup(limit=1)
        group.go(fail)
        ok = group.go(asyncio.sleep, 0, "done")
        with pytest.raises(RuntimeError):
            await group.wait()
        assert ok.result() == "done"

    @pytest.mark.asyncio
    async def test_empty_group(self):
        await ErrGroup().wait()


class TestRetry:
    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        fn = AsyncMock(side_effect=[OSError("busy"), OSError("busy"), "ok"])
        with patch("clipvault.utils.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            assert await retry_linear(fn, attempts=3, backoff=0.5) == "ok"
        assert [c.args[0] for c in mock_sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_gives_up(self):
        fn = AsyncMock(side_effect=OSError("busy"))
        with patch("clipvault.utils.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(OSError):
                await retry_linear(fn, attempts=3)
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_non_retryable_raised_at_once(self):
        fn = AsyncMock(side_effect=FileNotFoundError("gone"))
        with pytest.raises(FileNotFoundError):
            await retry_linear(fn, retry_on=(PermissionError,))
        assert fn.await_count == 1
