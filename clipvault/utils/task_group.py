# clipvault/utils/task_group.py
"""
Fail-fast task group for fan-out I/O.

Every task runs to completion; the first exception raised by any of them is
remembered and re-raised by wait(). Siblings are never cancelled, so a failed
delete doesn't abandon deletes that are already in flight.

    group = ErrGroup(limit=10)
    for name in names:
        group.go(store.delete, name)
    await group.wait()
"""

import asyncio
from typing import Awaitable, Callable, Optional

from clipvault.utils.logger import get_logger

logger = get_logger(__name__)


class ErrGroup:
    def __init__(self, limit: Optional[int] = None, name: str = "group"):
        self.name = name
        self._sem = asyncio.Semaphore(limit) if limit else None
        self._tasks: list[asyncio.Task] = []
        self._error: Optional[BaseException] = None

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def __len__(self):
        return len(self._tasks)

    def go(self, fn: Callable[..., Awaitable], *args, **kwargs) -> asyncio.Task:
        """Schedule fn(*args, **kwargs). With a limit, it waits for a permit first."""
        task = asyncio.create_task(self._run(fn, *args, **kwargs))
        self._tasks.append(task)
        return task

    async def _run(self, fn, *args, **kwargs):
        try:
            if self._sem is None:
                return await fn(*args, **kwargs)
            async with self._sem:       # permit released even if fn raises
                return await fn(*args, **kwargs)
        except Exception as e:
            if self._error is None:
                self._error = e
            else:
                logger.debug(f"[{self.name}] additional task failure: {e}")
            return None

    async def wait(self):
        """Join every scheduled task, then raise the first error (if any)."""
        # Tasks may schedule more work while we wait
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                break
            await asyncio.gather(*pending)
        if self._error is not None:
            raise self._error
