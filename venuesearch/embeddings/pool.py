from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class BoundedTaskPool:
    """Run coroutines with at most ``max_concurrency`` of them in flight.

    Work beyond the ceiling waits on a semaphore and is admitted in submission
    order as slots free up.
    """

    def __init__(self, max_concurrency: int) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._active = 0
        self.peak = 0

    @property
    def active(self) -> int:
        return self._active

    async def run(self, fn: Callable[..., Awaitable[ResultT]], *args: object) -> ResultT:
        async with self._semaphore:
            self._active += 1
            self.peak = max(self.peak, self._active)
            try:
                return await fn(*args)
            finally:
                self._active -= 1

    async def map(
        self,
        fn: Callable[[ItemT], Awaitable[ResultT]],
        items: Iterable[ItemT],
    ) -> list[ResultT]:
        """Apply ``fn`` to every item through the pool, results in input order."""
        return list(await asyncio.gather(*(self.run(fn, item) for item in items)))
