"""
Concurrency limiter capping simultaneous fetch pipelines.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

T = TypeVar("T")


class ConcurrencyLimiter:
    """
    Admits at most ``limit`` concurrent runs; the rest queue in FIFO order.

    A limiter is an explicit object so independent extractors can either own
    separate pools or deliberately share one.
    """

    def __init__(self, limit: int = 3) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._peak = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak(self) -> int:
        """Highest number of simultaneous runs observed."""
        return self._peak

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._semaphore:
            self._in_flight += 1
            self._peak = max(self._peak, self._in_flight)
            try:
                yield
            finally:
                self._in_flight -= 1

    async def run(self, fn: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        async with self.slot():
            return await fn(*args, **kwargs)
