"""
Cooperative cancellation for in-flight fetches.

A ``CancellationSignal`` is owned by the caller and may be shared by every
URL of a batch. ``AbortScope`` composes such a signal with a per-request
timeout into a single internal signal that fires at most once, and releases
both the timer and the listener registration when the scope exits.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar

import structlog

from webdigest.exceptions import FetchAborted

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[], None]


class CancellationSignal:
    """A one-shot cancellation flag with listeners and an awaitable."""

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Optional[str] = None
        self._listeners: List[Listener] = []
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """Fire the signal. Calls after the first are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        self._event.set()
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.warning("Cancellation listener failed", error=str(e), error_type=type(e).__name__)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def wait(self) -> None:
        await self._event.wait()


class AbortScope:
    """
    Scope for a single fetch combining an external signal and a timeout.

    Usage::

        async with AbortScope(signal, timeout_ms=30000) as scope:
            response = await scope.run(session.get(url))
    """

    def __init__(self, signal: Optional[CancellationSignal], timeout_ms: int) -> None:
        self.external = signal
        self.timeout_ms = timeout_ms
        self._internal = CancellationSignal()
        self._timer: Optional[asyncio.TimerHandle] = None

    async def __aenter__(self) -> AbortScope:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.timeout_ms / 1000, self._internal.cancel, "timeout")
        if self.external is not None:
            self.external.add_listener(self._on_external_abort)
            if self.external.cancelled:
                self._internal.cancel("external")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the timer and the listener. Safe to call more than once."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.external is not None:
            self.external.remove_listener(self._on_external_abort)

    def _on_external_abort(self) -> None:
        self._internal.cancel("external")

    @property
    def aborted(self) -> bool:
        return self._internal.cancelled

    def raise_if_aborted(self) -> None:
        if self._internal.cancelled:
            raise FetchAborted(self._internal.reason or "external", self.timeout_ms)

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the scope aborts first.

        Raises:
            FetchAborted: if the external signal or the timeout fires before
                the awaitable finishes; the awaitable is cancelled.
        """
        task = asyncio.ensure_future(awaitable)
        if self._internal.cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            self.raise_if_aborted()

        waiter = asyncio.ensure_future(self._internal.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise FetchAborted(self._internal.reason or "external", self.timeout_ms)
