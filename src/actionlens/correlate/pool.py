"""Per-pass resolution pool.

A semaphore caps how many oracle calls run at once. Whichever in-flight
resolution settles first frees the next slot. One pool is created per pass;
nothing here is shared between passes.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Coroutine
from typing import Any

from actionlens.correlate.models import CancellationSignal


class ResolutionPool:
    """Bounded set of in-flight resolution tasks.

    limit=None makes the pool unbounded: acquire() never suspends.
    """

    def __init__(self, limit: int | None = None) -> None:
        if limit is not None and limit < 1:
            raise ValueError(f"pool limit must be positive, got {limit}")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit) if limit is not None else None
        self._tasks: set[asyncio.Task[Any]] = set()
        # The event loop only keeps weak references to tasks. Detached work that
        # nobody awaits any more is parked here until it settles.
        self._detached: set[asyncio.Future[Any]] = set()

    @property
    def in_flight(self) -> frozenset[asyncio.Task[Any]]:
        return frozenset(self._tasks)

    async def acquire(self, cancellation: CancellationSignal | None = None) -> bool:
        """Wait for a free slot.

        Returns False, holding no slot, when cancellation is signalled first.
        """
        if cancellation is not None and cancellation.cancelled:
            return False
        if self._semaphore is None:
            return True
        if cancellation is None:
            await self._semaphore.acquire()
            return True

        slot = asyncio.ensure_future(self._semaphore.acquire())
        cancelled = asyncio.ensure_future(cancellation.wait())
        try:
            await asyncio.wait({slot, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not slot.done():
                slot.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await slot

        got_slot = slot.done() and not slot.cancelled()
        if got_slot and cancellation.cancelled:
            self.release()
            return False
        return got_slot

    def release(self) -> None:
        if self._semaphore is not None:
            self._semaphore.release()

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run coro as a task that owns an already acquired slot."""

        async def _run() -> Any:
            try:
                return await coro
            finally:
                self.release()

        task = asyncio.ensure_future(_run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every task in flight right now.

        Does not cancel them if the waiting coroutine itself is cancelled.
        """
        snapshot = list(self._tasks)
        if snapshot:
            await asyncio.wait(snapshot)

    @property
    def detached(self) -> frozenset[asyncio.Future[Any]]:
        return frozenset(self._detached)

    def _consume_outcome(self, task: asyncio.Future[Any]) -> None:
        self._detached.discard(task)
        if not task.cancelled():
            # Mark the exception as retrieved so the loop does not report it
            task.exception()

    def detach(self, task: asyncio.Future[Any]) -> None:
        """Let task run to completion unobserved, discarding its result or error."""
        if task.done():
            self._consume_outcome(task)
            return
        self._detached.add(task)
        task.add_done_callback(self._consume_outcome)

    def abandon(self) -> None:
        """Stop tracking in-flight tasks and let them finish on their own."""
        for task in list(self._tasks):
            self.detach(task)
        self._tasks.clear()
