"""Keyed deduplication of in-flight async operations ("singleflight").

The registry maps a key to the ``asyncio.Task`` running the operation.
The first caller for a key starts the task; every concurrent caller for
the same key awaits that same task and observes the same value or the
same exception.  The key is dropped inside the task itself, before the
task completes, so once any waiter sees the outcome a new call for that
key starts a fresh operation.

Safe for single-threaded asyncio only (no locks: registry mutations
happen between suspension points).
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

import structlog

log = structlog.get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def _consume_exception(task: asyncio.Task) -> None:
    # Waiters may all have been cancelled; mark the outcome as retrieved.
    if not task.cancelled():
        task.exception()


class SingleFlight(Generic[K, V]):
    """Registry of in-flight operations keyed by *K*.

    Args:
        name: Label used in log events to tell registries apart.
    """

    def __init__(self, name: str = "singleflight") -> None:
        self.name = name
        self._inflight: dict[K, asyncio.Task[V]] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    def __contains__(self, key: object) -> bool:
        return key in self._inflight

    def in_flight(self) -> list[K]:
        return list(self._inflight)

    async def do(self, key: K, fn: Callable[[], Awaitable[V]]) -> V:
        """Run *fn* for *key* unless a call for *key* is already running.

        *fn* is only invoked by the caller that starts the operation.  A
        cancelled waiter does not cancel the shared task.
        """
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._run(key, fn))
            task.add_done_callback(_consume_exception)
            self._inflight[key] = task
        else:
            log.debug("singleflight_shared", registry=self.name, key=key)
        return await asyncio.shield(task)

    async def _run(self, key: K, fn: Callable[[], Awaitable[V]]) -> V:
        try:
            return await fn()
        finally:
            self._inflight.pop(key, None)

    async def aclose(self) -> None:
        """Cancel and await every operation still in flight."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
