"""Duplicate call suppression for concurrent cache misses.

While a call for a key is in flight, later callers for the same key wait
for that call instead of starting their own; all of them observe the same
result or exception. Nothing is remembered once the call finishes.

The shared call runs as its own task. Cancelling one waiter does not
cancel it, since other waiters may still depend on the result.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


class SingleFlight:
    def __init__(self) -> None:
        self._calls: dict[str, asyncio.Future[Any]] = {}

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` unless a call for ``key`` is already running; await its outcome."""
        call = self._calls.get(key)
        if call is None:
            call = asyncio.ensure_future(fn())
            self._calls[key] = call
            call.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(call)

    def _forget(self, key: str, call: asyncio.Future[Any]) -> None:
        if self._calls.get(key) is call:
            del self._calls[key]
        # Mark the outcome as retrieved even if every waiter went away
        if not call.cancelled():
            call.exception()

    def in_flight(self, key: str) -> bool:
        return key in self._calls
