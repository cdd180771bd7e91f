"""Coalescing of identical in-flight requests."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCoalescer:
    """
    Share one in-flight call between every caller using the same key.

    The first caller starts the call; callers arriving while it is pending
    await the same future and get the same value or the same exception. The
    key is released as soon as the call settles, so a later call with the
    same key goes out again.

    The shared call is shielded: a waiter that gets cancelled does not cancel
    the request for the others.
    """

    def __init__(self) -> None:
        self._pending: Dict[Hashable, asyncio.Future] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._pending

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        future = self._pending.get(key)
        if future is None:
            future = asyncio.ensure_future(factory())
            self._pending[key] = future
            future.add_done_callback(lambda f, k=key: self._release(k, f))
        else:
            logger.info(f"Reusing pending request for {key}")
        return await asyncio.shield(future)

    def _release(self, key: Hashable, future: "asyncio.Future[Any]") -> None:
        if self._pending.get(key) is future:
            del self._pending[key]
        # Mark the exception as retrieved when every waiter has gone away
        if not future.cancelled():
            future.exception()
