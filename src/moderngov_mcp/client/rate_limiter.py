"""Per-origin request spacing for upstream ModernGov servers."""

import asyncio
import time
from collections.abc import Awaitable, Callable

from moderngov_mcp.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Admission gate enforcing a minimum interval between requests per origin.

    Calls for the same origin are serialized by a per-origin lock, and the
    elapsed time is re-read after every sleep. Calls for different origins
    never wait on each other.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, origin: str) -> asyncio.Lock:
        lock = self._locks.get(origin)
        if lock is None:
            lock = self._locks[origin] = asyncio.Lock()
        return lock

    async def wait(self, origin: str) -> None:
        """Suspend until origin may be contacted again, then claim the slot."""
        async with self._lock_for(origin):
            while True:
                last = self._last_request.get(origin)
                if last is None:
                    break
                remaining = self.min_interval - (self._clock() - last)
                if remaining <= 0:
                    break
                logger.debug("rate limit wait", origin=origin, seconds=round(remaining, 3))
                await self._sleep(remaining)
            self._last_request[origin] = self._clock()
