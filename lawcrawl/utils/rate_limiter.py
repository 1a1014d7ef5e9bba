"""Fixed-delay throttle for HTTP requests and crawl batches."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

Sleep = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Waits a fixed delay every time it is called.

    The delay is a floor between requests, not a backoff: it never grows.

    Args:
        delay: Seconds to wait per call.
        sleep: Coroutine used to wait; tests pass a recorder.
    """

    def __init__(self, delay: float = 2.0, sleep: Sleep | None = None):
        self.delay = delay
        self._sleep = sleep or asyncio.sleep

    async def wait(self) -> None:
        """Yield for the configured delay."""
        if self.delay > 0:
            await self._sleep(self.delay)
