"""Sliding-window admission gate for outbound fetches."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque

from .errors import InvalidConfigurationError

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW_S = 60.0


class RateLimiter:
    """Admit at most ``limit`` operations per trailing ``window`` seconds.

    One instance is shared by every worker of a crawl; callers are
    serialized through a single lock so the stored timestamps stay ordered.
    """

    def __init__(
        self,
        limit: int,
        *,
        window: float = DEFAULT_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if limit < 1:
            raise InvalidConfigurationError(f"rate limit must be >= 1, got {limit}")
        self.limit = limit
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        """Number of admissions recorded inside the current window."""
        return len(self._timestamps)

    async def admit(self) -> None:
        async with self._lock:
            now = self._clock()
            cutoff = now - self.window
            while self._timestamps and self._timestamps[0] <= cutoff:
                self._timestamps.popleft()

            if len(self._timestamps) >= self.limit:
                oldest = self._timestamps[0]
                wait_s = self.window - (now - oldest) + 1
                if wait_s > 0:
                    LOGGER.debug("Rate limit reached; waiting %.1fs", wait_s)
                    await self._sleep(wait_s)
                    now = self._clock()

            self._timestamps.append(now)
