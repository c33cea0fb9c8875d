"""
Minimum-interval rate limiting for source adapters.

Each adapter instance owns one RateLimiter; callers suspend until the
configured interval has passed since the previous request.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Monotonic time-of-last-request gate.

    No two ``wait()`` calls on the same instance return closer together than
    ``min_interval`` seconds. Waiters are serialized by an asyncio lock, so
    concurrent callers are released one interval apart.

    Example:
        ```python
        limiter = RateLimiter(min_interval=1.0)
        await limiter.wait()   # returns immediately
        await limiter.wait()   # suspends ~1s
        ```
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            min_interval: Minimum seconds between two requests
            clock: Monotonic clock (injectable for tests)
            sleep: Coroutine used to suspend (injectable for tests)
        """
        self.min_interval = max(0.0, min_interval)
        self._clock = clock
        self._sleep = sleep
        self._last_request: Optional[float] = None
        self._backoff_until: float = 0.0
        self._lock = asyncio.Lock()
        self._total_wait = 0.0
        self._acquired = 0

    async def wait(self) -> float:
        """
        Suspend until a request is allowed and record it.

        Returns:
            float: Seconds spent waiting
        """
        async with self._lock:
            now = self._clock()
            ready_at = self._backoff_until
            if self._last_request is not None:
                ready_at = max(ready_at, self._last_request + self.min_interval)

            delay = ready_at - now
            if delay > 0:
                logger.debug(f"Rate limiting: waiting {delay:.3f}s")
                await self._sleep(delay)
            else:
                delay = 0.0

            self._last_request = self._clock()
            self._acquired += 1
            self._total_wait += delay
            return delay

    def backoff(self, seconds: float) -> None:
        """Block all requests for ``seconds`` (e.g. after HTTP 429 Retry-After)."""
        until = self._clock() + max(0.0, seconds)
        self._backoff_until = max(self._backoff_until, until)
        logger.warning(f"Rate limit backoff for {seconds:.1f}s")

    def get_statistics(self) -> dict:
        return {
            "min_interval": self.min_interval,
            "requests": self._acquired,
            "total_wait_seconds": round(self._total_wait, 3),
        }

    def __repr__(self) -> str:
        return f"RateLimiter(min_interval={self.min_interval}, requests={self._acquired})"
