"""Shared rate gate for outbound requests to the upstream origin."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from observability.prometheus_metrics import record_rate_limit_wait
from .errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforces a minimum interval between outbound request starts.

    One instance is shared by every fetcher talking to the same origin, so all
    outbound requests are serialized through a single "time of last request"
    value. Waiters are not served in FIFO order: whoever re-checks the gate
    first after it elapses wins.

    ``try_acquire`` reads and updates ``last_request_time`` without awaiting,
    which is atomic on a single event loop. A threaded host must guard it with
    a mutex.
    """

    def __init__(self,
                 min_interval: float = 1.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Initialize the rate gate.

        Args:
            min_interval: Minimum seconds between two request starts
            clock: Monotonic time source in seconds
            sleep: Coroutine used to suspend the caller
        """
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self.last_request_time: Optional[float] = None
        self.total_wait = 0.0

    def try_acquire(self, url: str = '') -> None:
        """Claim the gate now or raise RateLimitedError with the remaining wait."""
        now = self._clock()
        if self.last_request_time is not None:
            remaining = self.last_request_time + self.min_interval - now
            if remaining > 0:
                raise RateLimitedError(url, remaining)
        self.last_request_time = now

    async def acquire(self, url: str = '') -> float:
        """Suspend until the caller may start its request; return seconds waited."""
        waited = 0.0
        while True:
            try:
                self.try_acquire(url)
                break
            except RateLimitedError as e:
                logger.debug(f"Rate limiting {url or 'request'}: sleeping {e.retry_after:.2f}s")
                waited += e.retry_after
                await self._sleep(e.retry_after)

        self.total_wait += waited
        record_rate_limit_wait(waited)
        return waited
