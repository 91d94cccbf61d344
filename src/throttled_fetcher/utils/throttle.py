"""Shared "do not send before" deadline set by HTTP 429 responses."""

import asyncio
import logging
import threading
from time import monotonic
from typing import Callable

logger = logging.getLogger(__name__)


class ThrottleState:
    """Process-wide throttle deadline shared by every caller of a fetcher.

    The deadline is a ``clock()`` timestamp. All reads and writes happen under
    a lock and the lock is never held across a suspension point. Writes are
    last-writer-wins: a shorter Retry-After observed later replaces a longer
    one.
    """

    def __init__(self, clock: Callable[[], float] = monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._deadline: float = clock()
        self.throttle_count: int = 0
        self.peak_delay: float = 0.0

    def read_deadline(self) -> float:
        with self._lock:
            return self._deadline

    def set_deadline(self, deadline: float) -> None:
        with self._lock:
            self._deadline = deadline

    def defer(self, seconds: float) -> float:
        """Push the deadline to ``now + seconds`` and return the new deadline."""
        with self._lock:
            self._deadline = self._clock() + seconds
            self.throttle_count += 1
            self.peak_delay = max(self.peak_delay, seconds)
            return self._deadline

    def remaining(self) -> float:
        """Seconds left until requests may be sent again (0 when clear)."""
        with self._lock:
            wait = self._deadline - self._clock()
        return max(0.0, wait)

    @property
    def is_throttled(self) -> bool:
        return self.remaining() > 0

    async def wait(self) -> None:
        """Sleep until the deadline has passed.

        The deadline is re-read after every sleep, so a 429 observed by
        another caller meanwhile extends the wait. Cancellation of the
        caller interrupts the sleep.
        """
        while (wait := self.remaining()) > 0:
            logger.debug("Throttled; waiting %.2fs before next request", wait)
            await asyncio.sleep(wait)
