"""Admission control bounding the number of requests in flight."""

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator


class AdmissionGate(ABC):
    """Counting permit pool.

    ``acquire`` may suspend and is cancellable; ``release`` never blocks.
    Prefer ``async with gate.permit():`` so the permit is returned on every
    exit path, cancellation included.
    """

    def __init__(self) -> None:
        self.in_flight: int = 0
        self.peak_in_flight: int = 0

    @property
    @abstractmethod
    def limit(self) -> int:
        """Maximum permits, 0 for unlimited."""

    @abstractmethod
    async def _acquire(self) -> None:
        pass

    @abstractmethod
    def _release(self) -> None:
        pass

    async def acquire(self) -> None:
        await self._acquire()
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

    def release(self) -> None:
        self.in_flight -= 1
        self._release()

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()


class BoundedAdmission(AdmissionGate):
    """At most ``max_concurrent`` permits outstanding at once."""

    def __init__(self, max_concurrent: int):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        super().__init__()
        self._limit = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @property
    def limit(self) -> int:
        return self._limit

    async def _acquire(self) -> None:
        await self._semaphore.acquire()

    def _release(self) -> None:
        self._semaphore.release()


class UnboundedAdmission(AdmissionGate):
    """Never withholds a permit."""

    @property
    def limit(self) -> int:
        return 0

    async def _acquire(self) -> None:
        return None

    def _release(self) -> None:
        return None


def admission_gate(max_concurrent: int) -> AdmissionGate:
    """Build the gate for a configured limit (0 = unlimited)."""
    if max_concurrent < 0:
        raise ValueError("max_concurrent must be >= 0")
    if max_concurrent == 0:
        return UnboundedAdmission()
    return BoundedAdmission(max_concurrent)
