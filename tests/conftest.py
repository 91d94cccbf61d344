"""Shared fakes for fetcher tests.

The scripted transport stands in for the network: a responder decides the
status of every call and the transport records when each call started and
finished so tests can assert on concurrency and timing.
"""

import asyncio
from dataclasses import dataclass
from time import monotonic
from typing import Callable

import pytest

from throttled_fetcher.fetcher.base import BaseTransport, FetchResult


class FakeTime:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def time(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


def make_result(
    url: str,
    status_code: int = 200,
    *,
    retry_after: float | None = None,
    body: bytes = b"ok",
) -> FetchResult:
    headers = {"content-type": "text/plain"}
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return FetchResult(
        url=url,
        final_url=url,
        status_code=status_code,
        headers=headers,
        content=body,
        retry_after=retry_after,
    )


@dataclass
class Call:
    url: str
    started: float
    finished: float | None = None
    status_code: int | None = None


class ScriptedTransport(BaseTransport):
    """Transport whose responses come from ``responder(url, call_number)``."""

    def __init__(
        self,
        responder: Callable[[str, int], FetchResult] | None = None,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.responder = responder or (lambda url, n: make_result(url, body=url.encode()))
        self.delay = delay
        self.delays = delays or {}
        self.gate = gate
        self.calls: list[Call] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.cancelled = 0

    async def get(self, url: str) -> FetchResult:
        call = Call(url=url, started=monotonic())
        self.calls.append(call)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            delay = self.delays.get(url, self.delay)
            if delay:
                await asyncio.sleep(delay)
            result = self.responder(url, len(self.calls))
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1
        call.finished = monotonic()
        call.status_code = result.status_code
        return result


async def wait_for_calls(transport: ScriptedTransport, count: int, timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while len(transport.calls) < count:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()
