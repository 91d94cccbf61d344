"""Exceptions raised by the fetcher.

Throttling (HTTP 429) never surfaces here: it is absorbed by the retry loop.
Cancellation is plain ``asyncio.CancelledError`` and is never wrapped.
"""


class FetchError(Exception):
    """Base class for fetch failures."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class RequestFailed(FetchError):
    """The server answered with a terminal non-success status."""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"GET {url} failed with HTTP {status_code}", url)
        self.status_code = status_code


class TransportError(FetchError):
    """The request never produced a response (connection, DNS, timeout)."""


class ThrottleRetriesExhausted(FetchError):
    """The server kept throttling past the configured retry budget."""

    def __init__(self, url: str, attempts: int):
        super().__init__(f"GET {url} still throttled after {attempts} attempts", url)
        self.attempts = attempts
