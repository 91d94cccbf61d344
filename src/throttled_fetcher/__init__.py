"""Concurrency-limited, throttle-aware, caching HTTP GET fetcher."""

from throttled_fetcher.errors import (
    FetchError,
    RequestFailed,
    ThrottleRetriesExhausted,
    TransportError,
)
from throttled_fetcher.fetcher import BaseTransport, FetchResult, HttpTransport, ThrottledFetcher

__version__ = "0.1.0"

__all__ = [
    "BaseTransport",
    "FetchError",
    "FetchResult",
    "HttpTransport",
    "RequestFailed",
    "ThrottleRetriesExhausted",
    "ThrottledFetcher",
    "TransportError",
    "__version__",
]
