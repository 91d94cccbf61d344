"""GET transports and the throttled, caching fetcher."""

from throttled_fetcher.fetcher.base import BaseTransport, FetchResult
from throttled_fetcher.fetcher.http_transport import HttpTransport
from throttled_fetcher.fetcher.throttled import FetchState, ThrottledFetcher

__all__ = [
    "BaseTransport",
    "FetchResult",
    "FetchState",
    "HttpTransport",
    "ThrottledFetcher",
]
