"""Concurrency-limited, throttle-aware, caching GET fetcher."""

import asyncio
import logging
from enum import Enum
from typing import Iterable

from throttled_fetcher.config import AppConfig
from throttled_fetcher.errors import RequestFailed, ThrottleRetriesExhausted
from throttled_fetcher.fetcher.base import BaseTransport, FetchResult
from throttled_fetcher.fetcher.http_transport import HttpTransport
from throttled_fetcher.utils.admission import AdmissionGate, admission_gate
from throttled_fetcher.utils.cache import DEFAULT_TTL_SECONDS, AsyncTTLCache
from throttled_fetcher.utils.throttle import ThrottleState

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60.0


class FetchState(str, Enum):
    """State of one logical fetch in the retry loop."""

    WAITING = "waiting"  # acquiring a permit / sitting out the throttle deadline
    ATTEMPTING = "attempting"  # transport call in progress
    THROTTLED = "throttled"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ThrottledFetcher:
    """Fetch URLs with bounded concurrency, global 429 back-off and caching.

    Every physical attempt holds one admission permit from before the
    throttle wait until the response is classified. A 429 pushes the shared
    throttle deadline forward and the attempt is retried; any other non-2xx
    raises ``RequestFailed``. Successful responses are cached per URL for
    ``cache_ttl`` seconds, and concurrent misses on the same URL share a
    single fetch.

    Set ``max_concurrent_requests`` to 0 to disable the concurrency limit.
    """

    def __init__(
        self,
        transport: BaseTransport,
        max_concurrent_requests: int = 0,
        *,
        cache: AsyncTTLCache[FetchResult] | None = None,
        throttle: ThrottleState | None = None,
        admission: AdmissionGate | None = None,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        default_retry_after: float = DEFAULT_RETRY_AFTER_SECONDS,
        max_throttle_retries: int = 0,
    ):
        self.transport = transport
        self.admission = admission or admission_gate(max_concurrent_requests)
        self.throttle = throttle or ThrottleState()
        self.cache = cache if cache is not None else AsyncTTLCache(ttl_seconds=cache_ttl)
        self.cache_ttl = cache_ttl
        self.default_retry_after = default_retry_after
        self.max_throttle_retries = max_throttle_retries  # 0 = unlimited

    @classmethod
    def from_config(cls, config: AppConfig) -> "ThrottledFetcher":
        """Build a fetcher over an ``HttpTransport`` from application config."""
        return cls(
            HttpTransport(config.fetcher),
            config.fetcher.max_concurrent_requests,
            cache=AsyncTTLCache(
                ttl_seconds=config.cache.ttl_seconds,
                max_entries=config.cache.max_entries or None,
            ),
            cache_ttl=config.cache.ttl_seconds,
            default_retry_after=config.fetcher.default_retry_after_seconds,
            max_throttle_retries=config.fetcher.max_throttle_retries,
        )

    async def __aenter__(self):
        await self.transport.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.transport.__aexit__(exc_type, exc_val, exc_tb)

    async def get(self, url: str) -> FetchResult:
        """GET ``url``, serving from cache when a live entry exists.

        Raises:
            RequestFailed: the server returned a non-2xx, non-429 status.
            TransportError: no response was received.
            ThrottleRetriesExhausted: ``max_throttle_retries`` was exceeded.
            asyncio.CancelledError: the calling task was cancelled.
        """
        result = await self.cache.get_or_compute(url, lambda: self._fetch(url), ttl=self.cache_ttl)
        # The cached instance is shared; callers get their own copy.
        return result.model_copy(deep=True)

    async def get_many(self, urls: Iterable[str]) -> list[FetchResult | BaseException]:
        """GET several URLs concurrently; failures are returned in place."""
        return await asyncio.gather(*(self.get(url) for url in urls), return_exceptions=True)

    async def _fetch(self, url: str) -> FetchResult:
        attempts = 0
        throttled = 0
        state = FetchState.WAITING

        while state is FetchState.WAITING:
            async with self.admission.permit():
                await self.throttle.wait()

                state = FetchState.ATTEMPTING
                attempts += 1
                logger.debug("GET %s (attempt %d)", url, attempts)
                result = await self.transport.get(url)

                if result.throttled:
                    state = FetchState.THROTTLED
                    delay = result.retry_after
                    if delay is None:
                        delay = self.default_retry_after
                    self.throttle.defer(delay)
                    throttled += 1
                    logger.warning(
                        "HTTP 429 for %s; holding all requests for %.2fs (attempt=%d)",
                        url,
                        delay,
                        attempts,
                    )
                elif result.success:
                    state = FetchState.SUCCEEDED
                else:
                    state = FetchState.FAILED

            if state is FetchState.FAILED:
                logger.debug("GET %s failed with HTTP %d", url, result.status_code)
                raise RequestFailed(result.status_code, url)

            if state is FetchState.SUCCEEDED:
                result.attempts = attempts
                logger.debug("Fetched %d bytes from %s", len(result.content), url)
                return result

            if self.max_throttle_retries and throttled > self.max_throttle_retries:
                raise ThrottleRetriesExhausted(url, attempts)
            state = FetchState.WAITING

        raise RuntimeError(f"GET {url} left the retry loop in state {state.value}")

    def stats(self) -> dict[str, object]:
        """Snapshot of cache, throttle and admission counters."""
        return {
            "cache": self.cache.stats(),
            "throttle_count": self.throttle.throttle_count,
            "peak_throttle_delay": self.throttle.peak_delay,
            "throttled_for": self.throttle.remaining(),
            "max_concurrent_requests": self.admission.limit,
            "in_flight": self.admission.in_flight,
            "peak_in_flight": self.admission.peak_in_flight,
        }
