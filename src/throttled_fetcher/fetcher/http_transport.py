"""HTTP transport backed by httpx."""

import httpx

from throttled_fetcher.config import FetcherConfig
from throttled_fetcher.errors import TransportError
from throttled_fetcher.fetcher.base import BaseTransport, FetchResult


class HttpTransport(BaseTransport):
    """Plain HTTP GET transport without JavaScript rendering."""

    def __init__(
        self,
        config: FetcherConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or FetcherConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        """Initialize HTTP client."""
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=self.config.follow_redirects,
            timeout=self.config.timeout_ms / 1000,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Clean up HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str) -> FetchResult:
        """Fetch a URL via HTTP GET."""
        if not self._client:
            raise RuntimeError("Transport not initialized. Use 'async with' context manager.")

        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"GET {url} failed: {e}", url) from e

        retry_after: float | None = None
        if response.status_code == 429:
            retry_after = self.parse_retry_after(response.headers.get("retry-after"))

        return FetchResult(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            headers=dict(response.headers),
            content=response.content,
            retry_after=retry_after,
        )
