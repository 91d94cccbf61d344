"""Base class for transports that perform the actual GET."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from pydantic import BaseModel, Field

TOO_MANY_REQUESTS = 429


class FetchResult(BaseModel):
    """Response returned by a transport."""

    url: str
    final_url: str  # After redirects
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    content: bytes = b""
    retry_after: float | None = None
    attempts: int = 1

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def throttled(self) -> bool:
        return self.status_code == TOO_MANY_REQUESTS

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None


class BaseTransport(ABC):
    """Abstract base class for GET transports.

    Implementations raise ``TransportError`` when no response was received
    and let ``asyncio.CancelledError`` propagate untouched.
    """

    @abstractmethod
    async def get(self, url: str) -> FetchResult:
        """Issue a GET and return the response, whatever its status."""
        pass

    @staticmethod
    def parse_retry_after(header_value: str | None) -> float | None:
        """Parse a Retry-After header value into seconds.

        Supports both delta-seconds (e.g. "120") and HTTP-date formats.
        Returns None if the header is missing or unparseable.
        """
        if not header_value:
            return None
        try:
            return max(0.0, float(header_value))
        except ValueError:
            pass
        try:
            dt = parsedate_to_datetime(header_value)
        except (TypeError, ValueError):
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delta = (dt - datetime.now(timezone.utc)).total_seconds()
        return max(0.0, delta)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        pass
