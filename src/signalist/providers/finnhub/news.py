"""Finnhub news source.

Implements the NewsSource protocol on top of two Finnhub endpoints:
- /news?category=general - general market news
- /company-news?symbol=&from=&to= - company news within a date window

Rate limiting: Free tier = 60 calls/min across ALL endpoints, enforced by a
process-wide token bucket shared by every FinnhubNewsSource instance.
Nothing is cached; each digest run sees fresh news.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import TYPE_CHECKING, Any

import httpx
import orjson

from signalist.core.constants import (
    DEFAULT_EXTERNAL_TIMEOUT_SECONDS,
    DEFAULT_FINNHUB_API_URL,
    FINNHUB_RATE_LIMIT_CALLS_PER_MINUTE,
)
from signalist.core.exceptions import ConfigurationError, NewsSourceError
from signalist.core.logging import get_logger

if TYPE_CHECKING:
    from signalist.config import Settings

logger = get_logger(__name__)


class RateLimiter:
    """Sliding-window rate limiter for API calls.

    Ensures we don't exceed Finnhub's rate limit even with parallel calls.
    """

    def __init__(self, calls_per_minute: int = FINNHUB_RATE_LIMIT_CALLS_PER_MINUTE) -> None:
        self._calls_per_minute = calls_per_minute
        self._calls: list[float] = []
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Acquire permission to make an API call, waiting if necessary."""
        async with self._lock:
            now = asyncio.get_running_loop().time()
            self._calls = [t for t in self._calls if t > now - 60]

            if len(self._calls) >= self._calls_per_minute:
                # Wait until the oldest call leaves the window
                sleep_time = 60 - (now - self._calls[0]) + 0.1
                if sleep_time > 0:
                    await asyncio.sleep(sleep_time)
                    now = asyncio.get_running_loop().time()
                    self._calls = [t for t in self._calls if t > now - 60]

            self._calls.append(now)


# Global rate limiter for the Finnhub REST API (eager init to avoid a creation race)
_finnhub_rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    """Get the global Finnhub rate limiter."""
    return _finnhub_rate_limiter


class FinnhubNewsSource:
    """Finnhub client for general and company news.

    Usage:
        source = FinnhubNewsSource(api_key="your_key")
        general = await source.fetch_general()
        company = await source.fetch_for_symbol("AAPL", date(2026, 10, 14), date(2026, 10, 19))
        await source.close()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_FINNHUB_API_URL,
        timeout: float = DEFAULT_EXTERNAL_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("FINNHUB_API_KEY is not configured")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client
        self._rate_limiter = rate_limiter or get_rate_limiter()

    @classmethod
    def from_settings(cls, settings: Settings) -> FinnhubNewsSource:
        """Build from settings.

        Raises:
            ConfigurationError: If no Finnhub API key is configured
        """
        if not settings.finnhub_api_key:
            raise ConfigurationError("FINNHUB_API_KEY is not configured")
        return cls(
            api_key=settings.finnhub_api_key.get_secret_value(),
            base_url=settings.finnhub_api_url,
            timeout=settings.external_timeout_seconds,
        )

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def _fetch_finnhub(self, endpoint: str, params: dict[str, str]) -> list[dict[str, Any]]:
        """Fetch a JSON list from the Finnhub API.

        Raises:
            NewsSourceError: On transport errors, non-2xx responses, or a
                payload that is not a JSON array
        """
        await self._rate_limiter.acquire()

        client = self._get_http_client()
        url = f"{self._base_url}{endpoint}"

        try:
            response = await client.get(url, params={**params, "token": self._api_key})
            response.raise_for_status()
            data = orjson.loads(response.content)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Finnhub API error",
                endpoint=endpoint,
                status=e.response.status_code,
            )
            raise NewsSourceError(
                f"Finnhub API error: {e.response.status_code} on {endpoint}"
            ) from e
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.warning("Finnhub API request failed", endpoint=endpoint, error=str(e))
            raise NewsSourceError(f"Finnhub request to {endpoint} failed") from e

        if not isinstance(data, list):
            raise NewsSourceError(f"Finnhub returned a non-list payload for {endpoint}")
        return data

    async def fetch_general(self) -> list[dict[str, Any]]:
        return await self._fetch_finnhub("/news", {"category": "general"})

    async def fetch_for_symbol(
        self,
        symbol: str,
        from_date: date,
        to_date: date,
    ) -> list[dict[str, Any]]:
        return await self._fetch_finnhub(
            "/company-news",
            {
                "symbol": symbol,
                "from": from_date.isoformat(),
                "to": to_date.isoformat(),
            },
        )

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
