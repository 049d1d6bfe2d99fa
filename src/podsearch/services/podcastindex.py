"""Podcast Index API client.

Async client for https://api.podcastindex.org. Applies the API's terms of
use: authenticated requests, at most one request per second, and responses
cached for five minutes.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from podsearch import __version__
from podsearch.core.config import PLACEHOLDER_API_KEY, Config
from podsearch.core.errors import CatalogError, InvalidIdentifierError
from podsearch.services.catalog import PersonSearchOptions, SearchOptions

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.podcastindex.org/api/1.0"

# Default timeout for API requests (in seconds)
DEFAULT_TIMEOUT = 30.0

DEFAULT_USER_AGENT = f"podsearch/{__version__}"
CACHE_TTL = 300.0
MIN_REQUEST_INTERVAL = 1.0
MAX_RETRIES = 3
RETRY_DELAY = 2.0


def parse_feed_id(value: int | str) -> int:
    """Validate a feed identifier.

    Raises:
        InvalidIdentifierError: If the value is not a positive integer.
    """
    if isinstance(value, bool):
        raise InvalidIdentifierError(f"Invalid feed id: {value!r}")
    try:
        feed_id = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise InvalidIdentifierError(f"Invalid feed id: {value!r}") from e
    if feed_id <= 0:
        raise InvalidIdentifierError(f"Invalid feed id: {value!r}")
    return feed_id


class PodcastIndexClient:
    """Client for the Podcast Index API.

    Args:
        api_key: Podcast Index API key.
        api_secret: Podcast Index API secret.
        base_url: API root, without a trailing slash.
        timeout: Request timeout in seconds.
        user_agent: Value of the User-Agent header the API requires.
        cache_ttl: Seconds a response is served from the in-memory cache.
        min_request_interval: Minimum seconds between two requests.
        max_retries: Retries after an HTTP 429 response.
        retry_delay: Seconds to wait before retrying after HTTP 429.
        client: Optional httpx client for testing. Clients passed in are not
            closed by ``aclose``.
        clock: Monotonic clock used for caching and rate limiting.
    """

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        *,
        base_url: str = API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        cache_ttl: float = CACHE_TTL,
        min_request_interval: float = MIN_REQUEST_INTERVAL,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.cache_ttl = cache_ttl
        self.min_request_interval = min_request_interval
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._cache: dict[str, tuple[float, dict[str, Any]]] = {}
        self._last_request: float | None = None
        self._rate_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> PodcastIndexClient:
        """Create a client from application configuration."""
        settings = config.podcastindex
        return cls(
            config.get_api_key(),
            config.get_api_secret(),
            base_url=settings.base_url,
            timeout=settings.timeout,
            user_agent=settings.user_agent or DEFAULT_USER_AGENT,
            **kwargs,
        )

    async def __aenter__(self) -> PodcastIndexClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def is_configured(self) -> bool:
        """Check whether API credentials are present."""
        return bool(
            self.api_key and self.api_secret and self.api_key != PLACEHOLDER_API_KEY
        )

    def clear_cache(self) -> None:
        self._cache.clear()

    def auth_headers(self, timestamp: int | None = None) -> dict[str, str]:
        """Build the authentication headers for one request.

        The Authorization header is the SHA-1 hex digest of key, secret and
        the unix time sent in X-Auth-Date.
        """
        epoch = int(time.time()) if timestamp is None else timestamp
        digest = hashlib.sha1(
            f"{self.api_key}{self.api_secret}{epoch}".encode()
        ).hexdigest()
        return {
            "X-Auth-Date": str(epoch),
            "X-Auth-Key": self.api_key,
            "Authorization": digest,
            "User-Agent": self.user_agent,
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def _wait_for_rate_limit(self) -> None:
        async with self._rate_lock:
            if self._last_request is not None:
                wait = self.min_request_interval - (self._clock() - self._last_request)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request = self._clock()

    async def _request(self, endpoint: str, params: dict[str, str]) -> dict[str, Any]:
        """Perform an authenticated GET request.

        Raises:
            CatalogError: If the request fails or the response is unusable.
        """
        url = f"{self.base_url}{endpoint}"
        cache_key = str(httpx.URL(url, params=params))

        cached = self._cache.get(cache_key)
        if cached is not None and self._clock() - cached[0] < self.cache_ttl:
            return cached[1]

        if not self.is_configured():
            raise CatalogError("Podcast Index API credentials are not configured")

        client = self._get_client()
        for attempt in range(self.max_retries + 1):
            await self._wait_for_rate_limit()
            try:
                response = await client.get(url, params=params, headers=self.auth_headers())
                if response.status_code == 429 and attempt < self.max_retries:
                    logger.debug("Rate limited by Podcast Index, retrying %s", endpoint)
                    await asyncio.sleep(self.retry_delay)
                    continue
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                raise CatalogError(
                    f"Podcast Index request timed out after {self.timeout} seconds"
                ) from e
            except httpx.HTTPStatusError as e:
                raise CatalogError(
                    f"Podcast Index returned error status {e.response.status_code}"
                ) from e
            except httpx.RequestError as e:
                raise CatalogError(f"Failed to connect to Podcast Index: {e}") from e
            except ValueError as e:
                raise CatalogError(f"Podcast Index returned invalid JSON: {e}") from e
            break

        if not isinstance(data, dict):
            raise CatalogError("Podcast Index returned an unexpected response")
        if str(data.get("status", "true")).lower() == "false":
            raise CatalogError(
                f"Podcast Index rejected the request: {data.get('description', 'unknown error')}"
            )

        self._store(cache_key, data)
        return data

    def _store(self, cache_key: str, data: dict[str, Any]) -> None:
        now = self._clock()
        expired = [
            key for key, (stored, _) in self._cache.items() if now - stored >= self.cache_ttl
        ]
        for key in expired:
            del self._cache[key]
        self._cache[cache_key] = (now, data)

    async def search_podcasts(
        self, query: str, options: SearchOptions | None = None
    ) -> list[dict[str, Any]]:
        """Search feeds by term.

        Args:
            query: Search keywords.
            options: Search options; defaults to SearchOptions().

        Returns:
            Raw feed records as returned by the API.

        Raises:
            CatalogError: If the API request fails.
        """
        options = options or SearchOptions()
        params: dict[str, str] = {"q": query, "max": str(options.max_results)}
        if options.similar:
            params["similar"] = ""
        if options.fulltext:
            params["fulltext"] = ""
        if options.clean:
            params["clean"] = ""
        if options.lang:
            params["lang"] = options.lang
        if options.categories:
            params["cat"] = ",".join(options.categories)

        data = await self._request("/search/byterm", params)
        return list(data.get("feeds") or [])

    async def search_episodes_by_person(
        self, query: str, options: PersonSearchOptions | None = None
    ) -> list[dict[str, Any]]:
        """Search episodes by person.

        The API matches person tags, episode title and description, and the
        feed owner and author.
        """
        options = options or PersonSearchOptions()
        params: dict[str, str] = {"q": query, "max": str(options.max_results)}
        if options.fulltext:
            params["fulltext"] = ""

        data = await self._request("/search/byperson", params)
        return list(data.get("items") or [])

    async def get_episodes_by_feed_id(
        self, feed_id: int | str, limit: int = 20
    ) -> list[dict[str, Any]]:
        """List the most recent episodes of one feed.

        Raises:
            InvalidIdentifierError: If ``feed_id`` is not a positive integer.
            CatalogError: If the API request fails.
        """
        params = {"id": str(parse_feed_id(feed_id)), "max": str(limit)}
        data = await self._request("/episodes/byfeedid", params)
        return list(data.get("items") or [])
