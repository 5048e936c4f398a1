"""
================================================================================
MediaHub v1.0 - Base Media Provider
================================================================================
Abstract base class for all external media search providers.

Providers implement a single search operation for:
  - TMDb (REST, bearer token)
  - Bangumi (HTML)
  - Douban (HTML)
  - Maoyan (mobile JSON API)

Each provider owns its transport: headers, timeout, rate limiting and
backoff. The aggregator only sees the normalized CandidateItem output.
================================================================================
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, FrozenSet, List, Optional
import time
import asyncio
import logging

import httpx

from ..models import CandidateItem, MediaType, MAX_RESULTS_PER_PROVIDER


logger = logging.getLogger(__name__)

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 13_2_3 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/13.0.3 Mobile/15E148 Safari/604.1"
)


class ProviderError(Exception):
    """Raised when a provider request cannot be completed."""


class RateLimiter:
    """
    Minimum-interval rate limiter for API requests.

    Spaces out requests so a single search (which fans out into detail
    lookups) does not hammer a provider.
    """

    def __init__(self, requests_per_minute: int):
        self.requests_per_minute = requests_per_minute
        self.min_interval = 60.0 / requests_per_minute  # Seconds between requests
        self.last_request = 0.0
        self._lock: Optional[asyncio.Lock] = None

    async def acquire(self):
        """Wait until a request slot is available."""
        # Created on first use so it belongs to the loop running the search
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            now = time.monotonic()
            time_since_last = now - self.last_request

            if time_since_last < self.min_interval:
                wait_time = self.min_interval - time_since_last
                logger.debug(f"Rate limit: waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)

            self.last_request = time.monotonic()


class BaseMediaProvider(ABC):
    """
    Abstract base class for media providers.

    All providers must implement:
      - search(): query -> list of CandidateItem (may raise)

    Providers handle:
      - Rate limiting
      - Retries on 429 / 5xx
      - Response parsing to CandidateItem
    """

    # Provider identification
    id: str = "base"
    name: str = "Base Provider"

    # Kinds of media this provider can answer for
    media_kinds: FrozenSet[MediaType] = frozenset()

    # Rate limiting (requests per minute)
    rate_limit: int = 120

    # Request timeout (seconds)
    timeout: float = 10.0

    # Retry configuration
    max_retries: int = 2
    retry_delay: float = 0.5

    # Results kept before detail enrichment
    limit: int = MAX_RESULTS_PER_PROVIDER

    user_agent: str = DESKTOP_USER_AGENT

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.rate_limiter = RateLimiter(self.rate_limit)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def default_headers(self) -> dict:
        return {'User-Agent': self.user_agent}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.default_headers(),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        **kwargs
    ) -> httpx.Response:
        """
        Make rate-limited HTTP request with retries.

        Raises:
            httpx.HTTPError: On request failure after retries
            ProviderError: When retries are exhausted on 429
        """
        client = await self._get_client()

        for attempt in range(self.max_retries):
            try:
                await self.rate_limiter.acquire()

                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 429:
                    wait_time = self.retry_delay * (2 ** attempt)  # Exponential backoff
                    logger.warning(f"{self.id}: Rate limited (429), waiting {wait_time}s")
                    await asyncio.sleep(wait_time)
                    continue
                if status >= 500 and attempt < self.max_retries - 1:
                    logger.warning(
                        f"{self.id}: Server error ({status}), "
                        f"retry {attempt + 1}/{self.max_retries}"
                    )
                    await asyncio.sleep(self.retry_delay)
                    continue
                raise

            except httpx.TimeoutException:
                # Timeouts are not retried
                raise

            except httpx.RequestError as e:
                if attempt < self.max_retries - 1:
                    logger.warning(
                        f"{self.id}: Request error ({e}), "
                        f"retry {attempt + 1}/{self.max_retries}"
                    )
                    await asyncio.sleep(self.retry_delay)
                    continue
                raise

        raise ProviderError(f"{self.id}: Max retries exceeded for {url}")

    async def _get_json(self, url: str, **kwargs):
        response = await self._request("GET", url, **kwargs)
        return response.json()

    async def _get_text(self, url: str, **kwargs) -> str:
        response = await self._request("GET", url, **kwargs)
        return response.text

    async def _enrich_all(
        self,
        items: List[CandidateItem],
        fetch: Callable[[CandidateItem], Awaitable[CandidateItem]]
    ) -> List[CandidateItem]:
        """
        Run detail lookups in parallel.

        A failed lookup keeps the search-list version of that item.
        """
        results = await asyncio.gather(
            *(fetch(item) for item in items),
            return_exceptions=True
        )

        enriched = []
        for item, result in zip(items, results):
            if isinstance(result, Exception):
                logger.warning(f"{self.id}: Detail fetch failed for '{item.title_zh}': {result}")
                enriched.append(item)
            else:
                enriched.append(result)
        return enriched

    # =========================================================================
    # ABSTRACT METHODS (must be implemented by providers)
    # =========================================================================

    @abstractmethod
    async def search(self, query: str) -> List[CandidateItem]:
        """
        Search this provider.

        Returns:
            At most `limit` CandidateItem objects (after detail enrichment)

        Raises:
            Any transport or parse error; the aggregator isolates it.
        """

    def serves(self, kind: MediaType) -> bool:
        return kind in self.media_kinds

    def __repr__(self):
        return f"<{self.__class__.__name__}(id='{self.id}', rate_limit={self.rate_limit}/min)>"
