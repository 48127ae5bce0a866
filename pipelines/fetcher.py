"""Rate-limited, retrying fetcher for the upstream documentation site.

Provides fetching with graceful degradation to the tiered cache.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import aiohttp

from config.core_config import CoreConfig
from observability.prometheus_metrics import (
    record_cache_lookup,
    record_fetch_attempt,
    record_fetch_result
)
from server.tiered_cache import CacheKey, TieredCache
from .errors import FetchExhaustedError, NetworkError
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class FetchSource(str, Enum):
    """Where the content of a successful fetch came from."""
    FRESH_CACHE = 'fresh_cache'
    NETWORK = 'network'
    STALE_CACHE = 'stale_cache'


@dataclass
class FetchResult:
    """Result of a logical fetch."""
    url: str
    content: str
    source: FetchSource
    attempts: int = 0
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_degraded(self) -> bool:
        return self.source is FetchSource.STALE_CACHE


@dataclass
class FetchStats:
    """Counters for a fetcher's lifetime."""
    requests: int = 0
    cache_hits: int = 0
    stale_cache_hits: int = 0
    network_successes: int = 0
    attempts: int = 0
    retries: int = 0
    stale_fallbacks: int = 0
    failures: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'requests': self.requests,
            'cache_hits': self.cache_hits,
            'stale_cache_hits': self.stale_cache_hits,
            'network_successes': self.network_successes,
            'attempts': self.attempts,
            'retries': self.retries,
            'stale_fallbacks': self.stale_fallbacks,
            'failures': self.failures,
        }


class ResilientFetcher:
    """Asynchronous HTTP fetcher with a shared rate gate, bounded retries and
    degradation to cached data."""

    def __init__(self,
                 cache: TieredCache,
                 rate_limiter: RateLimiter,
                 retry_attempts: int = 3,
                 request_timeout: float = 10.0,
                 retry_backoff: float = 1.0,
                 primary_ttl: float = 3600,
                 backup_ttl: Optional[float] = None,
                 headers: Optional[Dict[str, str]] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Initialize fetcher.

        Args:
            cache: Cache handle shared with the rest of the service
            rate_limiter: Rate gate shared by all fetchers of the origin
            retry_attempts: Maximum network attempts per logical fetch
            request_timeout: Timeout of a single attempt in seconds
            retry_backoff: Base backoff; attempt ``n`` is followed by ``n * retry_backoff`` seconds
            primary_ttl: TTL of the primary cache slot written on success
            backup_ttl: TTL of the backup slot (defaults to 24x primary)
            headers: Outbound request headers
            session: Optional externally owned aiohttp session
            sleep: Coroutine used for backoff sleeps
        """
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")

        self.cache = cache
        self.rate_limiter = rate_limiter
        self.retry_attempts = retry_attempts
        self.request_timeout = request_timeout
        self.retry_backoff = retry_backoff
        self.primary_ttl = primary_ttl
        self.backup_ttl = backup_ttl if backup_ttl is not None else primary_ttl * 24
        self.headers = dict(headers or {})
        self.session = session
        self._owns_session = session is None
        self._sleep = sleep
        self.stats = FetchStats()

    @classmethod
    def from_config(cls, config: CoreConfig, cache: TieredCache, rate_limiter: RateLimiter,
                    session: Optional[aiohttp.ClientSession] = None) -> 'ResilientFetcher':
        """Build a fetcher from core configuration."""
        return cls(
            cache=cache,
            rate_limiter=rate_limiter,
            retry_attempts=config.retry_attempts,
            request_timeout=config.timeout,
            retry_backoff=config.retry_backoff,
            primary_ttl=config.primary_ttl_seconds,
            backup_ttl=config.backup_ttl_seconds,
            headers=config.request_headers,
            session=session,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the session if this fetcher created it."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(headers=self.headers)
            self._owns_session = True
        return self.session

    def _backoff_delay(self, attempt: int) -> float:
        """Linear backoff: the delay grows with the attempt number."""
        return self.retry_backoff * attempt

    async def _attempt(self, url: str) -> str:
        """Issue one GET request; the full body is read before returning."""
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)

        async with session.get(url, headers=self.headers, timeout=timeout,
                               allow_redirects=True) as response:
            if not 200 <= response.status < 300:
                raise NetworkError(url, response.reason or 'Unexpected status', status=response.status)
            return await response.text()

    async def fetch(self, url: str) -> str:
        """Fetch ``url`` and return its content."""
        result = await self.fetch_result(url)
        return result.content

    async def fetch_result(self, url: str) -> FetchResult:
        """Fetch ``url``, preferring fresh cache, then network, then stale cache.

        Raises:
            FetchExhaustedError: No attempt succeeded and nothing is cached.
        """
        start_time = time.time()
        cache_key = CacheKey.request(url)
        self.stats.requests += 1

        cached = self.cache.get_with_fallback(cache_key)
        if cached is not None and not cached.is_stale:
            self.stats.cache_hits += 1
            record_cache_lookup('fresh')
            record_fetch_result(FetchSource.FRESH_CACHE.value, time.time() - start_time)
            return FetchResult(url=url, content=cached.value, source=FetchSource.FRESH_CACHE)

        if cached is not None:
            self.stats.stale_cache_hits += 1
            record_cache_lookup('stale')
            logger.warning(f"Cached data for {url} is stale, attempting refresh")
        else:
            record_cache_lookup('miss')

        last_error: Optional[NetworkError] = None
        for attempt in range(1, self.retry_attempts + 1):
            await self.rate_limiter.acquire(url)
            self.stats.attempts += 1

            try:
                logger.debug(f"Fetching {url} (attempt {attempt}/{self.retry_attempts})")
                content = await self._attempt(url)
            except NetworkError as e:
                last_error = e
                record_fetch_attempt('http_error')
            except asyncio.TimeoutError:
                last_error = NetworkError(url, f"Timed out after {self.request_timeout}s")
                record_fetch_attempt('timeout')
            except aiohttp.ClientError as e:
                last_error = NetworkError(url, f"{type(e).__name__}: {e}")
                record_fetch_attempt('connection_error')
            else:
                record_fetch_attempt('success')
                self.cache.set_with_degradation(cache_key, content, self.primary_ttl, self.backup_ttl)
                self.stats.network_successes += 1
                record_fetch_result(FetchSource.NETWORK.value, time.time() - start_time)
                return FetchResult(url=url, content=content, source=FetchSource.NETWORK, attempts=attempt)

            if attempt < self.retry_attempts:
                delay = self._backoff_delay(attempt)
                self.stats.retries += 1
                logger.warning(f"Attempt {attempt}/{self.retry_attempts} failed for {url}: {last_error}, "
                               f"retrying in {delay:.2f}s")
                await self._sleep(delay)

        logger.warning(f"All {self.retry_attempts} attempts failed for {url}: {last_error}")

        stale = self.cache.get_stale(cache_key)
        if stale is not None:
            self.stats.stale_fallbacks += 1
            logger.warning(f"Using stale cached data for {url}")
            record_fetch_result(FetchSource.STALE_CACHE.value, time.time() - start_time)
            return FetchResult(url=url, content=stale, source=FetchSource.STALE_CACHE,
                               attempts=self.retry_attempts)

        self.stats.failures += 1
        record_fetch_result('exhausted', time.time() - start_time)
        logger.error(f"Failed to fetch {url} after {self.retry_attempts} attempts and no cached data exists")
        raise FetchExhaustedError(url, self.retry_attempts, last_error) from last_error
