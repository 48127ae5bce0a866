"""Errors raised by the fetch pipeline."""

from typing import Optional


class FetchError(Exception):
    """Base class for upstream retrieval failures."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class RateLimitedError(FetchError):
    """The rate gate has not elapsed yet.

    Transient and handled inside the rate limiter by waiting; it never
    reaches a caller of the fetcher.
    """

    def __init__(self, url: str, retry_after: float):
        super().__init__(url, f"Rate limited, retry after {retry_after:.3f}s")
        self.retry_after = retry_after


class NetworkError(FetchError):
    """A single attempt failed: timeout, connection failure or non-2xx status."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        message = f"HTTP {status}: {reason}" if status is not None else reason
        super().__init__(url, message)
        self.reason = reason
        self.status = status


class FetchExhaustedError(FetchError):
    """All attempts failed and no cached data, fresh or stale, exists."""

    def __init__(self, url: str, attempts: int, last_error: Optional[NetworkError] = None):
        detail = f": {last_error}" if last_error else ""
        super().__init__(url, f"Failed to fetch {url} after {attempts} attempts{detail}")
        self.attempts = attempts
        self.last_error = last_error
