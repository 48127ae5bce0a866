"""Shared fixtures: a manual clock and a scripted aiohttp session."""

from typing import Any, Dict, List, Optional

import pytest

from pipelines.rate_limiter import RateLimiter
from server.tiered_cache import TieredCache


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Async sleep that advances a FakeClock instead of waiting."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)


class FakeResponse:
    def __init__(self, status: int = 200, body: str = '', reason: str = 'OK'):
        self.status = status
        self.reason = reason
        self._body = body

    async def text(self) -> str:
        return self._body


class _RequestContext:
    def __init__(self, outcome: Any):
        self._outcome = outcome

    async def __aenter__(self):
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession.

    ``outcomes`` are consumed one per request: a FakeResponse is returned, an
    exception instance is raised. The last outcome repeats once exhausted.
    """

    def __init__(self, outcomes: List[Any], clock: Optional[FakeClock] = None):
        self.outcomes = list(outcomes)
        self.clock = clock
        self.requests: List[str] = []
        self.request_times: List[float] = []
        self.closed = False

    def get(self, url: str, **kwargs) -> _RequestContext:
        self.requests.append(url)
        if self.clock is not None:
            self.request_times.append(self.clock())
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        return _RequestContext(outcome)

    async def close(self) -> None:
        self.closed = True


class RoutedSession(FakeSession):
    """FakeSession answering by URL; unknown URLs get a 404."""

    def __init__(self, routes: Dict[str, Any], clock: Optional[FakeClock] = None):
        super().__init__([], clock)
        self.routes = dict(routes)

    def get(self, url: str, **kwargs) -> _RequestContext:
        self.requests.append(url)
        if self.clock is not None:
            self.request_times.append(self.clock())
        return _RequestContext(self.routes.get(url, FakeResponse(404, '', 'Not Found')))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(clock):
    return FakeSleep(clock)


@pytest.fixture
def cache(clock):
    return TieredCache(default_ttl=3600, backup_ttl_multiplier=24, clock=clock)


@pytest.fixture
def rate_limiter(clock, fake_sleep):
    return RateLimiter(min_interval=1.0, clock=clock, sleep=fake_sleep)
