"""Tests for the shared rate gate."""

import asyncio

import pytest

from pipelines.errors import RateLimitedError
from pipelines.rate_limiter import RateLimiter


class TestRateLimiter:

    def test_first_acquire_is_immediate(self, rate_limiter, clock):
        rate_limiter.try_acquire("u")
        assert rate_limiter.last_request_time == clock.now

    def test_try_acquire_raises_with_remaining_wait(self, rate_limiter, clock):
        rate_limiter.try_acquire("u")
        clock.advance(0.25)
        with pytest.raises(RateLimitedError) as exc_info:
            rate_limiter.try_acquire("u")
        assert exc_info.value.retry_after == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_acquire_sleeps_until_interval_elapsed(self, rate_limiter, clock, fake_sleep):
        await rate_limiter.acquire("a")
        first = clock.now
        waited = await rate_limiter.acquire("b")

        assert waited == pytest.approx(1.0)
        assert fake_sleep.calls == [pytest.approx(1.0)]
        assert clock.now - first >= 1.0

    @pytest.mark.asyncio
    async def test_no_wait_after_interval(self, rate_limiter, clock, fake_sleep):
        await rate_limiter.acquire("a")
        clock.advance(5)
        assert await rate_limiter.acquire("b") == 0.0
        assert fake_sleep.calls == []

    @pytest.mark.asyncio
    async def test_starts_are_spaced_by_min_interval(self, clock, fake_sleep):
        limiter = RateLimiter(min_interval=0.5, clock=clock, sleep=fake_sleep)
        starts = []
        for _ in range(5):
            await limiter.acquire()
            starts.append(clock.now)

        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert all(gap >= 0.5 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_concurrent_waiters_are_serialized(self):
        limiter = RateLimiter(min_interval=0.05)
        starts = []

        async def worker():
            await limiter.acquire()
            starts.append(limiter.last_request_time)

        await asyncio.gather(*(worker() for _ in range(4)))

        starts.sort()
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert len(starts) == 4
        assert all(gap >= 0.05 - 1e-6 for gap in gaps)

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            RateLimiter(min_interval=-1)
