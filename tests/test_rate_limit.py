"""Tests for the rate limit hook and in-memory limiter."""

import pytest

from crudhooks.core.types import HookContext
from crudhooks.errors import GeneralError, TooManyRequests
from crudhooks.hooks.rate_limit import MemoryRateLimiter, RateLimitExceeded, rate_limit


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestMemoryRateLimiter:
    @pytest.mark.asyncio
    async def test_consumes_points(self, clock):
        limiter = MemoryRateLimiter(points=3, duration=1.0, timer=clock)
        result = await limiter.consume("a", 2)
        assert result.remaining_points == 1
        assert result.consumed_points == 2
        assert result.ms_before_next == 1000

    @pytest.mark.asyncio
    async def test_rejects_over_limit(self, clock):
        limiter = MemoryRateLimiter(points=1, duration=1.0, timer=clock)
        await limiter.consume("a")
        clock.now = 0.25
        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.consume("a")
        assert exc_info.value.result.remaining_points == 0
        assert exc_info.value.result.ms_before_next == 750

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, clock):
        limiter = MemoryRateLimiter(points=1, duration=1.0, timer=clock)
        await limiter.consume("a")
        await limiter.consume("b")

    @pytest.mark.asyncio
    async def test_window_resets(self, clock):
        limiter = MemoryRateLimiter(points=1, duration=1.0, timer=clock)
        await limiter.consume("a")
        clock.now = 1.5
        result = await limiter.consume("a")
        assert result.remaining_points == 0


class TestRateLimitHook:
    @pytest.mark.asyncio
    async def test_stores_limiter_response(self, clock):
        hook = rate_limit(MemoryRateLimiter(points=2, duration=1.0, timer=clock))
        context = await hook(HookContext(path="api/albums"))
        assert context.params["rate_limit"].remaining_points == 1

    @pytest.mark.asyncio
    async def test_raises_too_many_requests(self, clock):
        hook = rate_limit(MemoryRateLimiter(points=1, duration=1.0, timer=clock))
        await hook(HookContext(path="api/albums"))

        context = HookContext(path="api/albums")
        with pytest.raises(TooManyRequests) as exc_info:
            await hook(context)

        assert exc_info.value.code == 429
        assert exc_info.value.data["remaining_points"] == 0
        assert context.params["rate_limit"].consumed_points == 1

    @pytest.mark.asyncio
    async def test_custom_key_and_points(self, clock):
        limiter = MemoryRateLimiter(points=10, duration=1.0, timer=clock)

        async def make_points(context):
            return 4

        hook = rate_limit(limiter, make_key=lambda context: context.params["user"], make_points=make_points)
        await hook(HookContext(path="api/albums", params={"user": "u1"}))
        context = await hook(HookContext(path="api/artists", params={"user": "u1"}))

        assert context.params["rate_limit"].consumed_points == 8

    @pytest.mark.asyncio
    async def test_before_only(self, clock):
        hook = rate_limit(MemoryRateLimiter(points=1, duration=1.0, timer=clock))
        with pytest.raises(GeneralError, match="rate_limit"):
            await hook(HookContext(type="after"))
