from __future__ import annotations
import pytest

from beatbound.services.rate_limit import SlidingWindowLimiter


@pytest.mark.asyncio
async def test_allows_up_to_limit_then_rejects(redis):
    limiter = SlidingWindowLimiter(redis, prefix="rl:test", limit=3, window_seconds=60)

    results = [await limiter.hit("user-1") for _ in range(4)]

    assert [allowed for allowed, _ in results] == [True, True, True, False]
    retry_after = results[-1][1]
    assert 1 <= retry_after <= 60


@pytest.mark.asyncio
async def test_rejected_hits_do_not_extend_window(redis):
    limiter = SlidingWindowLimiter(redis, prefix="rl:test", limit=1, window_seconds=60)

    await limiter.hit("user-1")
    for _ in range(3):
        allowed, _ = await limiter.hit("user-1")
        assert not allowed

    assert await redis.zcard("rl:test:user-1") == 1


@pytest.mark.asyncio
async def test_identities_are_independent(redis):
    limiter = SlidingWindowLimiter(redis, prefix="rl:test", limit=1, window_seconds=60)

    assert (await limiter.hit("a"))[0]
    assert (await limiter.hit("b"))[0]
    assert not (await limiter.hit("a"))[0]


@pytest.mark.asyncio
async def test_expired_hits_leave_the_window(redis):
    limiter = SlidingWindowLimiter(redis, prefix="rl:test", limit=1, window_seconds=60)
    # a hit recorded long before the current window
    await redis.zadd("rl:test:user-1", {"old": 1})

    allowed, _ = await limiter.hit("user-1")

    assert allowed
    assert await redis.zcard("rl:test:user-1") == 1


@pytest.mark.asyncio
async def test_reset_clears_quota(redis):
    limiter = SlidingWindowLimiter(redis, prefix="rl:test", limit=1, window_seconds=60)
    await limiter.hit("user-1")
    await limiter.reset("user-1")

    assert (await limiter.hit("user-1"))[0]
