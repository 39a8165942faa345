from __future__ import annotations
from fastapi import Depends, Request
from redis.asyncio import Redis
from redis.exceptions import RedisError

from beatbound.auth_deps import get_current_user
from beatbound.config import settings
from beatbound.errors import RateLimited
from beatbound.models.user import User
from beatbound.services.broadcast import RedisBroadcaster
from beatbound.services.rate_limit import SlidingWindowLimiter

# Clients are built in the app lifespan and kept on app.state; routes receive
# them through Depends so tests can swap them with dependency_overrides.

def create_redis(url: str | None = None) -> Redis:
    return Redis.from_url(url or settings.redis_url, decode_responses=True, socket_connect_timeout=5)

def create_vote_limiter(redis: Redis) -> SlidingWindowLimiter:
    return SlidingWindowLimiter(
        redis,
        prefix="rl:vote",
        limit=settings.vote_rate_limit_max,
        window_seconds=settings.vote_rate_limit_window_seconds,
    )

def get_redis(request: Request) -> Redis:
    return request.app.state.redis

def get_broadcaster(request: Request) -> RedisBroadcaster:
    return request.app.state.broadcaster

def get_vote_limiter(request: Request) -> SlidingWindowLimiter:
    return request.app.state.vote_limiter

async def redis_ok(redis: Redis) -> bool:
    try:
        return bool(await redis.ping())
    except RedisError:
        return False

async def enforce_vote_quota(
    user: User = Depends(get_current_user),
    limiter: SlidingWindowLimiter = Depends(get_vote_limiter),
) -> None:
    if user.role == "admin":
        return
    allowed, retry_after = await limiter.hit(str(user.id))
    if not allowed:
        raise RateLimited("Vote limit exceeded, please try again later", retry_after=retry_after)
