from __future__ import annotations
import math
import time
import uuid

import structlog
from redis.asyncio import Redis

log = structlog.get_logger()


class SlidingWindowLimiter:
    """
    Rolling-window quota per identity, backed by one Redis sorted set per key
    (member = hit id, score = hit time in ms).
    """

    def __init__(self, redis: Redis, *, prefix: str, limit: int, window_seconds: int):
        self._redis = redis
        self.prefix = prefix
        self.limit = limit
        self.window_ms = int(window_seconds * 1000)

    def _key(self, identity: str) -> str:
        return f"{self.prefix}:{identity}"

    async def hit(self, identity: str) -> tuple[bool, int]:
        """
        Record one hit. Returns (allowed, retry_after_seconds); rejected hits
        are not counted against the window.
        """
        key = self._key(identity)
        now_ms = int(time.time() * 1000)
        member = f"{now_ms}-{uuid.uuid4().hex}"

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, 0, now_ms - self.window_ms)
            pipe.zadd(key, {member: now_ms})
            pipe.zcard(key)
            pipe.pexpire(key, self.window_ms)
            _, _, count, _ = await pipe.execute()

        if int(count) <= self.limit:
            return True, 0

        await self._redis.zrem(key, member)
        oldest = await self._redis.zrange(key, 0, 0, withscores=True)
        oldest_ms = int(oldest[0][1]) if oldest else now_ms
        retry_after = max(1, math.ceil((oldest_ms + self.window_ms - now_ms) / 1000))
        log.info("rate_limited", key=key, limit=self.limit, retry_after=retry_after)
        return False, retry_after

    async def reset(self, identity: str) -> None:
        await self._redis.delete(self._key(identity))
