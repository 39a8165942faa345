from __future__ import annotations
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from uuid import UUID

import anyio
import structlog
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

log = structlog.get_logger()


def vote_topic(challenge_id: UUID | str) -> str:
    return f"votes:{challenge_id}"


class Subscription:
    """Handle over one pub/sub topic; valid only inside RedisBroadcaster.subscribe()."""

    def __init__(self, pubsub: PubSub, topic: str):
        self._pubsub = pubsub
        self.topic = topic

    async def get(self, timeout: float) -> str | None:
        """
        Wait up to `timeout` seconds for the next message on the topic.
        Returns None on timeout. Subscribe/unsubscribe confirmations are
        skipped, so None may also come back early.
        """
        msg = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=max(0.0, timeout))
        if not msg or msg.get("type") != "message":
            return None
        data = msg["data"]
        return data.decode() if isinstance(data, bytes) else data


class RedisBroadcaster:
    """
    Best-effort relay of small JSON events over Redis pub/sub.
    No buffering or replay: events published while nobody listens are dropped.
    """

    def __init__(self, redis: Redis):
        self._redis = redis

    async def publish(self, topic: str, event: dict[str, Any]) -> int:
        """Publish and return the number of subscribers that received the event."""
        receivers = await self._redis.publish(topic, json.dumps(event, separators=(",", ":")))
        return int(receivers or 0)

    @asynccontextmanager
    async def subscribe(self, topic: str) -> AsyncIterator[Subscription]:
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(topic)
            yield Subscription(pubsub, topic)
        finally:
            # Runs on client disconnect too, when the surrounding task is being cancelled
            with anyio.CancelScope(shield=True):
                try:
                    await pubsub.unsubscribe(topic)
                except RedisError as e:
                    log.warning("pubsub_unsubscribe_failed", topic=topic, error=str(e))
                await pubsub.aclose()
