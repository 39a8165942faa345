from __future__ import annotations
import asyncio
import json
from typing import AsyncIterator
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from beatbound.services.broadcast import RedisBroadcaster, vote_topic

log = structlog.get_logger()

KEEPALIVE_FRAME = ": heartbeat\n\n"


def sse_frame(data: str) -> str:
    return f"data: {data}\n\n"


async def live_feed(broadcaster: RedisBroadcaster, challenge_id: UUID, keepalive_seconds: float) -> AsyncIterator[str]:
    """
    Server-Sent-Events frames for one client watching one challenge.

    Yields a "connected" acknowledgement, then every vote delta published on
    the challenge topic verbatim, plus a comment-only keep-alive every
    `keepalive_seconds` regardless of traffic. The subscription is released
    when the consumer stops iterating or the task is cancelled.
    """
    topic = vote_topic(challenge_id)
    yield sse_frame(json.dumps({"type": "connected", "challengeId": str(challenge_id)}))

    loop = asyncio.get_running_loop()
    try:
        async with broadcaster.subscribe(topic) as sub:
            log.info("live_feed_opened", topic=topic)
            deadline = loop.time() + keepalive_seconds
            while True:
                message = await sub.get(timeout=deadline - loop.time())
                if message is not None:
                    yield sse_frame(message)
                # checked after messages too, so a busy topic still gets heartbeats
                if loop.time() >= deadline:
                    yield KEEPALIVE_FRAME
                    deadline = loop.time() + keepalive_seconds
    except RedisError as e:
        # Ends this stream only; the publisher and other listeners are unaffected
        log.error("live_feed_subscriber_error", topic=topic, error=str(e))
    finally:
        log.info("live_feed_closed", topic=topic)
