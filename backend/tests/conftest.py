from __future__ import annotations
import uuid
from datetime import datetime
from typing import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from fakeredis import aioredis
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from beatbound.db import Base, get_session
from beatbound.main import app
from beatbound.models.challenge import Challenge
from beatbound.models.submission import Submission
from beatbound.models.user import User
import beatbound.models.vote  # noqa: F401  registers the votes table
from beatbound.redis_deps import get_broadcaster, get_redis, get_vote_limiter
from beatbound.security import make_access_token
from beatbound.services.broadcast import RedisBroadcaster
from beatbound.services.rate_limit import SlidingWindowLimiter

TEST_VOTE_LIMIT = 5


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed SQLite so concurrent sessions get their own connections
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'beatbound.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as s:
        yield s


@pytest_asyncio.fixture
async def redis():
    r = aioredis.FakeRedis(decode_responses=True)
    await r.flushall()
    yield r
    await r.aclose()


@pytest.fixture
def broadcaster(redis) -> RedisBroadcaster:
    return RedisBroadcaster(redis)


@pytest.fixture
def vote_limiter(redis) -> SlidingWindowLimiter:
    return SlidingWindowLimiter(redis, prefix="rl:vote", limit=TEST_VOTE_LIMIT, window_seconds=3600)


@pytest_asyncio.fixture
async def client(session_factory, redis, broadcaster, vote_limiter) -> AsyncIterator[AsyncClient]:
    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_redis] = lambda: redis
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    app.dependency_overrides[get_vote_limiter] = lambda: vote_limiter
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------- data builders ----------

async def make_user(session: AsyncSession, *, role: str = "fan", suspended: bool = False, display_name: str | None = None) -> User:
    tag = uuid.uuid4().hex[:8]
    user = User(
        email=f"user-{tag}@example.com",
        username=f"user_{tag}",
        password_hash="not-a-real-hash",
        display_name=display_name,
        role=role,
        suspended=suspended,
    )
    session.add(user)
    await session.commit()
    return user


async def make_challenge(session: AsyncSession, *, status: str = "voting", producer: User | None = None) -> Challenge:
    producer = producer or await make_user(session, role="producer")
    ch = Challenge(producer_id=producer.id, title="Late Night Trap Beat", status=status)
    session.add(ch)
    await session.commit()
    return ch


async def make_submission(
    session: AsyncSession,
    challenge: Challenge,
    *,
    vote_count: int = 0,
    status: str = "ready",
    disqualified: bool = False,
    artist: User | None = None,
    title: str | None = None,
    created_at: datetime | None = None,
) -> Submission:
    artist = artist or await make_user(session, role="artist", display_name="Artist")
    sub = Submission(
        challenge_id=challenge.id,
        artist_id=artist.id,
        title=title or f"Take {uuid.uuid4().hex[:6]}",
        video_url="https://cdn.example.com/video.mp4",
        status=status,
        vote_count=vote_count,
        disqualified=disqualified,
    )
    if created_at is not None:
        sub.created_at = created_at
    session.add(sub)
    await session.commit()
    return sub


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token(str(user.id))}"}
