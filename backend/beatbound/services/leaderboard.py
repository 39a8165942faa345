from __future__ import annotations
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import Row, select
from sqlalchemy.ext.asyncio import AsyncSession

from beatbound.config import settings
from beatbound.errors import NotFound
from beatbound.models.challenge import Challenge
from beatbound.models.submission import Submission, READY
from beatbound.models.user import User
from beatbound.schemas.leaderboard import LeaderboardEntry


def vote_percentage(vote_count: int, total_votes: int) -> float:
    """Share of the window's votes, one decimal, halves rounded up (33.35 -> 33.4)."""
    if total_votes <= 0:
        return 0.0
    return int(vote_count * 1000 / total_votes + 0.5) / 10


def rank_standings(rows: Iterable[tuple[Submission, User]]) -> tuple[list[LeaderboardEntry], int]:
    """
    Turn already-sorted (submission, artist) rows into ranked entries.
    Total votes cover only the rows given, i.e. the leaderboard window.
    """
    rows = list(rows)
    total_votes = sum(int(s.vote_count) for s, _ in rows)
    entries = [
        LeaderboardEntry(
            id=s.id,
            title=s.title,
            thumbnail_url=s.thumbnail_url,
            vote_count=int(s.vote_count),
            artist_id=s.artist_id,
            artist_username=artist.username,
            artist_display_name=artist.display_name,
            artist_avatar_url=artist.avatar_url,
            rank=idx + 1,
            vote_percentage=vote_percentage(int(s.vote_count), total_votes),
        )
        for idx, (s, artist) in enumerate(rows)
    ]
    return entries, total_votes


async def eligible_standings(session: AsyncSession, challenge_id: UUID, limit: int) -> Sequence[Row[tuple[Submission, User]]]:
    # Ties on vote_count: earliest submission first, then id, so repeated reads agree
    q = (
        select(Submission, User)
        .join(User, User.id == Submission.artist_id)
        .where(
            Submission.challenge_id == challenge_id,
            Submission.status == READY,
            Submission.disqualified.is_(False),
        )
        .order_by(Submission.vote_count.desc(), Submission.created_at.asc(), Submission.id.asc())
        .limit(limit)
    )
    return (await session.execute(q)).all()


async def leaderboard_for_challenge(session: AsyncSession, challenge_id: UUID, limit: int | None = None) -> dict:
    """Point-in-time snapshot; never mutates state."""
    ch = await session.get(Challenge, challenge_id)
    if not ch:
        raise NotFound("Challenge")
    rows = await eligible_standings(session, challenge_id, limit or settings.leaderboard_limit)
    entries, total_votes = rank_standings(rows)
    return {"challenge_id": ch.id, "leaderboard": entries, "total_votes": total_votes}
