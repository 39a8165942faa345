from __future__ import annotations
from dataclasses import dataclass
from uuid import UUID

import structlog
from redis.exceptions import RedisError
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from beatbound.errors import Duplicate, InvalidState, NotFound
from beatbound.models.challenge import Challenge, VOTING_OPEN
from beatbound.models.submission import Submission, READY
from beatbound.models.vote import Vote
from beatbound.services.broadcast import RedisBroadcaster, vote_topic

log = structlog.get_logger()


@dataclass
class CastResult:
    vote: Vote
    vote_count: int


# ---------- helpers ----------

async def _load_submission(session: AsyncSession, submission_id: UUID) -> Submission:
    sub = await session.get(Submission, submission_id)
    if not sub:
        raise NotFound("Submission")
    return sub


async def _require_voting_open(session: AsyncSession, challenge_id: UUID, message: str) -> Challenge:
    ch = await session.get(Challenge, challenge_id)
    if not ch:
        raise NotFound("Challenge")
    if ch.status != VOTING_OPEN:
        raise InvalidState(message)
    return ch


async def _existing_vote_id(session: AsyncSession, voter_id: UUID, submission_id: UUID) -> UUID | None:
    return await session.scalar(
        select(Vote.id).where(Vote.submission_id == submission_id, Vote.user_id == voter_id)
    )


async def _publish_delta(broadcaster: RedisBroadcaster, challenge_id: UUID, submission_id: UUID, vote_count: int, action: str) -> None:
    """Fire-and-forget after commit; the committed vote stands even if the relay is down."""
    event = {"submissionId": str(submission_id), "voteCount": int(vote_count), "action": action}
    try:
        await broadcaster.publish(vote_topic(challenge_id), event)
    except RedisError as e:
        log.warning("vote_publish_failed", challenge_id=str(challenge_id), submission_id=str(submission_id), action=action, error=str(e))


# ---------- ledger operations ----------

async def cast_vote(
    session: AsyncSession,
    broadcaster: RedisBroadcaster,
    *,
    voter_id: UUID,
    submission_id: UUID,
    origin_address: str | None,
) -> CastResult:
    """
    Record one vote and bump the submission counter by exactly one.

    The SELECT on existing votes is only an early exit. Two racing casts for
    the same (voter, submission) are settled by uq_vote_once_per_voter: the
    loser's INSERT fails, its transaction rolls back and it surfaces as
    Duplicate, so the counter is incremented once.
    """
    sub = await _load_submission(session, submission_id)
    if sub.status != READY:
        raise InvalidState("This submission is not ready for voting")
    if sub.disqualified:
        raise InvalidState("This submission has been disqualified")
    await _require_voting_open(session, sub.challenge_id, "Voting is not currently open for this challenge")

    if await _existing_vote_id(session, voter_id, sub.id):
        raise Duplicate("You have already voted for this submission")

    challenge_id = sub.challenge_id
    vote = Vote(submission_id=sub.id, user_id=voter_id, ip_address=origin_address)
    session.add(vote)
    try:
        await session.flush()
        new_count = await session.scalar(
            update(Submission)
            .where(Submission.id == submission_id)
            .values(vote_count=Submission.vote_count + 1)
            .returning(Submission.vote_count)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Duplicate("You have already voted for this submission")

    await session.refresh(vote)
    log.info("vote_cast", voter_id=str(voter_id), submission_id=str(submission_id), vote_count=int(new_count))
    await _publish_delta(broadcaster, challenge_id, submission_id, new_count, "add")
    return CastResult(vote=vote, vote_count=int(new_count))


async def retract_vote(
    session: AsyncSession,
    broadcaster: RedisBroadcaster,
    *,
    voter_id: UUID,
    submission_id: UUID,
) -> int:
    """Remove the caller's vote and decrement the counter. Returns the new count."""
    sub = await _load_submission(session, submission_id)
    if sub.disqualified:
        raise InvalidState("This submission has been disqualified")
    await _require_voting_open(session, sub.challenge_id, "Voting is no longer open for this challenge")

    challenge_id = sub.challenge_id
    deleted_id = await session.scalar(
        delete(Vote)
        .where(Vote.submission_id == submission_id, Vote.user_id == voter_id)
        .returning(Vote.id)
        .execution_options(synchronize_session=False)
    )
    if deleted_id is None:
        await session.rollback()
        raise Duplicate("You have not voted for this submission")

    # A vote row existed, so the counter is at least 1
    new_count = await session.scalar(
        update(Submission)
        .where(Submission.id == submission_id, Submission.vote_count > 0)
        .values(vote_count=Submission.vote_count - 1)
        .returning(Submission.vote_count)
        .execution_options(synchronize_session=False)
    )
    await session.commit()

    new_count = int(new_count or 0)
    log.info("vote_retracted", voter_id=str(voter_id), submission_id=str(submission_id), vote_count=new_count)
    await _publish_delta(broadcaster, challenge_id, submission_id, new_count, "remove")
    return new_count


# ---------- read-only lookups ----------

async def has_voted(session: AsyncSession, voter_id: UUID, submission_id: UUID) -> bool:
    return (await _existing_vote_id(session, voter_id, submission_id)) is not None


async def voted_submission_ids(session: AsyncSession, voter_id: UUID, challenge_id: UUID) -> list[UUID]:
    rows = await session.scalars(
        select(Vote.submission_id)
        .join(Submission, Submission.id == Vote.submission_id)
        .where(Vote.user_id == voter_id, Submission.challenge_id == challenge_id)
        .order_by(Vote.created_at.asc())
    )
    return list(rows.all())
