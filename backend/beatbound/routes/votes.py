from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from beatbound.auth_deps import get_current_user
from beatbound.config import settings
from beatbound.db import get_session
from beatbound.errors import BadRequest
from beatbound.models.user import User
from beatbound.redis_deps import enforce_vote_quota, get_broadcaster
from beatbound.schemas.leaderboard import Leaderboard
from beatbound.schemas.vote import MyVotes, VoteCastResult, VoteCreate, VotePublic, VoteRemovedResult, VoteStatus
from beatbound.services.broadcast import RedisBroadcaster
from beatbound.services.leaderboard import leaderboard_for_challenge
from beatbound.services.live_feed import live_feed
from beatbound.services.votes import cast_vote, has_voted, retract_vote, voted_submission_ids

router = APIRouter(prefix="/votes", tags=["votes"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

@router.post("", status_code=201, response_model=VoteCastResult, dependencies=[Depends(enforce_vote_quota)])
async def post_vote(
    payload: VoteCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    broadcaster: RedisBroadcaster = Depends(get_broadcaster),
):
    origin = request.client.host if request.client else None
    result = await cast_vote(
        session, broadcaster,
        voter_id=user.id, submission_id=payload.submission_id, origin_address=origin,
    )
    return VoteCastResult(vote=VotePublic.model_validate(result.vote), vote_count=result.vote_count)

@router.get("/stream")
async def stream_votes(
    challenge_id: UUID | None = Query(default=None, alias="challengeId"),
    broadcaster: RedisBroadcaster = Depends(get_broadcaster),
):
    if challenge_id is None:
        raise BadRequest("challengeId is required")
    return StreamingResponse(
        live_feed(broadcaster, challenge_id, settings.live_feed_keepalive_seconds),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )

@router.get("/leaderboard/{challenge_id}", response_model=Leaderboard)
async def get_leaderboard(
    challenge_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
):
    return await leaderboard_for_challenge(session, challenge_id)

@router.get("/status/{submission_id}", response_model=VoteStatus)
async def vote_status(
    submission_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return VoteStatus(submission_id=submission_id, has_voted=await has_voted(session, user.id, submission_id))

@router.get("/mine", response_model=MyVotes)
async def my_votes(
    challenge_id: UUID = Query(..., alias="challengeId"),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    ids = await voted_submission_ids(session, user.id, challenge_id)
    return MyVotes(challenge_id=challenge_id, submission_ids=ids)

@router.delete("/{submission_id}", response_model=VoteRemovedResult)
async def delete_vote(
    submission_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    broadcaster: RedisBroadcaster = Depends(get_broadcaster),
):
    count = await retract_vote(session, broadcaster, voter_id=user.id, submission_id=submission_id)
    return VoteRemovedResult(vote_count=count)
