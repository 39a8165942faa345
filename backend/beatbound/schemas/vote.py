from __future__ import annotations
from pydantic import BaseModel, ConfigDict
from uuid import UUID
from datetime import datetime

class VoteCreate(BaseModel):
    submission_id: UUID

class VotePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID
    user_id: UUID
    created_at: datetime
    # ip_address is kept for abuse analysis only, never returned

class VoteCastResult(BaseModel):
    vote: VotePublic
    vote_count: int

class VoteRemovedResult(BaseModel):
    message: str = "Vote removed"
    vote_count: int

class VoteStatus(BaseModel):
    submission_id: UUID
    has_voted: bool

class MyVotes(BaseModel):
    challenge_id: UUID
    submission_ids: list[UUID]
