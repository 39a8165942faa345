from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID

class LeaderboardEntry(BaseModel):
    id: UUID
    title: str
    thumbnail_url: str | None = None
    vote_count: int
    artist_id: UUID
    artist_username: str
    artist_display_name: str | None = None
    artist_avatar_url: str | None = None
    rank: int
    vote_percentage: float

class Leaderboard(BaseModel):
    challenge_id: UUID
    leaderboard: list[LeaderboardEntry]
    total_votes: int
