from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Boolean, CheckConstraint, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, Uuid, func, text
from beatbound.db import Base

READY = "ready"


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    challenge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("challenges.id", ondelete="CASCADE"), index=True, nullable=False
    )
    artist_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    video_url: Mapped[str] = mapped_column(String(500), nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="processing", index=True)  # 'processing'|'ready'|'failed'|'disqualified'

    # Denormalized counter; written only by services.votes through atomic UPDATE ... RETURNING
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"), index=True)

    disqualified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    disqualified_reason: Mapped[str | None] = mapped_column(Text(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("challenge_id", "artist_id", name="uq_submission_one_per_artist"),
        CheckConstraint("vote_count >= 0", name="ck_submission_vote_count_non_negative"),
    )
