from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from beatbound.errors import NotFound
from beatbound.services.leaderboard import leaderboard_for_challenge, vote_percentage
from conftest import make_challenge, make_submission, make_user


def test_vote_percentage_one_decimal():
    assert vote_percentage(30, 60) == 50.0
    assert vote_percentage(20, 60) == 33.3
    assert vote_percentage(10, 60) == 16.7
    assert vote_percentage(1, 8) == 12.5
    assert vote_percentage(0, 0) == 0


@pytest.mark.asyncio
async def test_ranks_and_percentages(session):
    ch = await make_challenge(session)
    low = await make_submission(session, ch, vote_count=10)
    top = await make_submission(session, ch, vote_count=30)
    mid = await make_submission(session, ch, vote_count=20)

    snap = await leaderboard_for_challenge(session, ch.id)

    board = snap["leaderboard"]
    assert [e.id for e in board] == [top.id, mid.id, low.id]
    assert [e.rank for e in board] == [1, 2, 3]
    assert [e.vote_percentage for e in board] == [50.0, 33.3, 16.7]
    assert snap["total_votes"] == 60
    assert sum(e.vote_percentage for e in board) == pytest.approx(100.0)


@pytest.mark.asyncio
async def test_only_eligible_submissions_are_ranked(session):
    ch = await make_challenge(session)
    ready = await make_submission(session, ch, vote_count=5)
    await make_submission(session, ch, vote_count=50, status="processing")
    await make_submission(session, ch, vote_count=40, disqualified=True)
    await make_submission(session, ch, vote_count=30, status="failed")
    other = await make_challenge(session)
    await make_submission(session, other, vote_count=99)

    snap = await leaderboard_for_challenge(session, ch.id)

    assert [e.id for e in snap["leaderboard"]] == [ready.id]
    assert snap["total_votes"] == 5
    assert snap["leaderboard"][0].vote_percentage == 100.0


@pytest.mark.asyncio
async def test_zero_votes_gives_zero_percentages(session):
    ch = await make_challenge(session)
    await make_submission(session, ch)
    await make_submission(session, ch)

    snap = await leaderboard_for_challenge(session, ch.id)

    assert snap["total_votes"] == 0
    assert [e.vote_percentage for e in snap["leaderboard"]] == [0, 0]


@pytest.mark.asyncio
async def test_window_caps_entries_and_total(session):
    ch = await make_challenge(session)
    for n in range(6):
        await make_submission(session, ch, vote_count=n + 1)

    snap = await leaderboard_for_challenge(session, ch.id, limit=3)

    assert [e.vote_count for e in snap["leaderboard"]] == [6, 5, 4]
    # total covers the returned window only
    assert snap["total_votes"] == 15


@pytest.mark.asyncio
async def test_repeated_reads_are_identical(session):
    ch = await make_challenge(session)
    for count in (7, 7, 3, 7, 0):
        await make_submission(session, ch, vote_count=count)

    first = await leaderboard_for_challenge(session, ch.id)
    second = await leaderboard_for_challenge(session, ch.id)

    assert [e.model_dump() for e in first["leaderboard"]] == [e.model_dump() for e in second["leaderboard"]]
    assert first["total_votes"] == second["total_votes"] == 24


@pytest.mark.asyncio
async def test_entries_carry_artist_profile(session):
    ch = await make_challenge(session)
    artist = await make_user(session, role="artist", display_name="MC Loop")
    sub = await make_submission(session, ch, vote_count=1, artist=artist, title="Loop Theory")

    entry = (await leaderboard_for_challenge(session, ch.id))["leaderboard"][0]

    assert entry.id == sub.id
    assert entry.title == "Loop Theory"
    assert entry.artist_id == artist.id
    assert entry.artist_username == artist.username
    assert entry.artist_display_name == "MC Loop"


@pytest.mark.asyncio
async def test_unknown_challenge_is_not_found(session):
    with pytest.raises(NotFound, match="Challenge not found"):
        await leaderboard_for_challenge(session, uuid.uuid4())


@pytest.mark.asyncio
async def test_equal_counts_rank_earliest_submission_first(session):
    ch = await make_challenge(session)
    base = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    # inserted newest first so insertion order cannot explain the result
    created = [
        await make_submission(session, ch, vote_count=5, created_at=base + timedelta(minutes=n))
        for n in reversed(range(6))
    ]
    expected = [s.id for s in reversed(created)]

    snap = await leaderboard_for_challenge(session, ch.id)

    assert [e.id for e in snap["leaderboard"]] == expected
    assert [e.rank for e in snap["leaderboard"]] == [1, 2, 3, 4, 5, 6]


@pytest.mark.asyncio
async def test_same_instant_ties_fall_back_to_id(session):
    ch = await make_challenge(session)
    at = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    subs = [await make_submission(session, ch, vote_count=2, created_at=at) for _ in range(4)]
    leader = await make_submission(session, ch, vote_count=3, created_at=at + timedelta(hours=1))

    snap = await leaderboard_for_challenge(session, ch.id)

    assert [e.id for e in snap["leaderboard"]] == [leader.id] + sorted(s.id for s in subs)


@pytest.mark.asyncio
async def test_percentage_sum_overshoots_by_rounding_only(session):
    ch = await make_challenge(session)
    for _ in range(7):
        await make_submission(session, ch, vote_count=1)

    board = (await leaderboard_for_challenge(session, ch.id))["leaderboard"]

    assert [e.vote_percentage for e in board] == [14.3] * 7
    total = sum(e.vote_percentage for e in board)
    assert total == pytest.approx(100.1)
    # each entry is off by at most half of the last decimal place
    assert total - 100 <= 0.05 * len(board) + 1e-9
