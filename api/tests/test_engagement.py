"""Votes, comments and views."""

from __future__ import annotations

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from signalboard import models
from signalboard.db import SessionLocal
from signalboard.errors import (
    AuthorizationError,
    NotFoundError,
    StateConflict,
    StorageError,
    ValidationError,
)
from signalboard.models import SignalStatus, VoteType
from signalboard.services.engagement import (
    add_comment,
    cast_vote,
    count_live_votes,
    get_vote_state,
    list_comments,
    record_view,
)


def _assert_counters_match_ledger(db, signal_id):
    signal = db.get(models.Signal, signal_id)
    db.refresh(signal)
    assert signal.green_votes == count_live_votes(db, signal_id, VoteType.GREEN)
    assert signal.red_votes == count_live_votes(db, signal_id, VoteType.RED)


def test_vote_toggle_sequence(db, member, make_signal):
    signal = make_signal(member)

    state = cast_vote(db, signal.id, member, VoteType.GREEN)
    assert (state.green_votes, state.red_votes, state.my_vote) == (1, 0, VoteType.GREEN)

    state = cast_vote(db, signal.id, member, VoteType.GREEN)
    assert (state.green_votes, state.red_votes, state.my_vote) == (0, 0, None)

    state = cast_vote(db, signal.id, member, VoteType.RED)
    assert (state.green_votes, state.red_votes, state.my_vote) == (0, 1, VoteType.RED)

    _assert_counters_match_ledger(db, signal.id)


def test_switching_vote_moves_the_count(db, member, make_signal):
    signal = make_signal(member)

    cast_vote(db, signal.id, member, "green")
    state = cast_vote(db, signal.id, member, "red")

    assert (state.green_votes, state.red_votes) == (0, 1)
    assert count_live_votes(db, signal.id, VoteType.GREEN) == 0
    assert count_live_votes(db, signal.id, VoteType.RED) == 1


def test_counters_track_many_voters(db, member, make_member, make_signal):
    signal = make_signal(member)
    voters = [make_member() for _ in range(4)]

    for voter in voters:
        cast_vote(db, signal.id, voter, VoteType.GREEN)
    cast_vote(db, signal.id, voters[0], VoteType.RED)
    cast_vote(db, signal.id, voters[1], VoteType.GREEN)

    state = get_vote_state(db, signal.id, voters[2])
    assert (state.green_votes, state.red_votes) == (2, 1)
    assert state.my_vote == VoteType.GREEN
    _assert_counters_match_ledger(db, signal.id)


def test_vote_requires_approved_member(db, member, pending_member, make_signal):
    signal = make_signal(member)
    with pytest.raises(AuthorizationError):
        cast_vote(db, signal.id, pending_member, VoteType.GREEN)


def test_vote_rejects_unknown_type(db, member, make_signal):
    signal = make_signal(member)
    with pytest.raises(ValidationError):
        cast_vote(db, signal.id, member, "blue")


@pytest.mark.parametrize("status", [SignalStatus.UNDER_REVIEW, SignalStatus.HIDDEN, SignalStatus.REMOVED])
def test_vote_on_non_active_signal_is_a_conflict(db, member, make_signal, status):
    signal = make_signal(member, status=status)
    with pytest.raises(StateConflict):
        cast_vote(db, signal.id, member, VoteType.GREEN)
    assert count_live_votes(db, signal.id, VoteType.GREEN) == 0


def test_vote_on_missing_signal(db, member):
    with pytest.raises(NotFoundError):
        cast_vote(db, uuid.uuid4(), member, VoteType.GREEN)


def test_comment_increments_count_and_is_censored(db, member, make_signal):
    signal = make_signal(member)

    comment = add_comment(db, signal.id, member, "  that was total shiiit, sorry  ")
    assert "shiiit" not in comment.body
    assert comment.body.startswith("that was total ")

    add_comment(db, signal.id, member, "agreed, same experience here")
    db.refresh(signal)
    assert signal.comment_count == 2

    bodies = [c.body for c in list_comments(db, signal.id, member)]
    assert bodies[1] == "agreed, same experience here"


def test_empty_comment_rejected(db, member, make_signal):
    signal = make_signal(member)
    with pytest.raises(ValidationError):
        add_comment(db, signal.id, member, "   ")


def test_comment_on_hidden_signal_is_a_conflict(db, member, make_signal):
    signal = make_signal(member, status=SignalStatus.HIDDEN)
    with pytest.raises(StateConflict):
        add_comment(db, signal.id, member, "anyone else see this")


def test_record_view(db, member, pending_member, make_signal):
    signal = make_signal(member)

    assert record_view(db, signal.id, member) == 1
    assert record_view(db, signal.id, pending_member) == 2


def test_record_view_requires_active_signal(db, member, make_signal):
    signal = make_signal(member, status=SignalStatus.UNDER_REVIEW)
    with pytest.raises(StateConflict):
        record_view(db, signal.id, member)
    with pytest.raises(NotFoundError):
        record_view(db, uuid.uuid4(), member)


def _vote_from_threads(signal_id, voter_ids, vote_type):
    """Cast one vote per voter id at once, each thread on its own session."""
    barrier = threading.Barrier(len(voter_ids))

    def vote(voter_id):
        session = SessionLocal()
        try:
            voter = session.get(models.Profile, voter_id)
            barrier.wait()
            cast_vote(session, signal_id, voter, vote_type)
            return None
        except StorageError as e:
            # Lost every retry against the other toggles
            return e
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(voter_ids)) as pool:
        return list(pool.map(vote, voter_ids))


def test_concurrent_toggles_by_one_member_keep_counters_consistent(db, member, make_signal):
    signal_id = make_signal(member).id

    outcomes = _vote_from_threads(signal_id, [member.id] * 5, VoteType.GREEN)

    assert any(outcome is None for outcome in outcomes)
    db.expire_all()
    _assert_counters_match_ledger(db, signal_id)
    assert count_live_votes(db, signal_id, VoteType.GREEN) <= 1


def test_concurrent_votes_by_many_members_all_count(db, member, make_member, make_signal):
    signal_id = make_signal(member).id
    voter_ids = [make_member().id for _ in range(5)]

    outcomes = _vote_from_threads(signal_id, voter_ids, VoteType.RED)

    assert outcomes == [None] * len(voter_ids)
    db.expire_all()
    _assert_counters_match_ledger(db, signal_id)
    assert db.get(models.Signal, signal_id).red_votes == len(voter_ids)
