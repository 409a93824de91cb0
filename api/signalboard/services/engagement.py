"""Engagement ledger: votes, comments and views on signals.

Vote counters on a signal are denormalized from the live rows in ``votes`` and
maintained in the same transaction as the row change. The signal row is locked
for the duration, so concurrent votes on one signal serialize; the unique
(signal_id, user_id) constraint backs this up where locking is unavailable.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import unit_of_work
from ..errors import NotFoundError, StateConflict, StorageError, ValidationError
from ..models import SignalStatus, VoteType
from ..settings import COMMENT_MAX_LENGTH
from ..utils.access import ensure_approved
from .profanity import censor_profanity
from .signals import get_visible_signal

logger = logging.getLogger(__name__)

COUNTER_COLUMNS = {
    VoteType.GREEN: models.Signal.green_votes,
    VoteType.RED: models.Signal.red_votes,
}

# One retry covers the double-click race where two inserts hit the unique constraint.
VOTE_ATTEMPTS = 2


def _lock_active_signal(db: Session, signal_id: UUID) -> models.Signal:
    signal = (
        db.query(models.Signal)
        .filter(models.Signal.id == signal_id)
        .with_for_update()
        .first()
    )
    if signal is None:
        raise NotFoundError("Signal not found")
    if signal.status != SignalStatus.ACTIVE.value:
        raise StateConflict("Signal is not open for engagement")
    return signal


def _bump(db: Session, signal_id: UUID, column, delta: int) -> None:
    db.query(models.Signal).filter(models.Signal.id == signal_id).update(
        {column: column + delta, models.Signal.updated_at: models.utcnow()},
        synchronize_session=False,
    )


def _apply_vote(
    db: Session, signal_id: UUID, user_id: UUID, vote_type: VoteType
) -> VoteType | None:
    """Toggle the member's vote; returns the live vote afterwards."""
    existing = (
        db.query(models.Vote)
        .filter(models.Vote.signal_id == signal_id, models.Vote.user_id == user_id)
        .with_for_update()
        .first()
    )

    if existing is None:
        db.add(models.Vote(signal_id=signal_id, user_id=user_id, vote_type=vote_type.value))
        db.flush()
        _bump(db, signal_id, COUNTER_COLUMNS[vote_type], +1)
        return vote_type

    previous = VoteType(existing.vote_type)
    if previous == vote_type:
        # Same vote again: toggle off
        db.delete(existing)
        db.flush()
        _bump(db, signal_id, COUNTER_COLUMNS[previous], -1)
        return None

    # Switch sides: the old vote goes, the new one arrives
    db.delete(existing)
    db.flush()
    _bump(db, signal_id, COUNTER_COLUMNS[previous], -1)
    db.add(models.Vote(signal_id=signal_id, user_id=user_id, vote_type=vote_type.value))
    db.flush()
    _bump(db, signal_id, COUNTER_COLUMNS[vote_type], +1)
    return vote_type


def cast_vote(
    db: Session,
    signal_id: UUID,
    voter: models.Profile,
    vote_type: VoteType | str,
) -> schemas.VoteState:
    """
    Idempotent vote toggle.

    - No live vote: insert it and increment the matching counter.
    - Same type as the live vote: delete it and decrement (toggle-off).
    - Other type: delete the old one, insert the new one, adjust both counters.

    Raises:
        AuthorizationError: Voter is not approved
        ValidationError: Unknown vote type
        NotFoundError / StateConflict: Signal missing or not active
    """
    ensure_approved(voter)
    try:
        vote_type = VoteType(vote_type)
    except ValueError:
        raise ValidationError("vote_type must be one of: green, red")

    for attempt in range(VOTE_ATTEMPTS):
        try:
            with unit_of_work(db, "cast_vote"):
                _lock_active_signal(db, signal_id)
                my_vote = _apply_vote(db, signal_id, voter.id, vote_type)
            break
        except IntegrityError as e:
            logger.warning(
                f"Concurrent vote on signal {signal_id} by {voter.id} "
                f"(attempt {attempt + 1}/{VOTE_ATTEMPTS}): {e}"
            )
            if attempt + 1 == VOTE_ATTEMPTS:
                raise StorageError() from e

    signal = db.get(models.Signal, signal_id)
    db.refresh(signal)
    logger.info(
        f"Vote on signal {signal_id} by {voter.id}: {vote_type.value} -> "
        f"{my_vote.value if my_vote else 'none'}"
    )
    return schemas.VoteState(
        signal_id=signal_id,
        my_vote=my_vote,
        green_votes=signal.green_votes,
        red_votes=signal.red_votes,
    )


def get_vote_state(db: Session, signal_id: UUID, viewer: models.Profile) -> schemas.VoteState:
    signal = get_visible_signal(db, signal_id, viewer)
    vote = (
        db.query(models.Vote)
        .filter(models.Vote.signal_id == signal_id, models.Vote.user_id == viewer.id)
        .first()
    )
    return schemas.VoteState(
        signal_id=signal_id,
        my_vote=VoteType(vote.vote_type) if vote else None,
        green_votes=signal.green_votes,
        red_votes=signal.red_votes,
    )


def count_live_votes(db: Session, signal_id: UUID, vote_type: VoteType) -> int:
    """Count straight from the ledger rows."""
    return (
        db.query(models.Vote)
        .filter(models.Vote.signal_id == signal_id, models.Vote.vote_type == vote_type.value)
        .count()
    )


def add_comment(
    db: Session,
    signal_id: UUID,
    author: models.Profile,
    body: str,
) -> models.Comment:
    """
    Append a comment to an active signal. Profanity is censored, not rejected.
    """
    ensure_approved(author)
    text = (body or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty")
    if len(text) > COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment must be at most {COMMENT_MAX_LENGTH} characters")

    comment = models.Comment(
        signal_id=signal_id,
        author_id=author.id,
        body=censor_profanity(text),
        created_at=models.utcnow(),
    )
    with unit_of_work(db, "add_comment"):
        _lock_active_signal(db, signal_id)
        db.add(comment)
        db.flush()
        _bump(db, signal_id, models.Signal.comment_count, +1)

    db.refresh(comment)
    logger.info(f"Comment {comment.id} added to signal {signal_id} by {author.id}")
    return comment


def list_comments(
    db: Session,
    signal_id: UUID,
    viewer: models.Profile,
    limit: int = 50,
) -> list[models.Comment]:
    """Oldest first. Comment bodies are content, so only approved members read them."""
    ensure_approved(viewer)
    get_visible_signal(db, signal_id, viewer)
    return (
        db.query(models.Comment)
        .filter(models.Comment.signal_id == signal_id)
        .order_by(models.Comment.created_at.asc())
        .limit(limit)
        .all()
    )


def record_view(db: Session, signal_id: UUID, viewer: models.Profile) -> int:
    """Increment the view counter of an active signal; returns the new count."""
    with unit_of_work(db, "record_view"):
        updated = (
            db.query(models.Signal)
            .filter(
                models.Signal.id == signal_id,
                models.Signal.status == SignalStatus.ACTIVE.value,
            )
            .update(
                {
                    models.Signal.view_count: models.Signal.view_count + 1,
                    models.Signal.updated_at: models.utcnow(),
                },
                synchronize_session=False,
            )
        )
    if updated == 0:
        if db.get(models.Signal, signal_id) is None:
            raise NotFoundError("Signal not found")
        raise StateConflict("Signal is not open for engagement")

    signal = db.get(models.Signal, signal_id)
    db.refresh(signal)
    logger.debug(f"View on signal {signal_id} by {viewer.id}")
    return signal.view_count
