"""Feed and search queries over active signals."""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import ValidationError
from ..models import SignalColor, SignalStatus
from ..settings import FEED_PAGE_LIMIT, SEARCH_PAGE_LIMIT
from ..utils.access import is_approved
from ..utils.identifiers import hash_identifier
from .signals import present_signal

logger = logging.getLogger(__name__)


class FeedSort(str, Enum):
    RECENT = "recent"
    ENGAGEMENT = "engagement"


# Weights of the engagement score. Votes count once, comments twice, views a tenth.
VOTE_WEIGHT = 1.0
COMMENT_WEIGHT = 2.0
VIEW_WEIGHT = 0.1


def engagement_score_expression():
    """SQL form of the score so ranking happens in the datastore."""
    return (
        (models.Signal.green_votes + models.Signal.red_votes) * VOTE_WEIGHT
        + models.Signal.comment_count * COMMENT_WEIGHT
        + models.Signal.view_count * VIEW_WEIGHT
    )


def engagement_score(signal: models.Signal) -> float:
    """green_votes + red_votes + 2*comment_count + 0.1*view_count, from current counters."""
    return (
        (signal.green_votes + signal.red_votes) * VOTE_WEIGHT
        + signal.comment_count * COMMENT_WEIGHT
        + signal.view_count * VIEW_WEIGHT
    )


def _clamp(limit: int | None, ceiling: int) -> int:
    if limit is None:
        return ceiling
    return max(1, min(limit, ceiling))


def query_feed(
    db: Session,
    viewer: models.Profile,
    color: SignalColor | str | None = None,
    sort: FeedSort | str = FeedSort.RECENT,
    limit: int | None = None,
) -> list[schemas.SignalView]:
    """
    Active signals, optionally filtered by color.

    Sorted by recency, or by engagement score with ties broken by recency. The
    score is computed at query time. Moderators see the same feed as everyone;
    non-active signals live in the moderation queue.
    """
    try:
        sort = FeedSort(sort)
    except ValueError:
        raise ValidationError("sort must be one of: recent, engagement")

    query = db.query(models.Signal).filter(models.Signal.status == SignalStatus.ACTIVE.value)
    if color:
        try:
            color = SignalColor(color)
        except ValueError:
            raise ValidationError("color must be one of: green, yellow, red")
        query = query.filter(models.Signal.overall_signal == color.value)

    if sort == FeedSort.ENGAGEMENT:
        query = query.order_by(
            engagement_score_expression().desc(),
            models.Signal.created_at.desc(),
            models.Signal.id.desc(),
        )
    else:
        query = query.order_by(models.Signal.created_at.desc(), models.Signal.id.desc())

    signals = query.limit(_clamp(limit, FEED_PAGE_LIMIT)).all()
    return [present_signal(signal, viewer) for signal in signals]


def query_search(
    db: Session,
    viewer: models.Profile,
    raw_query: str,
    limit: int | None = None,
) -> schemas.SearchResults:
    """
    Exact lookup by identifier hash among active signals, newest first.

    Callers who are not approved get ``locked=True`` rather than an empty list.
    """
    if not is_approved(viewer):
        logger.info(f"Search locked for member {viewer.id} ({viewer.account_status})")
        return schemas.SearchResults(locked=True, items=[])

    term = (raw_query or "").strip()
    if not term:
        raise ValidationError("Search query cannot be empty")

    identifier_hash = hash_identifier(term)
    signals = (
        db.query(models.Signal)
        .filter(
            models.Signal.subject_identifier_hash == identifier_hash,
            models.Signal.status == SignalStatus.ACTIVE.value,
        )
        .order_by(models.Signal.created_at.desc(), models.Signal.id.desc())
        .limit(_clamp(limit, SEARCH_PAGE_LIMIT))
        .all()
    )
    logger.info(f"Search by {viewer.id} for {identifier_hash[:8]}: {len(signals)} result(s)")
    return schemas.SearchResults(
        locked=False,
        items=[present_signal(signal, viewer) for signal in signals],
    )
