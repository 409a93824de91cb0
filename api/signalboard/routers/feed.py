"""Feed and identifier search."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_member
from ..deps import get_db
from ..models import SignalColor
from ..services.ranking import FeedSort, query_feed, query_search
from ..settings import FEED_PAGE_LIMIT, SEARCH_PAGE_LIMIT

router = APIRouter(prefix="", tags=["Feed"])


@router.get("/feed", response_model=schemas.Page[schemas.SignalView])
def get_feed(
    color: SignalColor | None = None,
    sort: FeedSort = FeedSort.RECENT,
    limit: int = Query(FEED_PAGE_LIMIT, ge=1, le=FEED_PAGE_LIMIT),
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(get_current_member),
) -> schemas.Page[schemas.SignalView]:
    """
    Active signals, newest first or by engagement.

    Members who are not yet approved get the redacted projection.
    """
    items = query_feed(db, current_member, color=color, sort=sort, limit=limit)
    return schemas.Page(items=items, next_cursor=None)


@router.get("/search", response_model=schemas.SearchResults)
def search(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(SEARCH_PAGE_LIMIT, ge=1, le=SEARCH_PAGE_LIMIT),
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(get_current_member),
) -> schemas.SearchResults:
    """Find active signals by a phone number or handle, in any formatting."""
    return query_search(db, current_member, q, limit=limit)
