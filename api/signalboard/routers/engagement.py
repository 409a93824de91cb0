"""Votes, comments and views on signals."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_member, require_approved
from ..deps import get_db
from ..services import engagement

router = APIRouter(prefix="/signals", tags=["Engagement"])


@router.put("/{signal_id}/votes", response_model=schemas.VoteState)
def cast_vote(
    signal_id: UUID,
    payload: schemas.VoteRequest,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(require_approved),
) -> schemas.VoteState:
    """
    Toggle a vote. Repeating the same vote removes it; the other type switches it.
    """
    return engagement.cast_vote(db, signal_id, current_member, payload.vote_type)


@router.get("/{signal_id}/votes/mine", response_model=schemas.VoteState)
def get_my_vote(
    signal_id: UUID,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(get_current_member),
) -> schemas.VoteState:
    return engagement.get_vote_state(db, signal_id, current_member)


@router.post(
    "/{signal_id}/comments",
    response_model=schemas.Comment,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    signal_id: UUID,
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(require_approved),
) -> schemas.Comment:
    comment = engagement.add_comment(db, signal_id, current_member, payload.body)
    return schemas.Comment.model_validate(comment)


@router.get("/{signal_id}/comments", response_model=schemas.Page[schemas.Comment])
def list_comments(
    signal_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(require_approved),
) -> schemas.Page[schemas.Comment]:
    comments = engagement.list_comments(db, signal_id, current_member, limit)
    return schemas.Page(
        items=[schemas.Comment.model_validate(c) for c in comments],
        next_cursor=None,
    )


@router.post("/{signal_id}/views", response_model=schemas.ViewRecorded)
def record_view(
    signal_id: UUID,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(get_current_member),
) -> schemas.ViewRecorded:
    view_count = engagement.record_view(db, signal_id, current_member)
    return schemas.ViewRecorded(signal_id=signal_id, view_count=view_count)
