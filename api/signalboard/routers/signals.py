"""Signal endpoints: submission, detail, screening preview and moderation."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_member, require_approved, require_moderator
from ..deps import get_db
from ..models import SignalStatus
from ..services import moderation
from ..services import signals as signal_service
from ..services.screening import screen

router = APIRouter(prefix="/signals", tags=["Signals"])
moderation_router = APIRouter(prefix="/moderation", tags=["Moderation"])


@router.post(
    "",
    response_model=schemas.SignalView,
    status_code=status.HTTP_201_CREATED,
)
def create_signal(
    payload: schemas.SignalCreate,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(require_approved),
) -> schemas.SignalView:
    """
    Submit a signal. It starts in ``under_review`` and stays out of the feed
    until a moderator approves it.
    """
    signal = signal_service.create_signal(db, current_member, payload)
    return signal_service.present_signal(signal, current_member)


@router.post("/screen", response_model=schemas.ScreenResponse)
def screen_text(
    payload: schemas.ScreenRequest,
    _member: models.Profile = Depends(get_current_member),
) -> schemas.ScreenResponse:
    """Preview the content screener without submitting anything."""
    result = screen(payload.text)
    return schemas.ScreenResponse(passed=result.passed, reasons=result.reasons)


@router.get("/{signal_id}", response_model=schemas.SignalView)
def get_signal(
    signal_id: UUID,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(get_current_member),
) -> schemas.SignalView:
    signal = signal_service.get_visible_signal(db, signal_id, current_member)
    return signal_service.present_signal(signal, current_member)


@router.post("/{signal_id}/transition", response_model=schemas.ModerationSignal)
def transition_signal(
    signal_id: UUID,
    payload: schemas.TransitionRequest,
    db: Session = Depends(get_db),
    moderator: models.Profile = Depends(require_moderator),
) -> schemas.ModerationSignal:
    """Approve, reject, hide, restore or remove a signal (moderator only)."""
    signal = moderation.transition_signal(
        db, signal_id, moderator, payload.status, payload.reason
    )
    return signal_service.present_for_moderation(signal)


@moderation_router.get("/signals", response_model=schemas.Page[schemas.ModerationSignal])
def list_moderation_queue(
    status_filter: SignalStatus = Query(SignalStatus.UNDER_REVIEW, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    moderator: models.Profile = Depends(require_moderator),
) -> schemas.Page[schemas.ModerationSignal]:
    """Signals awaiting (or past) moderation, oldest first."""
    signals = signal_service.list_moderation_queue(db, moderator, status_filter, limit)
    return schemas.Page(
        items=[signal_service.present_for_moderation(s) for s in signals],
        next_cursor=None,
    )
