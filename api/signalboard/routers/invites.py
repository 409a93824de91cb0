"""Invite gate endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_caller_id, require_approved
from ..deps import get_db
from ..services import invites

router = APIRouter(prefix="/invites", tags=["Invites"])


@router.post("", response_model=schemas.Invite, status_code=status.HTTP_201_CREATED)
def issue_invite(
    response: Response,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(require_approved),
) -> schemas.Invite:
    """
    Issue an invite code, or return the caller's outstanding one (200 in that case).
    """
    outstanding = invites.get_outstanding_invite(db, current_member)
    invite = invites.issue_invite(db, current_member)
    if outstanding is not None and outstanding.id == invite.id:
        response.status_code = status.HTTP_200_OK
    return schemas.Invite.model_validate(invite)


@router.get("/current", response_model=schemas.Invite | None)
def get_current_invite(
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(require_approved),
) -> schemas.Invite | None:
    invite = invites.get_outstanding_invite(db, current_member)
    return schemas.Invite.model_validate(invite) if invite else None


@router.get("/{code}", response_model=schemas.InviteCheck)
def check_invite(code: str, db: Session = Depends(get_db)) -> schemas.InviteCheck:
    """Whether a code can still be redeemed. Does not consume it."""
    normalized = invites.normalize_code(code)
    return schemas.InviteCheck(code=normalized, redeemable=invites.is_redeemable(db, normalized))


@router.post("/{code}/redeem", response_model=schemas.RedeemResult)
def redeem_invite(
    code: str,
    db: Session = Depends(get_db),
    caller_id: uuid.UUID = Depends(get_caller_id),
) -> schemas.RedeemResult:
    """
    Redeem a code for the calling identity, creating its pending member profile.
    """
    member = invites.redeem_invite(db, code, caller_id)
    return schemas.RedeemResult(
        member_id=member.id,
        account_status=member.account_status,
        invited_by=member.invited_by,
    )
