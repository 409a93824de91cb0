"""Member administration and audit log endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import require_admin, require_moderator
from ..deps import get_db
from ..services import members
from ..utils.audit import list_audit_entries

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/members/{member_id}", response_model=schemas.Member)
def get_member(
    member_id: UUID,
    db: Session = Depends(get_db),
    _moderator: models.Profile = Depends(require_moderator),
) -> schemas.Member:
    return schemas.Member.model_validate(members.get_member(db, member_id))


@router.patch("/members/{member_id}/status", response_model=schemas.Member)
def update_member_status(
    member_id: UUID,
    payload: schemas.AccountStatusUpdate,
    db: Session = Depends(get_db),
    moderator: models.Profile = Depends(require_moderator),
) -> schemas.Member:
    """Approve, suspend or ban a member (moderator only)."""
    member = members.set_account_status(
        db, member_id, moderator, payload.account_status, payload.note
    )
    return schemas.Member.model_validate(member)


@router.patch("/members/{member_id}/role", response_model=schemas.Member)
def update_member_role(
    member_id: UUID,
    payload: schemas.RoleUpdate,
    db: Session = Depends(get_db),
    admin: models.Profile = Depends(require_admin),
) -> schemas.Member:
    """Promote or demote a member (admin only)."""
    member = members.set_role(db, member_id, admin, payload.role, payload.note)
    return schemas.Member.model_validate(member)


@router.get("/audit", response_model=schemas.Page[schemas.AuditLogEntry])
def list_audit_log(
    action: str | None = None,
    actor_id: UUID | None = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _admin: models.Profile = Depends(require_admin),
) -> schemas.Page[schemas.AuditLogEntry]:
    """Moderation and admin actions, newest first (admin only)."""
    entries = list_audit_entries(db, action=action, actor_id=actor_id, limit=limit)
    return schemas.Page(
        items=[schemas.AuditLogEntry.model_validate(e) for e in entries],
        next_cursor=None,
    )
