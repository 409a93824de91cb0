"""Member administration: verification status and role changes."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models
from ..db import unit_of_work
from ..errors import NotFoundError, StateConflict, ValidationError
from ..models import AccountStatus, Role
from ..utils.access import ensure_admin, ensure_moderator
from ..utils.audit import log_moderation_action

logger = logging.getLogger(__name__)


def get_member(db: Session, member_id: UUID) -> models.Profile:
    member = db.get(models.Profile, member_id)
    if member is None:
        raise NotFoundError("Member not found")
    return member


def _lock_member(db: Session, member_id: UUID) -> models.Profile:
    member = (
        db.query(models.Profile)
        .filter(models.Profile.id == member_id)
        .with_for_update()
        .first()
    )
    if member is None:
        raise NotFoundError("Member not found")
    return member


def set_account_status(
    db: Session,
    member_id: UUID,
    actor: models.Profile,
    account_status: AccountStatus | str,
    note: str | None = None,
) -> models.Profile:
    """
    Approve, suspend, ban or reset a member (moderator only).

    Members cannot change their own status. Setting the current status again is a
    conflict rather than a silent no-op, so the audit log only records changes.
    """
    ensure_moderator(actor)
    try:
        target = AccountStatus(account_status)
    except ValueError:
        raise ValidationError("Unknown account status")
    if member_id == actor.id:
        raise StateConflict("You cannot change your own account status")

    with unit_of_work(db, "set_account_status"):
        member = _lock_member(db, member_id)
        previous = member.account_status
        if previous == target.value:
            raise StateConflict(f"Member is already {target.value}")

        member.account_status = target.value
        member.updated_at = models.utcnow()
        log_moderation_action(
            db=db,
            actor_id=actor.id,
            action="set_account_status",
            target_type="member",
            target_id=member.id,
            from_state=previous,
            to_state=target.value,
            note=note,
        )

    db.refresh(member)
    logger.info(f"Member {member.id} status {previous} -> {member.account_status} by {actor.id}")
    return member


def set_role(
    db: Session,
    member_id: UUID,
    actor: models.Profile,
    role: Role | str,
    note: str | None = None,
) -> models.Profile:
    """Grant or revoke moderator/admin role (admin only, never on yourself)."""
    ensure_admin(actor)
    try:
        target = Role(role)
    except ValueError:
        raise ValidationError("Unknown role")
    if member_id == actor.id:
        raise StateConflict("You cannot change your own role")

    with unit_of_work(db, "set_role"):
        member = _lock_member(db, member_id)
        previous = member.role
        if previous == target.value:
            raise StateConflict(f"Member already has role {target.value}")

        member.role = target.value
        member.updated_at = models.utcnow()
        log_moderation_action(
            db=db,
            actor_id=actor.id,
            action="set_role",
            target_type="member",
            target_id=member.id,
            from_state=previous,
            to_state=target.value,
            note=note,
        )

    db.refresh(member)
    logger.info(f"Member {member.id} role {previous} -> {member.role} by {actor.id}")
    return member
