"""Audit logging utility for moderation actions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy import event
from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    actor_id: UUID
    action: str
    target_type: str | None
    target_id: str | None
    from_state: str | None
    to_state: str | None
    note: str | None
    created_at: datetime


AuditHook = Callable[[AuditEvent], None]

# External sinks (SIEM forwarders and the like). Called in order, after commit.
_hooks: list[AuditHook] = []

# Events wait in Session.info until their transaction commits
_PENDING_KEY = "pending_audit_events"


def register_audit_hook(hook: AuditHook) -> None:
    _hooks.append(hook)


def unregister_audit_hook(hook: AuditHook) -> None:
    if hook in _hooks:
        _hooks.remove(hook)


def log_moderation_action(
    db: Session,
    actor_id: UUID,
    action: str,
    target_type: str | None = None,
    target_id: UUID | str | None = None,
    from_state: str | None = None,
    to_state: str | None = None,
    note: str | None = None,
) -> models.AuditLog:
    """
    Record a moderation action in the audit log.

    The entry is added to the caller's transaction, so it commits or rolls back
    together with the action it describes. Registered hooks see the event only
    once that transaction has committed, and never if it rolls back.

    Args:
        db: Database session
        actor_id: ID of the member performing the action
        action: Action name (e.g., "transition_signal", "resolve_report")
        target_type: Type of target (e.g., "signal", "report", "member")
        target_id: ID of the target entity
        from_state: State before the action, when the action is a transition
        to_state: State after the action
        note: Reason or additional context

    Returns:
        The created AuditLog entry
    """
    entry = models.AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        from_state=from_state,
        to_state=to_state,
        note=note,
        created_at=models.utcnow(),
    )
    db.add(entry)
    db.flush()

    audit_event = AuditEvent(
        actor_id=entry.actor_id,
        action=entry.action,
        target_type=entry.target_type,
        target_id=entry.target_id,
        from_state=entry.from_state,
        to_state=entry.to_state,
        note=entry.note,
        created_at=entry.created_at,
    )
    db.info.setdefault(_PENDING_KEY, []).append(audit_event)

    logger.info(
        f"audit: {action} by {actor_id} on {target_type}:{entry.target_id}"
        + (f" {from_state} -> {to_state}" if from_state or to_state else "")
    )
    return entry


def list_audit_entries(
    db: Session,
    action: str | None = None,
    actor_id: UUID | None = None,
    limit: int = 100,
) -> list[models.AuditLog]:
    """Newest first."""
    query = db.query(models.AuditLog)
    if action:
        query = query.filter(models.AuditLog.action == action)
    if actor_id:
        query = query.filter(models.AuditLog.actor_id == actor_id)
    return query.order_by(models.AuditLog.created_at.desc()).limit(limit).all()


@event.listens_for(Session, "after_commit")
def _deliver_audit_events(session: Session) -> None:
    for audit_event in session.info.pop(_PENDING_KEY, []):
        for hook in list(_hooks):
            try:
                hook(audit_event)
            except Exception as e:
                # The action is already committed; a broken sink must not turn it into an error
                logger.error(
                    f"Audit hook failed for {audit_event.action} on "
                    f"{audit_event.target_type}:{audit_event.target_id}: {e}",
                    exc_info=True,
                )


@event.listens_for(Session, "after_soft_rollback")
def _discard_audit_events(session: Session, previous_transaction) -> None:
    session.info.pop(_PENDING_KEY, None)
