"""
Signal moderation state machine.

SignalStatus is the single source of truth. Transitions:
    under_review -> active     (approve)
    under_review -> removed    (reject)
    active       -> hidden     (hide)
    active       -> removed    (remove)
    hidden       -> active     (restore)
    hidden       -> removed    (remove)

removed is terminal. Only moderators and admins drive transitions, and every
transition is written to the audit log inside the same transaction.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models
from ..db import unit_of_work
from ..errors import AuthorizationError, NotFoundError, StateConflict
from ..models import SignalStatus
from ..utils.access import ensure_moderator
from ..utils.audit import log_moderation_action

logger = logging.getLogger(__name__)


# (from_state, to_state) -> audit action name
TRANSITIONS: dict[tuple[SignalStatus, SignalStatus], str] = {
    (SignalStatus.UNDER_REVIEW, SignalStatus.ACTIVE): "approve_signal",
    (SignalStatus.UNDER_REVIEW, SignalStatus.REMOVED): "reject_signal",
    (SignalStatus.ACTIVE, SignalStatus.HIDDEN): "hide_signal",
    (SignalStatus.ACTIVE, SignalStatus.REMOVED): "remove_signal",
    (SignalStatus.HIDDEN, SignalStatus.ACTIVE): "restore_signal",
    (SignalStatus.HIDDEN, SignalStatus.REMOVED): "remove_signal",
}

TERMINAL_STATES = frozenset({SignalStatus.REMOVED})


def can_transition(current: SignalStatus, target: SignalStatus) -> bool:
    return (current, target) in TRANSITIONS


def allowed_targets(current: SignalStatus) -> list[SignalStatus]:
    return [to for (frm, to) in TRANSITIONS if frm == current]


def apply_transition(
    db: Session,
    signal: models.Signal,
    actor_id: UUID,
    target: SignalStatus,
    reason: str | None = None,
) -> models.Signal:
    """
    Move ``signal`` to ``target`` and audit it, without committing.

    Callers own the transaction; report and claim resolution use this to remove
    a signal atomically with their own state change.

    Raises:
        StateConflict: If the transition is not in the table
    """
    current = SignalStatus(signal.status)
    if not can_transition(current, target):
        logger.warning(
            f"Rejected transition {current.value} -> {target.value} on signal {signal.id}"
        )
        raise StateConflict(f"Cannot move a signal from {current.value} to {target.value}")

    signal.status = target.value
    signal.updated_at = models.utcnow()
    log_moderation_action(
        db=db,
        actor_id=actor_id,
        action=TRANSITIONS[(current, target)],
        target_type="signal",
        target_id=signal.id,
        from_state=current.value,
        to_state=target.value,
        note=reason,
    )
    return signal


def transition_signal(
    db: Session,
    signal_id: UUID,
    actor: models.Profile,
    target: SignalStatus,
    reason: str | None = None,
) -> models.Signal:
    """
    Drive a signal through the state machine (moderator only).

    Authors cannot approve their own signals, even when they are moderators.
    """
    ensure_moderator(actor)

    with unit_of_work(db, "transition_signal"):
        signal = (
            db.query(models.Signal)
            .filter(models.Signal.id == signal_id)
            .with_for_update()
            .first()
        )
        if signal is None:
            raise NotFoundError("Signal not found")
        if target == SignalStatus.ACTIVE and signal.author_id == actor.id:
            raise AuthorizationError("authors cannot approve their own signals")

        apply_transition(db, signal, actor.id, target, reason)

    db.refresh(signal)
    logger.info(f"Signal {signal.id} moved to {signal.status} by {actor.id}")
    return signal
