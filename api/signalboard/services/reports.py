"""Reports and subject claims against signals.

Both carry their own resolution state, separate from the signal's moderation
status. Resolving a report, or verifying a dispute claim, removes the signal
through the state machine in the same transaction.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..db import unit_of_work
from ..errors import NotFoundError, StateConflict, ValidationError
from ..models import ClaimStatus, ClaimType, ReportReason, ReportStatus, SignalStatus
from ..utils.access import ensure_approved, ensure_moderator
from ..utils.audit import log_moderation_action
from .moderation import apply_transition
from .signals import get_visible_signal

logger = logging.getLogger(__name__)

OPEN_REPORT_STATUSES = (ReportStatus.PENDING.value, ReportStatus.REVIEWING.value)

# from -> allowed targets
REPORT_TRANSITIONS: dict[ReportStatus, set[ReportStatus]] = {
    ReportStatus.PENDING: {ReportStatus.REVIEWING, ReportStatus.RESOLVED, ReportStatus.DISMISSED},
    ReportStatus.REVIEWING: {ReportStatus.RESOLVED, ReportStatus.DISMISSED},
}


def _remove_signal(db: Session, signal_id: UUID, actor_id: UUID, reason: str) -> None:
    signal = (
        db.query(models.Signal)
        .filter(models.Signal.id == signal_id)
        .with_for_update()
        .first()
    )
    if signal is None or signal.status == SignalStatus.REMOVED.value:
        return
    apply_transition(db, signal, actor_id, SignalStatus.REMOVED, reason)


# ============================================================================
# REPORTS
# ============================================================================


def file_report(
    db: Session,
    reporter: models.Profile,
    signal_id: UUID,
    reason: ReportReason | str = ReportReason.USER_REPORT,
    details: str | None = None,
) -> models.Report:
    """
    Flag a signal for moderator attention and bump its flagged count.

    A member has at most one open report per signal.
    """
    ensure_approved(reporter)
    try:
        reason = ReportReason(reason)
    except ValueError:
        raise ValidationError("Unknown report reason")
    get_visible_signal(db, signal_id, reporter)

    with unit_of_work(db, "file_report"):
        open_report = (
            db.query(models.Report)
            .filter(
                models.Report.signal_id == signal_id,
                models.Report.reporter_id == reporter.id,
                models.Report.status.in_(OPEN_REPORT_STATUSES),
            )
            .first()
        )
        if open_report is not None:
            raise StateConflict("You already reported this signal")

        report = models.Report(
            signal_id=signal_id,
            reporter_id=reporter.id,
            reason=reason.value,
            details=(details or "").strip() or None,
            status=ReportStatus.PENDING.value,
            created_at=models.utcnow(),
        )
        db.add(report)
        db.query(models.Signal).filter(models.Signal.id == signal_id).update(
            {models.Signal.flagged_count: models.Signal.flagged_count + 1},
            synchronize_session=False,
        )

    db.refresh(report)
    logger.info(f"Report {report.id} filed on signal {signal_id} ({reason.value})")
    return report


def list_reports(
    db: Session,
    actor: models.Profile,
    status: ReportStatus | None = None,
    limit: int = 50,
) -> list[models.Report]:
    """Newest first (moderator only)."""
    ensure_moderator(actor)
    query = db.query(models.Report)
    if status is not None:
        query = query.filter(models.Report.status == ReportStatus(status).value)
    return query.order_by(models.Report.created_at.desc()).limit(limit).all()


def resolve_report(
    db: Session,
    report_id: UUID,
    actor: models.Profile,
    status: ReportStatus | str,
    notes: str | None = None,
) -> models.Report:
    """
    Move a report forward (moderator only).

    ``resolved`` upholds the report and removes the signal; ``dismissed`` leaves
    the signal alone; ``reviewing`` marks it as being looked at.
    """
    ensure_moderator(actor)
    try:
        target = ReportStatus(status)
    except ValueError:
        raise ValidationError("Unknown report status")

    with unit_of_work(db, "resolve_report"):
        report = (
            db.query(models.Report)
            .filter(models.Report.id == report_id)
            .with_for_update()
            .first()
        )
        if report is None:
            raise NotFoundError("Report not found")

        current = ReportStatus(report.status)
        if target not in REPORT_TRANSITIONS.get(current, set()):
            raise StateConflict(f"Cannot move a report from {current.value} to {target.value}")

        now = models.utcnow()
        report.status = target.value
        report.updated_at = now
        if notes is not None:
            report.resolution_notes = notes
        if target in (ReportStatus.RESOLVED, ReportStatus.DISMISSED):
            report.resolved_by = actor.id
            report.resolved_at = now

        log_moderation_action(
            db=db,
            actor_id=actor.id,
            action=f"report_{target.value}",
            target_type="report",
            target_id=report.id,
            from_state=current.value,
            to_state=target.value,
            note=notes,
        )
        if target == ReportStatus.RESOLVED:
            _remove_signal(db, report.signal_id, actor.id, f"Report {report.id} resolved")

    db.refresh(report)
    logger.info(f"Report {report.id} -> {report.status} by {actor.id}")
    return report


# ============================================================================
# CLAIMS
# ============================================================================


def file_claim(
    db: Session,
    claimant: models.Profile,
    signal_id: UUID,
    claim_type: ClaimType | str,
    evidence_description: str,
) -> models.Claim:
    """A subject confirms or disputes a signal about them. One claim per signal."""
    ensure_approved(claimant)
    try:
        claim_type = ClaimType(claim_type)
    except ValueError:
        raise ValidationError("claim_type must be one of: confirm, dispute")
    evidence = (evidence_description or "").strip()
    if not evidence:
        raise ValidationError("Evidence description is required")

    signal = get_visible_signal(db, signal_id, claimant)
    if signal.author_id == claimant.id:
        raise StateConflict("Authors cannot claim their own signals")

    claim = models.Claim(
        signal_id=signal_id,
        claimant_id=claimant.id,
        claim_type=claim_type.value,
        evidence_description=evidence,
        status=ClaimStatus.PENDING.value,
        created_at=models.utcnow(),
    )
    try:
        with unit_of_work(db, "file_claim"):
            db.add(claim)
    except IntegrityError:
        raise StateConflict("You already filed a claim on this signal")

    db.refresh(claim)
    logger.info(f"Claim {claim.id} ({claim_type.value}) filed on signal {signal_id}")
    return claim


def list_claims(
    db: Session,
    actor: models.Profile,
    status: ClaimStatus | None = None,
    limit: int = 50,
) -> list[models.Claim]:
    ensure_moderator(actor)
    query = db.query(models.Claim)
    if status is not None:
        query = query.filter(models.Claim.status == ClaimStatus(status).value)
    return query.order_by(models.Claim.created_at.desc()).limit(limit).all()


def resolve_claim(
    db: Session,
    claim_id: UUID,
    actor: models.Profile,
    status: ClaimStatus | str,
    notes: str | None = None,
) -> models.Claim:
    """
    Verify or reject a pending claim (moderator only).

    A verified dispute removes the signal.
    """
    ensure_moderator(actor)
    try:
        target = ClaimStatus(status)
    except ValueError:
        raise ValidationError("Unknown claim status")
    if target == ClaimStatus.PENDING:
        raise ValidationError("A claim can only be verified or rejected")

    with unit_of_work(db, "resolve_claim"):
        claim = (
            db.query(models.Claim)
            .filter(models.Claim.id == claim_id)
            .with_for_update()
            .first()
        )
        if claim is None:
            raise NotFoundError("Claim not found")
        if claim.status != ClaimStatus.PENDING.value:
            raise StateConflict("Claim is already resolved")

        claim.status = target.value
        claim.resolved_by = actor.id
        claim.resolved_at = models.utcnow()
        claim.resolution_notes = notes

        log_moderation_action(
            db=db,
            actor_id=actor.id,
            action=f"claim_{target.value}",
            target_type="claim",
            target_id=claim.id,
            from_state=ClaimStatus.PENDING.value,
            to_state=target.value,
            note=notes,
        )
        if target == ClaimStatus.VERIFIED and claim.claim_type == ClaimType.DISPUTE.value:
            _remove_signal(db, claim.signal_id, actor.id, f"Dispute claim {claim.id} verified")

    db.refresh(claim)
    logger.info(f"Claim {claim.id} -> {claim.status} by {actor.id}")
    return claim
