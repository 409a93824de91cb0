"""Report and claim endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import require_approved, require_moderator
from ..deps import get_db
from ..models import ClaimStatus, ReportStatus
from ..services import reports as report_service

router = APIRouter(prefix="/reports", tags=["Reports"])
claims_router = APIRouter(prefix="/claims", tags=["Claims"])


@router.post(
    "",
    response_model=schemas.Report,
    status_code=status.HTTP_201_CREATED,
)
def create_report(
    payload: schemas.ReportCreate,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(require_approved),
) -> schemas.Report:
    report = report_service.file_report(
        db, current_member, payload.signal_id, payload.reason, payload.details
    )
    return schemas.Report.model_validate(report)


@router.get("", response_model=schemas.Page[schemas.Report], tags=["Reports", "Moderation"])
def list_reports(
    status_filter: ReportStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    moderator: models.Profile = Depends(require_moderator),
) -> schemas.Page[schemas.Report]:
    """List reports (moderator only)."""
    reports = report_service.list_reports(db, moderator, status_filter, limit)
    return schemas.Page(
        items=[schemas.Report.model_validate(r) for r in reports],
        next_cursor=None,
    )


@router.patch("/{report_id}", response_model=schemas.Report, tags=["Reports", "Moderation"])
def update_report(
    report_id: UUID,
    payload: schemas.ReportUpdate,
    db: Session = Depends(get_db),
    moderator: models.Profile = Depends(require_moderator),
) -> schemas.Report:
    """
    Review, resolve or dismiss a report. Resolving removes the reported signal.
    """
    report = report_service.resolve_report(
        db, report_id, moderator, payload.status, payload.notes
    )
    return schemas.Report.model_validate(report)


@claims_router.post(
    "",
    response_model=schemas.Claim,
    status_code=status.HTTP_201_CREATED,
)
def create_claim(
    payload: schemas.ClaimCreate,
    db: Session = Depends(get_db),
    current_member: models.Profile = Depends(require_approved),
) -> schemas.Claim:
    claim = report_service.file_claim(
        db,
        current_member,
        payload.signal_id,
        payload.claim_type,
        payload.evidence_description,
    )
    return schemas.Claim.model_validate(claim)


@claims_router.get("", response_model=schemas.Page[schemas.Claim], tags=["Claims", "Moderation"])
def list_claims(
    status_filter: ClaimStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    moderator: models.Profile = Depends(require_moderator),
) -> schemas.Page[schemas.Claim]:
    claims = report_service.list_claims(db, moderator, status_filter, limit)
    return schemas.Page(
        items=[schemas.Claim.model_validate(c) for c in claims],
        next_cursor=None,
    )


@claims_router.patch("/{claim_id}", response_model=schemas.Claim, tags=["Claims", "Moderation"])
def update_claim(
    claim_id: UUID,
    payload: schemas.ClaimUpdate,
    db: Session = Depends(get_db),
    moderator: models.Profile = Depends(require_moderator),
) -> schemas.Claim:
    claim = report_service.resolve_claim(db, claim_id, moderator, payload.status, payload.notes)
    return schemas.Claim.model_validate(claim)
