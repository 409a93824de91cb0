"""Invite gate: issuing and redeeming single-use admission codes."""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..db import unit_of_work
from ..errors import StateConflict, StorageError, ValidationError
from ..models import AccountStatus
from ..settings import INVITE_CODE_LENGTH, INVITE_TTL_DAYS
from ..utils.access import ensure_approved

logger = logging.getLogger(__name__)

# No 0/O or 1/I, which are easy to misread
INVITE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

CODE_GENERATION_ATTEMPTS = 5


def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    """Codes are case-insensitive; the canonical form is uppercase."""
    normalized = (code or "").strip().upper()
    if len(normalized) != INVITE_CODE_LENGTH or any(
        ch not in INVITE_ALPHABET for ch in normalized
    ):
        raise ValidationError("Invalid invite code format")
    return normalized


def _outstanding_query(db: Session, creator_id: UUID):
    now = models.utcnow()
    return db.query(models.Invite).filter(
        models.Invite.created_by == creator_id,
        models.Invite.used_by.is_(None),
        models.Invite.expires_at > now,
    )


def get_outstanding_invite(db: Session, creator: models.Profile) -> models.Invite | None:
    return _outstanding_query(db, creator.id).order_by(models.Invite.created_at.desc()).first()


def issue_invite(db: Session, creator: models.Profile) -> models.Invite:
    """
    Return the creator's outstanding invite, or issue a new one.

    A creator never holds two simultaneously valid codes: while one is unused and
    unexpired it is handed back instead of minting another. The creator's profile
    row is locked so concurrent requests serialize.
    """
    ensure_approved(creator)

    for attempt in range(CODE_GENERATION_ATTEMPTS):
        try:
            with unit_of_work(db, "issue_invite"):
                db.query(models.Profile).filter(
                    models.Profile.id == creator.id
                ).with_for_update().first()

                existing = (
                    _outstanding_query(db, creator.id)
                    .order_by(models.Invite.created_at.desc())
                    .first()
                )
                if existing is not None:
                    invite = existing
                    created = False
                else:
                    now = models.utcnow()
                    invite = models.Invite(
                        code=generate_invite_code(),
                        created_by=creator.id,
                        expires_at=now + timedelta(days=INVITE_TTL_DAYS),
                        created_at=now,
                    )
                    db.add(invite)
                    db.flush()
                    created = True
            break
        except IntegrityError as e:
            # Code collision with an existing invite: draw again
            logger.warning(
                f"Invite code collision for {creator.id} "
                f"(attempt {attempt + 1}/{CODE_GENERATION_ATTEMPTS}): {e}"
            )
    else:
        raise StorageError()

    db.refresh(invite)
    if created:
        logger.info(f"Invite issued by {creator.id}, expires {invite.expires_at.isoformat()}")
    else:
        logger.info(f"Reusing outstanding invite for {creator.id}")
    return invite


def is_redeemable(db: Session, code: str) -> bool:
    """Read-only check: unused and not expired."""
    normalized = normalize_code(code)
    now = models.utcnow()
    return (
        db.query(models.Invite)
        .filter(
            models.Invite.code == normalized,
            models.Invite.used_by.is_(None),
            models.Invite.expires_at > now,
        )
        .first()
        is not None
    )


def redeem_invite(db: Session, code: str, new_member_id: UUID) -> models.Profile:
    """
    Claim an invite for a new member and create their pending profile.

    The claim is a single conditional UPDATE (unused and unexpired), so of any
    number of concurrent redeemers exactly one sees a row change. The profile
    insert shares the transaction and is undone if the claim loses.

    Retrying after a successful redemption returns the same profile.

    Raises:
        ValidationError: Malformed code
        StateConflict: Unknown, used or expired code, or caller already a member
    """
    normalized = normalize_code(code)

    existing_member = db.get(models.Profile, new_member_id)
    if existing_member is not None:
        already_claimed = (
            db.query(models.Invite)
            .filter(models.Invite.code == normalized, models.Invite.used_by == new_member_id)
            .first()
        )
        if already_claimed is not None:
            return existing_member
        raise StateConflict("Already a member")

    now = models.utcnow()
    try:
        with unit_of_work(db, "redeem_invite"):
            member = models.Profile(
                id=new_member_id,
                account_status=AccountStatus.PENDING.value,
                created_at=now,
            )
            db.add(member)
            db.flush()

            claimed = (
                db.query(models.Invite)
                .filter(
                    models.Invite.code == normalized,
                    models.Invite.used_by.is_(None),
                    models.Invite.expires_at > now,
                )
                .update(
                    {models.Invite.used_by: new_member_id, models.Invite.used_at: now},
                    synchronize_session=False,
                )
            )
            if claimed != 1:
                raise StateConflict("Invite code is not redeemable")

            invite = db.query(models.Invite).filter(models.Invite.code == normalized).one()
            member.invited_by = invite.created_by
    except IntegrityError:
        # Same identity redeeming twice at once: the other request created the profile
        raise StateConflict("Already a member")
    except StateConflict:
        logger.warning(f"Redemption by {new_member_id} refused: code not redeemable")
        raise

    db.refresh(member)
    logger.info(f"Invite redeemed by {new_member_id} (invited by {member.invited_by})")
    return member
