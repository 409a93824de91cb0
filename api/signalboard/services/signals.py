"""Signal store: creation, retrieval and audience-dependent presentation."""

from __future__ import annotations

import logging
import re
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import unit_of_work
from ..errors import NotFoundError, PolicyViolation, ValidationError
from ..models import SignalColor, SignalStatus
from ..settings import (
    FEED_PAGE_LIMIT,
    SIGNAL_DESCRIPTION_MAX_LENGTH,
    SIGNAL_DESCRIPTION_MIN_LENGTH,
    SIGNAL_FLAG_MAX_COUNT,
    SIGNAL_FLAG_MAX_LENGTH,
)
from ..utils.access import ensure_approved, ensure_moderator, is_approved, is_moderator
from ..utils.identifiers import (
    hash_identifier,
    identifier_kind,
    mask_first_name,
    mask_identifier,
)
from .screening import screen

logger = logging.getLogger(__name__)

FIRST_NAME_PATTERN = re.compile(r"^[^\W\d_][^\W\d_'\-]*(['\-][^\W\d_]+)*$")


def _clean_flags(flags: list[str] | None, label: str) -> list[str]:
    """Trim, lowercase and de-duplicate tags, keeping first-seen order."""
    cleaned: list[str] = []
    for raw in flags or []:
        tag = raw.strip().lower()
        if not tag:
            continue
        if len(tag) > SIGNAL_FLAG_MAX_LENGTH:
            raise ValidationError(
                f"Each {label} must be at most {SIGNAL_FLAG_MAX_LENGTH} characters"
            )
        if tag not in cleaned:
            cleaned.append(tag)
    if len(cleaned) > SIGNAL_FLAG_MAX_COUNT:
        raise ValidationError(f"At most {SIGNAL_FLAG_MAX_COUNT} {label}s are allowed")
    return cleaned


def _validate_color(value: str) -> SignalColor:
    try:
        return SignalColor(value)
    except ValueError:
        raise ValidationError("overall_signal must be one of: green, yellow, red")


def _validate_first_name(value: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError("subject_first_name is required")
    if len(name) > 50 or not FIRST_NAME_PATTERN.match(name):
        raise ValidationError("subject_first_name must be a single first name")
    return name


def _validate_last_initial(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    initial = value.strip()
    if len(initial) != 1 or not initial.isalpha():
        raise ValidationError("subject_last_initial must be a single letter")
    return initial.upper()


def _validate_description(value: str) -> str:
    description = (value or "").strip()
    if len(description) < SIGNAL_DESCRIPTION_MIN_LENGTH:
        raise ValidationError(
            f"Description must be at least {SIGNAL_DESCRIPTION_MIN_LENGTH} characters"
        )
    if len(description) > SIGNAL_DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description must be at most {SIGNAL_DESCRIPTION_MAX_LENGTH} characters"
        )
    return description


def _validate_image_ref(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    ref = value.strip()
    if ref.lower().startswith("data:"):
        raise ValidationError("image_ref must be a blob-store reference, not inline data")
    return ref


def create_signal(
    db: Session,
    author: models.Profile,
    payload: schemas.SignalCreate,
) -> models.Signal:
    """
    Validate, screen and persist a new signal in ``under_review``.

    Raises:
        AuthorizationError: Author is not an approved member
        ValidationError: Malformed input
        PolicyViolation: Description failed screening; nothing is persisted
    """
    ensure_approved(author)

    first_name = _validate_first_name(payload.subject_first_name)
    last_initial = _validate_last_initial(payload.subject_last_initial)
    color = _validate_color(payload.overall_signal)
    description = _validate_description(payload.description)
    green_flags = _clean_flags(payload.green_flags, "green flag")
    red_flags = _clean_flags(payload.red_flags, "red flag")
    image_ref = _validate_image_ref(payload.image_ref)
    platform = (payload.subject_platform or "").strip() or None

    identifier_hash = None
    identifier_mask = None
    identifier = (payload.subject_identifier or "").strip()
    if identifier:
        if identifier_kind(identifier) is None:
            raise ValidationError("subject_identifier must be a phone number or a social handle")
        identifier_hash = hash_identifier(identifier)
        identifier_mask = mask_identifier(identifier)

    result = screen(description)
    if not result.passed:
        logger.info(f"Signal from {author.id} failed screening: {result.reasons}")
        raise PolicyViolation(result.reasons)

    now = models.utcnow()
    signal = models.Signal(
        author_id=author.id,
        subject_first_name=first_name,
        subject_last_initial=last_initial,
        subject_identifier_hash=identifier_hash,
        subject_identifier_mask=identifier_mask,
        subject_platform=platform,
        description=description,
        green_flags=green_flags,
        red_flags=red_flags,
        image_ref=image_ref,
        overall_signal=color.value,
        status=SignalStatus.UNDER_REVIEW.value,
        green_votes=0,
        red_votes=0,
        comment_count=0,
        view_count=0,
        flagged_count=0,
        created_at=now,
        updated_at=now,
    )
    with unit_of_work(db, "create_signal"):
        db.add(signal)

    db.refresh(signal)
    logger.info(f"Signal {signal.id} created by {author.id} (under review)")
    return signal


def get_signal_or_404(db: Session, signal_id: UUID) -> models.Signal:
    signal = db.get(models.Signal, signal_id)
    if signal is None:
        raise NotFoundError("Signal not found")
    return signal


def get_visible_signal(db: Session, signal_id: UUID, viewer: models.Profile) -> models.Signal:
    """
    Fetch a signal the viewer may see.

    Active signals are visible to every member. Other states are visible only to
    the author and to moderators; everyone else gets NotFound.
    """
    signal = get_signal_or_404(db, signal_id)
    if signal.status == SignalStatus.ACTIVE.value:
        return signal
    if signal.author_id == viewer.id or is_moderator(viewer):
        return signal
    raise NotFoundError("Signal not found")


def present_signal(signal: models.Signal, viewer: models.Profile) -> schemas.SignalView:
    """
    Shape a signal for ``viewer``.

    Approved members see everything except the identifier hash, which is never
    returned. Everyone else gets the redacted projection. The record is untouched.
    """
    common = dict(
        id=signal.id,
        overall_signal=signal.overall_signal,
        status=signal.status,
        green_votes=signal.green_votes,
        red_votes=signal.red_votes,
        comment_count=signal.comment_count,
        view_count=signal.view_count,
        created_at=signal.created_at,
        updated_at=signal.updated_at,
    )
    if not is_approved(viewer):
        return schemas.SignalView(
            redacted=True,
            subject_first_name=mask_first_name(signal.subject_first_name),
            **common,
        )
    return schemas.SignalView(
        redacted=False,
        subject_first_name=signal.subject_first_name,
        subject_last_initial=signal.subject_last_initial,
        subject_identifier_mask=signal.subject_identifier_mask,
        subject_platform=signal.subject_platform,
        description=signal.description,
        green_flags=list(signal.green_flags or []),
        red_flags=list(signal.red_flags or []),
        image_ref=signal.image_ref,
        **common,
    )


def present_for_moderation(signal: models.Signal) -> schemas.ModerationSignal:
    return schemas.ModerationSignal(
        id=signal.id,
        redacted=False,
        author_id=signal.author_id,
        flagged_count=signal.flagged_count,
        subject_first_name=signal.subject_first_name,
        subject_last_initial=signal.subject_last_initial,
        subject_identifier_mask=signal.subject_identifier_mask,
        subject_platform=signal.subject_platform,
        overall_signal=signal.overall_signal,
        status=signal.status,
        description=signal.description,
        green_flags=list(signal.green_flags or []),
        red_flags=list(signal.red_flags or []),
        image_ref=signal.image_ref,
        green_votes=signal.green_votes,
        red_votes=signal.red_votes,
        comment_count=signal.comment_count,
        view_count=signal.view_count,
        created_at=signal.created_at,
        updated_at=signal.updated_at,
    )


def list_moderation_queue(
    db: Session,
    actor: models.Profile,
    status: SignalStatus = SignalStatus.UNDER_REVIEW,
    limit: int = FEED_PAGE_LIMIT,
) -> list[models.Signal]:
    """Signals in ``status``, oldest first. Separate from the public feed."""
    ensure_moderator(actor)
    return (
        db.query(models.Signal)
        .filter(models.Signal.status == status.value)
        .order_by(models.Signal.created_at.asc(), models.Signal.id.asc())
        .limit(limit)
        .all()
    )
