from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every datetime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ============================================================================
# ENUMERATIONS
# ============================================================================


class AccountStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"
    BANNED = "banned"


class Role(str, Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


class SignalColor(str, Enum):
    """Author-declared overall sentiment of a signal."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class SignalStatus(str, Enum):
    """Moderation status. Transitions are defined in services/moderation.py."""
    UNDER_REVIEW = "under_review"
    ACTIVE = "active"
    HIDDEN = "hidden"
    REMOVED = "removed"


class VoteType(str, Enum):
    GREEN = "green"
    RED = "red"


class ReportReason(str, Enum):
    FALSE_INFO = "false_info"
    HARASSMENT = "harassment"
    DOXXING = "doxxing"
    SPAM = "spam"
    USER_REPORT = "user_report"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ClaimType(str, Enum):
    CONFIRM = "confirm"
    DISPUTE = "dispute"


class ClaimStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


# ============================================================================
# MEMBERS & INVITES
# ============================================================================


class Profile(Base):
    """Member profile. The id is the subject issued by the identity provider."""

    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_status = Column(
        String(20), nullable=False, default=AccountStatus.PENDING.value, index=True
    )
    role = Column(String(20), nullable=False, default=Role.MEMBER.value, index=True)
    invited_by = Column(Uuid, ForeignKey("profiles.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    signals = relationship("Signal", back_populates="author", foreign_keys="Signal.author_id")


class Invite(Base):
    """Single-use, expiring admission token."""

    __tablename__ = "invites"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(16), nullable=False, unique=True, index=True)  # stored uppercase
    created_by = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)
    used_by = Column(Uuid, ForeignKey("profiles.id"), nullable=True, unique=True)
    used_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    __table_args__ = (Index("ix_invites_creator_expires", created_by, expires_at),)


# ============================================================================
# SIGNALS
# ============================================================================


class Signal(Base):
    """A moderated report about a dating-conduct experience."""

    __tablename__ = "signals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    author_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)

    # Subject reference. Never raw PII beyond first name / last initial.
    subject_first_name = Column(String(50), nullable=False)
    subject_last_initial = Column(String(1), nullable=True)
    subject_identifier_hash = Column(String(64), nullable=True, index=True)  # SHA-256 hex
    subject_identifier_mask = Column(String(40), nullable=True)  # display only
    subject_platform = Column(String(50), nullable=True)

    # Content
    description = Column(Text, nullable=False)
    green_flags = Column(JSON, nullable=False, default=list)
    red_flags = Column(JSON, nullable=False, default=list)
    image_ref = Column(String(500), nullable=True)  # opaque blob-store reference

    overall_signal = Column(String(10), nullable=False, index=True)
    status = Column(
        String(20), nullable=False, default=SignalStatus.UNDER_REVIEW.value, index=True
    )

    # Engagement. Vote counters mirror live Vote rows; the rest only grow.
    green_votes = Column(Integer, nullable=False, default=0)
    red_votes = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    flagged_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    author = relationship("Profile", back_populates="signals", foreign_keys=[author_id])
    votes = relationship("Vote", back_populates="signal", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="signal", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("green_votes >= 0", name="ck_signals_green_votes_nonneg"),
        CheckConstraint("red_votes >= 0", name="ck_signals_red_votes_nonneg"),
        Index("ix_signals_status_created", status, created_at.desc()),
        Index("ix_signals_hash_status", subject_identifier_hash, status),
    )


# ============================================================================
# ENGAGEMENT
# ============================================================================


class Vote(Base):
    """Live vote of one member on one signal."""

    __tablename__ = "votes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    signal_id = Column(Uuid, ForeignKey("signals.id"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)
    vote_type = Column(String(10), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    signal = relationship("Signal", back_populates="votes")

    __table_args__ = (UniqueConstraint("signal_id", "user_id", name="uq_votes_signal_user"),)


class Comment(Base):
    """Append-only comment on a signal."""

    __tablename__ = "comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    signal_id = Column(Uuid, ForeignKey("signals.id"), nullable=False, index=True)
    author_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)
    body = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    signal = relationship("Signal", back_populates="comments")

    __table_args__ = (Index("ix_comments_signal_created", signal_id, created_at),)


# ============================================================================
# MODERATION
# ============================================================================


class Report(Base):
    """Member-submitted flag against a signal."""

    __tablename__ = "reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    signal_id = Column(Uuid, ForeignKey("signals.id"), nullable=False, index=True)
    reporter_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)

    reason = Column(String(30), nullable=False)
    details = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=ReportStatus.PENDING.value, index=True)
    resolved_by = Column(Uuid, ForeignKey("profiles.id"), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolution_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    __table_args__ = (Index("ix_reports_status_created", status, created_at.desc()),)


class Claim(Base):
    """A subject's claim to confirm or dispute a signal written about them."""

    __tablename__ = "claims"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    signal_id = Column(Uuid, ForeignKey("signals.id"), nullable=False, index=True)
    claimant_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)

    claim_type = Column(String(10), nullable=False)
    evidence_description = Column(Text, nullable=False)

    status = Column(String(20), nullable=False, default=ClaimStatus.PENDING.value, index=True)
    resolved_by = Column(Uuid, ForeignKey("profiles.id"), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolution_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("signal_id", "claimant_id", name="uq_claims_signal_claimant"),
    )


class AuditLog(Base):
    """Audit log for moderation and admin actions."""

    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    actor_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)

    action = Column(String(100), nullable=False, index=True)
    target_type = Column(String(20), nullable=True)
    target_id = Column(String(50), nullable=True, index=True)

    from_state = Column(String(20), nullable=True)
    to_state = Column(String(20), nullable=True)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    __table_args__ = (Index("ix_audit_logs_actor_created", actor_id, created_at.desc()),)
