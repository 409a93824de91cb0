from __future__ import annotations

from datetime import datetime
from typing import Generic, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    AccountStatus,
    ClaimStatus,
    ClaimType,
    ReportReason,
    ReportStatus,
    Role,
    SignalColor,
    SignalStatus,
    VoteType,
)


# ============================================================================
# BASE SCHEMAS
# ============================================================================


class Problem(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs."""

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: str | None = None
    errors: dict[str, list[str]] | None = None


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Generic list response."""

    items: list[T]
    next_cursor: str | None = None


# ============================================================================
# HEALTH & CONFIG
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"


class Config(BaseModel):
    """Public system configuration."""

    description_min_length: int
    description_max_length: int
    max_flags: int
    feed_page_limit: int
    search_page_limit: int
    invite_ttl_days: int


# ============================================================================
# SIGNAL SCHEMAS
# ============================================================================


class SignalCreate(BaseModel):
    """Create signal request. Length and content rules are enforced by the service."""

    subject_first_name: str = Field(..., max_length=50)
    subject_last_initial: str | None = Field(None, max_length=1)
    subject_identifier: str | None = Field(None, max_length=100)
    subject_platform: str | None = Field(None, max_length=50)
    overall_signal: str
    description: str
    green_flags: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)
    image_ref: str | None = Field(None, max_length=500)


class SignalView(BaseModel):
    """
    Signal as shown to a caller.

    When ``redacted`` is true the caller is not approved: the first name is masked
    and description, image, flags and identity fields are omitted.
    """

    id: UUID
    redacted: bool
    subject_first_name: str
    subject_last_initial: str | None = None
    subject_identifier_mask: str | None = None
    subject_platform: str | None = None
    overall_signal: SignalColor
    status: SignalStatus
    description: str | None = None
    green_flags: list[str] | None = None
    red_flags: list[str] | None = None
    image_ref: str | None = None
    green_votes: int
    red_votes: int
    comment_count: int
    view_count: int
    created_at: datetime
    updated_at: datetime


class ModerationSignal(SignalView):
    """Moderator view, including authorship and report pressure."""

    author_id: UUID
    flagged_count: int


class TransitionRequest(BaseModel):
    status: SignalStatus
    reason: str | None = Field(None, max_length=1000)


class ScreenRequest(BaseModel):
    text: str = Field(..., max_length=5000)


class ScreenResponse(BaseModel):
    passed: bool
    reasons: list[str]


# ============================================================================
# ENGAGEMENT SCHEMAS
# ============================================================================


class VoteRequest(BaseModel):
    vote_type: VoteType


class VoteState(BaseModel):
    """Counters after a vote, plus the caller's live vote (None after toggle-off)."""

    signal_id: UUID
    my_vote: VoteType | None = None
    green_votes: int
    red_votes: int


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1)


class Comment(BaseModel):
    id: UUID
    signal_id: UUID
    author_id: UUID
    body: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ViewRecorded(BaseModel):
    signal_id: UUID
    view_count: int


# ============================================================================
# QUERY SCHEMAS
# ============================================================================


class SearchResults(BaseModel):
    """
    Search outcome.

    ``locked`` is true when the caller may not search; ``items`` is then empty
    and means nothing. An unlocked empty list means no matches.
    """

    locked: bool
    items: list[SignalView] = Field(default_factory=list)


# ============================================================================
# INVITE SCHEMAS
# ============================================================================


class Invite(BaseModel):
    code: str
    created_by: UUID
    used_by: UUID | None = None
    expires_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InviteCheck(BaseModel):
    code: str
    redeemable: bool


class RedeemResult(BaseModel):
    member_id: UUID
    account_status: AccountStatus
    invited_by: UUID


# ============================================================================
# REPORT & CLAIM SCHEMAS
# ============================================================================


class ReportCreate(BaseModel):
    signal_id: UUID
    reason: ReportReason = ReportReason.USER_REPORT
    details: str | None = Field(None, max_length=2000)


class Report(BaseModel):
    id: UUID
    signal_id: UUID
    reporter_id: UUID
    reason: ReportReason
    details: str | None = None
    status: ReportStatus
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    resolution_notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportUpdate(BaseModel):
    status: Literal["reviewing", "resolved", "dismissed"]
    notes: str | None = Field(None, max_length=2000)


class ClaimCreate(BaseModel):
    signal_id: UUID
    claim_type: ClaimType
    evidence_description: str = Field(..., min_length=1, max_length=2000)


class Claim(BaseModel):
    id: UUID
    signal_id: UUID
    claimant_id: UUID
    claim_type: ClaimType
    evidence_description: str
    status: ClaimStatus
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    resolution_notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClaimUpdate(BaseModel):
    status: Literal["verified", "rejected"]
    notes: str | None = Field(None, max_length=2000)


# ============================================================================
# ADMIN SCHEMAS
# ============================================================================


class Member(BaseModel):
    id: UUID
    account_status: AccountStatus
    role: Role
    invited_by: UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountStatusUpdate(BaseModel):
    account_status: AccountStatus
    note: str | None = Field(None, max_length=1000)


class RoleUpdate(BaseModel):
    role: Role
    note: str | None = Field(None, max_length=1000)


class AuditLogEntry(BaseModel):
    id: UUID
    actor_id: UUID
    action: str
    target_type: str | None = None
    target_id: str | None = None
    from_state: str | None = None
    to_state: str | None = None
    note: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
