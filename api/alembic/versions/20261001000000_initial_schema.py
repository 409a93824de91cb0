"""initial schema

Revision ID: 20261001000000
Revises:
Create Date: 2026-10-01 00:00:00.000000

Creates the complete Signal Board schema. Column types are portable so the same
migration runs on PostgreSQL and on the SQLite database used by the tests.
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261001000000"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ========================================================================
    # MEMBERS & INVITES
    # ========================================================================

    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("account_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("invited_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_profiles_account_status", "profiles", ["account_status"])
    op.create_index("ix_profiles_role", "profiles", ["role"])
    op.create_index("ix_profiles_invited_by", "profiles", ["invited_by"])
    op.create_index("ix_profiles_created_at", "profiles", ["created_at"])

    op.create_table(
        "invites",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(16), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("used_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True, unique=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_invites_code", "invites", ["code"], unique=True)
    op.create_index("ix_invites_created_by", "invites", ["created_by"])
    op.create_index("ix_invites_expires_at", "invites", ["expires_at"])
    op.create_index("ix_invites_created_at", "invites", ["created_at"])
    op.create_index("ix_invites_creator_expires", "invites", ["created_by", "expires_at"])

    # ========================================================================
    # SIGNALS
    # ========================================================================

    op.create_table(
        "signals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("subject_first_name", sa.String(50), nullable=False),
        sa.Column("subject_last_initial", sa.String(1), nullable=True),
        sa.Column("subject_identifier_hash", sa.String(64), nullable=True),
        sa.Column("subject_identifier_mask", sa.String(40), nullable=True),
        sa.Column("subject_platform", sa.String(50), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("green_flags", sa.JSON(), nullable=False),
        sa.Column("red_flags", sa.JSON(), nullable=False),
        sa.Column("image_ref", sa.String(500), nullable=True),
        sa.Column("overall_signal", sa.String(10), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="under_review"),
        sa.Column("green_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("red_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("flagged_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("green_votes >= 0", name="ck_signals_green_votes_nonneg"),
        sa.CheckConstraint("red_votes >= 0", name="ck_signals_red_votes_nonneg"),
    )
    op.create_index("ix_signals_author_id", "signals", ["author_id"])
    op.create_index("ix_signals_subject_identifier_hash", "signals", ["subject_identifier_hash"])
    op.create_index("ix_signals_overall_signal", "signals", ["overall_signal"])
    op.create_index("ix_signals_status", "signals", ["status"])
    op.create_index("ix_signals_created_at", "signals", ["created_at"])
    op.create_index(
        "ix_signals_status_created", "signals", ["status", sa.text("created_at DESC")]
    )
    op.create_index("ix_signals_hash_status", "signals", ["subject_identifier_hash", "status"])

    # ========================================================================
    # ENGAGEMENT
    # ========================================================================

    op.create_table(
        "votes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("signal_id", sa.Uuid(), sa.ForeignKey("signals.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("vote_type", sa.String(10), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("signal_id", "user_id", name="uq_votes_signal_user"),
    )
    op.create_index("ix_votes_signal_id", "votes", ["signal_id"])
    op.create_index("ix_votes_user_id", "votes", ["user_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("signal_id", sa.Uuid(), sa.ForeignKey("signals.id"), nullable=False),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_comments_signal_id", "comments", ["signal_id"])
    op.create_index("ix_comments_author_id", "comments", ["author_id"])
    op.create_index("ix_comments_created_at", "comments", ["created_at"])
    op.create_index("ix_comments_signal_created", "comments", ["signal_id", "created_at"])

    # ========================================================================
    # MODERATION
    # ========================================================================

    op.create_table(
        "reports",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("signal_id", sa.Uuid(), sa.ForeignKey("signals.id"), nullable=False),
        sa.Column("reporter_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("reason", sa.String(30), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("resolved_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_reports_signal_id", "reports", ["signal_id"])
    op.create_index("ix_reports_reporter_id", "reports", ["reporter_id"])
    op.create_index("ix_reports_status", "reports", ["status"])
    op.create_index("ix_reports_created_at", "reports", ["created_at"])
    op.create_index(
        "ix_reports_status_created", "reports", ["status", sa.text("created_at DESC")]
    )

    op.create_table(
        "claims",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("signal_id", sa.Uuid(), sa.ForeignKey("signals.id"), nullable=False),
        sa.Column("claimant_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("claim_type", sa.String(10), nullable=False),
        sa.Column("evidence_description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("resolved_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("signal_id", "claimant_id", name="uq_claims_signal_claimant"),
    )
    op.create_index("ix_claims_signal_id", "claims", ["signal_id"])
    op.create_index("ix_claims_claimant_id", "claims", ["claimant_id"])
    op.create_index("ix_claims_status", "claims", ["status"])
    op.create_index("ix_claims_created_at", "claims", ["created_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("actor_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("target_type", sa.String(20), nullable=True),
        sa.Column("target_id", sa.String(50), nullable=True),
        sa.Column("from_state", sa.String(20), nullable=True),
        sa.Column("to_state", sa.String(20), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_target_id", "audit_logs", ["target_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index(
        "ix_audit_logs_actor_created", "audit_logs", ["actor_id", sa.text("created_at DESC")]
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("claims")
    op.drop_table("reports")
    op.drop_table("comments")
    op.drop_table("votes")
    op.drop_table("signals")
    op.drop_table("invites")
    op.drop_table("profiles")
