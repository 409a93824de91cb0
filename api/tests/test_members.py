"""Member administration and the bootstrap seed."""

from __future__ import annotations

import uuid

import pytest

from signalboard import models, seed
from signalboard.errors import AuthorizationError, NotFoundError, StateConflict
from signalboard.models import AccountStatus, Role
from signalboard.services.members import get_member, set_account_status, set_role
from signalboard.utils.audit import list_audit_entries


def test_moderator_approves_member(db, moderator, pending_member):
    member = set_account_status(db, pending_member.id, moderator, AccountStatus.APPROVED, "vouched")

    assert member.account_status == AccountStatus.APPROVED.value
    (entry,) = list_audit_entries(db, action="set_account_status")
    assert (entry.from_state, entry.to_state, entry.note) == ("pending", "approved", "vouched")
    assert entry.target_id == str(pending_member.id)


def test_member_cannot_change_status(db, member, pending_member):
    with pytest.raises(AuthorizationError):
        set_account_status(db, pending_member.id, member, AccountStatus.APPROVED)


def test_no_self_status_change(db, moderator):
    with pytest.raises(StateConflict):
        set_account_status(db, moderator.id, moderator, AccountStatus.BANNED)


def test_setting_same_status_is_a_conflict(db, moderator, member):
    with pytest.raises(StateConflict):
        set_account_status(db, member.id, moderator, AccountStatus.APPROVED)
    assert list_audit_entries(db) == []


def test_only_admins_change_roles(db, moderator, admin, member):
    with pytest.raises(AuthorizationError):
        set_role(db, member.id, moderator, Role.MODERATOR)

    promoted = set_role(db, member.id, admin, "moderator")
    assert promoted.role == Role.MODERATOR.value


def test_no_self_role_change(db, admin):
    with pytest.raises(StateConflict):
        set_role(db, admin.id, admin, Role.MEMBER)


def test_get_unknown_member(db):
    with pytest.raises(NotFoundError):
        get_member(db, uuid.uuid4())


def test_seed_creates_bootstrap_admin(db, monkeypatch):
    admin_id = uuid.uuid4()
    monkeypatch.setattr(seed, "BOOTSTRAP_ADMIN_ID", str(admin_id))

    seed.ensure_seed_data()
    seed.ensure_seed_data()

    admin = db.get(models.Profile, admin_id)
    assert admin.role == Role.ADMIN.value
    assert admin.account_status == AccountStatus.APPROVED.value
    assert db.query(models.Profile).count() == 1


def test_seed_without_bootstrap_admin(db, monkeypatch):
    monkeypatch.setattr(seed, "BOOTSTRAP_ADMIN_ID", None)
    seed.ensure_seed_data()
    assert db.query(models.Profile).count() == 0
