"""Invite issuing and single-use redemption."""

from __future__ import annotations

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from signalboard import models
from signalboard.db import SessionLocal
from signalboard.errors import AuthorizationError, StateConflict, StorageError, ValidationError
from signalboard.models import AccountStatus
from signalboard.services.invites import (
    INVITE_ALPHABET,
    get_outstanding_invite,
    is_redeemable,
    issue_invite,
    normalize_code,
    redeem_invite,
)


def test_issue_invite(db, member):
    invite = issue_invite(db, member)

    assert len(invite.code) == 8
    assert all(ch in INVITE_ALPHABET for ch in invite.code)
    assert invite.used_by is None
    assert invite.expires_at - invite.created_at == timedelta(days=7)


def test_outstanding_invite_is_reused(db, member):
    first = issue_invite(db, member)
    second = issue_invite(db, member)

    assert second.id == first.id
    assert db.query(models.Invite).count() == 1
    assert get_outstanding_invite(db, member).id == first.id


def test_pending_member_cannot_issue(db, pending_member):
    with pytest.raises(AuthorizationError):
        issue_invite(db, pending_member)


def test_redeem_creates_pending_member(db, member):
    invite = issue_invite(db, member)
    newcomer_id = uuid.uuid4()

    profile = redeem_invite(db, invite.code.lower(), newcomer_id)

    assert profile.id == newcomer_id
    assert profile.account_status == AccountStatus.PENDING.value
    assert profile.invited_by == member.id
    db.refresh(invite)
    assert invite.used_by == newcomer_id
    assert invite.used_at is not None
    assert not is_redeemable(db, invite.code)


def test_invite_redeems_exactly_once(db, member):
    invite = issue_invite(db, member)
    winner, loser = uuid.uuid4(), uuid.uuid4()

    redeem_invite(db, invite.code, winner)
    with pytest.raises(StateConflict):
        redeem_invite(db, invite.code, loser)

    # The losing identity must not be left with a profile
    assert db.get(models.Profile, loser) is None
    assert db.query(models.Invite).filter(models.Invite.used_by.isnot(None)).count() == 1


def test_redeem_retry_by_same_member_is_idempotent(db, member):
    invite = issue_invite(db, member)
    newcomer_id = uuid.uuid4()

    first = redeem_invite(db, invite.code, newcomer_id)
    second = redeem_invite(db, invite.code, newcomer_id)
    assert second.id == first.id


def test_existing_member_cannot_redeem(db, member, make_member):
    invite = issue_invite(db, member)
    existing = make_member()

    with pytest.raises(StateConflict):
        redeem_invite(db, invite.code, existing.id)
    assert is_redeemable(db, invite.code)


def test_expired_invite_cannot_be_redeemed(db, member):
    invite = issue_invite(db, member)
    invite.expires_at = models.utcnow() - timedelta(seconds=1)
    db.commit()

    assert not is_redeemable(db, invite.code)
    with pytest.raises(StateConflict):
        redeem_invite(db, invite.code, uuid.uuid4())


def test_expired_invite_is_not_reused(db, member):
    invite = issue_invite(db, member)
    invite.expires_at = models.utcnow() - timedelta(seconds=1)
    db.commit()

    fresh = issue_invite(db, member)
    assert fresh.id != invite.id


def test_unknown_code_is_a_conflict(db):
    with pytest.raises(StateConflict):
        redeem_invite(db, "ABCDEFGH", uuid.uuid4())


@pytest.mark.parametrize("code", ["", "SHORT", "ABCDEFG0", "ABCDEFGHJ"])
def test_malformed_codes(code):
    with pytest.raises(ValidationError):
        normalize_code(code)


def test_concurrent_redemptions_have_one_winner(db, member):
    code = issue_invite(db, member).code
    redeemers = [uuid.uuid4() for _ in range(8)]
    barrier = threading.Barrier(len(redeemers))

    def redeem(new_member_id):
        session = SessionLocal()
        try:
            barrier.wait()
            redeem_invite(session, code, new_member_id)
            return None
        except (StateConflict, StorageError) as e:
            return e
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(redeemers)) as pool:
        outcomes = list(pool.map(redeem, redeemers))

    winners = [rid for rid, outcome in zip(redeemers, outcomes) if outcome is None]
    assert len(winners) == 1

    db.expire_all()
    claimed = db.query(models.Invite).filter(models.Invite.used_by.isnot(None)).all()
    assert [invite.used_by for invite in claimed] == winners
    created = db.query(models.Profile).filter(models.Profile.id.in_(redeemers)).all()
    assert [profile.id for profile in created] == winners
