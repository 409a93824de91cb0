"""Signal creation, visibility and the moderation lifecycle."""

from __future__ import annotations

import uuid

import pytest

from signalboard import models, schemas
from signalboard.db import unit_of_work
from signalboard.errors import (
    AuthorizationError,
    NotFoundError,
    PolicyViolation,
    StateConflict,
    ValidationError,
)
from signalboard.models import SignalStatus
from signalboard.services import moderation
from signalboard.services.ranking import query_feed
from signalboard.services.screening import REASON_FULL_NAME
from signalboard.services.signals import (
    create_signal,
    get_visible_signal,
    list_moderation_queue,
    present_signal,
)
from signalboard.utils.audit import list_audit_entries, register_audit_hook, unregister_audit_hook

DESCRIPTION = "We had coffee and a long walk, he was kind and polite all evening."


def _payload(**overrides) -> schemas.SignalCreate:
    fields = {
        "subject_first_name": "Jordan",
        "subject_last_initial": "k",
        "subject_identifier": "+1 (555) 123-4567",
        "overall_signal": "green",
        "description": DESCRIPTION,
        "green_flags": ["Punctual", "punctual ", "kind"],
    }
    fields.update(overrides)
    return schemas.SignalCreate(**fields)


def test_create_signal_starts_under_review(db, member):
    signal = create_signal(db, member, _payload())

    assert signal.status == SignalStatus.UNDER_REVIEW.value
    assert signal.author_id == member.id
    assert signal.subject_last_initial == "K"
    assert signal.green_flags == ["punctual", "kind"]
    assert signal.subject_identifier_mask == "***-***-4567"
    assert len(signal.subject_identifier_hash) == 64
    assert (signal.green_votes, signal.red_votes, signal.comment_count, signal.view_count) == (
        0,
        0,
        0,
        0,
    )


def test_pending_member_cannot_create(db, pending_member):
    with pytest.raises(AuthorizationError):
        create_signal(db, pending_member, _payload())


@pytest.mark.parametrize(
    "overrides",
    [
        {"description": "too short"},
        {"description": "x" * 201},
        {"overall_signal": "purple"},
        {"subject_first_name": "Jordan Smith"},
        {"subject_first_name": "   "},
        {"subject_identifier": "not a handle!"},
        {"image_ref": "data:image/png;base64,AAAA"},
        {"red_flags": [f"flag{i}" for i in range(11)]},
    ],
)
def test_create_signal_rejects_malformed_input(db, member, overrides):
    with pytest.raises(ValidationError):
        create_signal(db, member, _payload(**overrides))


def test_policy_violation_persists_nothing(db, member):
    with pytest.raises(PolicyViolation) as excinfo:
        create_signal(db, member, _payload(description="I met John Smith at a bar, it was fine."))

    assert REASON_FULL_NAME in excinfo.value.reasons
    assert db.query(models.Signal).count() == 0


def test_signal_lifecycle(db, member, moderator):
    signal = create_signal(db, member, _payload())
    assert query_feed(db, member) == []

    signal = moderation.transition_signal(db, signal.id, moderator, SignalStatus.ACTIVE)
    assert [view.id for view in query_feed(db, member)] == [signal.id]

    signal = moderation.transition_signal(db, signal.id, moderator, SignalStatus.HIDDEN)
    assert query_feed(db, member) == []

    signal = moderation.transition_signal(db, signal.id, moderator, SignalStatus.ACTIVE)
    signal = moderation.transition_signal(
        db, signal.id, moderator, SignalStatus.REMOVED, reason="doxxing"
    )
    assert signal.status == SignalStatus.REMOVED.value

    with pytest.raises(StateConflict):
        moderation.transition_signal(db, signal.id, moderator, SignalStatus.ACTIVE)

    actions = [entry.action for entry in list_audit_entries(db)]
    assert sorted(actions) == sorted(
        ["approve_signal", "hide_signal", "restore_signal", "remove_signal"]
    )


def test_undefined_transition_is_a_conflict(db, member, moderator):
    signal = create_signal(db, member, _payload())
    with pytest.raises(StateConflict):
        moderation.transition_signal(db, signal.id, moderator, SignalStatus.HIDDEN)
    db.refresh(signal)
    assert signal.status == SignalStatus.UNDER_REVIEW.value


def test_members_cannot_transition(db, member, make_member):
    signal = create_signal(db, member, _payload())
    other = make_member()
    with pytest.raises(AuthorizationError):
        moderation.transition_signal(db, signal.id, other, SignalStatus.ACTIVE)


def test_author_cannot_approve_own_signal(db, moderator):
    signal = create_signal(db, moderator, _payload())
    with pytest.raises(AuthorizationError):
        moderation.transition_signal(db, signal.id, moderator, SignalStatus.ACTIVE)


def test_transition_unknown_signal(db, moderator):
    with pytest.raises(NotFoundError):
        moderation.transition_signal(db, uuid.uuid4(), moderator, SignalStatus.ACTIVE)


def test_allowed_targets():
    assert set(moderation.allowed_targets(SignalStatus.UNDER_REVIEW)) == {
        SignalStatus.ACTIVE,
        SignalStatus.REMOVED,
    }
    assert moderation.allowed_targets(SignalStatus.REMOVED) == []


def test_audit_hooks_receive_transitions(db, member, moderator):
    events = []
    register_audit_hook(events.append)
    try:
        signal = create_signal(db, member, _payload())
        moderation.transition_signal(db, signal.id, moderator, SignalStatus.ACTIVE)
    finally:
        unregister_audit_hook(events.append)

    assert len(events) == 1
    assert (events[0].from_state, events[0].to_state) == ("under_review", "active")
    assert events[0].actor_id == moderator.id


def test_audit_hooks_skip_rolled_back_transitions(db, member, moderator):
    signal = create_signal(db, member, _payload())
    events = []
    register_audit_hook(events.append)
    try:
        with pytest.raises(RuntimeError):
            with unit_of_work(db, "test"):
                locked = db.get(models.Signal, signal.id)
                moderation.apply_transition(db, locked, moderator.id, SignalStatus.ACTIVE)
                raise RuntimeError("fail after the audit row is written")
        assert events == []

        moderation.transition_signal(db, signal.id, moderator, SignalStatus.ACTIVE)
    finally:
        unregister_audit_hook(events.append)

    assert [e.to_state for e in events] == ["active"]
    assert [e.action for e in list_audit_entries(db)] == ["approve_signal"]


def test_failing_audit_hook_does_not_undo_transition(db, member, moderator):
    def broken(event):
        raise RuntimeError("sink down")

    signal = create_signal(db, member, _payload())
    register_audit_hook(broken)
    try:
        result = moderation.transition_signal(db, signal.id, moderator, SignalStatus.ACTIVE)
    finally:
        unregister_audit_hook(broken)

    assert result.status == SignalStatus.ACTIVE.value
    db.expire_all()
    assert db.get(models.Signal, signal.id).status == SignalStatus.ACTIVE.value


def test_non_active_signal_visible_only_to_author_and_moderators(db, member, moderator, make_member):
    signal = create_signal(db, member, _payload())
    stranger = make_member()

    assert get_visible_signal(db, signal.id, member).id == signal.id
    assert get_visible_signal(db, signal.id, moderator).id == signal.id
    with pytest.raises(NotFoundError):
        get_visible_signal(db, signal.id, stranger)


def test_redacted_projection_for_pending_viewer(db, member, pending_member, make_signal):
    signal = make_signal(member)

    view = present_signal(signal, pending_member)
    assert view.redacted is True
    assert view.subject_first_name == "A***"
    assert view.description is None
    assert view.green_flags is None
    assert view.subject_identifier_mask is None

    full = present_signal(signal, member)
    assert full.redacted is False
    assert full.description == DESCRIPTION
    assert "subject_identifier_hash" not in full.model_dump()


def test_moderation_queue_oldest_first(db, member, make_member, moderator):
    first = create_signal(db, member, _payload())
    second = create_signal(db, make_member(), _payload())

    queue = list_moderation_queue(db, moderator)
    assert [s.id for s in queue] == [first.id, second.id]

    with pytest.raises(AuthorizationError):
        list_moderation_queue(db, member)
