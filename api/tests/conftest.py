from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable, Generator

# Must be in place before the app modules read them at import time
_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="signalboard-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB_DIR / 'signalboard.db'}"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("LOG_LEVEL", "INFO")

import uuid  # noqa: E402

import pytest  # noqa: E402
from dotenv import load_dotenv  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from signalboard import models, schemas  # noqa: E402
from signalboard.auth import create_access_token  # noqa: E402
from signalboard.db import Base, SessionLocal, engine  # noqa: E402
from signalboard.main import app, run_startup_tasks  # noqa: E402
from signalboard.models import AccountStatus, Role, SignalStatus  # noqa: E402
from signalboard.services.moderation import transition_signal  # noqa: E402
from signalboard.services.signals import create_signal  # noqa: E402

load_dotenv()

# Passes every screening rule
BLAND_DESCRIPTION = "We had coffee and a long walk, he was kind and polite all evening."


@pytest.fixture(scope="session", autouse=True)
def bootstrap() -> None:
    run_startup_tasks()


@pytest.fixture(autouse=True)
def clean_tables() -> Generator[None, None, None]:
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_member(db: Session) -> Callable[..., models.Profile]:
    """Factory for committed member profiles."""

    def _make(
        account_status: AccountStatus = AccountStatus.APPROVED,
        role: Role = Role.MEMBER,
    ) -> models.Profile:
        member = models.Profile(
            id=uuid.uuid4(),
            account_status=account_status.value,
            role=role.value,
            created_at=models.utcnow(),
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make


@pytest.fixture()
def member(make_member) -> models.Profile:
    return make_member()


@pytest.fixture()
def pending_member(make_member) -> models.Profile:
    return make_member(AccountStatus.PENDING)


@pytest.fixture()
def moderator(make_member) -> models.Profile:
    return make_member(role=Role.MODERATOR)


@pytest.fixture()
def admin(make_member) -> models.Profile:
    return make_member(role=Role.ADMIN)


@pytest.fixture()
def auth_headers() -> Callable[[uuid.UUID], dict[str, str]]:
    """Bearer headers for a member id, signed like the identity provider signs."""

    def _headers(member_id: uuid.UUID) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(member_id)}"}

    return _headers


@pytest.fixture()
def make_signal(db: Session, make_member) -> Callable[..., models.Signal]:
    """
    Factory for signals in a given moderation status.

    Signals go through the real create and transition paths, approved by a
    dedicated moderator so the author is never the approver.
    """
    approvers: list[models.Profile] = []

    def _make(
        author: models.Profile,
        status: SignalStatus = SignalStatus.ACTIVE,
        **overrides,
    ) -> models.Signal:
        if not approvers:
            approvers.append(make_member(role=Role.MODERATOR))
        approver = approvers[0]

        fields = {
            "subject_first_name": "Alex",
            "overall_signal": "green",
            "description": BLAND_DESCRIPTION,
        }
        fields.update(overrides)
        signal = create_signal(db, author, schemas.SignalCreate(**fields))

        path = {
            SignalStatus.UNDER_REVIEW: [],
            SignalStatus.ACTIVE: [SignalStatus.ACTIVE],
            SignalStatus.HIDDEN: [SignalStatus.ACTIVE, SignalStatus.HIDDEN],
            SignalStatus.REMOVED: [SignalStatus.REMOVED],
        }[status]
        for target in path:
            signal = transition_signal(db, signal.id, approver, target)
        return signal

    return _make
