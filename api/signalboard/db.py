from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator, Iterator
from urllib.parse import quote_plus

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .errors import StorageError
from .settings import (
    DB_CONNECT_TIMEOUT_SECONDS,
    DB_POOL_TIMEOUT_SECONDS,
    DB_STATEMENT_TIMEOUT_MS,
)

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Get the database URL, either explicit or built from components."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    db_user = os.getenv("DB_USER")
    db_pass = os.getenv("DB_PASSWORD")
    db_name = os.getenv("DB_DATABASE")
    db_host = os.getenv("DB_HOST", "db")
    db_port = os.getenv("DB_PORT", "5432")

    if db_user and db_pass and db_name:
        # URL-encode the password in case it contains special characters
        encoded_pass = quote_plus(db_pass)
        return f"postgresql+psycopg://{db_user}:{encoded_pass}@{db_host}:{db_port}/{db_name}"

    raise RuntimeError(
        "DATABASE_URL must be set, or DB_USER, DB_PASSWORD, and DB_DATABASE must all be set."
    )


def _connect_args(url: str) -> dict:
    """Bound every datastore call so nothing hangs indefinitely."""
    if url.startswith("sqlite"):
        return {"timeout": DB_CONNECT_TIMEOUT_SECONDS, "check_same_thread": False}
    return {
        "connect_timeout": DB_CONNECT_TIMEOUT_SECONDS,
        "options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}",
    }


DATABASE_URL = get_database_url()


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


_engine_kwargs: dict = {
    "future": True,
    "echo": os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG",
    "pool_pre_ping": True,
    "connect_args": _connect_args(DATABASE_URL),
}
if not DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["pool_timeout"] = DB_POOL_TIMEOUT_SECONDS

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_session() -> Generator[Session, None, None]:
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def unit_of_work(db: Session, operation: str) -> Iterator[Session]:
    """
    Run a block as one transaction: commit on success, roll back on any failure.

    Driver-level failures (connection loss, timeouts, lock errors) are logged and
    re-raised as StorageError so callers see a single generic failure type.
    Integrity errors are left to the caller, which knows what they mean.
    """
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except DBAPIError as e:
        db.rollback()
        logger.error(f"{operation}: storage failure: {e}", exc_info=True)
        raise StorageError() from e
    except Exception:
        db.rollback()
        raise
