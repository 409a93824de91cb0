"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _list_env(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


# Signal content bounds (characters).
SIGNAL_DESCRIPTION_MIN_LENGTH: int = _int_env("SIGNAL_DESCRIPTION_MIN_LENGTH", 20)
SIGNAL_DESCRIPTION_MAX_LENGTH: int = _int_env("SIGNAL_DESCRIPTION_MAX_LENGTH", 200)
SIGNAL_FLAG_MAX_LENGTH: int = _int_env("SIGNAL_FLAG_MAX_LENGTH", 40)
SIGNAL_FLAG_MAX_COUNT: int = _int_env("SIGNAL_FLAG_MAX_COUNT", 10)

# Comment body bounds (characters).
COMMENT_MAX_LENGTH: int = _int_env("COMMENT_MAX_LENGTH", 1000)

# Query page sizes.
FEED_PAGE_LIMIT: int = _int_env("FEED_PAGE_LIMIT", 50)
SEARCH_PAGE_LIMIT: int = _int_env("SEARCH_PAGE_LIMIT", 20)

# Invites
INVITE_CODE_LENGTH: int = _int_env("INVITE_CODE_LENGTH", 8)
INVITE_TTL_DAYS: int = _int_env("INVITE_TTL_DAYS", 7)

# Base words for the explicit-language rule. Each is matched with repeated letters
# allowed, so "fuck" also catches "fuuuck".
PROFANITY_DENYLIST: list[str] = _list_env(
    "PROFANITY_DENYLIST", ["fuck", "shit", "asshole", "bitch", "cunt"]
)

# Datastore timeouts
DB_STATEMENT_TIMEOUT_MS: int = _int_env("DB_STATEMENT_TIMEOUT_MS", 5000)
DB_POOL_TIMEOUT_SECONDS: int = _int_env("DB_POOL_TIMEOUT_SECONDS", 10)
DB_CONNECT_TIMEOUT_SECONDS: int = _int_env("DB_CONNECT_TIMEOUT_SECONDS", 5)

# Profile id of the admin created by the bootstrap seed (optional).
BOOTSTRAP_ADMIN_ID: str | None = os.getenv("BOOTSTRAP_ADMIN_ID") or None
