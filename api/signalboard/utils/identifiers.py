"""Subject identifier hashing and masking.

A subject identifier is a phone number or a social handle. It is never stored.
Two derived forms exist and they never cross over:

- ``hash_identifier`` produces the lookup key stored on a signal and compared at
  search time. It is one-way; there is no way back to the identifier.
- ``mask_identifier`` produces a partial redaction for display. It is never used
  for lookup.
"""

from __future__ import annotations

import hashlib
import re

# Digits plus the separators people type into phone numbers.
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-().]+$")
HANDLE_PATTERN = re.compile(r"^@?[a-zA-Z0-9._]+$")
VALID_HANDLE_PATTERN = re.compile(r"^@?[a-zA-Z0-9._]{1,30}$")

_WHITESPACE = re.compile(r"\s+")
_NON_DIGIT = re.compile(r"\D")

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


def _digits(value: str) -> str:
    return _NON_DIGIT.sub("", value)


def _looks_like_phone(value: str) -> bool:
    return bool(PHONE_PATTERN.match(value)) and len(_digits(value)) >= 4


def normalize_identifier(identifier: str) -> str:
    """
    Canonical form used for hashing, applied identically at write and read time.

    Trims, lowercases and strips all whitespace. Phone-like values are then reduced
    to their digits so "+1 (555) 123-4567" and "15551234567" agree, and a leading
    "@" is dropped from handles.
    """
    normalized = _WHITESPACE.sub("", identifier.strip().lower())
    if _looks_like_phone(normalized):
        return _digits(normalized)
    if normalized.startswith("@"):
        return normalized[1:]
    return normalized


def hash_identifier(identifier: str) -> str:
    """SHA-256 hex digest of the normalized identifier."""
    return hashlib.sha256(normalize_identifier(identifier).encode("utf-8")).hexdigest()


def mask_identifier(identifier: str) -> str:
    """
    Partial redaction for display.

    Phones render as ``***-***-<last4>``, handles as ``@ab***yz`` (``@a***`` when
    four characters or fewer), anything else as ``ab***yz`` or ``****``.
    """
    value = identifier.strip()

    if _looks_like_phone(value):
        return f"***-***-{_digits(value)[-4:]}"

    if value.startswith("@") or HANDLE_PATTERN.match(value):
        handle = value.replace("@", "")
        if len(handle) > 4:
            return f"@{handle[:2]}***{handle[-2:]}"
        return f"@{handle[:1]}***"

    if len(value) > 4:
        return f"{value[:2]}***{value[-2:]}"
    return "****"


def identifier_kind(identifier: str) -> str | None:
    """Return "phone" or "handle" for acceptable identifiers, None otherwise."""
    value = identifier.strip()
    digit_count = len(_digits(value))
    if PHONE_PATTERN.match(value) and PHONE_MIN_DIGITS <= digit_count <= PHONE_MAX_DIGITS:
        return "phone"
    if VALID_HANDLE_PATTERN.match(value):
        return "handle"
    return None


def mask_first_name(first_name: str) -> str:
    """Redacted first name shown to members who are not yet approved."""
    name = first_name.strip()
    if not name:
        return "***"
    return f"{name[0].upper()}***"
