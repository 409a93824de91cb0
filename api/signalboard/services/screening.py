"""Heuristic content screening for signal text.

Every rule runs on every input and reasons accumulate, so an author sees all
problems at once. The same function backs the interactive preview endpoint and
the authoritative check at signal creation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .profanity import matches_denylist

REASON_FULL_NAME = "Possible full name: use only first names or initials"
REASON_ADDRESS = "Possible address: keep locations vague"
REASON_CAPITALIZATION = "Excessive capitalization"
REASON_LINKS = "Links not allowed"
REASON_EXPLICIT = "Explicit language"

FULL_NAME_PATTERN = re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\b")

STREET_SUFFIXES = (
    "street|st|avenue|ave|road|rd|drive|dr|lane|ln|court|ct|way|place|pl|boulevard|blvd"
)
ADDRESS_PATTERNS = (
    re.compile(rf"\b\d+\s+[A-Za-z]+\s+({STREET_SUFFIXES})\b", re.IGNORECASE),
    re.compile(r"\bapartment\s*#?\s*\d+", re.IGNORECASE),
    re.compile(r"\bunit\s*#?\s*\d+", re.IGNORECASE),
)

URL_PATTERN = re.compile(r"https?://|www\.", re.IGNORECASE)
UPPERCASE_PATTERN = re.compile(r"[A-Z]")

CAPS_RATIO_THRESHOLD = 0.5
CAPS_MIN_LENGTH = 20


@dataclass
class ScreenResult:
    passed: bool
    reasons: list[str] = field(default_factory=list)


def _has_full_name(text: str) -> bool:
    return bool(FULL_NAME_PATTERN.search(text))


def _has_address(text: str) -> bool:
    return any(pattern.search(text) for pattern in ADDRESS_PATTERNS)


def _is_shouting(text: str) -> bool:
    if len(text) <= CAPS_MIN_LENGTH:
        return False
    uppercase = len(UPPERCASE_PATTERN.findall(text))
    return uppercase / len(text) > CAPS_RATIO_THRESHOLD


def _has_link(text: str) -> bool:
    return bool(URL_PATTERN.search(text))


RULES = (
    (_has_full_name, REASON_FULL_NAME),
    (_has_address, REASON_ADDRESS),
    (_is_shouting, REASON_CAPITALIZATION),
    (_has_link, REASON_LINKS),
    (matches_denylist, REASON_EXPLICIT),
)


def screen(text: str) -> ScreenResult:
    """Run all rules against ``text``; passed is True iff none fired."""
    reasons = [reason for rule, reason in RULES if rule(text or "")]
    return ScreenResult(passed=not reasons, reasons=reasons)
