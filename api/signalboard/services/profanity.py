"""Profanity detection for signal descriptions and comments."""

from __future__ import annotations

import logging
import re
from functools import lru_cache

from better_profanity import profanity

from ..settings import PROFANITY_DENYLIST

logger = logging.getLogger(__name__)

# Load default censor words on module import
profanity.load_censor_words()


def elongated_pattern(word: str) -> re.Pattern[str]:
    """
    Build a pattern matching ``word`` with any letter repeated.

    "fuck" becomes ``\\bf+u+c+k+\\b`` so "fuuuck" and "fuckkk" both match.
    """
    letters = "".join(f"{re.escape(ch)}+" for ch in word.lower() if not ch.isspace())
    return re.compile(rf"\b{letters}\b", re.IGNORECASE)


@lru_cache(maxsize=1)
def denylist_patterns() -> tuple[re.Pattern[str], ...]:
    return tuple(elongated_pattern(word) for word in PROFANITY_DENYLIST if word)


def matches_denylist(text: str) -> bool:
    """
    True if ``text`` contains a configured denylist word, letters repeated or not.

    Only PROFANITY_DENYLIST counts here; better-profanity's broader list is for
    censoring comments, not for rejecting signals.
    """
    if not text:
        return False
    return any(pattern.search(text) for pattern in denylist_patterns())


def censor_profanity(text: str) -> str:
    """
    Censor profanity in text by replacing with asterisks.

    Used for comments, which are stored censored rather than rejected.
    """
    if not text:
        return text
    censored = profanity.censor(text)
    for pattern in denylist_patterns():
        censored = pattern.sub(lambda m: "*" * len(m.group(0)), censored)
    return censored
