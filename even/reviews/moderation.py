"""Keyword moderation for review comments.

Matching is a case-insensitive plain substring test against a static token
list: no stemming and no word boundaries, so "classic" trips "ass".
"""

from __future__ import annotations

from typing import Final

from even.logging_config import get_logger

logger = get_logger(__name__)

FLAGGED_WORDS: Final[tuple[str, ...]] = (
    # profanity / insults
    "fuck",
    "shit",
    "bitch",
    "cunt",
    "ass",
    "slut",
    "whore",
    "skank",
    "retard",
    # slurs
    "nigger",
    "nigga",
    "faggot",
    "tranny",
    "kike",
    "chink",
    # threats / self-harm
    "kill yourself",
    "kys",
    "rape",
    "i will find you",
    # doxxing bait
    "home address",
)


def find_flagged_word(text: str | None, words: tuple[str, ...] = FLAGGED_WORDS) -> str | None:
    """Return the first flagged token contained in ``text``, or None."""
    if not text:
        return None
    lowered = text.lower()
    for word in words:
        if word in lowered:
            return word
    return None


def is_flagged(text: str | None, words: tuple[str, ...] = FLAGGED_WORDS) -> bool:
    """True if ``text`` contains any flagged token as a substring."""
    hit = find_flagged_word(text, words)
    if hit is not None:
        logger.info("comment_flagged", token=hit)
        return True
    return False
