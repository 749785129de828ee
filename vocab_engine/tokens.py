"""
Sentence tokenisation helpers.
"""

from __future__ import annotations

import re
from typing import Iterable


# Short function words that make poor word-bank tiles
STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "are", "was", "were", "be", "been", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "can", "must",
})

_ELLIPSIS_RE = re.compile(r"\.\.\.|…")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")


def split_to_tokens(sentence: str) -> list[str]:
    """Split on whitespace, keeping punctuation attached to its word."""
    return (sentence or "").split()


def clean_sentence(sentence: str) -> str:
    """Drop ellipses ("..." and the U+2026 character) and trim."""
    return _ELLIPSIS_RE.sub("", sentence or "").strip()


def filter_useful_words(words: Iterable[str]) -> list[str]:
    """
    Keep tokens worth offering as word-bank tiles.

    Drops tokens that are shorter than two characters once punctuation is
    removed, and common stop words.
    """
    useful = []
    for word in words:
        clean = _PUNCTUATION_RE.sub("", word).strip()
        if len(clean) < 2:
            continue
        if clean.lower() in STOP_WORDS:
            continue
        useful.append(word)
    return useful
