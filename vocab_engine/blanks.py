"""
Blank Index Selection

Chooses which characters of a word, or which tokens of a sentence, are
hidden from the learner. Only units containing a letter can be blanked, and
indices always come back in left-to-right order.
"""

from __future__ import annotations

import random
from typing import Optional, Sequence

from vocab_engine.constants import LETTER_FILL_BASE
from vocab_engine.sampling import sample_n
from vocab_engine.schemas import MasteryPolicy


def is_alphabetic(unit: str) -> bool:
    """True when the unit contains at least one letter (accents included)."""
    return any(ch.isalpha() for ch in unit)


def split_letters(word: str) -> list[str]:
    return list(word or "")


def pick_indices(
    units: Sequence[str],
    desired_count: int,
    rng: Optional[random.Random] = None
) -> list[int]:
    """
    Pick unit indices to blank.

    Args:
        units: Characters of a word, or whitespace-split tokens of a sentence
        desired_count: Wanted number of blanks, clamped to [1, candidates]
        rng: Optional random generator

    Returns:
        Strictly ascending indices; empty when no unit has a letter
    """
    candidates = [i for i, unit in enumerate(units) if is_alphabetic(unit)]
    if not candidates:
        return []
    desired = max(1, min(len(candidates), int(desired_count)))
    return sorted(sample_n(candidates, desired, rng))


# ---- Difficulty Scaling ----

def letter_fill_count(policy: MasteryPolicy, counter: int) -> int:
    """
    Letters to hide in a single word.

    Grows with each correct answer and with a stricter (lower) per-kind
    threshold.
    """
    return max(1, (LETTER_FILL_BASE - policy.per_kind_threshold) + counter)


def missing_words_count(counter: int) -> int:
    """Tokens to hide in a sentence."""
    return max(1, counter)


def curriculum_blank_count(length: int, cap: int, divisor: int) -> int:
    """Blank count for lesson content with no mastery history."""
    return min(cap, max(1, length // divisor))
