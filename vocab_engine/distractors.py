"""
Distractor Sampling

Builds option sets for choose-style exercises and word banks for
fill-in-the-blank exercises.

Option sets start with the correct label, add distinct sibling labels (same
lesson or session) and top up from a larger global pool. Callers gate on the
global pool size before building so a round never shows fewer options than
declared, or duplicates.
"""

from __future__ import annotations

import logging
import random
from typing import Iterable, Optional, Sequence

from vocab_engine.constants import (
    CHOOSE_OPTION_COUNT,
    PracticeKind,
    WORD_BANK_EXTRA,
    WORD_BANK_MIN_SIZE,
)
from vocab_engine.errors import NotEnoughItemsError
from vocab_engine.matching import labels_match, normalize_label
from vocab_engine.sampling import dedupe, sample_n, shuffle

logger = logging.getLogger(__name__)


# ---- Option Counts ----

def hearing_option_count(counter: int) -> int:
    """Hearing options grow as the learner masters the word."""
    return (2 + max(0, counter)) * 2


def option_count_for(kind: PracticeKind, counter: int = 0) -> int:
    """
    Declared option count for a choose-style kind.

    Raises:
        ValueError: kind has no option set
    """
    if kind in (PracticeKind.CHOOSE_TRANSLATION, PracticeKind.CHOOSE_WORD):
        return CHOOSE_OPTION_COUNT
    if kind == PracticeKind.HEARING:
        return hearing_option_count(counter)
    raise ValueError(f"{kind.value} has no option set")


def unique_labels(labels: Iterable[str]) -> list[str]:
    """
    Distinct non-empty labels in first-seen order.

    Labels that differ only by case or spacing count once, since answers are
    graded with `labels_match`.
    """
    seen: set[str] = set()
    result: list[str] = []
    for label in labels:
        key = normalize_label(label)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(label)
    return result


def require_unique_pool(pool: Iterable[str], minimum: int) -> list[str]:
    """
    Gate on the number of distinct labels available.

    Returns:
        The distinct non-empty labels

    Raises:
        NotEnoughItemsError: fewer than `minimum` distinct labels
    """
    unique = unique_labels(pool)
    if len(unique) < minimum:
        raise NotEnoughItemsError(
            f"Need {minimum} distinct options, only {len(unique)} available",
            available=len(unique),
            required=minimum,
        )
    return unique


# ---- Builders ----

def build_option_set(
    correct_label: str,
    sibling_labels: Sequence[str],
    global_pool: Sequence[str],
    target_size: int,
    rng: Optional[random.Random] = None
) -> list[str]:
    """
    Build a shuffled option list containing the correct label once.

    Args:
        correct_label: The right answer
        sibling_labels: Labels from the same lesson or session (preferred)
        global_pool: Larger pool used to top up when siblings run short
        target_size: Options wanted
        rng: Optional random generator

    Returns:
        Up to target_size distinct labels, shuffled
    """
    chosen = [correct_label]
    siblings = [
        label for label in unique_labels(sibling_labels)
        if not labels_match(label, correct_label)
    ]
    chosen.extend(sample_n(siblings, target_size - 1, rng))

    if len(chosen) < target_size:
        already = {normalize_label(label) for label in chosen}
        remaining = [
            label for label in unique_labels(global_pool)
            if normalize_label(label) not in already
        ]
        chosen.extend(sample_n(remaining, target_size - len(chosen), rng))

    if len(chosen) < target_size:
        logger.debug("Option set for %r has %d of %d options", correct_label, len(chosen), target_size)

    return shuffle(chosen[:target_size], rng)


def build_word_bank(
    required_tokens: Sequence[str],
    context_tokens: Sequence[str],
    target_size: Optional[int] = None,
    rng: Optional[random.Random] = None
) -> list[str]:
    """
    Build a shuffled word bank for a fill-in-the-blank exercise.

    Every required token appears exactly once; the rest are distinct context
    tokens that are not answers.

    Args:
        required_tokens: Answers for the blanks
        context_tokens: Candidate filler tokens
        target_size: Bank size; defaults to max(10, required + 6)
        rng: Optional random generator
    """
    required = dedupe(token for token in required_tokens if token)
    if target_size is None:
        target_size = max(WORD_BANK_MIN_SIZE, len(required) + WORD_BANK_EXTRA)

    required_keys = {normalize_label(token) for token in required}
    pool = [
        token for token in unique_labels(context_tokens)
        if normalize_label(token) not in required_keys
    ]
    picked = sample_n(pool, max(0, target_size - len(required)), rng)
    return shuffle(required + picked, rng)
