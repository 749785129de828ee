"""
Sampling Primitives

Shuffle and sample-without-replacement helpers shared by every builder.

All functions accept an optional `random.Random` so callers (and tests) can
make selection deterministic; the module-level `random` is used otherwise.
"""

from __future__ import annotations

import random
from typing import Hashable, Iterable, Optional, Sequence, TypeVar


T = TypeVar("T")
H = TypeVar("H", bound=Hashable)


def shuffle(items: Iterable[T], rng: Optional[random.Random] = None) -> list[T]:
    """
    Return a uniformly random permutation of items (Fisher-Yates).

    The input is not modified.
    """
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def sample_n(items: Sequence[T], n: int, rng: Optional[random.Random] = None) -> list[T]:
    """
    Sample n elements without replacement.

    When n covers the whole sequence the result is a full shuffle. Duplicate
    *values* in the input are not collapsed; use `dedupe` first when value
    uniqueness matters.

    Args:
        items: Source sequence
        n: Number of elements wanted
        rng: Optional random generator

    Returns:
        min(n, len(items)) elements (empty for n <= 0)
    """
    if n <= 0:
        return []
    if n >= len(items):
        return shuffle(items, rng)

    rng = rng or random
    remaining = list(items)
    picked: list[T] = []
    while len(picked) < n and remaining:
        picked.append(remaining.pop(rng.randrange(len(remaining))))
    return picked


def dedupe(items: Iterable[H]) -> list[H]:
    """Order-preserving de-duplication."""
    return list(dict.fromkeys(items))
