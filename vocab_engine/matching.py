"""
Text Matching

Accent- and case-insensitive comparison for free-text answers, and the
whitespace/case normalisation used to flag the correct option label.
"""

from __future__ import annotations

import unicodedata
from typing import Any, Mapping, Optional, Sequence


def normalize_for_compare(text: str) -> str:
    """
    Normalize a typed answer for comparison.

    Strips combining diacritics (so "canción" == "cancion"), lowercases and
    trims surrounding whitespace.
    """
    decomposed = unicodedata.normalize("NFD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()


def answers_match(attempt: str, target: str) -> bool:
    """True when a typed answer equals the target ignoring accents and case."""
    return normalize_for_compare(attempt) == normalize_for_compare(target)


def normalize_label(label: str) -> str:
    """Collapse inner whitespace and lowercase an option label."""
    return " ".join((label or "").split()).lower()


def labels_match(first: str, second: str) -> bool:
    return normalize_label(first) == normalize_label(second)


def tokens_match(expected: Sequence[str], given: Sequence[str]) -> bool:
    """Token-by-token answer comparison (accent- and case-insensitive)."""
    if len(expected) != len(given):
        return False
    return all(answers_match(g, e) for e, g in zip(expected, given))


def blank_answers(indices: Sequence[int], answer: Any) -> Optional[list[str]]:
    """
    Typed answers for a set of blanks, in blank order.

    Accepts a mapping keyed by unit index (missing keys count as empty) or a
    sequence already in blank order. Anything else yields None.
    """
    if isinstance(answer, Mapping):
        return [str(answer.get(i, "")) for i in indices]
    if isinstance(answer, Sequence) and not isinstance(answer, str):
        return [str(part) for part in answer]
    return None


def selected_tokens(tiles: Sequence[str], answer: Any) -> Optional[list[str]]:
    """
    Tokens a learner picked in a tile exercise.

    Accepts tile indices, the tokens themselves, or a typed sentence. Out of
    range indices and other answer types yield None.
    """
    if isinstance(answer, str):
        return answer.split()
    if not isinstance(answer, (list, tuple)):
        return None
    picked = list(answer)
    if all(isinstance(part, int) and not isinstance(part, bool) for part in picked):
        if any(not 0 <= i < len(tiles) for i in picked):
            return None
        return [tiles[i] for i in picked]
    return [str(part) for part in picked]
