"""
Mastery Store - Practice Pools and Graduation

Owns the learner's saved item collection:
- Pool filtering per practice kind (strict, then aggregate-only, then all)
- Counter increments with graduation once the aggregate sum is reached
- The once-per-process "mastered" celebration set

Every increment is a full read-modify-write of the collection, serialised
by a process-wide lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Literal, Optional

from vocab_engine.constants import (
    SENTENCE_KINDS,
    SETTING_AGGREGATE_THRESHOLD,
    SETTING_PER_KIND_THRESHOLD,
    PracticeKind,
)
from vocab_engine.distractors import unique_labels
from vocab_engine.errors import UnknownItemError
from vocab_engine.mastery.database import CollectionRepository
from vocab_engine.matching import normalize_label
from vocab_engine.schemas import Item, MasteryPolicy

logger = logging.getLogger(__name__)

DuplicateCheck = Literal["term_and_sentence", "term_and_translation"]


@dataclass
class IncrementResult:
    """Outcome of a mastery increment."""
    removed: bool
    item: Optional[Item] = None
    found: bool = True


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class MasteryStore:
    """
    Mastery tracking over a persisted item collection.

    Args:
        repository: Persistence provider for items and settings
        policy: Thresholds to use; loaded from settings when omitted
    """

    _write_lock = threading.Lock()

    def __init__(self, repository: CollectionRepository, policy: Optional[MasteryPolicy] = None):
        self.repository = repository
        self._policy = policy
        self._celebrated: set[str] = set()

    # ---- Policy ----

    @property
    def policy(self) -> MasteryPolicy:
        if self._policy is None:
            self._policy = self.load_policy()
        return self._policy

    def load_policy(self) -> MasteryPolicy:
        """Read the thresholds from learner settings (defaults on bad values)."""
        return MasteryPolicy.from_settings(
            self.repository.read_setting(SETTING_PER_KIND_THRESHOLD),
            self.repository.read_setting(SETTING_AGGREGATE_THRESHOLD),
        )

    def save_policy(self, policy: MasteryPolicy) -> bool:
        self._policy = policy
        saved_per_kind = self.repository.write_setting(
            SETTING_PER_KIND_THRESHOLD, str(policy.per_kind_threshold)
        )
        saved_aggregate = self.repository.write_setting(
            SETTING_AGGREGATE_THRESHOLD, str(policy.aggregate_threshold)
        )
        return saved_per_kind and saved_aggregate

    # ---- Reads ----

    def load(self) -> list[Item]:
        """
        Load the saved collection.

        A missing or unreadable collection is an empty one.
        """
        items = self.repository.read_collection()
        if items is None:
            logger.warning("Practice collection unavailable, treating as empty")
            return []
        return items

    def get(self, term: str) -> Item:
        """
        Look up a saved item by term.

        Raises:
            UnknownItemError: no item has this term
        """
        for item in self.load():
            if item.term == term:
                return item
        raise UnknownItemError(f"No saved item for {term!r}")

    @staticmethod
    def filter_for_pool(items: list[Item], kind: PracticeKind, policy: MasteryPolicy) -> list[Item]:
        """
        Select the items eligible for a practice kind.

        Strict rule: usable text, counter for `kind` below the per-kind
        threshold and total below the aggregate threshold. When nothing
        passes, fall back to the aggregate rule alone, then to every item.

        Args:
            items: Saved collection
            kind: Practice kind the pool is for
            policy: Thresholds

        Returns:
            Eligible items in collection order
        """
        needs_sentence = kind in SENTENCE_KINDS

        def usable(item: Item) -> bool:
            if not (_has_text(item.term) and _has_text(item.translation)):
                return False
            return _has_text(item.example_sentence) or not needs_sentence

        strict = [
            item for item in items
            if usable(item)
            and item.counter(kind) < policy.per_kind_threshold
            and item.total_correct < policy.aggregate_threshold
        ]
        if strict:
            return strict

        below_aggregate = [item for item in items if item.total_correct < policy.aggregate_threshold]
        if below_aggregate:
            logger.debug("No strict %s pool, using aggregate-only fallback", kind.value)
            return below_aggregate

        logger.debug("No %s pool below thresholds, using full collection", kind.value)
        return list(items)

    def pool(self, kind: PracticeKind) -> list[Item]:
        return self.filter_for_pool(self.load(), kind, self.policy)

    def unique_terms(self) -> list[str]:
        """Distinct terms across the whole collection; case variants count once."""
        return unique_labels(item.term for item in self.load() if _has_text(item.term))

    def unique_translations(self) -> list[str]:
        return unique_labels(item.translation for item in self.load() if _has_text(item.translation))

    # ---- Writes ----

    def increment(self, term: str, kind: PracticeKind) -> IncrementResult:
        """
        Record one correct answer for `term` in `kind`.

        Graduates (removes) the item when its counter sum reaches the
        aggregate threshold. A failed write is logged and ignored.

        Returns:
            IncrementResult; `found` is False when no item has this term
        """
        with self._write_lock:
            items = self.load()
            index = next((i for i, item in enumerate(items) if item.term == term), None)
            if index is None:
                logger.warning("Increment for unknown term %r ignored", term)
                return IncrementResult(removed=False, found=False)

            item = items[index]
            counters = dict(item.mastery_counters)
            counters[kind] = counters.get(kind, 0) + 1
            updated = item.model_copy(update={"mastery_counters": counters})

            removed = updated.total_correct >= self.policy.aggregate_threshold
            if removed:
                del items[index]
                logger.info("Graduated %r after %d correct answers", term, updated.total_correct)
            else:
                items[index] = updated

            self.repository.write_collection(items)
            return IncrementResult(removed=removed, item=updated)

    def add_item(
        self,
        term: str,
        translation: str,
        example_sentence: Optional[str] = None,
        curriculum_item_id: Optional[str] = None,
        duplicate_check: DuplicateCheck = "term_and_sentence",
    ) -> bool:
        """
        Save a new item with zeroed counters.

        Args:
            term: Word in the learning language
            translation: Word in the learner's language
            example_sentence: Optional sentence used by sentence kinds
            curriculum_item_id: Lesson item the word came from
            duplicate_check: Which fields identify an existing entry

        Returns:
            True if saved, False for duplicates, empty input or a failed write
        """
        term = (term or "").strip()
        translation = (translation or "").strip()
        if not term or not translation:
            return False

        with self._write_lock:
            items = self.load()
            for existing in items:
                if normalize_label(existing.term) != normalize_label(term):
                    continue
                if duplicate_check == "term_and_translation":
                    same = normalize_label(existing.translation) == normalize_label(translation)
                else:
                    same = (existing.example_sentence or "") == (example_sentence or "")
                if same:
                    return False

            items.append(Item(
                term=term,
                translation=translation,
                example_sentence=example_sentence,
                curriculum_item_id=curriculum_item_id,
            ))
            return self.repository.write_collection(items)

    # ---- Celebrations ----

    def mark_celebrated(self, term: str) -> bool:
        """
        Claim the one-time "mastered" celebration for a term.

        Returns:
            True the first time per store instance, False afterwards
        """
        if term in self._celebrated:
            return False
        self._celebrated.add(term)
        return True
