"""
Practice Round Engine

Single-exercise flow for the standalone practice screens:

    IDLE -> AWAITING_ANSWER -> CORRECT | WRONG

Each round picks one item from the kind's pool (never the previous item
when another is available), builds the prompt, grades the answer and
updates mastery. Correct answers advance automatically after a feedback
delay; wrong answers wait for `next()`.

Pair matching is the one multi-step round: the board holds several
word/translation pairs, every matched pair counts as a correct answer for
that word, and the round resolves once the board is cleared.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from vocab_engine import config
from vocab_engine.blanks import (
    is_alphabetic,
    letter_fill_count,
    missing_words_count,
    pick_indices,
    split_letters,
)
from vocab_engine.constants import (
    CHOOSE_OPTION_COUNT,
    MIN_ASSEMBLY_TOKENS,
    PAIR_MATCH_MAX_PAIRS,
    PAIR_MATCH_MIN_PAIRS,
    SENTENCE_KINDS,
    PracticeKind,
)
from vocab_engine.distractors import (
    build_option_set,
    build_word_bank,
    hearing_option_count,
    require_unique_pool,
)
from vocab_engine.errors import NotEnoughItemsError, PracticeEngineError
from vocab_engine.mastery.store import MasteryStore
from vocab_engine.matching import (
    answers_match,
    blank_answers,
    labels_match,
    normalize_label,
    selected_tokens,
    tokens_match,
)
from vocab_engine.sampling import dedupe, shuffle
from vocab_engine.schemas import Item, OptionItem, make_option_items
from vocab_engine.tokens import split_to_tokens

logger = logging.getLogger(__name__)

Answer = Union[str, int, Mapping[int, str], Sequence[str], Sequence[int]]
Scheduler = Callable[[float, Callable[[], None]], Any]


class RoundState(str, Enum):
    IDLE = "idle"
    AWAITING_ANSWER = "awaiting_answer"
    CORRECT = "correct"
    WRONG = "wrong"
    NOT_ENOUGH_ITEMS = "not_enough_items"


ROUND_KINDS = frozenset({
    PracticeKind.CHOOSE_TRANSLATION,
    PracticeKind.CHOOSE_WORD,
    PracticeKind.HEARING,
    PracticeKind.LETTER_FILL,
    PracticeKind.WRITE_TRANSLATION,
    PracticeKind.WRITE_WORD,
    PracticeKind.WORD_FILL,
    PracticeKind.SENTENCE_ASSEMBLY,
    PracticeKind.MEMORY_MATCH,
})

# Kinds that give one retry before revealing the answer
RETRY_KINDS = frozenset({
    PracticeKind.CHOOSE_TRANSLATION,
    PracticeKind.CHOOSE_WORD,
    PracticeKind.HEARING,
})
MAX_RETRIES = 1

LETTER_KINDS = frozenset({
    PracticeKind.LETTER_FILL,
    PracticeKind.WRITE_TRANSLATION,
    PracticeKind.WRITE_WORD,
})

MIN_CHOICE_POOL = 2


@dataclass
class Round:
    """
    One exercise instance.

    `units` holds letters (letter kinds) or tokens (word fill, assembly);
    `blank_indices` index into it. Assembly offers `units` shuffled as
    `tiles`. Pair matching keeps `pairs` (term -> translation) with the
    terms shuffled in `units` and the translations shuffled in `options`.
    """
    item: Item
    kind: PracticeKind
    prompt: str
    answer: str
    options: list[str] = field(default_factory=list)
    units: list[str] = field(default_factory=list)
    blank_indices: list[int] = field(default_factory=list)
    word_bank: list[str] = field(default_factory=list)
    tiles: list[str] = field(default_factory=list)
    pairs: dict[str, str] = field(default_factory=dict)
    matched: set[str] = field(default_factory=set)
    attempts: int = 0
    state: RoundState = RoundState.AWAITING_ANSWER
    revealed: bool = False

    def option_items(self) -> list[OptionItem]:
        return make_option_items(self.options, self.answer)

    @property
    def expected_blanks(self) -> list[str]:
        return [self.units[i] for i in self.blank_indices]

    @property
    def board_cleared(self) -> bool:
        return bool(self.pairs) and len(self.matched) >= len(self.pairs)


@dataclass
class AnswerOutcome:
    state: RoundState
    is_correct: bool
    can_retry: bool = False
    reveal: Optional[str] = None
    mastered: bool = False
    matched_term: Optional[str] = None


def _timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


# ---- Grading ----

def _selected_label(options: Sequence[str], answer: Answer) -> Optional[str]:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        if 0 <= answer < len(options):
            return options[answer]
        return None
    if isinstance(answer, str):
        return answer
    return None


def grade_round(current: Round, answer: Answer) -> bool:
    """
    Check an answer against a round.

    Choice kinds take a label or option index. Letter kinds take the whole
    word, or the blanked letters (mapping by letter index or a sequence in
    blank order). Word fill takes the missing tokens the same way, or the
    full sentence. Assembly takes tile indices, tokens or the sentence, in
    the exact original order. Pair matching is graded pair by pair in
    `PracticeRoundEngine.submit`.
    """
    if current.kind in RETRY_KINDS:
        label = _selected_label(current.options, answer)
        return label is not None and labels_match(label, current.answer)

    if current.kind == PracticeKind.SENTENCE_ASSEMBLY:
        given = selected_tokens(current.tiles, answer)
        return given is not None and given == current.units

    if isinstance(answer, str):
        return answers_match(answer, current.answer)

    given = blank_answers(current.blank_indices, answer)
    if given is None:
        return False
    return tokens_match(current.expected_blanks, given)


def _pair_key(current: Round, term: str) -> Optional[str]:
    """Unmatched board term equal to `term`."""
    for key in current.pairs:
        if key not in current.matched and labels_match(key, term):
            return key
    return None


# ---- Engine ----

class PracticeRoundEngine:
    """
    Runs consecutive rounds of one practice kind over the mastery store.

    The default scheduler fires feedback callbacks on a timer thread; round
    changes are serialized with a lock. UIs with their own event loop should
    inject a scheduler that posts the callback to that loop instead.

    Args:
        store: Mastery store the pool comes from and counters go to
        kind: Practice kind for every round
        rng: Optional random generator
        scheduler: `scheduler(delay, callback)`; defaults to a daemon Timer
        on_finished: Called with (round, is_correct) when a round resolves
        feedback_delay: Seconds before advancing after a correct answer
        pair_count: Pairs per pair-matching board, clamped to 3..9
            (default 9)
    """

    def __init__(
        self,
        store: MasteryStore,
        kind: PracticeKind,
        rng: Optional[random.Random] = None,
        scheduler: Optional[Scheduler] = None,
        on_finished: Optional[Callable[[Round, bool], None]] = None,
        feedback_delay: Optional[float] = None,
        pair_count: Optional[int] = None
    ):
        if kind not in ROUND_KINDS:
            raise ValueError(f"No practice rounds for {kind.value}")
        self.store = store
        self.kind = kind
        self.rng = rng or random.Random()
        self.scheduler = scheduler or _timer_scheduler
        self.on_finished = on_finished
        self.feedback_delay = (
            config.get_feedback_delay_seconds() if feedback_delay is None else feedback_delay
        )
        self.pair_count = (
            PAIR_MATCH_MAX_PAIRS if pair_count is None
            else max(PAIR_MATCH_MIN_PAIRS, min(PAIR_MATCH_MAX_PAIRS, pair_count))
        )

        self.state = RoundState.IDLE
        self.current: Optional[Round] = None
        self.last_term: Optional[str] = None
        self.shortage: Optional[NotEnoughItemsError] = None
        self._generation = 0
        self._closed = False
        self._lock = threading.RLock()

    # ---- Flow ----

    def start(self) -> Optional[Round]:
        with self._lock:
            self._closed = False
            return self.prepare_round()

    def next(self) -> Optional[Round]:
        """Move on to a fresh round."""
        with self._lock:
            if self._closed:
                return None
            return self.prepare_round()

    def close(self) -> None:
        """Stop the engine; pending feedback timers become no-ops."""
        with self._lock:
            self._closed = True
            self._generation += 1
            self.state = RoundState.IDLE

    # ---- Selection ----

    def pick_index(self, pool: Sequence[Item]) -> int:
        """
        Pick a pool index, skipping the previous item unless it is alone.

        Raises:
            NotEnoughItemsError: pool is empty
        """
        if not pool:
            raise NotEnoughItemsError("Practice pool is empty", available=0, required=1)
        candidates = [i for i, item in enumerate(pool) if item.term != self.last_term]
        if not candidates:
            candidates = list(range(len(pool)))
        return candidates[self.rng.randrange(len(candidates))]

    def _letter_target(self, item: Item) -> str:
        return item.translation if self.kind == PracticeKind.WRITE_TRANSLATION else item.term

    def _load_pool(self) -> list[Item]:
        pool = self.store.pool(self.kind)
        if self.kind in SENTENCE_KINDS:
            pool = [item for item in pool if item.example_sentence and item.example_sentence.strip()]
        if self.kind == PracticeKind.SENTENCE_ASSEMBLY:
            pool = [
                item for item in pool
                if len(split_to_tokens(item.example_sentence or "")) >= MIN_ASSEMBLY_TOKENS
            ]
        if self.kind in LETTER_KINDS:
            pool = [item for item in pool if is_alphabetic(self._letter_target(item))]
        return pool

    def prepare_round(self) -> Optional[Round]:
        """
        Build the next round.

        Returns:
            The new round, or None when the pool cannot support one
            (state becomes NOT_ENOUGH_ITEMS)
        """
        with self._lock:
            self._generation += 1
            self.current = None
            try:
                pool = self._load_pool()
                index = self.pick_index(pool)
                item = pool[index]
                current = self._build_round(item, pool)
            except NotEnoughItemsError as exc:
                logger.debug("Cannot build %s round: %s", self.kind.value, exc)
                self.shortage = exc
                self.state = RoundState.NOT_ENOUGH_ITEMS
                return None

            self.shortage = None
            self.last_term = item.term
            self.current = current
            self.state = RoundState.AWAITING_ANSWER
            return current

    # ---- Round Construction ----

    def _build_round(self, item: Item, pool: Sequence[Item]) -> Round:
        counter = item.counter(self.kind)
        others = [other for other in pool if other.term != item.term]

        if self.kind == PracticeKind.CHOOSE_WORD:
            return self._choice_round(
                item, prompt=item.translation, answer=item.term,
                siblings=[other.term for other in others],
                global_pool=self.store.unique_terms(),
                target_size=CHOOSE_OPTION_COUNT, pool_size=len(pool),
            )
        if self.kind in (PracticeKind.CHOOSE_TRANSLATION, PracticeKind.HEARING):
            target = (
                hearing_option_count(counter)
                if self.kind == PracticeKind.HEARING
                else CHOOSE_OPTION_COUNT
            )
            return self._choice_round(
                item, prompt=item.term, answer=item.translation,
                siblings=[other.translation for other in others],
                global_pool=self.store.unique_translations(),
                target_size=target, pool_size=len(pool),
            )
        if self.kind == PracticeKind.WORD_FILL:
            return self._word_fill_round(item, others, counter)
        if self.kind == PracticeKind.SENTENCE_ASSEMBLY:
            return self._assembly_round(item)
        if self.kind == PracticeKind.MEMORY_MATCH:
            return self._pair_round(item, others)

        # Letter kinds
        target_text = self._letter_target(item)
        prompt = item.term if self.kind == PracticeKind.WRITE_TRANSLATION else item.translation
        letters = split_letters(target_text)
        blanks = pick_indices(letters, letter_fill_count(self.store.policy, counter), self.rng)
        if not blanks:
            raise NotEnoughItemsError(f"No letters to hide in {target_text!r}", available=0, required=1)
        return Round(
            item=item, kind=self.kind, prompt=prompt, answer=target_text,
            units=letters, blank_indices=blanks,
        )

    def _choice_round(
        self,
        item: Item,
        prompt: str,
        answer: str,
        siblings: list[str],
        global_pool: list[str],
        target_size: int,
        pool_size: int
    ) -> Round:
        if pool_size < MIN_CHOICE_POOL:
            raise NotEnoughItemsError(
                f"{self.kind.value} needs at least {MIN_CHOICE_POOL} items",
                available=pool_size,
                required=MIN_CHOICE_POOL,
            )
        unique = require_unique_pool(global_pool, target_size)
        options = build_option_set(answer, siblings, unique, target_size, self.rng)
        return Round(item=item, kind=self.kind, prompt=prompt, answer=answer, options=options)

    def _word_fill_round(self, item: Item, others: Sequence[Item], counter: int) -> Round:
        sentence = item.example_sentence or ""
        tokens = split_to_tokens(sentence)
        blanks = pick_indices(tokens, missing_words_count(counter), self.rng)
        if not blanks:
            raise NotEnoughItemsError(f"No blankable words in {sentence!r}", available=0, required=1)

        required = dedupe(tokens[i] for i in blanks)
        context: list[str] = []
        for other in others:
            context.append(other.term)
            context.extend(split_to_tokens(other.example_sentence or ""))
        return Round(
            item=item, kind=self.kind, prompt=item.translation, answer=sentence,
            units=tokens, blank_indices=blanks,
            word_bank=build_word_bank(required, context, rng=self.rng),
        )

    def _assembly_round(self, item: Item) -> Round:
        sentence = item.example_sentence or ""
        tokens = split_to_tokens(sentence)
        if len(tokens) < MIN_ASSEMBLY_TOKENS:
            raise NotEnoughItemsError(
                f"Sentence too short to assemble: {sentence!r}",
                available=len(tokens),
                required=MIN_ASSEMBLY_TOKENS,
            )
        return Round(
            item=item, kind=self.kind, prompt=item.translation, answer=sentence,
            units=tokens, tiles=shuffle(tokens, self.rng),
        )

    def _pair_round(self, item: Item, others: Sequence[Item]) -> Round:
        """Board of distinct pairs, starting with the picked item."""
        chosen = [item]
        seen_terms = {normalize_label(item.term)}
        seen_translations = {normalize_label(item.translation)}
        for other in shuffle(others, self.rng):
            if len(chosen) >= self.pair_count:
                break
            term_key = normalize_label(other.term)
            translation_key = normalize_label(other.translation)
            if term_key in seen_terms or translation_key in seen_translations:
                continue
            seen_terms.add(term_key)
            seen_translations.add(translation_key)
            chosen.append(other)

        pairs = {entry.term: entry.translation for entry in chosen}
        return Round(
            item=item, kind=self.kind, prompt="", answer=item.translation,
            units=shuffle(list(pairs), self.rng),
            options=shuffle(list(pairs.values()), self.rng),
            pairs=pairs,
        )

    # ---- Answers ----

    def submit(self, answer: Any) -> AnswerOutcome:
        """
        Grade an answer for the current round.

        Pair matching takes one `(term, translation)` pair per call.

        Raises:
            PracticeEngineError: no round is awaiting an answer
        """
        with self._lock:
            current = self.current
            if current is None or current.state != RoundState.AWAITING_ANSWER:
                raise PracticeEngineError("No round is awaiting an answer")

            current.attempts += 1
            if self.kind == PracticeKind.MEMORY_MATCH:
                return self._submit_pair(current, answer)

            if grade_round(current, answer):
                result = self.store.increment(current.item.term, self.kind)
                mastered = result.removed and self.store.mark_celebrated(current.item.term)
                return self._resolve_correct(current, mastered)

            if self.kind in RETRY_KINDS and current.attempts <= MAX_RETRIES:
                return AnswerOutcome(state=RoundState.WRONG, is_correct=False, can_retry=True)

            current.state = RoundState.WRONG
            current.revealed = True
            self.state = RoundState.WRONG
            self._notify(current, False)
            return AnswerOutcome(state=RoundState.WRONG, is_correct=False, reveal=current.answer)

    def _submit_pair(self, current: Round, answer: Any) -> AnswerOutcome:
        """Mismatches flip back with no penalty; each match counts for its word."""
        key = None
        if isinstance(answer, (tuple, list)) and len(answer) == 2:
            term, translation = answer
            key = _pair_key(current, str(term))
            if key is not None and not labels_match(current.pairs[key], str(translation)):
                key = None
        if key is None:
            return AnswerOutcome(state=RoundState.WRONG, is_correct=False, can_retry=True)

        current.matched.add(key)
        result = self.store.increment(key, self.kind)
        mastered = result.removed and self.store.mark_celebrated(key)

        if current.board_cleared:
            outcome = self._resolve_correct(current, mastered)
            outcome.matched_term = key
            return outcome
        return AnswerOutcome(
            state=RoundState.AWAITING_ANSWER, is_correct=True,
            mastered=mastered, matched_term=key,
        )

    def _resolve_correct(self, current: Round, mastered: bool) -> AnswerOutcome:
        current.state = RoundState.CORRECT
        self.state = RoundState.CORRECT
        self._notify(current, True)

        generation = self._generation

        def advance() -> None:
            with self._lock:
                if self._closed or generation != self._generation:
                    return
                self.prepare_round()

        self.scheduler(self.feedback_delay, advance)
        return AnswerOutcome(state=RoundState.CORRECT, is_correct=True, mastered=mastered)

    def _notify(self, current: Round, is_correct: bool) -> None:
        if self.on_finished is not None:
            self.on_finished(current, is_correct)
