"""
Task Builder - Lesson Step to Practice Tasks

Turns the items of one lesson step into concrete practice tasks:
1. Each item is paired with its native-language twin (same id)
2. One task is built per declared practice type, via a dispatch table
3. Items with no usable practice type fall back by item kind:
   sentences -> assemble-sentence, words -> choose-translation

Sibling items in the same step provide distractors, word-bank tiles and
assembly fillers. Difficulty follows the item's mastery counters when they
are known, otherwise the lesson defaults based on text length.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Mapping, Optional

from vocab_engine.blanks import (
    curriculum_blank_count,
    letter_fill_count,
    missing_words_count,
    pick_indices,
    split_letters,
)
from vocab_engine.constants import (
    CHOOSE_OPTION_COUNT,
    LESSON_LETTER_BLANK_CAP,
    LESSON_LETTER_BLANK_DIVISOR,
    LESSON_TOKEN_BLANK_CAP,
    LESSON_TOKEN_BLANK_DIVISOR,
    MIN_ASSEMBLY_TILES,
    PracticeKind,
)
from vocab_engine.distractors import build_option_set, build_word_bank, hearing_option_count
from vocab_engine.sampling import dedupe, sample_n, shuffle
from vocab_engine.schemas import (
    AssembleSentenceTask,
    ChooseTranslationTask,
    ChooseWordTask,
    CurriculumItem,
    HearingTask,
    MasteryPolicy,
    MissingWordsTask,
    StepContent,
    Task,
    TranslationLetterFillTask,
    WordLetterFillTask,
    WriteWordTask,
)
from vocab_engine.tokens import clean_sentence, filter_useful_words, split_to_tokens

logger = logging.getLogger(__name__)

CounterMap = Mapping[str, Mapping[PracticeKind, int]]


def find_native_text(item_id: str, native_step: Optional[StepContent]) -> Optional[str]:
    """Text of the item with this id in the other language, if any."""
    if native_step is None:
        return None
    for item in native_step.items:
        if item.id == item_id:
            return item.text
    return None


def _step_words(step: Optional[StepContent]) -> list[str]:
    """Word texts and sentence tokens of a step, in item order."""
    if step is None:
        return []
    words: list[str] = []
    for item in step.items:
        if item.kind == "sentence":
            words.extend(split_to_tokens(item.text))
        elif item.text:
            words.append(item.text)
    return words


class TaskBuilder:
    """
    Builds practice tasks for one lesson step.

    Args:
        learning_step: Step content in the language being learned
        native_step: Same step in the learner's language
        counters: Optional mastery counters keyed by curriculum item id
        policy: Thresholds used for difficulty scaling
        rng: Optional random generator
    """

    def __init__(
        self,
        learning_step: StepContent,
        native_step: Optional[StepContent] = None,
        counters: Optional[CounterMap] = None,
        policy: Optional[MasteryPolicy] = None,
        rng: Optional[random.Random] = None
    ):
        self.learning_step = learning_step
        self.native_step = native_step
        self.counters = counters or {}
        self.policy = policy or MasteryPolicy()
        self.rng = rng

        self._builders: dict[PracticeKind, Callable[[CurriculumItem], Task]] = {
            PracticeKind.CHOOSE_TRANSLATION: self._choose_translation,
            PracticeKind.CHOOSE_WORD: self._choose_word,
            PracticeKind.HEARING: self._hearing,
            PracticeKind.WRITE_TRANSLATION: self._translation_letter_fill,
            PracticeKind.LETTER_FILL: self._word_letter_fill,
            PracticeKind.WRITE_WORD: self._write_word,
            PracticeKind.WORD_FILL: self._missing_words,
            PracticeKind.SENTENCE_ASSEMBLY: self._assemble_sentence,
        }

        self._word_bank_extras = (
            filter_useful_words(_step_words(learning_step))
            + filter_useful_words(_step_words(native_step))
        )

    @property
    def supported_kinds(self) -> frozenset[PracticeKind]:
        return frozenset(self._builders)

    # ---- Public API ----

    def build(self) -> list[Task]:
        """Tasks for every item in the step, in item order."""
        tasks: list[Task] = []
        for item in self.learning_step.items:
            tasks.extend(self.build_for_item(item))
        return tasks

    def build_for_item(self, item: CurriculumItem) -> list[Task]:
        """
        One task per supported practice type declared on the item.

        Falls back to a single assemble-sentence (sentences) or
        choose-translation (words) task when none is supported.
        """
        tasks = [
            self._builders[kind](item)
            for kind in item.ordered_practice_types()
            if kind in self._builders
        ]
        if tasks:
            return tasks

        if item.kind == "sentence":
            return [self._assemble_sentence(item)]
        return [self._choose_translation(item)]

    # ---- Lookups ----

    def translation_for(self, item: CurriculumItem) -> str:
        """Native text for the item; the source text itself when missing."""
        text = find_native_text(item.id, self.native_step)
        if text:
            return text
        logger.debug("No native text for item %s, using source text", item.id)
        return item.text

    def _counter(self, item: CurriculumItem, kind: PracticeKind) -> Optional[int]:
        counters = self.counters.get(item.id)
        if counters is None:
            return None
        return counters.get(kind, 0)

    def _siblings(self, item: CurriculumItem) -> list[CurriculumItem]:
        return [other for other in self.learning_step.items if other.id != item.id]

    def _sentence_tokens(self, step: Optional[StepContent], item: CurriculumItem, exclude: str) -> list[str]:
        """Tokens of the other sentence items in a step."""
        if step is None:
            return []
        tokens: list[str] = []
        for other in step.items:
            if other.id == item.id or other.kind != "sentence":
                continue
            tokens.extend(t for t in split_to_tokens(other.text) if t and t != exclude)
        return dedupe(tokens)

    # ---- Choose-style ----

    def _translation_options(self, item: CurriculumItem, correct: str, target_size: int, extra_kind: PracticeKind) -> list[str]:
        siblings = []
        for other in self._siblings(item):
            if other.kind == "word" or extra_kind in other.practice_types:
                text = find_native_text(other.id, self.native_step)
                if text and text != correct:
                    siblings.append(text)
        global_pool = self._sentence_tokens(self.native_step, item, correct)
        return build_option_set(correct, siblings, global_pool, target_size, self.rng)

    def _choose_translation(self, item: CurriculumItem) -> ChooseTranslationTask:
        correct = self.translation_for(item)
        options = self._translation_options(
            item, correct, CHOOSE_OPTION_COUNT, PracticeKind.CHOOSE_TRANSLATION
        )
        return ChooseTranslationTask(
            item_id=item.id,
            source_word=item.text,
            correct_translation=correct,
            options=tuple(options),
        )

    def _hearing(self, item: CurriculumItem) -> HearingTask:
        correct = self.translation_for(item)
        counter = self._counter(item, PracticeKind.HEARING) or 0
        options = self._translation_options(
            item, correct, hearing_option_count(counter), PracticeKind.HEARING
        )
        return HearingTask(
            item_id=item.id,
            source_word=item.text,
            correct_translation=correct,
            options=tuple(options),
        )

    def _choose_word(self, item: CurriculumItem) -> ChooseWordTask:
        choose_kinds = {PracticeKind.CHOOSE_TRANSLATION, PracticeKind.CHOOSE_WORD}
        siblings = [
            other.text for other in self._siblings(item)
            if (other.kind == "word" or other.practice_types & choose_kinds)
            and other.text and other.text != item.text
        ]
        global_pool = self._sentence_tokens(self.learning_step, item, item.text)
        options = build_option_set(item.text, siblings, global_pool, CHOOSE_OPTION_COUNT, self.rng)
        return ChooseWordTask(
            item_id=item.id,
            translation=self.translation_for(item),
            correct_word=item.text,
            options=tuple(options),
        )

    # ---- Letter fill ----

    def _letter_indices(self, text: str, counter: Optional[int]) -> tuple[int, ...]:
        letters = split_letters(text)
        if counter is None:
            desired = curriculum_blank_count(
                len(letters), LESSON_LETTER_BLANK_CAP, LESSON_LETTER_BLANK_DIVISOR
            )
        else:
            desired = letter_fill_count(self.policy, counter)
        return tuple(pick_indices(letters, desired, self.rng))

    def _translation_letter_fill(self, item: CurriculumItem) -> TranslationLetterFillTask:
        translation = self.translation_for(item)
        counter = self._counter(item, PracticeKind.WRITE_TRANSLATION)
        return TranslationLetterFillTask(
            item_id=item.id,
            word=item.text,
            translation=translation,
            input_indices=self._letter_indices(translation, counter),
        )

    def _word_letter_fill(self, item: CurriculumItem) -> WordLetterFillTask:
        counter = self._counter(item, PracticeKind.LETTER_FILL)
        return WordLetterFillTask(
            item_id=item.id,
            word=item.text,
            translation=self.translation_for(item),
            missing_indices=self._letter_indices(item.text, counter),
        )

    def _write_word(self, item: CurriculumItem) -> WriteWordTask:
        counter = self._counter(item, PracticeKind.WRITE_WORD)
        return WriteWordTask(
            item_id=item.id,
            word=item.text,
            translation=self.translation_for(item),
            missing_indices=self._letter_indices(item.text, counter),
        )

    # ---- Sentences ----

    def _missing_words(self, item: CurriculumItem) -> MissingWordsTask:
        tokens = split_to_tokens(item.text)
        counter = self._counter(item, PracticeKind.WORD_FILL)
        if counter is None:
            desired = curriculum_blank_count(
                len(tokens), LESSON_TOKEN_BLANK_CAP, LESSON_TOKEN_BLANK_DIVISOR
            )
        else:
            desired = missing_words_count(counter)
        missing = pick_indices(tokens, desired, self.rng)
        required = dedupe(tokens[i] for i in missing)

        context = list(self._word_bank_extras)
        for other in self._siblings(item):
            if other.kind == "sentence":
                context.extend(split_to_tokens(other.text))
            elif other.text:
                context.append(other.text)

        return MissingWordsTask(
            item_id=item.id,
            sentence=item.text,
            translated_sentence=self.translation_for(item),
            tokens=tuple(tokens),
            missing_indices=tuple(missing),
            word_bank=tuple(build_word_bank(required, context, rng=self.rng)),
        )

    def _assemble_sentence(self, item: CurriculumItem) -> AssembleSentenceTask:
        tokens = split_to_tokens(clean_sentence(item.text))
        tiles = list(tokens)

        if len(tokens) < MIN_ASSEMBLY_TILES:
            fillers: list[str] = []
            for other in self._siblings(item):
                if other.kind == "sentence":
                    fillers.extend(split_to_tokens(clean_sentence(other.text)))
                elif other.text:
                    fillers.append(other.text)
            fillers = [word for word in dedupe(fillers) if word and word not in tokens]
            tiles.extend(sample_n(fillers, MIN_ASSEMBLY_TILES - len(tokens), self.rng))

        return AssembleSentenceTask(
            item_id=item.id,
            sentence=item.text,
            translated_sentence=self.translation_for(item),
            tokens=tuple(tokens),
            shuffled_tokens=tuple(shuffle(tiles, self.rng)),
        )


def build_tasks(
    learning_step: StepContent,
    native_step: Optional[StepContent] = None,
    counters: Optional[CounterMap] = None,
    policy: Optional[MasteryPolicy] = None,
    rng: Optional[random.Random] = None
) -> list[Task]:
    """
    Build every task for a lesson step.

    Returns:
        Tasks in item order (not shuffled)
    """
    return TaskBuilder(learning_step, native_step, counters, policy, rng).build()
