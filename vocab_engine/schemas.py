"""
Pydantic models for the practice engine.

Defines the persisted practice item, the learner's mastery policy, bilingual
curriculum content, and the immutable task variants handed to the
presentation layer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vocab_engine.constants import (
    AGGREGATE_THRESHOLD_DEFAULT,
    AGGREGATE_THRESHOLD_MAX,
    AGGREGATE_THRESHOLD_MIN,
    PER_KIND_THRESHOLD_DEFAULT,
    PER_KIND_THRESHOLD_MAX,
    PER_KIND_THRESHOLD_MIN,
    PracticeKind,
    parse_kind,
)
from vocab_engine.matching import normalize_label


# ---- Mastery Counters ----

def ensure_counters(raw: Any) -> dict[PracticeKind, int]:
    """
    Build a fully populated counter map.

    Every PracticeKind gets an entry. Missing, negative or non-numeric values
    become 0; unknown kind names are dropped; legacy names are mapped.
    """
    counters = {kind: 0 for kind in PracticeKind}
    if not isinstance(raw, dict):
        return counters

    for name, value in raw.items():
        kind = parse_kind(name)
        if kind is None:
            continue
        try:
            count = int(value)
        except (TypeError, ValueError):
            count = 0
        counters[kind] = max(0, count)
    return counters


class Item(BaseModel):
    """
    A saved word the learner practices until it graduates.

    One entry per saved term; counters track correct answers per kind.
    """
    term: str
    translation: str
    example_sentence: Optional[str] = None
    curriculum_item_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    mastery_counters: dict[PracticeKind, int] = Field(default_factory=lambda: ensure_counters(None))

    @field_validator("mastery_counters", mode="before")
    @classmethod
    def _fill_counters(cls, value: Any) -> dict[PracticeKind, int]:
        return ensure_counters(value)

    def counter(self, kind: PracticeKind) -> int:
        return self.mastery_counters.get(kind, 0)

    @property
    def total_correct(self) -> int:
        """Aggregate correct answers across all kinds."""
        return sum(self.mastery_counters.values())


# ---- Mastery Policy ----

def _parse_bounded(raw: Optional[str], low: int, high: int, default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if low <= value <= high:
        return value
    return default


class MasteryPolicy(BaseModel):
    """Learner-configured thresholds for pool inclusion and graduation."""
    model_config = ConfigDict(frozen=True)

    per_kind_threshold: int = Field(
        default=PER_KIND_THRESHOLD_DEFAULT,
        ge=PER_KIND_THRESHOLD_MIN,
        le=PER_KIND_THRESHOLD_MAX,
    )
    aggregate_threshold: int = Field(
        default=AGGREGATE_THRESHOLD_DEFAULT,
        ge=AGGREGATE_THRESHOLD_MIN,
        le=AGGREGATE_THRESHOLD_MAX,
    )

    @classmethod
    def from_settings(cls, raw_per_kind: Optional[str], raw_aggregate: Optional[str]) -> "MasteryPolicy":
        """
        Build a policy from raw setting strings.

        Unparsable or out-of-range values fall back to the defaults.
        """
        return cls(
            per_kind_threshold=_parse_bounded(
                raw_per_kind,
                PER_KIND_THRESHOLD_MIN,
                PER_KIND_THRESHOLD_MAX,
                PER_KIND_THRESHOLD_DEFAULT,
            ),
            aggregate_threshold=_parse_bounded(
                raw_aggregate,
                AGGREGATE_THRESHOLD_MIN,
                AGGREGATE_THRESHOLD_MAX,
                AGGREGATE_THRESHOLD_DEFAULT,
            ),
        )


# ---- Curriculum ----

class CurriculumItem(BaseModel):
    """
    One unit of lesson content in one language.

    The same `id` appears in the learning-language and native-language step
    files; the two texts form a translation pair.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str = ""
    kind: Literal["word", "sentence"] = Field(default="word", alias="type")
    practice_types: frozenset[PracticeKind] = Field(default_factory=frozenset, alias="practiceType")
    title: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _default_kind(cls, value: Any) -> str:
        return value if value in ("word", "sentence") else "word"

    @field_validator("practice_types", mode="before")
    @classmethod
    def _parse_practice_types(cls, value: Any) -> frozenset:
        """Accept a comma-separated string or a list; drop unknown names."""
        if value is None:
            return frozenset()
        if isinstance(value, str):
            names = value.split(",")
        else:
            names = list(value)
        kinds = (parse_kind(str(name)) for name in names)
        return frozenset(kind for kind in kinds if kind is not None)

    def ordered_practice_types(self) -> list[PracticeKind]:
        """Declared practice types in enum declaration order."""
        return [kind for kind in PracticeKind if kind in self.practice_types]


class StepMeta(BaseModel):
    """Entry in a language's lesson-step index."""
    id: str
    title: str = ""
    emoji: Optional[str] = None
    file: Optional[str] = None


class StepIndex(BaseModel):
    language: str
    overview: Optional[str] = None
    steps: list[StepMeta] = Field(default_factory=list)


class StepContent(BaseModel):
    """One lesson step in one language."""
    id: str
    title: str = ""
    language: str = ""
    items: list[CurriculumItem] = Field(default_factory=list)


# ---- Options ----

class OptionItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    is_correct: bool


def make_option_items(options: list[str], correct_label: str) -> list[OptionItem]:
    """
    Label options, flagging the one matching the correct label.

    Labels are de-duplicated on their normalised form so exactly one option
    can be correct.
    """
    correct_norm = normalize_label(correct_label)
    seen: set[str] = set()
    items = []
    for label in options:
        norm = normalize_label(label)
        if not norm or norm in seen:
            continue
        seen.add(norm)
        items.append(OptionItem(label=" ".join(label.split()), is_correct=norm == correct_norm))
    return items


# ---- Tasks ----

class _BaseTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: str


class _ChoiceTask(_BaseTask):
    options: tuple[str, ...]

    @property
    def correct_label(self) -> str:
        raise NotImplementedError

    def option_items(self) -> list[OptionItem]:
        return make_option_items(list(self.options), self.correct_label)


class ChooseTranslationTask(_ChoiceTask):
    """Show a word, pick its translation."""
    kind: Literal["choose_translation"] = "choose_translation"
    source_word: str
    correct_translation: str

    @property
    def correct_label(self) -> str:
        return self.correct_translation


class ChooseWordTask(_ChoiceTask):
    """Show a translation, pick the word."""
    kind: Literal["choose_word"] = "choose_word"
    translation: str
    correct_word: str

    @property
    def correct_label(self) -> str:
        return self.correct_word


class HearingTask(_ChoiceTask):
    """Hear a word, pick its translation."""
    kind: Literal["hearing"] = "hearing"
    source_word: str
    correct_translation: str

    @property
    def correct_label(self) -> str:
        return self.correct_translation


class TranslationLetterFillTask(_BaseTask):
    kind: Literal["translation_letter_fill"] = "translation_letter_fill"
    word: str
    translation: str
    input_indices: tuple[int, ...]


class WordLetterFillTask(_BaseTask):
    kind: Literal["word_letter_fill"] = "word_letter_fill"
    word: str
    translation: str
    missing_indices: tuple[int, ...]


class WriteWordTask(_BaseTask):
    """Free entry of the word; blanks mark what must be typed."""
    kind: Literal["write_word"] = "write_word"
    word: str
    translation: str
    missing_indices: tuple[int, ...]


class MissingWordsTask(_BaseTask):
    kind: Literal["missing_words"] = "missing_words"
    sentence: str
    translated_sentence: str
    tokens: tuple[str, ...]
    missing_indices: tuple[int, ...]
    word_bank: tuple[str, ...]


class AssembleSentenceTask(_BaseTask):
    """Rebuild `tokens` in order from the `shuffled_tokens` tiles."""
    kind: Literal["assemble_sentence"] = "assemble_sentence"
    sentence: str
    translated_sentence: str
    tokens: tuple[str, ...]
    shuffled_tokens: tuple[str, ...]


Task = Annotated[
    Union[
        ChooseTranslationTask,
        ChooseWordTask,
        HearingTask,
        TranslationLetterFillTask,
        WordLetterFillTask,
        WriteWordTask,
        MissingWordsTask,
        AssembleSentenceTask,
    ],
    Field(discriminator="kind"),
]

CHOICE_TASK_TYPES = (ChooseTranslationTask, ChooseWordTask, HearingTask)


TASK_PRACTICE_KIND = {
    "choose_translation": PracticeKind.CHOOSE_TRANSLATION,
    "choose_word": PracticeKind.CHOOSE_WORD,
    "hearing": PracticeKind.HEARING,
    "translation_letter_fill": PracticeKind.WRITE_TRANSLATION,
    "word_letter_fill": PracticeKind.LETTER_FILL,
    "write_word": PracticeKind.WRITE_WORD,
    "missing_words": PracticeKind.WORD_FILL,
    "assemble_sentence": PracticeKind.SENTENCE_ASSEMBLY,
}
