"""
Engine Constants and Parameters

All tunable numbers for the practice engine in one place: practice kinds,
mastery threshold defaults and ranges, option-count gates, and the keys used
for persisted learner settings.
"""

from enum import Enum


# ---- Practice Kinds ----

class PracticeKind(str, Enum):
    """Exercise type a mastery counter is kept for."""
    LETTER_FILL = "letter_fill"              # Missing letters in a word
    WORD_FILL = "word_fill"                  # Missing words in a sentence
    CHOOSE_TRANSLATION = "choose_translation"
    CHOOSE_WORD = "choose_word"
    MEMORY_MATCH = "memory_match"
    WRITE_TRANSLATION = "write_translation"  # Missing letters in the translation
    WRITE_WORD = "write_word"
    HEARING = "hearing"
    FLIP_CARD = "flip_card"
    SENTENCE_ASSEMBLY = "sentence_assembly"


# Kinds whose rounds are built from the item's example sentence
SENTENCE_KINDS = frozenset({
    PracticeKind.WORD_FILL,
    PracticeKind.SENTENCE_ASSEMBLY,
})


# Names used by curriculum files and older stored counters
LEGACY_KIND_NAMES = {
    "missingLetters": PracticeKind.LETTER_FILL,
    "wordMissingLetters": PracticeKind.LETTER_FILL,
    "missingWords": PracticeKind.WORD_FILL,
    "chooseTranslation": PracticeKind.CHOOSE_TRANSLATION,
    "chooseWord": PracticeKind.CHOOSE_WORD,
    "memoryGame": PracticeKind.MEMORY_MATCH,
    "matchGame": PracticeKind.MEMORY_MATCH,
    "writeTranslation": PracticeKind.WRITE_TRANSLATION,
    "translationMissingLetters": PracticeKind.WRITE_TRANSLATION,
    "writeWord": PracticeKind.WRITE_WORD,
    "hearing": PracticeKind.HEARING,
    "flipCards": PracticeKind.FLIP_CARD,
    "formulateSentense": PracticeKind.SENTENCE_ASSEMBLY,
    "formulateSentence": PracticeKind.SENTENCE_ASSEMBLY,
}


def parse_kind(name: str):
    """
    Resolve a practice kind from its value or legacy name.

    Returns:
        PracticeKind, or None for unknown names
    """
    if isinstance(name, PracticeKind):
        return name
    cleaned = (name or "").strip()
    if not cleaned:
        return None
    if cleaned in LEGACY_KIND_NAMES:
        return LEGACY_KIND_NAMES[cleaned]
    try:
        return PracticeKind(cleaned)
    except ValueError:
        return None


# ---- Mastery Policy ----

PER_KIND_THRESHOLD_DEFAULT = 3
PER_KIND_THRESHOLD_MIN = 1
PER_KIND_THRESHOLD_MAX = 4

AGGREGATE_THRESHOLD_DEFAULT = 6
AGGREGATE_THRESHOLD_MIN = 1
AGGREGATE_THRESHOLD_MAX = 50

# Letter-fill base difficulty is (LETTER_FILL_BASE - per_kind_threshold)
LETTER_FILL_BASE = 4


# ---- Option Gates ----

CHOOSE_OPTION_COUNT = 8     # Options shown in choose-translation / choose-word
MIN_ASSEMBLY_TILES = 6      # Tiles offered in sentence assembly
WORD_BANK_MIN_SIZE = 10     # Word bank size floor for missing-words
WORD_BANK_EXTRA = 6         # Extra tiles on top of the required answers
MIN_ASSEMBLY_TOKENS = 2     # Shortest sentence worth reordering

PAIR_MATCH_MAX_PAIRS = 9    # Word/translation pairs on the board
PAIR_MATCH_MIN_PAIRS = 3    # Smallest board a learner can ask for


# ---- Lesson Blank Counts (no mastery history) ----

LESSON_LETTER_BLANK_CAP = 3
LESSON_LETTER_BLANK_DIVISOR = 4
LESSON_TOKEN_BLANK_CAP = 2
LESSON_TOKEN_BLANK_DIVISOR = 6


# ---- Surprise Rotation ----

SURPRISE_RESHUFFLE_AFTER = 10

SURPRISE_KINDS = (
    PracticeKind.LETTER_FILL,
    PracticeKind.WORD_FILL,
    PracticeKind.MEMORY_MATCH,
    PracticeKind.CHOOSE_WORD,
    PracticeKind.CHOOSE_TRANSLATION,
    PracticeKind.WRITE_TRANSLATION,
    PracticeKind.WRITE_WORD,
    PracticeKind.HEARING,
)


# ---- Guided Lessons ----

STREAK_MILESTONE = 4        # Celebrate every N correct answers in a row


# ---- Setting Keys ----

SETTING_PER_KIND_THRESHOLD = "words.removeAfterNCorrect"
SETTING_AGGREGATE_THRESHOLD = "words.removeAfterTotalCorrect"


def highest_completed_step_key(language: str) -> str:
    return f"babySteps.highestCompletedStep.{language}"


def completed_steps_key(language: str) -> str:
    return f"babySteps.completedSteps.{language}"


def winning_streak_key(language: str) -> str:
    return f"babySteps.winningStreak.{language}"
