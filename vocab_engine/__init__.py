"""
Vocab Engine - Adaptive Vocabulary Mastery & Practice Tasks

Decides which saved words a learner practices next, in which exercise form,
with which distractors, and when a word has been learned and retires.

Quick start:
    from vocab_engine import (
        CollectionRepository, MasteryStore, PracticeKind, PracticeRoundEngine
    )

    store = MasteryStore(CollectionRepository())
    engine = PracticeRoundEngine(store, PracticeKind.CHOOSE_WORD)
    round_ = engine.start()
    outcome = engine.submit(round_.answer)
"""

# Constants
from vocab_engine.constants import PracticeKind, parse_kind

# Errors
from vocab_engine.errors import (
    CurriculumNotFoundError,
    NotEnoughItemsError,
    PracticeEngineError,
    UnknownItemError,
)

# Data model
from vocab_engine.schemas import (
    CurriculumItem,
    Item,
    MasteryPolicy,
    OptionItem,
    StepContent,
    StepIndex,
    Task,
)

# Mastery store
from vocab_engine.mastery import CollectionRepository, IncrementResult, MasteryStore

# Builders and runners
from vocab_engine.session_builders import TaskBuilder, build_tasks
from vocab_engine.practice_round import PracticeRoundEngine, Round, RoundState
from vocab_engine.session_runner import Session, SessionRunner, grade_task
from vocab_engine.surprise_rotation import SurpriseRotation

# Curriculum
from vocab_engine.curriculum_repo import FileCurriculumProvider, MongoCurriculumProvider


__all__ = [
    "PracticeKind",
    "parse_kind",

    "PracticeEngineError",
    "NotEnoughItemsError",
    "CurriculumNotFoundError",
    "UnknownItemError",

    "Item",
    "MasteryPolicy",
    "CurriculumItem",
    "StepIndex",
    "StepContent",
    "OptionItem",
    "Task",

    "CollectionRepository",
    "MasteryStore",
    "IncrementResult",

    "TaskBuilder",
    "build_tasks",
    "PracticeRoundEngine",
    "Round",
    "RoundState",
    "Session",
    "SessionRunner",
    "grade_task",
    "SurpriseRotation",

    "FileCurriculumProvider",
    "MongoCurriculumProvider",
]
