"""
Session Runner - Guided Lesson Queue

Runs one lesson step as a queue of tasks:
- The queue is built from every item in the step and shuffled once
- A correct answer advances; a wrong answer or skip appends a copy of the
  task to the end and advances
- The step is complete once the position passes the end of the queue

Completion and the winning streak are saved to learner settings on a
best-effort basis; storage faults never block the session.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from vocab_engine.constants import (
    STREAK_MILESTONE,
    completed_steps_key,
    highest_completed_step_key,
    winning_streak_key,
)
from vocab_engine.curriculum_repo import CurriculumProvider, resolve_language
from vocab_engine.errors import CurriculumNotFoundError, PracticeEngineError
from vocab_engine.mastery.database import CollectionRepository
from vocab_engine.mastery.store import MasteryStore
from vocab_engine.matching import (
    answers_match,
    blank_answers,
    labels_match,
    selected_tokens,
    tokens_match,
)
from vocab_engine.sampling import shuffle
from vocab_engine.schemas import (
    CHOICE_TASK_TYPES,
    AssembleSentenceTask,
    MissingWordsTask,
    StepContent,
    Task,
    TranslationLetterFillTask,
)
from vocab_engine.session_builders.task_builder import build_tasks

logger = logging.getLogger(__name__)


# ---- Grading ----

def _chosen_option(options: tuple[str, ...], answer: Any) -> Optional[str]:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return options[answer] if 0 <= answer < len(options) else None
    if isinstance(answer, str):
        return answer
    return None


def grade_task(task: Task, answer: Any) -> bool:
    """
    Check a learner's answer for a lesson task.

    Args:
        task: Task being answered
        answer: Option label or index (choice tasks); whole text or blank
            inputs (letter and word fill); tile indices or tokens (assembly)

    Returns:
        True if the answer is correct
    """
    if isinstance(task, CHOICE_TASK_TYPES):
        label = _chosen_option(task.options, answer)
        return label is not None and labels_match(label, task.correct_label)

    if isinstance(task, AssembleSentenceTask):
        given = selected_tokens(task.shuffled_tokens, answer)
        return given is not None and given == list(task.tokens)

    if isinstance(task, MissingWordsTask):
        units, indices, target = list(task.tokens), task.missing_indices, task.sentence
    elif isinstance(task, TranslationLetterFillTask):
        units, indices, target = list(task.translation), task.input_indices, task.translation
    else:
        units, indices, target = list(task.word), task.missing_indices, task.word

    if isinstance(answer, str):
        return answers_match(answer, target)
    given = blank_answers(indices, answer)
    if given is None:
        return False
    return tokens_match([units[i] for i in indices], given)


# ---- Session State ----

@dataclass
class Session:
    """Ordered task queue; `position` only moves forward."""
    queue: list[Task] = field(default_factory=list)
    position: int = 0
    correct_count: int = 0
    wrong_count: int = 0
    original_task_count: int = 0

    @property
    def current(self) -> Optional[Task]:
        if self.position < len(self.queue):
            return self.queue[self.position]
        return None

    @property
    def is_complete(self) -> bool:
        return self.position >= len(self.queue)

    def requeue_current(self) -> None:
        """Append a copy of the current task and move past it."""
        self.queue.append(self.queue[self.position].model_copy())
        self.position += 1


def _parse_int(raw: Optional[str], default: int = 0) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


class SessionRunner:
    """
    Guided-lesson runner for one step.

    Args:
        curriculum: Curriculum content provider
        repository: Settings storage for progress and streak
        learning_language: Language being learned (code or name)
        native_language: Learner's language (code or name)
        step_index: Position of the step in the language's step index
        store: Optional mastery store; its counters scale task difficulty
        rng: Optional random generator
        on_finished: Called with (task, is_correct) after every answer
    """

    def __init__(
        self,
        curriculum: CurriculumProvider,
        repository: CollectionRepository,
        learning_language: str,
        native_language: str,
        step_index: int,
        store: Optional[MasteryStore] = None,
        rng: Optional[random.Random] = None,
        on_finished: Optional[Callable[[Task, bool], None]] = None
    ):
        self.curriculum = curriculum
        self.repository = repository
        self.learning_language = resolve_language(learning_language)
        self.native_language = resolve_language(native_language)
        self.step_index = step_index
        self.store = store
        self.rng = rng or random.Random()
        self.on_finished = on_finished

        self.session = Session()
        self.step: Optional[StepContent] = None
        self.streak = 0
        self.milestone_reached = False
        self._completion_saved = False

    # ---- Loading ----

    def start(self) -> Session:
        """
        Load the step and build a fresh shuffled queue.

        A missing language or step gives an empty session.
        """
        self.streak = self._load_streak()
        self.milestone_reached = False
        self._completion_saved = False

        try:
            learning_step, native_step = self._load_steps()
        except CurriculumNotFoundError as exc:
            logger.warning("Lesson step %d unavailable: %s", self.step_index, exc)
            self.step = None
            self.session = Session()
            return self.session

        self.step = learning_step
        tasks = build_tasks(
            learning_step,
            native_step,
            counters=self._counters(),
            policy=self.store.policy if self.store is not None else None,
            rng=self.rng,
        )
        queue = shuffle(tasks, self.rng)
        self.session = Session(queue=queue, original_task_count=len(queue))
        return self.session

    def _load_steps(self) -> tuple[StepContent, Optional[StepContent]]:
        index = self.curriculum.get_steps(self.learning_language)
        if not 0 <= self.step_index < len(index.steps):
            raise CurriculumNotFoundError(f"No step at index {self.step_index}")
        step_id = index.steps[self.step_index].id

        learning_step = self.curriculum.get_step(self.learning_language, step_id)
        try:
            native_step = self.curriculum.get_step(self.native_language, step_id)
        except CurriculumNotFoundError as exc:
            logger.debug("No native step %s: %s", step_id, exc)
            native_step = None
        return learning_step, native_step

    def _counters(self) -> Optional[dict]:
        if self.store is None:
            return None
        return {
            item.curriculum_item_id: item.mastery_counters
            for item in self.store.load()
            if item.curriculum_item_id
        }

    # ---- Queue ----

    @property
    def current(self) -> Optional[Task]:
        return self.session.current

    @property
    def is_empty(self) -> bool:
        return self.session.original_task_count == 0

    @property
    def is_complete(self) -> bool:
        return not self.is_empty and self.session.is_complete

    @property
    def progress(self) -> float:
        """Share of the original tasks answered correctly (0.0 to 1.0)."""
        if self.session.original_task_count == 0:
            return 0.0
        return min(1.0, self.session.correct_count / self.session.original_task_count)

    def answer(self, answer: Any) -> bool:
        """Grade and record an answer for the current task."""
        task = self._require_current()
        is_correct = grade_task(task, answer)
        self.record(is_correct)
        return is_correct

    def record(self, is_correct: bool) -> None:
        """
        Record a graded answer for the current task.

        Raises:
            PracticeEngineError: the session has no current task
        """
        task = self._require_current()
        if is_correct:
            self.session.correct_count += 1
            self.streak += 1
            self.milestone_reached = self.streak % STREAK_MILESTONE == 0
            self.session.position += 1
        else:
            self.session.wrong_count += 1
            self.streak = 0
            self.milestone_reached = False
            self.session.requeue_current()

        if self.on_finished is not None:
            self.on_finished(task, is_correct)
        self._check_complete()

    def skip(self) -> None:
        """Send the current task to the back of the queue."""
        self._require_current()
        self.milestone_reached = False
        self.session.requeue_current()
        self._check_complete()

    def restart(self) -> Session:
        """Rebuild the queue from scratch, dropping requeued copies."""
        return self.start()

    def abandon(self) -> None:
        """Leave the step early; an unfinished step resets the streak."""
        if self.is_empty or self.session.is_complete:
            return
        self.streak = 0
        self.repository.write_setting(winning_streak_key(self.learning_language), "0")

    def _require_current(self) -> Task:
        task = self.session.current
        if task is None:
            raise PracticeEngineError("Session has no current task")
        return task

    # ---- Progress Persistence ----

    def _check_complete(self) -> None:
        if self.session.is_complete and not self._completion_saved:
            self._completion_saved = True
            self._save_completion()

    def _save_completion(self) -> None:
        language = self.learning_language

        key = highest_completed_step_key(language)
        highest = _parse_int(self.repository.read_setting(key), default=-1)
        if self.step_index > highest:
            self.repository.write_setting(key, str(self.step_index))

        completed = set(self.completed_steps())
        completed.add(self.step_index)
        self.repository.write_setting(completed_steps_key(language), json.dumps(sorted(completed)))

        self.repository.write_setting(winning_streak_key(language), str(self.streak))
        logger.info("Completed step %d (%s) with %d wrong answers",
                    self.step_index, language, self.session.wrong_count)

    def _load_streak(self) -> int:
        return max(0, _parse_int(self.repository.read_setting(winning_streak_key(self.learning_language))))

    def highest_completed_step(self) -> Optional[int]:
        raw = self.repository.read_setting(highest_completed_step_key(self.learning_language))
        value = _parse_int(raw, default=-1)
        return value if value >= 0 else None

    def completed_steps(self) -> list[int]:
        raw = self.repository.read_setting(completed_steps_key(self.learning_language))
        try:
            values = json.loads(raw) if raw else []
        except ValueError:
            return []
        if not isinstance(values, list):
            return []
        return sorted({v for v in values if isinstance(v, int) and not isinstance(v, bool)})
