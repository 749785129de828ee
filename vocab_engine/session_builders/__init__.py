"""Task builders for guided lessons."""

from vocab_engine.session_builders.task_builder import (
    TaskBuilder,
    build_tasks,
    find_native_text,
)

__all__ = [
    "TaskBuilder",
    "build_tasks",
    "find_native_text",
]
