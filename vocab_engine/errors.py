"""Exceptions raised by the practice engine."""


class PracticeEngineError(Exception):
    """Base class for engine errors."""


class NotEnoughItemsError(PracticeEngineError):
    """The pool cannot support a well-formed round or task."""

    def __init__(self, message: str, available: int = 0, required: int = 0):
        super().__init__(message)
        self.available = available
        self.required = required


class CurriculumNotFoundError(PracticeEngineError):
    """A language index or lesson step could not be found."""


class UnknownItemError(PracticeEngineError):
    """No stored item matches the requested term."""
