"""Exception classes shared by the services and the bot handlers."""
from typing import Optional


class TangoQuizError(Exception):
    """Base exception class for tangoquiz."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(TangoQuizError):
    """A required input is missing or malformed. Nothing was changed."""


class BusyError(TangoQuizError):
    """Another action is still waiting for the store."""

    def __init__(self, message: str = "Another action is still running, please wait"):
        super().__init__(message)


class QuizStateError(TangoQuizError):
    """The quiz transition is not valid in the current state."""


class StoreError(TangoQuizError):
    """The word store failed. The message is the store's own diagnostic text."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)


class NotFoundError(StoreError):
    """The target word no longer exists (or was already removed)."""

    def __init__(self, word_id: Optional[int] = None, operation: Optional[str] = None):
        self.word_id = word_id
        super().__init__(f"Word {word_id} not found", operation=operation)
