"""Models for grading and quiz session state."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from tangoquiz.models.word_models import WordEntry


class GradeOutcome(Enum):
    """Result of grading one question."""
    CORRECT = "correct"  # reading and meaning matched
    PARTIAL = "partial"  # exactly one of them matched
    INCORRECT = "incorrect"  # neither matched


class AnswerField(Enum):
    """The two answer fields of a question."""
    READING = "reading"
    MEANING = "meaning"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one answer against its accepted candidates."""
    matched: bool
    matched_candidate: Optional[str] = None


@dataclass(frozen=True)
class Grade:
    """A graded question."""
    word: WordEntry
    reading: MatchResult
    meaning: MatchResult

    @property
    def outcome(self) -> GradeOutcome:
        if self.reading.matched and self.meaning.matched:
            return GradeOutcome.CORRECT
        if self.reading.matched or self.meaning.matched:
            return GradeOutcome.PARTIAL
        return GradeOutcome.INCORRECT

    @property
    def is_miss(self) -> bool:
        """Partial and incorrect answers both count as one miss."""
        return self.outcome is not GradeOutcome.CORRECT

    @property
    def matched_field(self) -> Optional[AnswerField]:
        """The field that matched on a partial answer."""
        if self.outcome is not GradeOutcome.PARTIAL:
            return None
        return AnswerField.READING if self.reading.matched else AnswerField.MEANING

    @property
    def missed_field(self) -> Optional[AnswerField]:
        """The field to study on a partial answer."""
        if self.outcome is not GradeOutcome.PARTIAL:
            return None
        return AnswerField.MEANING if self.reading.matched else AnswerField.READING

    def accepted(self, field: AnswerField) -> str:
        """The full stored answer string for a field."""
        return self.word.reading if field is AnswerField.READING else self.word.meaning

    def matched_candidate(self, field: AnswerField) -> Optional[str]:
        result = self.reading if field is AnswerField.READING else self.meaning
        return result.matched_candidate


@dataclass(frozen=True)
class NotStarted:
    """No quiz is running."""


@dataclass(frozen=True)
class InProgress:
    """A quiz pass is running.

    ``revealed`` is set once the current question has been graded;
    ``last_grade`` is only present while revealed.
    """
    working_set: Tuple[WordEntry, ...]
    position: int = 0
    missed: Tuple[WordEntry, ...] = ()
    revealed: bool = False
    last_grade: Optional[Grade] = None

    @property
    def current(self) -> WordEntry:
        return self.working_set[self.position]

    @property
    def is_last(self) -> bool:
        return self.position == len(self.working_set) - 1


@dataclass(frozen=True)
class Completed:
    """A quiz pass has finished."""
    working_set: Tuple[WordEntry, ...]
    missed: Tuple[WordEntry, ...] = ()


SessionState = Union[NotStarted, InProgress, Completed]
