"""Quiz session state machine and its store-facing controller."""
import logging
import random
from dataclasses import replace
from typing import Iterable, Optional, Sequence, Tuple

from tangoquiz.errors import QuizStateError, ValidationError
from tangoquiz.models.quiz_models import (
    Completed,
    Grade,
    InProgress,
    NotStarted,
    SessionState,
)
from tangoquiz.models.word_models import WordEntry
from tangoquiz.monitoring import answers_graded, quiz_sessions
from tangoquiz.services.answers import grade
from tangoquiz.services.busy import BusyFlag
from tangoquiz.services.vocabulary_service import VocabularyService, VocabularySnapshot
from tangoquiz.services.word_store import WordStore

logger = logging.getLogger(__name__)


class QuizSession:
    """One quiz, held as a single state value.

    ``NotStarted -> InProgress -> Completed``, plus ``Completed -> InProgress``
    when only the missed words are retried.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.state: SessionState = NotStarted()

    def _shuffled(self, words: Iterable[WordEntry]) -> Tuple[WordEntry, ...]:
        items = list(words)
        # random.shuffle is Fisher-Yates; applied whatever the length
        self.rng.shuffle(items)
        return tuple(items)

    def _in_progress(self) -> InProgress:
        if not isinstance(self.state, InProgress):
            raise QuizStateError("No quiz question is open")
        return self.state

    @property
    def current(self) -> Optional[WordEntry]:
        return self.state.current if isinstance(self.state, InProgress) else None

    def start(self, candidates: Sequence[WordEntry]) -> InProgress:
        """Start a pass over a shuffled copy of ``candidates``."""
        if isinstance(self.state, InProgress):
            raise QuizStateError("A quiz is already running")
        candidates = list(candidates)
        if not candidates:
            raise ValidationError("Add some words before starting a quiz")
        self.state = InProgress(working_set=self._shuffled(candidates))
        logger.debug(f"Quiz started with {len(candidates)} words")
        return self.state

    def submit_answer(self, user_reading: str, user_meaning: str) -> Grade:
        """Grade the current question and reveal its answer."""
        state = self._in_progress()
        if state.revealed:
            raise QuizStateError("This question has already been answered")
        user_reading = (user_reading or "").strip()
        user_meaning = (user_meaning or "").strip()
        if not user_reading or not user_meaning:
            raise ValidationError("Please enter both the reading and the meaning")

        result = grade(state.current, user_reading, user_meaning)
        missed = state.missed + (state.current,) if result.is_miss else state.missed
        self.state = replace(state, missed=missed, revealed=True, last_grade=result)
        return result

    def advance(self) -> SessionState:
        """Move to the next question, or finish after the last one."""
        state = self._in_progress()
        if not state.revealed:
            raise QuizStateError("Answer the current question first")
        if state.is_last:
            self.state = Completed(working_set=state.working_set, missed=state.missed)
            logger.debug(f"Quiz completed, {len(state.missed)} missed")
        else:
            self.state = InProgress(
                working_set=state.working_set,
                position=state.position + 1,
                missed=state.missed,
            )
        return self.state

    def retry_missed(self) -> InProgress:
        """Start a new pass over the words missed in the finished one."""
        if not isinstance(self.state, Completed):
            raise QuizStateError("Finish the quiz before retrying missed words")
        if not self.state.missed:
            raise ValidationError("There are no missed words to retry")
        self.state = InProgress(working_set=self._shuffled(self.state.missed))
        logger.debug(f"Retrying {len(self.state.working_set)} missed words")
        return self.state

    def reset(self) -> None:
        """Discard the quiz."""
        if isinstance(self.state, NotStarted):
            raise QuizStateError("No quiz to leave")
        self.state = NotStarted()


class QuizController:
    """Runs a ``QuizSession`` against the word store for one owner."""

    def __init__(
        self,
        store: WordStore,
        owner: Optional[str] = None,
        busy: Optional[BusyFlag] = None,
        rng: Optional[random.Random] = None,
        vocabulary: Optional[VocabularyService] = None,
    ):
        self.store = store
        self.owner = owner
        self.busy = busy or BusyFlag()
        self.session = QuizSession(rng)
        self.vocabulary = vocabulary or VocabularyService(store, owner, self.busy)

    @property
    def state(self) -> SessionState:
        return self.session.state

    async def start(self, candidates: Optional[Sequence[WordEntry]] = None) -> InProgress:
        """Start a quiz over the owner's live words, or the live subset of ``candidates``."""
        async with self.busy.hold("start_quiz"):
            active = await self.store.list_active(self.owner)
        if candidates is None:
            words = active
        else:
            # A word removed after the list was rendered must not come back
            active_ids = {word.id for word in active}
            words = [word for word in candidates if word.id is None or word.id in active_ids]
        state = self.session.start(words)
        quiz_sessions.labels(kind="fresh").inc()
        logger.info(f"Quiz started for {self.owner!r} with {len(state.working_set)} words")
        return state

    async def start_day(self, day: str) -> InProgress:
        """Start a quiz over the words created on one day."""
        async with self.busy.hold("start_day_quiz"):
            words = await self.store.list_active_by_day(day, self.owner)
        state = self.session.start(words)
        quiz_sessions.labels(kind="day").inc()
        logger.info(f"Quiz for {day} started for {self.owner!r} with {len(state.working_set)} words")
        return state

    async def submit_answer(self, user_reading: str, user_meaning: str) -> Grade:
        """Grade the current question; a miss adds one to the word's miss count.

        A store failure is raised after the grade is recorded in the session,
        so the quiz can carry on.
        """
        async with self.busy.hold("submit_answer"):
            result = self.session.submit_answer(user_reading, user_meaning)
            answers_graded.labels(outcome=result.outcome.value).inc()
            if result.is_miss and result.word.id is not None:
                await self.store.increment_miss_count(result.word.id)
        return result

    def advance(self) -> SessionState:
        return self.session.advance()

    def retry_missed(self) -> InProgress:
        state = self.session.retry_missed()
        quiz_sessions.labels(kind="retry").inc()
        return state

    async def return_to_main(self) -> VocabularySnapshot:
        """Leave the quiz and re-read the word list to pick up new miss counts."""
        if not isinstance(self.session.state, NotStarted):
            self.session.reset()
        return await self.vocabulary.refresh()
