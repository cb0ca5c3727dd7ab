"""Answer normalisation, matching and grading."""
import logging
from typing import List, Sequence

from tangoquiz.models.quiz_models import Grade, MatchResult
from tangoquiz.models.word_models import WordEntry

logger = logging.getLogger(__name__)

# Separator between alternatives in a stored reading or meaning
CANDIDATE_SEPARATOR = ","

# Characters dropped before comparing answers, on top of all whitespace
IGNORED_CHARACTERS = frozenset(",、。！？!?")


def normalize(text: str) -> str:
    """Canonical form used to decide whether two answers are the same.

    Lowercases and drops whitespace, commas and the ASCII / full-width
    punctuation in ``IGNORED_CHARACTERS``. Never fails: punctuation-only or
    empty input gives an empty string.
    """
    if not text:
        return ""
    return "".join(
        ch for ch in text.lower()
        if not ch.isspace() and ch not in IGNORED_CHARACTERS
    ).strip()


def split_candidates(text: str) -> List[str]:
    """Split a stored multi-value field into trimmed, non-empty alternatives."""
    if not text:
        return []
    return [part.strip() for part in text.split(CANDIDATE_SEPARATOR) if part.strip()]


def match(user_answer: str, accepted_answers: Sequence[str]) -> MatchResult:
    """Match an answer against the accepted alternatives, in order.

    The first alternative whose normalised form equals the normalised answer
    wins; its trimmed original text is returned for display.
    """
    wanted = normalize(user_answer)
    for candidate in accepted_answers:
        if normalize(candidate) == wanted:
            return MatchResult(matched=True, matched_candidate=candidate.strip())
    return MatchResult(matched=False)


def grade(word: WordEntry, user_reading: str, user_meaning: str) -> Grade:
    """Grade both answer fields of one question."""
    result = Grade(
        word=word,
        reading=match(user_reading, split_candidates(word.reading)),
        meaning=match(user_meaning, split_candidates(word.meaning)),
    )
    logger.debug(f"Graded {word.kanji!r}: {result.outcome.value}")
    return result
