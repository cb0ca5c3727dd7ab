"""Service for registering, removing and listing a user's words."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tangoquiz.errors import ValidationError
from tangoquiz.models.word_models import SortOrder, WordEntry
from tangoquiz.monitoring import words_added, words_removed
from tangoquiz.services.answers import CANDIDATE_SEPARATOR, split_candidates
from tangoquiz.services.busy import BusyFlag
from tangoquiz.services.projector import sort_words
from tangoquiz.services.word_store import WordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VocabularySnapshot:
    """The two reads a word list view is built from."""
    words: List[WordEntry] = field(default_factory=list)
    groups: Dict[str, List[WordEntry]] = field(default_factory=dict)

    @property
    def days(self) -> List[str]:
        """Day keys, most recent first."""
        return list(self.groups)

    def sorted(self, order: SortOrder) -> List[WordEntry]:
        return sort_words(self.words, order)

    def for_day(self, day: str) -> List[WordEntry]:
        return list(self.groups.get(day, []))


class VocabularyService:
    """Word list operations for one owner.

    ``owner=None`` is the single-user variant: every stored word is "mine".
    """

    def __init__(self, store: WordStore, owner: Optional[str] = None, busy: Optional[BusyFlag] = None):
        """Initialize the service with a word store."""
        self.store = store
        self.owner = owner
        self.busy = busy or BusyFlag()

    async def _refresh(self) -> VocabularySnapshot:
        # No ordering dependency between the two reads; gather raises the first failure
        words, groups = await asyncio.gather(
            self.store.list_active(self.owner),
            self.store.group_active_by_day(self.owner),
        )
        logger.debug(f"Refreshed vocabulary for {self.owner!r}: {len(words)} words, {len(groups)} days")
        return VocabularySnapshot(words=words, groups=groups)

    async def refresh(self) -> VocabularySnapshot:
        """Re-read the owner's words and day groups."""
        async with self.busy.hold("refresh"):
            return await self._refresh()

    @staticmethod
    def _clean_multi_value(label: str, value: str) -> str:
        candidates = split_candidates(value)
        if not candidates:
            raise ValidationError(f"{label} needs at least one non-empty answer")
        return f"{CANDIDATE_SEPARATOR} ".join(candidates)

    async def add_word(self, kanji: str, reading: str, meaning: str) -> WordEntry:
        """Register a new word. All three fields are required."""
        kanji, reading, meaning = (kanji or "").strip(), (reading or "").strip(), (meaning or "").strip()
        if not kanji or not reading or not meaning:
            raise ValidationError("Please fill in all fields: kanji, reading and meaning")

        reading = self._clean_multi_value("Reading", reading)
        meaning = self._clean_multi_value("Meaning", meaning)

        async with self.busy.hold("add_word"):
            word = await self.store.create(kanji, reading, meaning, owner=self.owner)
        words_added.inc()
        logger.info(f"Added word {word.id} {kanji!r} for {self.owner!r}")
        return word

    async def remove_word(self, word_id: int) -> None:
        """Remove a word from every view and future quiz."""
        async with self.busy.hold("remove_word"):
            await self.store.remove(word_id)
        words_removed.inc()
        logger.info(f"Removed word {word_id} for {self.owner!r}")

    async def words_for_day(self, day: str) -> List[WordEntry]:
        """The owner's live words created on one day."""
        async with self.busy.hold("words_for_day"):
            return await self.store.list_active_by_day(day, self.owner)
