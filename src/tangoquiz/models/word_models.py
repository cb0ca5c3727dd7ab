"""Models for word snapshots and list views."""
from dataclasses import dataclass, replace
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Mapping, Optional


class SortOrder(Enum):
    """Orders offered by the word list."""
    NEWEST = "newest"  # created_at descending
    OLDEST = "oldest"  # created_at ascending
    MISS_COUNT = "miss_count"  # most missed first


class Mode(Enum):
    """What the chat is currently showing."""
    MAIN = "main"
    WORDS = "words"
    QUIZ = "quiz"


@dataclass(frozen=True)
class WordEntry:
    """Read-only snapshot of a stored word.

    Sessions and views hold references to these and never mutate them; a
    changed miss count becomes visible only after the next refresh.
    """
    kanji: str
    reading: str
    meaning: str
    id: Optional[int] = None
    owner: Optional[str] = None
    miss_count: int = 0
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "WordEntry":
        """Build an entry from a result row mapping."""
        created_at = row.get("created_at")
        # SQLite drops the offset; everything is written in UTC
        if isinstance(created_at, datetime) and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(
            id=row.get("id"),
            kanji=row["kanji"],
            reading=row["reading"],
            meaning=row["meaning"],
            owner=row.get("owner"),
            miss_count=row.get("miss_count") or 0,
            created_at=created_at,
        )


@dataclass(frozen=True)
class ViewState:
    """Everything the word list needs to render, as one value."""
    mode: Mode = Mode.MAIN
    sort_order: SortOrder = SortOrder.NEWEST
    selected_day: Optional[str] = None

    def with_mode(self, mode: Mode) -> "ViewState":
        return replace(self, mode=mode)

    def with_sort_order(self, sort_order: SortOrder) -> "ViewState":
        return replace(self, sort_order=sort_order)

    def with_day(self, day: Optional[str]) -> "ViewState":
        return replace(self, selected_day=day)
