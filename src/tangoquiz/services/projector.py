"""Sorted and day-grouped views over a word collection."""
from collections import defaultdict
from datetime import datetime, tzinfo, UTC
from typing import Dict, Iterable, List, Optional, Union

from tangoquiz.models.word_models import SortOrder, WordEntry

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

DAY_FORMAT = "%Y-%m-%d"


def parse_created_at(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Return an aware datetime, or None when missing or unparseable."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def _timestamp(word: WordEntry) -> float:
    created_at = parse_created_at(word.created_at)
    return (created_at or EPOCH).timestamp()


def sort_words(words: Iterable[WordEntry], order: SortOrder) -> List[WordEntry]:
    """Sort words for display.

    Words without a usable ``created_at`` count as created at the epoch.
    All orders are stable, so ties keep their input order on every render.
    """
    if order is SortOrder.NEWEST:
        return sorted(words, key=_timestamp, reverse=True)
    if order is SortOrder.OLDEST:
        return sorted(words, key=_timestamp)
    if order is SortOrder.MISS_COUNT:
        return sorted(words, key=lambda word: word.miss_count or 0, reverse=True)
    raise ValueError(f"Unknown sort order: {order}")


def day_key(created_at: Union[datetime, str, None], tz: tzinfo = UTC) -> Optional[str]:
    """Calendar day (YYYY-MM-DD) of a creation time in the reference zone."""
    parsed = parse_created_at(created_at)
    if parsed is None:
        return None
    return parsed.astimezone(tz).strftime(DAY_FORMAT)


def group_by_day(words: Iterable[WordEntry], tz: tzinfo = UTC) -> Dict[str, List[WordEntry]]:
    """Bucket words by creation day, most recent day first.

    Words keep their input order inside a bucket; words without a usable
    ``created_at`` are left out.
    """
    groups: Dict[str, List[WordEntry]] = defaultdict(list)
    for word in words:
        key = day_key(word.created_at, tz)
        if key is not None:
            groups[key].append(word)
    return {key: groups[key] for key in sorted(groups, reverse=True)}


def parse_day(day: str) -> datetime:
    """Parse a YYYY-MM-DD day key; raises ValueError when malformed."""
    return datetime.strptime(day, DAY_FORMAT)
