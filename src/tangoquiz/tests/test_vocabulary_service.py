"""Tests for the vocabulary service."""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from tangoquiz.errors import BusyError, NotFoundError, StoreError, ValidationError
from tangoquiz.models.word_models import SortOrder
from tangoquiz.services.busy import BusyFlag
from tangoquiz.services.vocabulary_service import VocabularyService, VocabularySnapshot
from tangoquiz.services.word_store import WordStore


@pytest.fixture
def vocabulary(store) -> VocabularyService:
    return VocabularyService(store, owner="yuki")


@pytest.mark.asyncio
async def test_add_word_trims_fields(vocabulary: VocabularyService) -> None:
    word = await vocabulary.add_word("  日本 ", " にほん ,にっぽん, ", " 일본 ")

    assert word.kanji == "日本"
    assert word.reading == "にほん, にっぽん"
    assert word.meaning == "일본"
    assert word.owner == "yuki"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kanji, reading, meaning",
    [
        ("", "にほん", "일본"),
        ("日本", "   ", "일본"),
        ("日本", "にほん", ""),
        ("日本", ", ,", "일본"),
    ],
)
async def test_add_word_requires_every_field(vocabulary: VocabularyService, store, kanji, reading, meaning) -> None:
    with pytest.raises(ValidationError):
        await vocabulary.add_word(kanji, reading, meaning)
    assert await store.list_active() == []


@pytest.mark.asyncio
async def test_refresh_returns_words_and_groups(vocabulary: VocabularyService, store) -> None:
    await vocabulary.add_word("一", "いち", "하나")
    await vocabulary.add_word("二", "に", "둘")
    await store.create("三", "さん", "셋", owner="someone else")

    snapshot = await vocabulary.refresh()

    assert {word.kanji for word in snapshot.words} == {"一", "二"}
    assert len(snapshot.days) == 1
    assert sum(len(bucket) for bucket in snapshot.groups.values()) == 2


@pytest.mark.asyncio
async def test_remove_word_hides_it(vocabulary: VocabularyService) -> None:
    word = await vocabulary.add_word("一", "いち", "하나")

    await vocabulary.remove_word(word.id)

    assert (await vocabulary.refresh()).words == []
    with pytest.raises(NotFoundError):
        await vocabulary.remove_word(word.id)


@pytest.mark.asyncio
async def test_refresh_issues_both_reads_concurrently() -> None:
    started = []
    release = asyncio.Event()

    async def list_active(owner):
        started.append("list")
        await release.wait()
        return []

    async def group_active_by_day(owner):
        started.append("group")
        await release.wait()
        return {}

    store = Mock(spec=WordStore)
    store.list_active = list_active
    store.group_active_by_day = group_active_by_day

    task = asyncio.create_task(VocabularyService(store).refresh())
    for _ in range(3):
        await asyncio.sleep(0)
    # Both reads are in flight before either completes
    assert sorted(started) == ["group", "list"]
    release.set()
    assert await task == VocabularySnapshot([], {})


@pytest.mark.asyncio
async def test_refresh_fails_when_either_read_fails() -> None:
    store = Mock(spec=WordStore)
    store.list_active = AsyncMock(return_value=[])
    store.group_active_by_day = AsyncMock(side_effect=StoreError("connection reset", operation="list_active"))
    busy = BusyFlag()

    with pytest.raises(StoreError, match="connection reset"):
        await VocabularyService(store, busy=busy).refresh()
    assert busy.busy is False


@pytest.mark.asyncio
async def test_busy_flag_rejects_conflicting_action() -> None:
    busy = BusyFlag()
    store = Mock(spec=WordStore)
    store.create = AsyncMock()
    vocabulary = VocabularyService(store, busy=busy)

    async with busy.hold("remove_word"):
        with pytest.raises(BusyError):
            await vocabulary.add_word("日本", "にほん", "일본")
    store.create.assert_not_called()
    assert busy.busy is False


@pytest.mark.asyncio
async def test_words_for_day(vocabulary: VocabularyService) -> None:
    word = await vocabulary.add_word("一", "いち", "하나")
    day = word.created_at.strftime("%Y-%m-%d")

    words = await vocabulary.words_for_day(day)

    assert [w.id for w in words] == [word.id]


def test_snapshot_sorted(make_word) -> None:
    low = make_word(miss_count=0)
    high = make_word(miss_count=4)
    snapshot = VocabularySnapshot(words=[low, high])

    assert snapshot.sorted(SortOrder.MISS_COUNT) == [high, low]
    assert snapshot.sorted(SortOrder.OLDEST) == [low, high]
    assert snapshot.for_day("2000-01-01") == []
