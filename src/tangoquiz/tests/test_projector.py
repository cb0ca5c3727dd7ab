"""Tests for sorting and day grouping of word lists."""
from datetime import datetime, timedelta, UTC
from itertools import permutations
from zoneinfo import ZoneInfo

import pytest

from tangoquiz.models.word_models import SortOrder
from tangoquiz.services.projector import day_key, group_by_day, parse_created_at, sort_words

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def test_sort_newest_and_oldest(make_word) -> None:
    old = make_word(created_at=BASE_TIME)
    mid = make_word(created_at=BASE_TIME + timedelta(days=1))
    new = make_word(created_at=BASE_TIME + timedelta(days=2))

    assert sort_words([mid, old, new], SortOrder.NEWEST) == [new, mid, old]
    assert sort_words([mid, old, new], SortOrder.OLDEST) == [old, mid, new]


def test_newest_reversed_equals_oldest_for_all_permutations(make_word) -> None:
    words = [make_word(created_at=BASE_TIME + timedelta(minutes=i)) for i in range(4)]
    for ordering in permutations(words):
        newest = sort_words(ordering, SortOrder.NEWEST)
        assert list(reversed(newest)) == sort_words(ordering, SortOrder.OLDEST)


def test_missing_or_unparseable_created_at_sorts_as_oldest(make_word) -> None:
    dated = make_word(created_at=BASE_TIME)
    missing = make_word(created_at=None)
    garbage = make_word(created_at="not a date")

    assert sort_words([missing, dated, garbage], SortOrder.NEWEST) == [dated, missing, garbage]
    assert sort_words([missing, dated, garbage], SortOrder.OLDEST)[-1] == dated


def test_miss_count_sort_is_stable(make_word) -> None:
    a = make_word(miss_count=1)
    b = make_word(miss_count=3)
    c = make_word(miss_count=1)
    d = make_word(miss_count=0)
    e = make_word(miss_count=3)

    first = sort_words([a, b, c, d, e], SortOrder.MISS_COUNT)
    assert first == [b, e, a, c, d]
    # Re-sorting does not shuffle ties between renders
    assert sort_words(first, SortOrder.MISS_COUNT) == first


def test_sort_accepts_iso_strings(make_word) -> None:
    early = make_word(created_at="2024-01-01T00:00:00Z")
    late = make_word(created_at="2024-02-01T00:00:00+00:00")
    assert sort_words([early, late], SortOrder.NEWEST) == [late, early]


def test_parse_created_at_assumes_utc_for_naive() -> None:
    parsed = parse_created_at(datetime(2024, 1, 1, 10, 0))
    assert parsed.tzinfo is UTC


def test_day_key_uses_reference_zone() -> None:
    moment = datetime(2024, 5, 1, 20, 0, tzinfo=UTC)
    assert day_key(moment) == "2024-05-01"
    assert day_key(moment, ZoneInfo("Asia/Tokyo")) == "2024-05-02"
    assert day_key(None) is None
    assert day_key("garbage") is None


def test_group_by_day_orders_days_most_recent_first(make_word) -> None:
    day1 = make_word(created_at=datetime(2024, 5, 1, 9, 0, tzinfo=UTC))
    day1_late = make_word(created_at=datetime(2024, 5, 1, 23, 0, tzinfo=UTC))
    day3 = make_word(created_at=datetime(2024, 5, 3, 9, 0, tzinfo=UTC))
    undated = make_word(created_at=None)

    groups = group_by_day([day1, day3, undated, day1_late])

    assert list(groups) == ["2024-05-03", "2024-05-01"]
    assert groups["2024-05-01"] == [day1, day1_late]
    assert groups["2024-05-03"] == [day3]
    assert all(undated not in bucket for bucket in groups.values())


def test_group_round_trip_matches_newest_listing(make_word) -> None:
    words = [
        make_word(created_at=BASE_TIME + timedelta(hours=hours))
        for hours in (0, 5, 30, 31, 80)
    ]
    words.append(make_word(created_at=None))
    listing = sort_words(words, SortOrder.NEWEST)

    flattened = [word for bucket in group_by_day(listing).values() for word in bucket]

    expected = [word for word in listing if word.created_at is not None]
    assert sort_words(flattened, SortOrder.NEWEST) == expected


def test_unknown_sort_order_rejected(make_word) -> None:
    with pytest.raises(ValueError):
        sort_words([make_word()], "newest")
