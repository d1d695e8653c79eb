"""
Tests for the success journal book.
"""

import pytest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from moneys_wisdom.ledger import (
    LedgerValidationError,
    NotFoundError,
    add_entry,
    delete_entry,
    entries_for_day,
    has_entry_for_today,
    todays_entry,
)
from moneys_wisdom.ledger.journal import pad_items


def _ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


# 2026-03-10 23:30 in Shanghai is 15:30 UTC the same day
LATE_EVENING_SHANGHAI = _ms(datetime(2026, 3, 10, 23, 30, tzinfo=ZoneInfo("Asia/Shanghai")))
# 2026-03-11 00:30 in Shanghai is still 2026-03-10 in UTC
AFTER_MIDNIGHT_SHANGHAI = _ms(datetime(2026, 3, 11, 0, 30, tzinfo=ZoneInfo("Asia/Shanghai")))


class TestPadItems:

    def test_short_lists_are_padded(self):
        assert pad_items(["a"]) == ["a", "", "", "", ""]

    def test_long_lists_are_truncated(self):
        assert pad_items(list("abcdefg")) == list("abcde")

    def test_none_becomes_empty(self):
        assert pad_items([None, "b"]) == ["", "b", "", "", ""]


class TestAddAndDelete:
    """Tests for writing and removing entries."""

    def test_entry_is_prepended(self):
        journal, first = add_entry([], ["Ran 5km"], 1000)
        journal, second = add_entry(journal, ["Saved 100"], 2000)

        assert journal == [second, first]
        assert second.id == "2000"
        assert second.items == ["Saved 100", "", "", "", ""]

    def test_same_millisecond_ids_stay_unique(self):
        journal, first = add_entry([], ["a"], 1000)
        journal, second = add_entry(journal, ["b"], 1000)
        assert first.id != second.id

    @pytest.mark.parametrize("items", [[], ["", "  "], [None, ""]])
    def test_blank_entry_is_rejected(self, items):
        with pytest.raises(LedgerValidationError):
            add_entry([], items, 1000)

    def test_delete_entry(self):
        journal, first = add_entry([], ["a"], 1000)
        journal, second = add_entry(journal, ["b"], 2000)

        remaining, deleted = delete_entry(journal, first.id)
        assert remaining == [second]
        assert deleted == first

    def test_delete_unknown_entry_raises(self):
        with pytest.raises(NotFoundError):
            delete_entry([], "missing")


class TestToday:
    """Tests for the calendar-day logic."""

    def test_today_uses_configured_timezone(self):
        shanghai = ZoneInfo("Asia/Shanghai")
        journal, entry = add_entry([], ["late win"], LATE_EVENING_SHANGHAI)

        assert has_entry_for_today(journal, LATE_EVENING_SHANGHAI + 10 * 60 * 1000, shanghai)
        assert not has_entry_for_today(journal, AFTER_MIDNIGHT_SHANGHAI, shanghai)

    def test_utc_default(self):
        journal, entry = add_entry([], ["late win"], LATE_EVENING_SHANGHAI)
        # Both moments fall on 2026-03-10 in UTC
        assert todays_entry(journal, AFTER_MIDNIGHT_SHANGHAI) == entry

    def test_newest_entry_of_the_day_wins(self):
        journal, _ = add_entry([], ["morning"], LATE_EVENING_SHANGHAI - 3600 * 1000)
        journal, evening = add_entry(journal, ["evening"], LATE_EVENING_SHANGHAI)
        assert todays_entry(journal, LATE_EVENING_SHANGHAI, timezone.utc) == evening

    def test_entries_for_day(self):
        journal, entry = add_entry([], ["x"], LATE_EVENING_SHANGHAI)
        assert entries_for_day(journal, date(2026, 3, 10)) == [entry]
        assert entries_for_day(journal, date(2026, 3, 11)) == []
