"""
Success Journal

Each entry records up to five things the user did well. Entries are kept
newest first and are immutable once saved, except by deletion.

DESIGN DECISION: "Today" is a calendar day in one configured timezone
(UTC unless configured otherwise), not whatever timezone the machine
happens to be in. An entry written just before midnight therefore stays
on the same day after a trip or a DST change.
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional, Sequence

from moneys_wisdom.ledger.mutator import LedgerValidationError, NotFoundError, unique_id
from moneys_wisdom.models.ledger import JOURNAL_ITEM_COUNT, JournalEntry


def pad_items(items: Iterable[str]) -> list[str]:
    """Exactly JOURNAL_ITEM_COUNT strings: extra items dropped, missing ones empty."""
    padded = [str(item) if item is not None else "" for item in items][:JOURNAL_ITEM_COUNT]
    return padded + [""] * (JOURNAL_ITEM_COUNT - len(padded))


def entry_day(entry: JournalEntry, tz: tzinfo = timezone.utc) -> date:
    """Calendar day an entry belongs to."""
    return datetime.fromtimestamp(entry.timestamp / 1000, tz=tz).date()


def add_entry(
    journal: Sequence[JournalEntry],
    items: Sequence[str],
    now: int,
) -> tuple[list[JournalEntry], JournalEntry]:
    """
    Prepend a new entry.

    At least one item must be non-blank. Blank slots are kept as empty
    strings so the entry always has five positions.
    """
    if not any(item and item.strip() for item in items):
        raise LedgerValidationError("Write down at least one thing you are proud of")

    entry = JournalEntry(
        id=unique_id(str(now), (e.id for e in journal)),
        timestamp=now,
        items=pad_items(items),
    )
    return [entry] + list(journal), entry


def delete_entry(
    journal: Sequence[JournalEntry],
    entry_id: str,
) -> tuple[list[JournalEntry], JournalEntry]:
    """Remove one entry."""
    entry = next((e for e in journal if e.id == entry_id), None)
    if entry is None:
        raise NotFoundError(f"Journal entry not found: {entry_id}")
    return [e for e in journal if e.id != entry_id], entry


def entries_for_day(
    journal: Sequence[JournalEntry],
    day: date,
    tz: tzinfo = timezone.utc,
) -> list[JournalEntry]:
    """All entries on a calendar day; several per day are allowed."""
    return [e for e in journal if entry_day(e, tz) == day]


def todays_entry(
    journal: Sequence[JournalEntry],
    now: int,
    tz: tzinfo = timezone.utc,
) -> Optional[JournalEntry]:
    """The first (newest) entry of today, which the UI treats as today's entry."""
    today = datetime.fromtimestamp(now / 1000, tz=tz).date()
    matches = entries_for_day(journal, today, tz)
    return matches[0] if matches else None


def has_entry_for_today(
    journal: Sequence[JournalEntry],
    now: int,
    tz: tzinfo = timezone.utc,
) -> bool:
    return todays_entry(journal, now, tz) is not None
