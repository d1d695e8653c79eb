"""
Tests for the reconciliation store: seed vs. persisted snapshot,
monotonic save timestamps, backup import/export and clearing.
"""

import json
import pytest
from datetime import date
from decimal import Decimal

from moneys_wisdom.models import AppData, AuditEventType, LedgerState, Percentages
from moneys_wisdom.services.storage import (
    InMemoryKeyValueStorage,
    KeyValueStorageInterface,
    ReconciliationStore,
    StorageFailure,
    StorageWriteError,
    backup_filename,
    parse_backup_text,
)
from moneys_wisdom.validation import MalformedImport, normalize_app_data


DB_KEY = "moneys-wisdom-db-v1"


def _app_data(version: int, timestamp: int, freedom: str = "0") -> AppData:
    return AppData(
        version=version,
        timestamp=timestamp,
        ledger=LedgerState(freedom_fund=Decimal(freedom)),
    )


def _persist(storage, data: AppData) -> None:
    storage.set(DB_KEY, json.dumps(data.to_wire()))


def _store(storage, seed, clock, audit_logger=None) -> ReconciliationStore:
    return ReconciliationStore(storage, seed, schema_version=2, clock=clock, audit_logger=audit_logger)


def _event_types(audit_logger) -> list[AuditEventType]:
    return [event.event_type for event in audit_logger.recent_events(limit=100)]


class BrokenStorage(KeyValueStorageInterface):
    """Reads fine, refuses every write."""

    def __init__(self):
        self._data = {}

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        raise StorageWriteError("disk unavailable")

    def remove(self, key):
        self._data.pop(key, None)


class TestRead:
    """Tests for deciding between the seed and the local snapshot."""

    def test_nothing_persisted_reads_seed(self, store, seed):
        assert store.read() == seed

    def test_higher_seed_version_wins(self, storage, clock):
        seed = _app_data(2, 1000, freedom="1")
        _persist(storage, _app_data(1, 5000, freedom="2"))
        assert _store(storage, seed, clock).read() == seed

    def test_same_version_newer_snapshot_wins(self, storage, clock):
        seed = _app_data(2, 1000, freedom="1")
        persisted = _app_data(2, 2000, freedom="2")
        _persist(storage, persisted)
        assert _store(storage, seed, clock).read() == persisted

    def test_same_version_tie_goes_to_seed(self, storage, clock):
        seed = _app_data(2, 1000, freedom="1")
        _persist(storage, _app_data(2, 1000, freedom="2"))
        assert _store(storage, seed, clock).read() == seed

    def test_same_version_older_snapshot_loses(self, storage, clock):
        seed = _app_data(2, 1000, freedom="1")
        _persist(storage, _app_data(2, 999, freedom="2"))
        assert _store(storage, seed, clock).read() == seed

    def test_higher_persisted_version_wins(self, storage, clock):
        seed = _app_data(2, 1000, freedom="1")
        persisted = _app_data(3, 10, freedom="2")
        _persist(storage, persisted)
        assert _store(storage, seed, clock).read() == persisted

    def test_missing_version_counts_as_zero(self, storage, clock):
        storage.set(DB_KEY, json.dumps({"timestamp": 5000, "ledger": {"freedomFund": 2}}))

        unversioned_seed = _app_data(0, 1000, freedom="1")
        assert _store(storage, unversioned_seed, clock).read().ledger.freedom_fund == Decimal("2")

        versioned_seed = _app_data(1, 1000, freedom="1")
        assert _store(storage, versioned_seed, clock).read() == versioned_seed

    @pytest.mark.parametrize("stored", [
        "{not json",
        json.dumps([1, 2, 3]),
        json.dumps({"version": 9, "timestamp": 1, "ledger": "nope"}),
    ])
    def test_unusable_snapshot_reads_seed(self, storage, seed, clock, audit_logger, stored):
        storage.set(DB_KEY, stored)
        assert _store(storage, seed, clock, audit_logger).read() == seed
        assert AuditEventType.SNAPSHOT_DISCARDED in _event_types(audit_logger)

    def test_read_has_no_side_effects(self, store, storage):
        store.read()
        store.read()
        assert storage.keys() == []


class TestWrite:
    """Tests for the monotonic timestamp floor."""

    def test_stamps_after_now(self, store, seed, clock):
        saved = store.write(seed)
        assert saved.timestamp == clock.now + 1
        assert store.read() == saved

    def test_stamps_after_seed_when_clock_is_behind(self, store, seed, clock):
        clock.now = 5
        assert store.write(seed).timestamp == seed.timestamp + 1

    def test_stamps_after_unreadable_snapshot(self, store, storage, seed, clock):
        storage.set(DB_KEY, json.dumps({"timestamp": clock.now + 10_000, "ledger": []}))
        assert store.write(seed).timestamp == clock.now + 10_001

    def test_consecutive_writes_strictly_increase(self, store, seed):
        first = store.write(seed)
        second = store.write(first)
        third = store.write(second)
        assert first.timestamp < second.timestamp < third.timestamp

    def test_round_trip(self, store):
        before = store.read()
        store.write(before)
        after = store.read()

        assert after.timestamp > before.timestamp
        assert after.model_copy(update={"timestamp": 0}) == before.model_copy(update={"timestamp": 0})

    def test_snapshot_is_camel_case_json(self, store, seed, storage):
        store.write(seed)
        raw = json.loads(storage.get(DB_KEY))
        assert set(raw) == {"version", "timestamp", "ledger", "journal"}
        assert "freedomFund" in raw["ledger"]
        assert "dreamGoals" in raw["ledger"]
        assert raw["ledger"]["freedomFund"] == 6029

    def test_save_ledger_keeps_journal(self, store, seed):
        saved = store.save_ledger(LedgerState(freedom_fund=Decimal("1")))
        assert saved.ledger.freedom_fund == Decimal("1")
        assert saved.journal == seed.journal

    def test_save_journal_keeps_ledger(self, store, seed):
        saved = store.save_journal([])
        assert saved.journal == []
        assert saved.ledger == seed.ledger

    def test_quota_exceeded_raises_storage_failure(self, seed, clock, audit_logger):
        store = _store(InMemoryKeyValueStorage(max_bytes=10), seed, clock, audit_logger)
        with pytest.raises(StorageFailure, match="full"):
            store.write(seed)
        assert AuditEventType.SAVE_FAILED in _event_types(audit_logger)

    def test_backend_error_raises_storage_failure(self, seed, clock):
        with pytest.raises(StorageFailure):
            _store(BrokenStorage(), seed, clock).write(seed)

    def test_non_finite_snapshot_timestamp_is_ignored(self, store, storage, clock):
        storage.set(DB_KEY, '{"version": 2, "timestamp": Infinity}')

        assert store.write(store.read()).timestamp == clock.now + 1

    def test_clear_recovers_from_non_finite_snapshot(self, store, storage):
        storage.set(DB_KEY, '{"version": 2, "timestamp": Infinity, "ledger": {}}')

        cleared = store.clear()

        assert store.read() == cleared

    def test_successful_write_is_audited(self, store, seed, audit_logger):
        store.write(seed)
        assert _event_types(audit_logger)[0] == AuditEventType.DATA_SAVED


class TestImport:
    """Tests for restoring a backup."""

    def test_missing_goals_come_back_empty(self, store, seed):
        """Import merges over empty defaults, not over the current data."""
        assert seed.ledger.dream_goals

        result = store.import_backup({
            "ledger": {"freedomFund": 10, "dreamFund": 0, "playFund": 0, "transactions": []},
            "journal": [],
        })

        assert result.success
        data = store.read()
        assert data.ledger.dream_goals == []
        assert data.journal == []
        assert data.ledger.freedom_fund == Decimal("10")
        assert data.ledger.percentages == seed.ledger.percentages

    def test_import_replaces_everything(self, store, seed):
        backup = seed.to_wire()
        result = store.import_backup(backup)

        assert result.success
        assert result.transaction_count == len(seed.ledger.transactions)
        assert result.journal_count == len(seed.journal)
        assert store.read().ledger == seed.ledger

    def test_import_version_is_at_least_schema_version(self, store):
        store.import_backup({"version": 1, "ledger": {}})
        assert store.read().version == 2

        store.import_backup({"version": 5, "ledger": {}})
        assert store.read().version == 5

    def test_imported_backup_is_newer_than_anything_seen(self, store, seed, clock):
        backup = seed.to_wire()
        backup["timestamp"] = clock.now + 50_000
        store.import_backup(backup)
        # Backup timestamps are ignored; the write stamps its own
        assert store.read().timestamp == clock.now + 1

    def test_backup_without_ledger_keeps_seed_ledger(self, store, seed):
        result = store.import_backup({"journal": []})

        assert result.success
        data = store.read()
        assert data.ledger == seed.ledger
        assert data.ledger.freedom_fund == Decimal("6029")
        assert data.journal == []

    def test_non_finite_version_counts_as_zero(self, store):
        result = store.import_backup(parse_backup_text('{"version": Infinity, "journal": []}'))

        assert result.success
        assert store.read().version == 2

    def test_non_list_journal_is_empty(self, store):
        store.import_backup({"ledger": {}, "journal": "oops"})
        assert store.read().journal == []

    @pytest.mark.parametrize("raw,message", [
        (["not", "an", "object"], "not a JSON object"),
        ({"ledger": 42}, "Malformed ledger"),
        ({"ledger": {"percentages": {"freedom": 1, "dream": 1, "play": 1}}}, "Malformed"),
    ])
    def test_malformed_backup_fails_without_writing(self, store, storage, audit_logger, raw, message):
        result = store.import_backup(raw)

        assert not result.success
        assert message in result.message
        assert storage.get(DB_KEY) is None
        assert AuditEventType.IMPORT_FAILED in _event_types(audit_logger)

    def test_storage_failure_becomes_failed_result(self, seed, clock):
        result = _store(BrokenStorage(), seed, clock).import_backup({"ledger": {}})
        assert not result.success
        assert result.message


class TestClearAndExport:
    """Tests for reset, export and the seed module."""

    def test_clear_writes_empty_data(self, store, seed):
        cleared = store.clear()

        data = store.read()
        assert data == cleared
        assert data.ledger.total_balance == 0
        assert data.ledger.transactions == []
        assert data.ledger.dream_goals == []
        assert data.journal == []
        assert data.version == 2
        assert data.ledger.percentages == seed.ledger.percentages

    def test_clear_keeps_custom_seed_percentages(self, storage, clock):
        seed = AppData(version=2, ledger=LedgerState(percentages=Percentages(freedom=70, dream=20, play=10)))
        store = _store(storage, seed, clock)
        assert store.clear().ledger.percentages == Percentages(freedom=70, dream=20, play=10)

    def test_export_json_matches_read(self, store):
        exported = json.loads(store.export_json())
        assert exported == store.read().to_wire()

    def test_export_json_round_trips_through_import(self, store, seed):
        exported = store.export_json()
        store.clear()

        result = store.import_backup(parse_backup_text(exported))

        assert result.success
        assert store.read().ledger == seed.ledger
        assert store.read().journal == seed.journal

    def test_seed_module_reproduces_data(self, store):
        source = store.export_seed_module()
        namespace = {}
        exec(compile(source, "initial_data.py", "exec"), namespace)

        assert normalize_app_data(namespace["INITIAL_DATA"]) == store.read()

    def test_backup_filename(self):
        assert backup_filename(date(2026, 1, 5)) == "moneys-wisdom-backup-2026-01-05.json"

    def test_parse_backup_text_rejects_invalid_json(self):
        with pytest.raises(MalformedImport):
            parse_backup_text("{oops")
