"""
Reconciliation Store

Owns the single persisted AppData snapshot and decides, on every read,
whether the bundled seed or the local snapshot is authoritative.

DESIGN DECISION: The seed carries a version. Shipping a build with a
higher seed version is how the developer pushes new master data to every
install. Within the same version the newer timestamp wins, which is what
lets the user's own edits survive a restart.

READ RULES (in order):
1. Nothing usable persisted -> seed
2. Seed version > persisted version -> seed
3. Same version -> larger timestamp, seed on a tie
4. Otherwise -> persisted

WRITE RULE: every save is stamped strictly later than anything seen
before (wall clock, seed, raw persisted timestamp), so a save can never
lose the read race against the seed or a stale snapshot, even with a
clock that went backwards.
"""

import json
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Sequence

from moneys_wisdom.audit.logger import AuditLogger
from moneys_wisdom.data.seed import render_seed_module
from moneys_wisdom.ledger.mutator import now_millis
from moneys_wisdom.models.audit import AuditEventBuilder
from moneys_wisdom.models.ledger import (
    AppData,
    ImportResult,
    JournalEntry,
    LedgerState,
)
from moneys_wisdom.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
    StorageFailure,
    StorageQuotaExceededError,
)
from moneys_wisdom.validation.normalizer import MalformedImport, normalize_app_data


DEFAULT_DB_KEY = "moneys-wisdom-db-v1"
DEFAULT_SCHEMA_VERSION = 2


def backup_filename(today: date) -> str:
    """Download name for a JSON backup."""
    return f"moneys-wisdom-backup-{today:%Y-%m-%d}.json"


def parse_backup_text(text: str) -> Any:
    """
    Parse backup file contents.

    Floats are read as Decimal so cents survive the round trip.

    Raises:
        MalformedImport: If the text is not JSON
    """
    try:
        return json.loads(text, parse_float=Decimal)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedImport(f"Backup is not valid JSON: {e}") from e


def _raw_int(value: Any) -> int:
    """Non-negative integer from a raw JSON value; anything unparsable or non-finite is 0."""
    try:
        number = Decimal(str(value or 0))
    except (InvalidOperation, ValueError):
        return 0
    if not number.is_finite():
        return 0
    return max(0, int(number))


def _raw_timestamp(raw: Any) -> int:
    return _raw_int(raw.get("timestamp")) if isinstance(raw, dict) else 0


class ReconciliationStore:
    """
    Reads and writes the app data under one storage key.

    Args:
        storage: Key-value backend
        seed: Bundled seed dataset (already normalized)
        schema_version: Version stamped on imported and cleared data
        db_key: Storage key holding the snapshot
        clock: Returns the current time in epoch milliseconds
        audit_logger: Receives save/import/clear events
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        seed: AppData,
        schema_version: int = DEFAULT_SCHEMA_VERSION,
        db_key: str = DEFAULT_DB_KEY,
        clock: Optional[Callable[[], int]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._seed = seed
        self._schema_version = schema_version
        self._db_key = db_key
        self._clock = clock or now_millis
        self._audit = audit_logger or AuditLogger()

    @property
    def seed(self) -> AppData:
        return self._seed

    # -------------------------------------------------------------------------
    # Persisted snapshot
    # -------------------------------------------------------------------------

    def _load_raw(self) -> Any:
        text = self._storage.get(self._db_key)
        if text is None:
            return None
        try:
            return json.loads(text, parse_float=Decimal)
        except json.JSONDecodeError as e:
            self._audit.log(AuditEventBuilder.snapshot_discarded(f"Invalid JSON: {e}"))
            return None

    def _load_persisted(self) -> Optional[AppData]:
        """The local snapshot, or None when it is missing or unusable."""
        raw = self._load_raw()
        if raw is None:
            return None
        try:
            return normalize_app_data(raw, self._seed.ledger.percentages)
        except MalformedImport as e:
            self._audit.log(AuditEventBuilder.snapshot_discarded(str(e)))
            return None

    def _persisted_raw_timestamp(self) -> int:
        """Timestamp of whatever is stored, even if the rest is unreadable."""
        text = self._storage.get(self._db_key)
        if text is None:
            return 0
        try:
            return _raw_timestamp(json.loads(text, parse_float=Decimal))
        except json.JSONDecodeError:
            return 0

    # -------------------------------------------------------------------------
    # Read / write
    # -------------------------------------------------------------------------

    def read(self) -> AppData:
        """Authoritative app data: seed or persisted snapshot. No side effects on storage."""
        persisted = self._load_persisted()
        seed = self._seed

        if persisted is None:
            return seed
        if seed.version > persisted.version:
            return seed
        if seed.version == persisted.version:
            return persisted if persisted.timestamp > seed.timestamp else seed
        return persisted

    def write(self, data: AppData) -> AppData:
        """
        Persist data with a fresh, strictly increasing timestamp.

        Returns:
            The stamped copy that was stored

        Raises:
            StorageFailure: If the backend rejects the write
        """
        floor = max(self._clock(), self._seed.timestamp, self._persisted_raw_timestamp())
        stamped = data.model_copy(update={"timestamp": floor + 1})
        payload = json.dumps(stamped.to_wire(), ensure_ascii=False)

        try:
            self._storage.set(self._db_key, payload)
        except StorageQuotaExceededError as e:
            self._audit.log(AuditEventBuilder.save_failed(str(e)))
            raise StorageFailure(
                "Storage is full. Export a backup and clear old data."
            ) from e
        except (StorageError, OSError) as e:
            self._audit.log(AuditEventBuilder.save_failed(str(e)))
            raise StorageFailure(f"Saving failed: {e}") from e

        self._audit.log(AuditEventBuilder.data_saved(
            timestamp=stamped.timestamp,
            version=stamped.version,
            size_bytes=len(payload.encode("utf-8")),
        ))
        return stamped

    def save_ledger(self, ledger: LedgerState) -> AppData:
        """Replace the ledger, keep the journal."""
        return self.write(self.read().model_copy(update={"ledger": ledger}))

    def save_journal(self, journal: Sequence[JournalEntry]) -> AppData:
        """Replace the journal, keep the ledger."""
        return self.write(self.read().model_copy(update={"journal": list(journal)}))

    # -------------------------------------------------------------------------
    # Backup / restore
    # -------------------------------------------------------------------------

    def _default_ledger_wire(self) -> dict:
        return LedgerState(percentages=self._seed.ledger.percentages).model_dump(
            mode="json", by_alias=True
        )

    def build_import(self, raw: Any) -> AppData:
        """
        Turn a parsed backup into the AppData an import would write.

        A backup ledger is merged over empty defaults (not over the
        current data), so anything it leaves out comes back empty. A
        backup without a ledger keeps the seed ledger.

        Raises:
            MalformedImport: If the backup cannot be normalized
        """
        if not isinstance(raw, dict):
            raise MalformedImport("Backup is not a JSON object")

        ledger_raw = raw.get("ledger")
        if ledger_raw is not None and not isinstance(ledger_raw, dict):
            raise MalformedImport("Malformed ledger: expected an object")

        if ledger_raw is None:
            ledger = self._seed.ledger.model_dump(mode="json", by_alias=True)
        else:
            ledger = self._default_ledger_wire()
            ledger.update(ledger_raw)

        journal = raw.get("journal")
        candidate = {
            "version": max(self._schema_version, _raw_int(raw.get("version"))),
            "timestamp": 0,
            "ledger": ledger,
            "journal": journal if isinstance(journal, list) else [],
        }
        return normalize_app_data(candidate, self._seed.ledger.percentages)

    def import_backup(self, raw: Any) -> ImportResult:
        """
        Replace everything with a backup. Never raises.

        Nothing is written unless the whole backup normalizes.
        """
        try:
            data = self.build_import(raw)
            saved = self.write(data)
        except (MalformedImport, StorageFailure) as e:
            self._audit.log(AuditEventBuilder.import_failed(str(e)))
            return ImportResult(success=False, message=str(e))

        transaction_count = len(saved.ledger.transactions)
        journal_count = len(saved.journal)
        self._audit.log(AuditEventBuilder.backup_imported(
            transaction_count=transaction_count,
            journal_count=journal_count,
        ))
        return ImportResult(
            success=True,
            transaction_count=transaction_count,
            journal_count=journal_count,
            message=f"Imported {transaction_count} transactions and {journal_count} journal entries",
        )

    def clear(self) -> AppData:
        """
        Reset to an empty ledger and journal.

        This is a write, not a removal: with nothing persisted the seed
        would come back on the next read.
        """
        empty = AppData(
            version=self._schema_version,
            ledger=LedgerState(percentages=self._seed.ledger.percentages),
        )
        saved = self.write(empty)
        self._audit.log(AuditEventBuilder.data_cleared(saved.timestamp))
        return saved

    def export_json(self) -> str:
        """Current data as a pretty-printed JSON backup."""
        data = self.read()
        self._audit.log(AuditEventBuilder.backup_exported(
            fmt="json",
            transaction_count=len(data.ledger.transactions),
            journal_count=len(data.journal),
        ))
        return json.dumps(data.to_wire(), ensure_ascii=False, indent=2)

    def export_seed_module(self) -> str:
        """Current data as initial_data.py source, for shipping as the next seed."""
        data = self.read()
        self._audit.log(AuditEventBuilder.backup_exported(
            fmt="seed_module",
            transaction_count=len(data.ledger.transactions),
            journal_count=len(data.journal),
        ))
        return render_seed_module(data)
