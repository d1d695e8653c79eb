"""
Main Orchestrator for Money's Wisdom

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger (allocate income, spend Play, dream goals, reversals)
2. Journal (success journal entries)
3. Data (export, import, clear)
4. Wisdom (quote wall and chat with Money the dog)

DESIGN DECISION: Every mutating flow follows the same path:
read -> validate -> mutate -> save -> audit.
- Nothing is mutated when validation fails
- Destructive actions need explicit confirmation
- Every step is audited
- Failures come back as messages, never as tracebacks

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional, Sequence, Union

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from moneys_wisdom.agents import (
    CHAT_APOLOGY,
    FALLBACK_QUOTES,
    ChatAgent,
    ChatMessage,
    Quote,
    QuoteAgent,
)
from moneys_wisdom.audit import AuditLogger, create_correlation_id
from moneys_wisdom.config import Settings, get_settings
from moneys_wisdom.data import load_seed
from moneys_wisdom.ledger import (
    AllocationDraft,
    LedgerMutator,
    adjust_percentage,
    now_millis,
)
from moneys_wisdom.ledger import journal as journal_book
from moneys_wisdom.ledger.arithmetic import Number, to_decimal
from moneys_wisdom.models.audit import AuditEventBuilder
from moneys_wisdom.models.ledger import (
    Allocation,
    AppData,
    FundType,
    ImportResult,
    JournalEntry,
    LedgerState,
    RealizationKind,
    RealizationPlan,
    ValidationResult,
)
from moneys_wisdom.queries import DataStats, FundAudit, data_stats, fund_balance_audit
from moneys_wisdom.services.storage import (
    FileKeyValueStorage,
    InMemoryKeyValueStorage,
    KeyValueStorageInterface,
    ReconciliationStore,
    StorageFailure,
    backup_filename,
    parse_backup_text,
)
from moneys_wisdom.validation import LedgerValidator, MalformedImport


logger = structlog.get_logger("moneys_wisdom.orchestrator")


class ActionResult(BaseModel):
    """
    Outcome of one user action, ready for the UI.

    requires_confirmation means nothing happened yet: show the message as
    a prompt and call again with confirmation.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    message: str = ""
    requires_confirmation: bool = False
    ledger: Optional[LedgerState] = None
    journal: Optional[list[JournalEntry]] = None
    plan: Optional[RealizationPlan] = None
    import_result: Optional[ImportResult] = None
    validation: Optional[ValidationResult] = None


def _amount(value) -> str:
    return f"{value:,.2f}"


class _Flow:
    """Shared plumbing: validation failures and saving."""

    def __init__(
        self,
        store: ReconciliationStore,
        validator: LedgerValidator,
        audit_logger: AuditLogger,
    ):
        self._store = store
        self._validator = validator
        self._audit = audit_logger

    def _rejected(self, result: ValidationResult) -> ActionResult:
        self._audit.log_validation_failed(
            action=result.action,
            issues=[issue.model_dump() for issue in result.issues],
        )
        return ActionResult(
            success=False,
            message=self._validator.get_user_friendly_summary(result),
            validation=result,
        )

    def _save_ledger(self, ledger: LedgerState) -> Optional[ActionResult]:
        """None on success, a failed result if storage refused the write."""
        try:
            self._store.save_ledger(ledger)
        except StorageFailure as e:
            return ActionResult(success=False, message=str(e), ledger=ledger)
        return None

    def _save_journal(self, journal: list[JournalEntry]) -> Optional[ActionResult]:
        try:
            self._store.save_journal(journal)
        except StorageFailure as e:
            return ActionResult(success=False, message=str(e), journal=journal)
        return None


class LedgerFlow(_Flow):
    """
    Orchestrates every action on the three funds and the dream goals.

    Flow per action:
    1. Read the current ledger (fresh, never cached)
    2. Validate the action against it
    3. Mutate (pure)
    4. Save
    5. Audit
    """

    def __init__(
        self,
        store: ReconciliationStore,
        validator: LedgerValidator,
        audit_logger: AuditLogger,
        mutator: Optional[LedgerMutator] = None,
    ):
        super().__init__(store, validator, audit_logger)
        self._mutator = mutator or LedgerMutator()

    def current(self) -> LedgerState:
        return self._store.read().ledger

    def new_draft(self) -> AllocationDraft:
        """Empty income draft using the saved split."""
        return AllocationDraft(percentages=self.current().percentages)

    def adjust_percentage(self, target: Union[str, FundType], delta: int) -> ActionResult:
        """Move one share of the split; the others absorb the change and it is saved."""
        ledger = self.current()
        try:
            percentages = adjust_percentage(ledger.percentages, target, delta)
        except ValueError as e:
            return ActionResult(success=False, message=str(e), ledger=ledger)

        if percentages == ledger.percentages:
            return ActionResult(success=True, message="Split unchanged", ledger=ledger)

        updated = ledger.model_copy(update={"percentages": percentages})
        failed = self._save_ledger(updated)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.percentages_adjusted(
            target=target.percentage_key if isinstance(target, FundType) else str(target),
            requested_delta=delta,
            percentages=percentages.model_dump(),
        ))
        return ActionResult(success=True, message="Split updated", ledger=updated)

    def record_allocation(self, income: Optional[Number], allocation: Allocation) -> ActionResult:
        """Deposit one income across the funds."""
        correlation_id = create_correlation_id()
        ledger = self.current()

        validation = self._validator.validate_allocation(income, allocation)
        if not validation.is_valid:
            return self._rejected(validation)

        updated, created = self._mutator.record_allocation(ledger, income, allocation)
        failed = self._save_ledger(updated)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.income_allocated(
            income=str(to_decimal(income)),
            transaction_ids=[t.id for t in created],
            correlation_id=correlation_id,
        ))
        return ActionResult(
            success=True,
            message=f"Deposited {_amount(to_decimal(income))}",
            ledger=updated,
            validation=validation,
        )

    def spend_play(self, amount: Optional[Number], description: str = "") -> ActionResult:
        ledger = self.current()

        validation = self._validator.validate_play_spend(ledger, amount)
        if not validation.is_valid:
            return self._rejected(validation)

        updated, transaction = self._mutator.spend_play(ledger, amount, description)
        failed = self._save_ledger(updated)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.play_spent(
            transaction_id=transaction.id,
            amount=str(transaction.amount),
            description=transaction.description,
        ))
        return ActionResult(
            success=True,
            message=f"Spent {_amount(transaction.amount)} from Play",
            ledger=updated,
        )

    def add_goal(self, name: Optional[str], cost: Optional[Number]) -> ActionResult:
        ledger = self.current()

        validation = self._validator.validate_new_goal(ledger, name, cost)
        if not validation.is_valid:
            return self._rejected(validation)

        updated, goal = self._mutator.add_goal(ledger, name, cost)
        failed = self._save_ledger(updated)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.goal_added(
            goal_id=goal.id,
            name=goal.name,
            cost=str(goal.cost),
        ))
        return ActionResult(
            success=True,
            message=f"Added dream: {goal.name}",
            ledger=updated,
            validation=validation,
        )

    def plan_realization(self, goal_id: str) -> RealizationPlan:
        return self._mutator.plan_realization(self.current(), goal_id)

    def realize_goal(self, goal_id: str, confirm_combined: bool = False) -> ActionResult:
        """
        Pay for a dream goal.

        A combined realization (Dream emptied, Play tops up) comes back
        with requires_confirmation first. The confirmed call re-plans
        against the ledger as it is then, so funds spent in between are
        taken into account.
        """
        correlation_id = create_correlation_id()
        ledger = self.current()

        validation = self._validator.validate_realization(ledger, goal_id)
        if not validation.is_valid:
            return self._rejected(validation)

        goal = ledger.find_goal(goal_id)
        updated, plan = self._mutator.realize_goal(ledger, goal_id, confirm_combined)

        if plan.kind == RealizationKind.INSUFFICIENT:
            self._audit.log(AuditEventBuilder.goal_realization_blocked(
                goal_id=goal_id,
                shortfall=str(plan.shortfall),
            ))
            return ActionResult(
                success=False,
                message=(
                    f"Not enough money for '{goal.name}' yet: "
                    f"{_amount(plan.shortfall)} short across Dream and Play"
                ),
                ledger=ledger,
                plan=plan,
            )

        if plan.kind == RealizationKind.COMBINED and not confirm_combined:
            return ActionResult(
                success=False,
                requires_confirmation=True,
                message=(
                    f"The Dream fund covers {_amount(plan.dream_amount)} of '{goal.name}'. "
                    f"Use {_amount(plan.play_amount)} from Play for the rest?"
                ),
                ledger=ledger,
                plan=plan,
            )

        failed = self._save_ledger(updated)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.goal_realized(
            goal_id=goal_id,
            kind=plan.kind.value,
            dream_amount=str(plan.dream_amount),
            play_amount=str(plan.play_amount),
            correlation_id=correlation_id,
        ))
        return ActionResult(
            success=True,
            message=f"🎉 Dream come true: {goal.name}",
            ledger=updated,
            plan=plan,
        )

    def delete_transaction(self, transaction_id: str, confirmed: bool = False) -> ActionResult:
        """Remove a transaction and reverse its effect on the fund."""
        ledger = self.current()

        validation = self._validator.validate_transaction_deletion(ledger, transaction_id)
        if not validation.is_valid:
            return self._rejected(validation)

        if not confirmed:
            transaction = ledger.find_transaction(transaction_id)
            notes = [issue.message for issue in validation.issues]
            return ActionResult(
                success=False,
                requires_confirmation=True,
                message=" ".join([
                    f"Delete '{transaction.description}' ({_amount(transaction.amount)})?",
                    *notes,
                ]),
                ledger=ledger,
                validation=validation,
            )

        updated, transaction, reverted_goal = self._mutator.delete_transaction(
            ledger, transaction_id
        )
        failed = self._save_ledger(updated)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction.id,
            fund_type=transaction.fund_type.value,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            reverted_goal_id=reverted_goal.id if reverted_goal else None,
        ))
        return ActionResult(success=True, message="Transaction deleted", ledger=updated)

    def delete_goal(self, goal_id: str, confirmed: bool = False) -> ActionResult:
        ledger = self.current()

        validation = self._validator.validate_goal_deletion(ledger, goal_id)
        if not validation.is_valid:
            return self._rejected(validation)

        if not confirmed:
            goal = ledger.find_goal(goal_id)
            return ActionResult(
                success=False,
                requires_confirmation=True,
                message=f"Delete the dream '{goal.name}'?",
                ledger=ledger,
            )

        updated, goal = self._mutator.delete_goal(ledger, goal_id)
        failed = self._save_ledger(updated)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.goal_deleted(goal_id=goal.id, name=goal.name))
        return ActionResult(success=True, message=f"Deleted dream: {goal.name}", ledger=updated)


class JournalFlow(_Flow):
    """Orchestrates the success journal."""

    def __init__(
        self,
        store: ReconciliationStore,
        validator: LedgerValidator,
        audit_logger: AuditLogger,
        clock: Optional[Callable[[], int]] = None,
        tz: Optional[tzinfo] = None,
    ):
        super().__init__(store, validator, audit_logger)
        self._clock = clock or now_millis
        self._tz = tz or timezone.utc

    def entries(self) -> list[JournalEntry]:
        return list(self._store.read().journal)

    def todays_entry(self) -> Optional[JournalEntry]:
        return journal_book.todays_entry(self.entries(), self._clock(), self._tz)

    def has_entry_today(self) -> bool:
        return journal_book.has_entry_for_today(self.entries(), self._clock(), self._tz)

    def save_entry(self, items: Sequence[Optional[str]]) -> ActionResult:
        validation = self._validator.validate_journal_entry(items)
        if not validation.is_valid:
            return self._rejected(validation)

        journal, entry = journal_book.add_entry(
            self.entries(),
            [item or "" for item in items],
            self._clock(),
        )
        failed = self._save_journal(journal)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.journal_entry_saved(
            entry_id=entry.id,
            filled_items=len(entry.filled_items),
        ))
        return ActionResult(success=True, message="Journal entry saved", journal=journal)

    def delete_entry(self, entry_id: str, confirmed: bool = False) -> ActionResult:
        current = self.entries()
        if not any(e.id == entry_id for e in current):
            return ActionResult(
                success=False,
                message="This journal entry no longer exists",
                journal=current,
            )
        if not confirmed:
            return ActionResult(
                success=False,
                requires_confirmation=True,
                message="Delete this journal entry?",
                journal=current,
            )

        journal, entry = journal_book.delete_entry(current, entry_id)
        failed = self._save_journal(journal)
        if failed:
            return failed

        self._audit.log(AuditEventBuilder.journal_entry_deleted(entry.id))
        return ActionResult(success=True, message="Journal entry deleted", journal=journal)


class DataFlow:
    """
    Orchestrates backup, restore and reset.

    Import and clear replace everything, so both require confirmation.
    """

    def __init__(
        self,
        store: ReconciliationStore,
        audit_logger: AuditLogger,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._store = store
        self._audit = audit_logger
        self._clock = clock or now_millis

    def current(self) -> AppData:
        return self._store.read()

    def backup_filename(self) -> str:
        today = datetime.fromtimestamp(self._clock() / 1000).date()
        return backup_filename(today)

    def export_json(self) -> str:
        return self._store.export_json()

    def export_seed_module(self) -> str:
        return self._store.export_seed_module()

    def preview_backup(self, text: str) -> ImportResult:
        """What importing this file would produce. Nothing is written."""
        try:
            data = self._store.build_import(parse_backup_text(text))
        except MalformedImport as e:
            return ImportResult(success=False, message=str(e))
        return ImportResult(
            success=True,
            transaction_count=len(data.ledger.transactions),
            journal_count=len(data.journal),
            message=(
                f"Backup contains {len(data.ledger.transactions)} transactions "
                f"and {len(data.journal)} journal entries"
            ),
        )

    def import_backup_text(self, text: str, confirmed: bool = False) -> ActionResult:
        """Replace all data with a backup file's contents."""
        preview = self.preview_backup(text)
        if not preview.success:
            self._audit.log(AuditEventBuilder.import_failed(preview.message or ""))
            return ActionResult(success=False, message=preview.message or "", import_result=preview)

        if not confirmed:
            return ActionResult(
                success=False,
                requires_confirmation=True,
                message=f"{preview.message}. This replaces all current data. Continue?",
                import_result=preview,
            )

        result = self._store.import_backup(parse_backup_text(text))
        if not result.success:
            return ActionResult(success=False, message=result.message or "", import_result=result)

        data = self._store.read()
        return ActionResult(
            success=True,
            message=result.message or "",
            ledger=data.ledger,
            journal=list(data.journal),
            import_result=result,
        )

    def clear_data(self, confirmed: bool = False) -> ActionResult:
        if not confirmed:
            return ActionResult(
                success=False,
                requires_confirmation=True,
                message="Delete all funds, transactions, dreams and journal entries?",
            )
        try:
            data = self._store.clear()
        except StorageFailure as e:
            return ActionResult(success=False, message=str(e))
        return ActionResult(
            success=True,
            message="All data cleared",
            ledger=data.ledger,
            journal=list(data.journal),
        )

    def stats(self) -> DataStats:
        return data_stats(self._store.read())

    def fund_audit(self) -> list[FundAudit]:
        return fund_balance_audit(self._store.read().ledger)


class WisdomFlow:
    """
    Quote wall and chat.

    Agents are optional: without a Gemini key the bundled quotes and
    the apology are used.
    """

    def __init__(
        self,
        quote_agent: Optional[QuoteAgent] = None,
        chat_agent: Optional[ChatAgent] = None,
    ):
        self._quote_agent = quote_agent
        self._chat_agent = chat_agent

    @property
    def is_online(self) -> bool:
        return self._quote_agent is not None and self._chat_agent is not None

    async def quotes(self) -> list[Quote]:
        if self._quote_agent is None:
            return list(FALLBACK_QUOTES)
        return await self._quote_agent.fetch_quotes()

    async def chat(self, history: Sequence[ChatMessage], new_message: str) -> str:
        if self._chat_agent is None:
            return CHAT_APOLOGY
        return await self._chat_agent.send_message(history, new_message)


class AppComponents(BaseModel):
    """Everything the UI needs, built once per process."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    store: ReconciliationStore
    audit_logger: AuditLogger
    ledger: LedgerFlow
    journal: JournalFlow
    data: DataFlow
    wisdom: WisdomFlow


def _create_storage(settings: Settings) -> KeyValueStorageInterface:
    storage_settings = settings.storage
    if storage_settings.backend == "memory":
        return InMemoryKeyValueStorage(max_bytes=storage_settings.max_snapshot_bytes)
    return FileKeyValueStorage(
        storage_settings.data_dir,
        max_bytes=storage_settings.max_snapshot_bytes,
    )


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorageInterface] = None,
    seed: Optional[AppData] = None,
    clock: Optional[Callable[[], int]] = None,
    quote_agent: Optional[QuoteAgent] = None,
    chat_agent: Optional[ChatAgent] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings root (defaults to the cached global settings)
        storage: Key-value backend (defaults to the configured one)
        seed: Seed dataset (defaults to the bundled one)
        clock: Epoch-millisecond clock, shared by every component
        quote_agent / chat_agent: Pre-built agents. When omitted they are
                   created from the Gemini settings, or left out if
                   Gemini is not configured.

    Returns:
        AppComponents
    """
    settings = settings or get_settings()
    clock = clock or now_millis
    app_settings = settings.app

    audit_logger = AuditLogger(history_size=app_settings.audit_history_size)
    storage = storage or _create_storage(settings)
    seed = seed or load_seed(settings.storage.seed_path)

    store = ReconciliationStore(
        storage=storage,
        seed=seed,
        schema_version=app_settings.schema_version,
        db_key=settings.storage.db_key,
        clock=clock,
        audit_logger=audit_logger,
    )
    validator = LedgerValidator(allocation_tolerance=app_settings.allocation_tolerance)

    if quote_agent is None or chat_agent is None:
        try:
            gemini = settings.gemini
            quote_agent = quote_agent or QuoteAgent(gemini, audit_logger=audit_logger)
            chat_agent = chat_agent or ChatAgent(gemini, audit_logger=audit_logger)
        except ValidationError as e:
            # Gemini not configured - continue with bundled quotes
            logger.warning("gemini_not_configured", error=str(e))

    return AppComponents(
        store=store,
        audit_logger=audit_logger,
        ledger=LedgerFlow(
            store,
            validator,
            audit_logger,
            LedgerMutator(clock, tolerance=app_settings.allocation_tolerance),
        ),
        journal=JournalFlow(store, validator, audit_logger, clock, app_settings.journal_zone),
        data=DataFlow(store, audit_logger, clock),
        wisdom=WisdomFlow(quote_agent, chat_agent),
    )
