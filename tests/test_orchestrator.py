"""
Integration tests for the orchestrated flows.

Everything runs against in-memory storage, the bundled seed, a fixed
clock and fake Gemini models.
"""

import asyncio
import json
import pytest
from decimal import Decimal

from moneys_wisdom.agents import CHAT_APOLOGY, FALLBACK_QUOTES, ChatAgent, QuoteAgent
from moneys_wisdom.config import GeminiSettings
from moneys_wisdom.ledger import allocate
from moneys_wisdom.models import AuditEventType, FundType, Percentages, RealizationKind
from moneys_wisdom.orchestrator import WisdomFlow, create_app_components
from moneys_wisdom.services.storage import InMemoryKeyValueStorage


JAPAN_TRIP = "1765650000000"
RUNNING_SHOES_REALIZATION = "1765700000000-D"


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Answers both the quote and the chat surface."""

    async def generate_content_async(self, prompt):
        return FakeResponse(json.dumps([{"text": "先存钱", "category": "储蓄"}]))

    def start_chat(self, history):
        return self

    async def send_message_async(self, message):
        return FakeResponse(f"汪！{message}")


@pytest.fixture
def components(storage, seed, clock):
    gemini = GeminiSettings(api_key="test", retry_attempts=1)
    return create_app_components(
        storage=storage,
        seed=seed,
        clock=clock,
        quote_agent=QuoteAgent(gemini, model=FakeModel()),
        chat_agent=ChatAgent(gemini, model=FakeModel()),
    )


def _events(components):
    return [event.event_type for event in components.audit_logger.recent_events(limit=100)]


class TestLedgerFlow:
    """Tests for income, spending and the split."""

    def test_record_allocation(self, components, seed):
        result = components.ledger.record_allocation("100", allocate("100", Percentages()))

        assert result.success
        assert components.ledger.current().freedom_fund == seed.ledger.freedom_fund + 50
        assert len(components.ledger.current().transactions) == len(seed.ledger.transactions) + 3
        assert AuditEventType.INCOME_ALLOCATED in _events(components)

    def test_invalid_income_changes_nothing(self, components, storage):
        result = components.ledger.record_allocation("0", allocate("0", Percentages()))

        assert not result.success
        assert not result.validation.is_valid
        assert storage.keys() == []
        assert AuditEventType.VALIDATION_FAILED in _events(components)

    def test_draft_uses_saved_split(self, components):
        components.ledger.adjust_percentage(FundType.PLAY, 5)
        draft = components.ledger.new_draft().stage_income("200")

        assert draft.percentages == Percentages(freedom=50, dream=35, play=15)
        assert draft.is_valid
        assert components.ledger.record_allocation(draft.income, draft.allocation).success

    def test_adjust_percentage_is_saved(self, components):
        result = components.ledger.adjust_percentage("play", 5)

        assert result.success
        assert components.ledger.current().percentages == Percentages(freedom=50, dream=35, play=15)

    def test_adjust_percentage_at_bound_is_unchanged(self, components, storage):
        components.ledger.adjust_percentage("freedom", 50)
        before = storage.get("moneys-wisdom-db-v1")

        result = components.ledger.adjust_percentage("freedom", 5)

        assert result.success
        assert result.message == "Split unchanged"
        assert storage.get("moneys-wisdom-db-v1") == before

    def test_spend_play(self, components):
        result = components.ledger.spend_play("81.37", "Book")
        assert result.success
        assert components.ledger.current().play_fund == Decimal("900")

    def test_overdraw_is_rejected(self, components, seed):
        result = components.ledger.spend_play("981.38")
        assert not result.success
        assert "exceeds" in result.message
        assert components.ledger.current().play_fund == seed.ledger.play_fund

    def test_storage_failure_is_a_failed_result(self, seed, clock):
        components = create_app_components(
            storage=InMemoryKeyValueStorage(max_bytes=10),
            seed=seed,
            clock=clock,
            quote_agent=QuoteAgent(GeminiSettings(api_key="test"), model=FakeModel()),
            chat_agent=ChatAgent(GeminiSettings(api_key="test"), model=FakeModel()),
        )

        result = components.ledger.spend_play("1")

        assert not result.success
        assert "full" in result.message
        assert components.ledger.current().play_fund == seed.ledger.play_fund


class TestGoalFlow:
    """Tests for dream goals and their realization."""

    def test_direct_realization(self, components):
        added = components.ledger.add_goal("Bike", "4000")
        goal = added.ledger.dream_goals[-1]

        result = components.ledger.realize_goal(goal.id)

        assert result.success
        assert result.plan.kind == RealizationKind.DIRECT
        assert "Bike" in result.message
        assert components.ledger.current().dream_fund == Decimal("223")

    def test_combined_realization_needs_confirmation(self, components):
        goal = components.ledger.add_goal("Camera", "5000").ledger.dream_goals[-1]

        prompt = components.ledger.realize_goal(goal.id)

        assert prompt.requires_confirmation
        assert not prompt.success
        assert prompt.plan.play_amount == Decimal("777")
        assert components.ledger.current().dream_fund == Decimal("4223")

        confirmed = components.ledger.realize_goal(goal.id, confirm_combined=True)

        assert confirmed.success
        ledger = components.ledger.current()
        assert ledger.dream_fund == Decimal("0")
        assert ledger.play_fund == Decimal("204.37")
        assert ledger.find_goal(goal.id).is_achieved

    def test_insufficient_funds_block_realization(self, components):
        result = components.ledger.realize_goal(JAPAN_TRIP, confirm_combined=True)

        assert not result.success
        assert not result.requires_confirmation
        assert result.plan.kind == RealizationKind.INSUFFICIENT
        assert AuditEventType.GOAL_REALIZATION_BLOCKED in _events(components)

    def test_duplicate_goal_name_is_allowed_with_warning(self, components):
        result = components.ledger.add_goal("日本旅行", "100")
        assert result.success
        assert result.validation.warnings

    def test_delete_goal_needs_confirmation(self, components):
        prompt = components.ledger.delete_goal(JAPAN_TRIP)
        assert prompt.requires_confirmation
        assert components.ledger.current().find_goal(JAPAN_TRIP) is not None

        assert components.ledger.delete_goal(JAPAN_TRIP, confirmed=True).success
        assert components.ledger.current().find_goal(JAPAN_TRIP) is None

    def test_achieved_goal_cannot_be_deleted(self, components):
        shoes = next(g for g in components.ledger.current().dream_goals if g.is_achieved)
        result = components.ledger.delete_goal(shoes.id, confirmed=True)
        assert not result.success
        assert result.validation is not None


class TestTransactionDeletion:

    def test_deletion_needs_confirmation(self, components, seed):
        prompt = components.ledger.delete_transaction(RUNNING_SHOES_REALIZATION)

        assert prompt.requires_confirmation
        assert "not achieved" in prompt.message
        assert components.ledger.current() == seed.ledger

    def test_deleting_realization_restores_goal(self, components, seed):
        result = components.ledger.delete_transaction(RUNNING_SHOES_REALIZATION, confirmed=True)

        assert result.success
        ledger = components.ledger.current()
        assert ledger.dream_fund == seed.ledger.dream_fund + 600
        assert all(not g.is_achieved for g in ledger.dream_goals)
        assert AuditEventType.TRANSACTION_DELETED in _events(components)

    def test_unknown_transaction(self, components):
        assert not components.ledger.delete_transaction("missing", confirmed=True).success


class TestJournalFlow:

    def test_save_entry(self, components):
        assert not components.journal.has_entry_today()

        result = components.journal.save_entry(["Ran 5km", None, "", "", ""])

        assert result.success
        assert components.journal.has_entry_today()
        assert components.journal.todays_entry().items == ["Ran 5km", "", "", "", ""]
        assert components.journal.entries()[0] == components.journal.todays_entry()

    def test_blank_entry_is_rejected(self, components, seed):
        result = components.journal.save_entry(["", "", "", "", ""])
        assert not result.success
        assert components.journal.entries() == seed.journal

    def test_delete_entry(self, components, seed):
        entry_id = seed.journal[0].id

        assert components.journal.delete_entry(entry_id).requires_confirmation
        assert components.journal.delete_entry(entry_id, confirmed=True).success
        assert [e.id for e in components.journal.entries()] == [seed.journal[1].id]

    def test_delete_missing_entry(self, components):
        result = components.journal.delete_entry("missing", confirmed=True)
        assert not result.success
        assert "no longer exists" in result.message


class TestDataFlow:
    """Tests for backup, restore and reset."""

    def test_backup_filename(self, components):
        name = components.data.backup_filename()
        assert name.startswith("moneys-wisdom-backup-2027-01-1")
        assert name.endswith(".json")

    def test_preview_does_not_write(self, components, storage, seed):
        preview = components.data.preview_backup(components.data.export_json())

        assert preview.success
        assert preview.transaction_count == len(seed.ledger.transactions)
        assert storage.keys() == []

    def test_preview_rejects_invalid_json(self, components):
        preview = components.data.preview_backup("not json")
        assert not preview.success
        assert preview.message

    def test_import_needs_confirmation(self, components, seed):
        backup = json.dumps({"ledger": {"freedomFund": 1}, "journal": []})

        prompt = components.data.import_backup_text(backup)
        assert prompt.requires_confirmation
        assert components.data.current() == seed

        result = components.data.import_backup_text(backup, confirmed=True)
        assert result.success
        assert result.ledger.freedom_fund == Decimal("1")
        assert result.journal == []
        assert components.data.stats().transaction_count == 0

    def test_malformed_import_is_audited(self, components):
        result = components.data.import_backup_text("[1, 2]", confirmed=True)
        assert not result.success
        assert AuditEventType.IMPORT_FAILED in _events(components)

    def test_clear_data(self, components):
        assert components.data.clear_data().requires_confirmation

        result = components.data.clear_data(confirmed=True)

        assert result.success
        assert result.ledger.total_balance == 0
        assert components.data.stats().goal_count == 0
        assert all(audit.consistent for audit in components.data.fund_audit())

    def test_seed_module_export(self, components):
        assert "INITIAL_DATA = " in components.data.export_seed_module()


class TestWisdomFlow:

    def test_online_quotes_and_chat(self, components):
        assert components.wisdom.is_online
        quotes = asyncio.run(components.wisdom.quotes())
        assert quotes[0].text == "先存钱"
        assert asyncio.run(components.wisdom.chat([], "你好")) == "汪！你好"

    def test_offline_fallbacks(self):
        wisdom = WisdomFlow()
        assert not wisdom.is_online
        assert asyncio.run(wisdom.quotes()) == FALLBACK_QUOTES
        assert asyncio.run(wisdom.chat([], "hi")) == CHAT_APOLOGY
