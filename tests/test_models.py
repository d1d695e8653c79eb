"""
Tests for Money's Wisdom

Test strategy:
1. Unit tests for individual components (models, arithmetic, validators)
2. Integration tests for flows (with in-memory storage and fake Gemini models)
3. No real API calls in tests (use fakes)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from moneys_wisdom.models import (
    AppData,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    DreamGoal,
    FundType,
    JournalEntry,
    LedgerState,
    Percentages,
    Transaction,
    TransactionType,
)


class TestLedgerModels:
    """Tests for ledger-related Pydantic models."""

    def test_percentages_default_split(self):
        """Test the default 50/40/10 split."""
        percentages = Percentages()
        assert (percentages.freedom, percentages.dream, percentages.play) == (50, 40, 10)

    def test_percentages_must_sum_to_100(self):
        """Test that a split not covering the whole income is rejected."""
        with pytest.raises(ValueError, match="sum to 100"):
            Percentages(freedom=50, dream=40, play=20)

    def test_percentages_reject_out_of_range(self):
        with pytest.raises(ValueError):
            Percentages(freedom=110, dream=-10, play=0)

    def test_transaction_signed_amount(self):
        """Test that withdrawals count negative."""
        deposit = Transaction(
            id="1", amount=Decimal("10"), fund_type=FundType.PLAY,
            type=TransactionType.DEPOSIT, date=1,
        )
        withdrawal = deposit.model_copy(update={"type": TransactionType.WITHDRAWAL})
        assert deposit.signed_amount == Decimal("10")
        assert withdrawal.signed_amount == Decimal("-10")

    def test_transaction_rejects_non_positive_amount(self):
        with pytest.raises(ValueError):
            Transaction(
                id="1", amount=Decimal("0"), fund_type=FundType.PLAY,
                type=TransactionType.DEPOSIT, date=1,
            )

    def test_achieved_goal_needs_date(self):
        """Test the achieved flag / date pairing."""
        with pytest.raises(ValueError, match="achieved date"):
            DreamGoal(id="g", name="Bike", cost=Decimal("1"), is_achieved=True)

    def test_open_goal_cannot_have_date(self):
        with pytest.raises(ValueError, match="achieved date"):
            DreamGoal(id="g", name="Bike", cost=Decimal("1"), achieved_date=5)

    def test_ledger_rejects_negative_balance(self):
        with pytest.raises(ValueError):
            LedgerState(play_fund=Decimal("-1"))

    def test_models_are_immutable(self):
        ledger = LedgerState()
        with pytest.raises(ValueError):
            ledger.freedom_fund = Decimal("5")

    def test_journal_entry_needs_five_items(self):
        with pytest.raises(ValueError):
            JournalEntry(id="j", timestamp=1, items=["only one"])

    def test_journal_filled_items(self):
        entry = JournalEntry(id="j", timestamp=1, items=["a", " ", "", "b", ""])
        assert entry.filled_items == ["a", "b"]


class TestWireFormat:
    """Tests for the camelCase JSON snapshot format."""

    def test_keys_are_camel_case(self):
        wire = AppData(ledger=LedgerState(
            dream_goals=[DreamGoal(id="g", name="Bike", cost=Decimal("300"))],
        )).to_wire()

        assert set(wire["ledger"]) == {
            "freedomFund", "dreamFund", "playFund", "transactions", "dreamGoals", "percentages",
        }
        assert wire["ledger"]["dreamGoals"][0]["isAchieved"] is False
        assert wire["ledger"]["dreamGoals"][0]["achievedDate"] is None

    def test_integral_money_stays_integer(self):
        wire = AppData(ledger=LedgerState(freedom_fund=Decimal("4756.00"))).to_wire()
        assert wire["ledger"]["freedomFund"] == 4756
        assert isinstance(wire["ledger"]["freedomFund"], int)

    def test_fractional_money_is_float(self):
        wire = AppData(ledger=LedgerState(play_fund=Decimal("981.37"))).to_wire()
        assert wire["ledger"]["playFund"] == 981.37

    def test_enum_tags_serialize_as_strings(self):
        transaction = Transaction(
            id="1", amount=Decimal("5"), fund_type=FundType.DREAM,
            type=TransactionType.WITHDRAWAL, date=1,
        )
        wire = AppData(ledger=LedgerState(transactions=[transaction])).to_wire()
        assert wire["ledger"]["transactions"][0]["fundType"] == "DREAM"
        assert wire["ledger"]["transactions"][0]["type"] == "WITHDRAWAL"

    def test_camel_case_input_is_accepted(self):
        ledger = LedgerState.model_validate({"freedomFund": 3, "dreamGoals": []})
        assert ledger.freedom_fund == Decimal("3")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.GOAL_ADDED,
            description="Goal added",
        )
        assert event.event_type == AuditEventType.GOAL_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.DATA_SAVED,
            description="Snapshot saved",
            details={"version": 2},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "data_saved"
        assert log_dict["details"]["version"] == 2

    def test_audit_event_builder_income_allocated(self):
        correlation_id = uuid4()

        event = AuditEventBuilder.income_allocated(
            income="100",
            transaction_ids=["t-1", "t-2", "t-3"],
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.INCOME_ALLOCATED
        assert event.entity_id == "t-1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_blocked_realization_is_a_warning(self):
        event = AuditEventBuilder.goal_realization_blocked(goal_id="g", shortfall="42")
        assert event.severity == AuditSeverity.WARNING
        assert "42" in event.description

    def test_save_failed_is_an_error(self):
        event = AuditEventBuilder.save_failed("quota exceeded")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "quota exceeded"


class TestAuditHistory:
    """Tests for the in-memory recent-activity history."""

    def test_recent_events_newest_first(self, audit_logger):
        audit_logger.log(AuditEventBuilder.data_cleared(1))
        audit_logger.log(AuditEventBuilder.data_cleared(2))

        events = audit_logger.recent_events(limit=1)

        assert len(events) == 1
        assert events[0].details["timestamp"] == 2

    @pytest.mark.parametrize("limit", [0, -3])
    def test_non_positive_limit_returns_nothing(self, audit_logger, limit):
        audit_logger.log(AuditEventBuilder.data_cleared(1))
        audit_logger.log(AuditEventBuilder.data_cleared(2))

        assert audit_logger.recent_events(limit=limit) == []


class TestFundTypes:
    """Tests for the fund enum."""

    def test_all_funds_exist(self):
        assert [fund.value for fund in FundType] == ["FREEDOM", "DREAM", "PLAY"]

    def test_percentage_keys(self):
        assert FundType.FREEDOM.percentage_key == "freedom"
        assert Percentages().get(FundType.PLAY.percentage_key) == 10


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
