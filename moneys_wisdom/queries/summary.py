"""
Ledger Summary Queries

DESIGN DECISION: Queries are DETERMINISTIC reads over the current AppData.
They never mutate and never estimate: every figure shown on the wall and
the data page is computed here from the stored balances and transactions.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from moneys_wisdom.models.ledger import (
    AppData,
    DreamGoal,
    FundType,
    LedgerState,
    Transaction,
)


class GoalProgress(BaseModel):
    """An open goal measured against the current Dream fund."""
    goal: DreamGoal
    affordable: bool = Field(..., description="Dream fund alone covers the cost")
    remaining: Decimal = Field(..., ge=0, description="Still missing from the Dream fund")
    progress: float = Field(..., ge=0.0, le=1.0)


class FundAudit(BaseModel):
    """
    A fund balance checked against its own history.

    The two can drift apart when a deposit reversal was clamped at zero
    or data was edited by hand.
    """
    fund: FundType
    balance: Decimal
    transaction_sum: Decimal

    @property
    def difference(self) -> Decimal:
        return self.balance - self.transaction_sum

    @property
    def consistent(self) -> bool:
        return self.difference == 0


class DataStats(BaseModel):
    version: int
    timestamp: int
    transaction_count: int
    journal_count: int
    goal_count: int


class LedgerSummary(BaseModel):
    """Everything the wall page shows at a glance."""
    freedom_fund: Decimal
    dream_fund: Decimal
    play_fund: Decimal
    total_balance: Decimal
    open_goals: list[GoalProgress]
    achieved_goals: list[DreamGoal]


def transactions_for_fund(
    ledger: LedgerState,
    fund: FundType,
    limit: Optional[int] = None,
) -> list[Transaction]:
    """A fund's transactions, newest first."""
    matches = [t for t in ledger.transactions if t.fund_type == fund]
    return matches[:limit] if limit is not None else matches


def open_goals(ledger: LedgerState) -> list[GoalProgress]:
    """Unachieved goals, in the order they were added."""
    result = []
    for goal in ledger.dream_goals:
        if goal.is_achieved:
            continue
        remaining = max(Decimal("0"), goal.cost - ledger.dream_fund)
        result.append(GoalProgress(
            goal=goal,
            affordable=ledger.dream_fund >= goal.cost,
            remaining=remaining,
            progress=float(min(Decimal("1"), ledger.dream_fund / goal.cost)),
        ))
    return result


def achieved_goals(ledger: LedgerState) -> list[DreamGoal]:
    """Achieved goals, most recently achieved first."""
    achieved = [g for g in ledger.dream_goals if g.is_achieved]
    return sorted(achieved, key=lambda g: g.achieved_date or 0, reverse=True)


def fund_balance_audit(ledger: LedgerState) -> list[FundAudit]:
    """Compare each fund's balance with the signed sum of its transactions."""
    audits = []
    for fund in FundType:
        total = sum(
            (t.signed_amount for t in ledger.transactions if t.fund_type == fund),
            Decimal("0"),
        )
        audits.append(FundAudit(
            fund=fund,
            balance=ledger.balance(fund),
            transaction_sum=total,
        ))
    return audits


def data_stats(data: AppData) -> DataStats:
    return DataStats(
        version=data.version,
        timestamp=data.timestamp,
        transaction_count=len(data.ledger.transactions),
        journal_count=len(data.journal),
        goal_count=len(data.ledger.dream_goals),
    )


def summarize(ledger: LedgerState) -> LedgerSummary:
    return LedgerSummary(
        freedom_fund=ledger.freedom_fund,
        dream_fund=ledger.dream_fund,
        play_fund=ledger.play_fund,
        total_balance=ledger.total_balance,
        open_goals=open_goals(ledger),
        achieved_goals=achieved_goals(ledger),
    )
