"""Queries package."""

from moneys_wisdom.queries.summary import (
    DataStats,
    FundAudit,
    GoalProgress,
    LedgerSummary,
    achieved_goals,
    data_stats,
    fund_balance_audit,
    open_goals,
    summarize,
    transactions_for_fund,
)

__all__ = [
    "DataStats",
    "FundAudit",
    "GoalProgress",
    "LedgerSummary",
    "achieved_goals",
    "data_stats",
    "fund_balance_audit",
    "open_goals",
    "summarize",
    "transactions_for_fund",
]
