"""
Core Data Models for Money's Wisdom

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce the ledger invariants at construction time
2. Provide clear validation error messages
3. Serialize to exactly the snapshot/backup wire format
4. Stay immutable, so every mutation produces a new aggregate

DESIGN DECISION: Attribute names are Pythonic (snake_case) while the wire
format keeps the camelCase keys of existing backups (freedomFund, fundType,
isAchieved...). Money is Decimal in memory and a plain JSON number on disk.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _money_to_json(value: Decimal) -> int | float:
    """Integral amounts stay integers on the wire (4756, not 4756.0)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Money = Annotated[
    Decimal,
    PlainSerializer(_money_to_json, return_type=int | float, when_used="json"),
]

# Epoch milliseconds
Millis = Annotated[int, Field(ge=0)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class FundType(str, Enum):
    """
    The three money buckets.

    FREEDOM is the golden goose (never spent), DREAM saves for goals,
    PLAY is discretionary.
    """
    FREEDOM = "FREEDOM"
    DREAM = "DREAM"
    PLAY = "PLAY"

    @property
    def percentage_key(self) -> str:
        """Matching field name on Percentages / Allocation."""
        return self.value.lower()


class TransactionType(str, Enum):
    """Direction of a transaction relative to its fund."""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


class RealizationKind(str, Enum):
    """
    How a dream goal can be paid for.

    DIRECT: the Dream fund alone covers the cost
    COMBINED: Dream is emptied and Play tops up the rest (needs confirmation)
    INSUFFICIENT: even both funds together fall short
    """
    DIRECT = "DIRECT"
    COMBINED = "COMBINED"
    INSUFFICIENT = "INSUFFICIENT"


# Persisted description conventions. Existing backups and the seed dataset
# use these exact strings, and transaction reversal matches on them.
ALLOCATION_DESCRIPTION = "收入分配"
PLAY_SPEND_DESCRIPTION = "乐享支出"
GOAL_REALIZED_PREFIX = "实现梦想: "
GOAL_TOP_UP_TEMPLATE = "支持梦想: {name} (余额补足)"
JOURNAL_ITEM_COUNT = 5


class WireModel(BaseModel):
    """Base for everything that is persisted: camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# =============================================================================
# LEDGER MODELS
# =============================================================================

class Percentages(WireModel):
    """
    Budget split across the three funds.

    INVARIANT: freedom + dream + play == 100, always.
    """
    freedom: int = Field(default=50, ge=0, le=100)
    dream: int = Field(default=40, ge=0, le=100)
    play: int = Field(default=10, ge=0, le=100)

    @model_validator(mode='after')
    def validate_total(self) -> 'Percentages':
        """The three shares must cover exactly the whole income."""
        total = self.freedom + self.dream + self.play
        if total != 100:
            raise ValueError(f"Percentages must sum to 100, got {total}")
        return self

    def get(self, key: str) -> int:
        return getattr(self, key)


class Allocation(WireModel):
    """One income split into fund amounts (not persisted, staged in the UI)."""
    freedom: Money = Decimal("0")
    dream: Money = Decimal("0")
    play: Money = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.freedom + self.dream + self.play

    def for_fund(self, fund: FundType) -> Decimal:
        return getattr(self, fund.percentage_key)


class Transaction(WireModel):
    """
    A single movement of money into or out of one fund.

    Immutable once created; the only way to undo it is deletion, which
    reverses its effect on the owning fund.
    """
    id: str = Field(..., min_length=1)
    amount: Money = Field(..., gt=0)
    fund_type: FundType
    type: TransactionType
    description: str = ""
    date: Millis

    @property
    def signed_amount(self) -> Decimal:
        """Positive for deposits, negative for withdrawals."""
        if self.type == TransactionType.DEPOSIT:
            return self.amount
        return -self.amount


class DreamGoal(WireModel):
    """
    Something the Dream fund is saving for.

    INVARIANT: achieved_date is present if and only if is_achieved.
    """
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    cost: Money = Field(..., gt=0)
    is_achieved: bool = False
    achieved_date: Optional[Millis] = None

    @model_validator(mode='after')
    def validate_achievement(self) -> 'DreamGoal':
        """Achievement flag and date travel together."""
        if self.is_achieved and self.achieved_date is None:
            raise ValueError("Achieved goal must have an achieved date")
        if not self.is_achieved and self.achieved_date is not None:
            raise ValueError("Unachieved goal cannot have an achieved date")
        return self


class LedgerState(WireModel):
    """
    The three fund balances plus everything that moved them.

    Transactions are ordered newest first.
    """
    freedom_fund: Money = Field(default=Decimal("0"), ge=0)
    dream_fund: Money = Field(default=Decimal("0"), ge=0)
    play_fund: Money = Field(default=Decimal("0"), ge=0)
    transactions: list[Transaction] = Field(default_factory=list)
    dream_goals: list[DreamGoal] = Field(default_factory=list)
    percentages: Percentages = Field(default_factory=Percentages)

    def balance(self, fund: FundType) -> Decimal:
        return getattr(self, _BALANCE_FIELDS[fund])

    def with_balance(self, fund: FundType, value: Decimal) -> 'LedgerState':
        """Copy of this ledger with one fund balance replaced."""
        return self.model_copy(update={_BALANCE_FIELDS[fund]: value})

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def find_goal(self, goal_id: str) -> Optional[DreamGoal]:
        return next((g for g in self.dream_goals if g.id == goal_id), None)

    @property
    def total_balance(self) -> Decimal:
        return self.freedom_fund + self.dream_fund + self.play_fund


_BALANCE_FIELDS = {
    FundType.FREEDOM: "freedom_fund",
    FundType.DREAM: "dream_fund",
    FundType.PLAY: "play_fund",
}


# =============================================================================
# JOURNAL MODELS
# =============================================================================

class JournalEntry(WireModel):
    """
    One day's success journal: five things the user is proud of.

    Empty strings are allowed for unused slots.
    """
    id: str = Field(..., min_length=1)
    timestamp: Millis
    items: list[str] = Field(
        ..., min_length=JOURNAL_ITEM_COUNT, max_length=JOURNAL_ITEM_COUNT
    )

    @property
    def filled_items(self) -> list[str]:
        return [item for item in self.items if item.strip()]


# =============================================================================
# ROOT AGGREGATE
# =============================================================================

class AppData(WireModel):
    """
    Everything the app persists, saved and loaded as one unit.

    INVARIANT: timestamp strictly increases across every successful save,
    whatever the data's origin (seed, local snapshot, imported backup).
    """
    version: int = Field(default=0, ge=0)
    timestamp: Millis = 0
    ledger: LedgerState = Field(default_factory=LedgerState)
    journal: list[JournalEntry] = Field(default_factory=list)

    def to_wire(self) -> dict:
        """JSON-ready dict in the snapshot/backup format."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# RESULT MODELS
# =============================================================================

class RealizationPlan(WireModel):
    """What realizing a goal would take, decided before anything moves."""
    goal_id: str
    kind: RealizationKind
    dream_amount: Money = Decimal("0")
    play_amount: Money = Decimal("0")
    shortfall: Money = Decimal("0")


class ImportResult(WireModel):
    """
    Outcome of importing a backup.

    Import never raises; every failure ends up here with a message.
    """
    success: bool
    transaction_count: int = Field(default=0, ge=0)
    journal_count: int = Field(default=0, ge=0)
    message: Optional[str] = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'overdraw')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one user action before it mutates anything.

    An invalid result is not an exception: the action stays disabled
    and the issues explain why.
    """

    action: str = Field(
        ...,
        description="Action being validated (e.g., 'record_allocation')"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        """Valid when there are no error-level issues (warnings are fine)."""
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
