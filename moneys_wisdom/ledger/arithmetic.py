"""
Ledger Arithmetic Engine

Pure computation on user input, no I/O:
- allocate(): split one income across the three funds
- adjust_percentage(): the "waterbed effect" that keeps the split at 100%
- validate_allocation(): the gate in front of the deposit action

DESIGN DECISION: Freedom and Dream are rounded to whole units and Play is
computed by subtraction. Play therefore absorbs all rounding residue and the
three amounts always add up to exactly the income.

DESIGN DECISION: When one percentage moves, the others absorb the change in
a fixed order: Play first, then Dream, then Freedom. Discretionary spending
is squeezed before goals, goals before long-term security.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from moneys_wisdom.models.ledger import Allocation, FundType, Percentages

Number = Union[Decimal, int, float, str]

WHOLE = Decimal("1")
CENTS = Decimal("0.01")
DEFAULT_TOLERANCE = Decimal("0.01")

PERCENTAGE_KEYS = ("freedom", "dream", "play")
# Order in which the other funds absorb a change
ABSORPTION_ORDER = ("play", "dream", "freedom")


def to_decimal(value: Number) -> Decimal:
    """Convert user input to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def allocate(total_income: Number, percentages: Percentages) -> Allocation:
    """
    Split an income across the three funds.

    Freedom and Dream are rounded half-up to whole units; Play takes the
    remainder. For a non-positive income all three are zero.

    >>> allocate("99.99", Percentages(freedom=50, dream=40, play=10))
    Allocation(freedom=Decimal('50'), dream=Decimal('40'), play=Decimal('9.99'))
    """
    total = to_decimal(total_income)
    if total <= 0:
        return Allocation()

    freedom = (total * percentages.freedom / 100).quantize(WHOLE, rounding=ROUND_HALF_UP)
    dream = (total * percentages.dream / 100).quantize(WHOLE, rounding=ROUND_HALF_UP)
    play = (total - freedom - dream).quantize(CENTS, rounding=ROUND_HALF_UP)

    # Rounding both up can overshoot a tiny income (1 at 50/50/0)
    if play < 0:
        taken = min(dream, -play)
        dream -= taken
        play += taken
    if play < 0:
        freedom += play
        play = Decimal("0")

    return Allocation(freedom=freedom, dream=dream, play=play)


def adjust_percentage(
    percentages: Percentages,
    target: Union[str, FundType],
    delta: int,
) -> Percentages:
    """
    Move one percentage by delta and rebalance the other two.

    The target is clamped to [0, 100]. The opposite change is absorbed by
    the other funds in ABSORPTION_ORDER, each clamped to [0, 100] with any
    overflow carried to the next. Whatever still cannot be absorbed goes
    back onto the target, so the realized change may differ from delta but
    the sum is always 100.
    """
    key = target.percentage_key if isinstance(target, FundType) else target
    if key not in PERCENTAGE_KEYS:
        raise ValueError(f"Unknown percentage: {target}")

    values = {k: percentages.get(k) for k in PERCENTAGE_KEYS}

    new_value = min(100, max(0, values[key] + delta))
    if new_value == values[key]:
        return percentages

    actual_delta = new_value - values[key]
    values[key] = new_value

    remaining = -actual_delta
    for other in ABSORPTION_ORDER:
        if other == key:
            continue
        if remaining == 0:
            break

        absorbed = values[other] + remaining
        if absorbed < 0:
            remaining = absorbed
            absorbed = 0
        elif absorbed > 100:
            remaining = absorbed - 100
            absorbed = 100
        else:
            remaining = 0
        values[other] = absorbed

    if remaining != 0:
        values[key] += remaining

    return Percentages(**values)


def validate_allocation(
    income: Number,
    allocation: Allocation,
    tolerance: Number = DEFAULT_TOLERANCE,
) -> bool:
    """
    Check that an allocation may be deposited.

    Valid iff income is positive and the three amounts add up to it
    within the tolerance.
    """
    income_value = to_decimal(income)
    if income_value <= 0:
        return False
    return abs(income_value - allocation.total) < to_decimal(tolerance)


class AllocationDraft(BaseModel):
    """
    Income staged in the UI before it is deposited.

    Holds the entered income, the current split and the amounts shown in
    the three inputs. The amounts follow the percentages until the user
    overrides one by hand; the deposit button is enabled only while
    is_valid holds.
    """
    model_config = ConfigDict(frozen=True)

    income: Decimal = Decimal("0")
    percentages: Percentages = Field(default_factory=Percentages)
    allocation: Allocation = Field(default_factory=Allocation)

    @property
    def has_income(self) -> bool:
        return self.income > 0

    @property
    def is_valid(self) -> bool:
        return validate_allocation(self.income, self.allocation)

    @property
    def difference(self) -> Decimal:
        """Income minus what has been allocated (what the user still has to place)."""
        return self.income - self.allocation.total

    def stage_income(self, income: Optional[Number]) -> 'AllocationDraft':
        """Enter a new income; anything unparsable or non-positive clears the amounts."""
        try:
            value = to_decimal(income) if income not in (None, "") else Decimal("0")
        except ArithmeticError:
            value = Decimal("0")
        if not value.is_finite() or value <= 0:
            return self.model_copy(update={"income": Decimal("0"), "allocation": Allocation()})
        return self.model_copy(update={
            "income": value,
            "allocation": allocate(value, self.percentages),
        })

    def adjust(self, target: Union[str, FundType], delta: int) -> 'AllocationDraft':
        """Move one percentage; staged amounts follow the new split."""
        percentages = adjust_percentage(self.percentages, target, delta)
        update: dict = {"percentages": percentages}
        if self.has_income:
            update["allocation"] = allocate(self.income, percentages)
        return self.model_copy(update=update)

    def set_amount(self, fund: FundType, value: Optional[Number]) -> 'AllocationDraft':
        """Manual override of one amount; an empty input counts as zero."""
        try:
            amount = to_decimal(value) if value not in (None, "") else Decimal("0")
        except ArithmeticError:
            amount = Decimal("0")
        if not amount.is_finite():
            amount = Decimal("0")
        allocation = self.allocation.model_copy(update={fund.percentage_key: amount})
        return self.model_copy(update={"allocation": allocation})

    def reset(self) -> 'AllocationDraft':
        """Clear the staged income after a deposit, keeping the split."""
        return AllocationDraft(percentages=self.percentages)
