"""
Transaction/Goal Ledger Mutator

Applies deposits, withdrawals and goal realizations to a LedgerState and
produces the next LedgerState. Nothing here touches storage.

GUARANTEES:
- Pure: the input ledger is never modified, a new one is returned
- Deleting a transaction reverses exactly its effect on its fund
- No fund balance ever goes negative
- Transactions are kept newest first

Preconditions are checked by the validator before the flows call in here.
A violated precondition still raises LedgerValidationError so misuse is
loud rather than silently corrupting balances.
"""

import time
from decimal import Decimal
from typing import Callable, Iterable, Optional

from moneys_wisdom.ledger.arithmetic import (
    DEFAULT_TOLERANCE,
    Number,
    to_decimal,
    validate_allocation,
)
from moneys_wisdom.models.ledger import (
    ALLOCATION_DESCRIPTION,
    GOAL_REALIZED_PREFIX,
    GOAL_TOP_UP_TEMPLATE,
    PLAY_SPEND_DESCRIPTION,
    Allocation,
    DreamGoal,
    FundType,
    LedgerState,
    RealizationKind,
    RealizationPlan,
    Transaction,
    TransactionType,
)


class LedgerError(Exception):
    """Base exception for ledger mutations."""
    pass


class LedgerValidationError(LedgerError):
    """A mutation was attempted with inputs that fail validation."""
    pass


class NotFoundError(LedgerError):
    """Referenced transaction or goal does not exist."""
    pass


def now_millis() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


def unique_id(candidate: str, taken: Iterable[str]) -> str:
    """Return candidate, or candidate with a counter suffix if it is already used."""
    taken = set(taken)
    if candidate not in taken:
        return candidate
    counter = 2
    while f"{candidate}.{counter}" in taken:
        counter += 1
    return f"{candidate}.{counter}"


# Suffixes of the three deposits one allocation produces
_ALLOCATION_SUFFIXES = {
    FundType.FREEDOM: "1",
    FundType.DREAM: "2",
    FundType.PLAY: "3",
}


class LedgerMutator:
    """
    Produces new ledger states from user actions.

    Args:
        clock: Returns the current time in epoch milliseconds.
               Injected so tests can pin transaction ids and dates.
        tolerance: Largest accepted gap between an income and its allocation
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        tolerance: Number = DEFAULT_TOLERANCE,
    ):
        self._clock = clock or now_millis
        self._tolerance = tolerance

    def _ids(self, ledger: LedgerState) -> set[str]:
        return {t.id for t in ledger.transactions}

    # -------------------------------------------------------------------------
    # Income
    # -------------------------------------------------------------------------

    def record_allocation(
        self,
        ledger: LedgerState,
        income: Number,
        allocation: Allocation,
    ) -> tuple[LedgerState, list[Transaction]]:
        """
        Deposit one income across the funds.

        One DEPOSIT per non-zero amount, all sharing the same timestamp;
        ids are "<ms>-1", "<ms>-2", "<ms>-3" for Freedom, Dream and Play.

        Returns:
            (new_ledger, created_transactions)
        """
        if not validate_allocation(income, allocation, self._tolerance):
            raise LedgerValidationError(
                f"Allocation {allocation.total} does not match income {income}"
            )
        if any(allocation.for_fund(f) < 0 for f in FundType):
            raise LedgerValidationError("Allocation amounts cannot be negative")

        timestamp = self._clock()
        taken = self._ids(ledger)
        created = []
        updated = ledger

        for fund in FundType:
            amount = allocation.for_fund(fund)
            if amount <= 0:
                continue
            tx_id = unique_id(f"{timestamp}-{_ALLOCATION_SUFFIXES[fund]}", taken)
            taken.add(tx_id)
            created.append(Transaction(
                id=tx_id,
                amount=amount,
                fund_type=fund,
                type=TransactionType.DEPOSIT,
                description=ALLOCATION_DESCRIPTION,
                date=timestamp,
            ))
            updated = updated.with_balance(fund, updated.balance(fund) + amount)

        updated = updated.model_copy(update={
            "transactions": created + list(ledger.transactions),
        })
        return updated, created

    # -------------------------------------------------------------------------
    # Reversal
    # -------------------------------------------------------------------------

    def delete_transaction(
        self,
        ledger: LedgerState,
        transaction_id: str,
    ) -> tuple[LedgerState, Transaction, Optional[DreamGoal]]:
        """
        Remove a transaction and undo its effect.

        A deposit is subtracted back out (never below zero, even if the
        history is inconsistent); a withdrawal is added back. Deleting the
        dream-side withdrawal of a realized goal ("实现梦想: <name>") resets
        the first achieved goal with that name to unachieved.

        NOTE: the goal is found by name, not id, so two goals with the same
        name are ambiguous; the first achieved match is reverted.

        Returns:
            (new_ledger, deleted_transaction, reverted_goal_or_None)
        """
        transaction = ledger.find_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        fund = transaction.fund_type
        balance = ledger.balance(fund)
        if transaction.type == TransactionType.DEPOSIT:
            balance = max(Decimal("0"), balance - transaction.amount)
        else:
            balance = balance + transaction.amount
        updated = ledger.with_balance(fund, balance)

        reverted_goal = None
        if transaction.description.startswith(GOAL_REALIZED_PREFIX):
            goal_name = transaction.description[len(GOAL_REALIZED_PREFIX):]
            reverted_goal = next(
                (g for g in updated.dream_goals if g.name == goal_name and g.is_achieved),
                None,
            )
            if reverted_goal is not None:
                updated = updated.model_copy(update={
                    "dream_goals": [
                        g.model_copy(update={"is_achieved": False, "achieved_date": None})
                        if g.id == reverted_goal.id else g
                        for g in updated.dream_goals
                    ],
                })

        updated = updated.model_copy(update={
            "transactions": [t for t in updated.transactions if t.id != transaction_id],
        })
        return updated, transaction, reverted_goal

    # -------------------------------------------------------------------------
    # Play spending
    # -------------------------------------------------------------------------

    def spend_play(
        self,
        ledger: LedgerState,
        amount: Number,
        description: str = "",
    ) -> tuple[LedgerState, Transaction]:
        """
        Withdraw from the Play fund.

        Requires 0 < amount <= play_fund.
        """
        value = to_decimal(amount)
        if value <= 0:
            raise LedgerValidationError("Amount must be greater than zero")
        if value > ledger.play_fund:
            raise LedgerValidationError(
                f"Amount {value} exceeds the Play fund balance {ledger.play_fund}"
            )

        timestamp = self._clock()
        transaction = Transaction(
            id=unique_id(str(timestamp), self._ids(ledger)),
            amount=value,
            fund_type=FundType.PLAY,
            type=TransactionType.WITHDRAWAL,
            description=description.strip() or PLAY_SPEND_DESCRIPTION,
            date=timestamp,
        )
        updated = ledger.model_copy(update={
            "play_fund": ledger.play_fund - value,
            "transactions": [transaction] + list(ledger.transactions),
        })
        return updated, transaction

    # -------------------------------------------------------------------------
    # Dream goals
    # -------------------------------------------------------------------------

    def add_goal(
        self,
        ledger: LedgerState,
        name: str,
        cost: Number,
    ) -> tuple[LedgerState, DreamGoal]:
        """Append a new, unachieved dream goal."""
        name = (name or "").strip()
        if not name:
            raise LedgerValidationError("Goal name is required")
        value = to_decimal(cost)
        if value <= 0:
            raise LedgerValidationError("Goal cost must be greater than zero")

        goal = DreamGoal(
            id=unique_id(str(self._clock()), (g.id for g in ledger.dream_goals)),
            name=name,
            cost=value,
        )
        updated = ledger.model_copy(update={
            "dream_goals": list(ledger.dream_goals) + [goal],
        })
        return updated, goal

    def plan_realization(self, ledger: LedgerState, goal_id: str) -> RealizationPlan:
        """
        Decide how a goal would be paid for, without moving any money.

        DIRECT when Dream covers the cost; COMBINED when Dream plus Play
        do (Dream is emptied, Play pays the rest); otherwise INSUFFICIENT
        with the shortfall.
        """
        goal = ledger.find_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")

        if ledger.dream_fund >= goal.cost:
            return RealizationPlan(
                goal_id=goal.id,
                kind=RealizationKind.DIRECT,
                dream_amount=goal.cost,
            )

        if ledger.dream_fund + ledger.play_fund >= goal.cost:
            return RealizationPlan(
                goal_id=goal.id,
                kind=RealizationKind.COMBINED,
                dream_amount=ledger.dream_fund,
                play_amount=goal.cost - ledger.dream_fund,
            )

        return RealizationPlan(
            goal_id=goal.id,
            kind=RealizationKind.INSUFFICIENT,
            shortfall=goal.cost - ledger.dream_fund - ledger.play_fund,
        )

    def realize_goal(
        self,
        ledger: LedgerState,
        goal_id: str,
        confirm_combined: bool = False,
    ) -> tuple[LedgerState, RealizationPlan]:
        """
        Pay for a dream goal and mark it achieved.

        The plan is recomputed against the ledger passed in, so a combined
        realization confirmed later is re-validated against current funds.
        COMBINED without confirmation and INSUFFICIENT return the ledger
        unchanged together with the plan.
        """
        goal = ledger.find_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        if goal.is_achieved:
            raise LedgerValidationError(f"Goal already achieved: {goal.name}")

        plan = self.plan_realization(ledger, goal_id)
        if plan.kind == RealizationKind.INSUFFICIENT:
            return ledger, plan
        if plan.kind == RealizationKind.COMBINED and not confirm_combined:
            return ledger, plan

        timestamp = self._clock()
        taken = self._ids(ledger)
        created = []
        if plan.dream_amount > 0:
            tx_id = unique_id(f"{timestamp}-D", taken)
            taken.add(tx_id)
            created.append(Transaction(
                id=tx_id,
                amount=plan.dream_amount,
                fund_type=FundType.DREAM,
                type=TransactionType.WITHDRAWAL,
                description=f"{GOAL_REALIZED_PREFIX}{goal.name}",
                date=timestamp,
            ))
        if plan.play_amount > 0:
            created.append(Transaction(
                id=unique_id(f"{timestamp}-P", taken),
                amount=plan.play_amount,
                fund_type=FundType.PLAY,
                type=TransactionType.WITHDRAWAL,
                description=GOAL_TOP_UP_TEMPLATE.format(name=goal.name),
                date=timestamp,
            ))

        updated = ledger.model_copy(update={
            "dream_fund": ledger.dream_fund - plan.dream_amount,
            "play_fund": ledger.play_fund - plan.play_amount,
            "dream_goals": [
                g.model_copy(update={"is_achieved": True, "achieved_date": timestamp})
                if g.id == goal.id else g
                for g in ledger.dream_goals
            ],
            "transactions": created + list(ledger.transactions),
        })
        return updated, plan

    def delete_goal(
        self,
        ledger: LedgerState,
        goal_id: str,
    ) -> tuple[LedgerState, DreamGoal]:
        """
        Remove an unachieved goal. No balance changes: unachieved goals
        never held reserved money.
        """
        goal = ledger.find_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        if goal.is_achieved:
            raise LedgerValidationError(
                "Achieved goals cannot be deleted; delete the realizing transaction instead"
            )

        updated = ledger.model_copy(update={
            "dream_goals": [g for g in ledger.dream_goals if g.id != goal_id],
        })
        return updated, goal
