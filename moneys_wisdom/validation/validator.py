"""
Action Validation

DESIGN DECISION: Every mutating action is validated before the ledger
mutator runs. An invalid action produces a ValidationResult, never an
exception; the UI keeps the action disabled and shows the issues.

CHECKS PER ACTION:
- record_allocation: positive income, no negative amounts, sum matches
- spend_play: positive amount within the Play balance
- add_goal: non-blank name, positive cost
- realize_goal / delete_goal: goal exists and is still open
- delete_transaction: transaction exists
- save_journal_entry: at least one non-blank item

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the action is not applied.
"""

from decimal import Decimal
from typing import Optional, Sequence

from moneys_wisdom.config import get_settings
from moneys_wisdom.ledger.arithmetic import Number, to_decimal
from moneys_wisdom.models.ledger import (
    GOAL_REALIZED_PREFIX,
    Allocation,
    FundType,
    LedgerState,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


def _parse_amount(value: Optional[Number]) -> Optional[Decimal]:
    """User input as a finite Decimal, or None if it is not a number."""
    if value is None or value == "":
        return None
    try:
        amount = to_decimal(value)
    except ArithmeticError:
        return None
    return amount if amount.is_finite() else None


class LedgerValidator:
    """
    Validates user actions against the current ledger.

    Stateless apart from the allocation tolerance; safe to share.
    """

    def __init__(self, allocation_tolerance: Optional[float] = None):
        """
        Initialize validator.

        Args:
            allocation_tolerance: Largest accepted gap between income and
                                  the allocated sum. Defaults to settings.
        """
        if allocation_tolerance is None:
            allocation_tolerance = get_settings().app.allocation_tolerance
        self._tolerance = to_decimal(allocation_tolerance)

    def validate_allocation(
        self,
        income: Optional[Number],
        allocation: Allocation,
    ) -> ValidationResult:
        """Gate in front of depositing an income."""
        issues = []
        income_value = _parse_amount(income)

        if income_value is None or income_value <= 0:
            issues.append(ValidationIssue(
                field="income",
                issue_type="invalid_value",
                message="Income must be a number greater than zero",
                severity="error",
                suggested_fix="Enter the amount you received",
            ))

        for fund in FundType:
            if allocation.for_fund(fund) < 0:
                issues.append(ValidationIssue(
                    field=fund.percentage_key,
                    issue_type="invalid_value",
                    message=f"{fund.value.title()} amount cannot be negative",
                    severity="error",
                ))

        if income_value is not None and income_value > 0:
            difference = income_value - allocation.total
            if abs(difference) >= self._tolerance:
                issues.append(ValidationIssue(
                    field="allocation",
                    issue_type="inconsistent",
                    message=(
                        f"Allocated {allocation.total} does not match income "
                        f"{income_value} (difference {difference})"
                    ),
                    severity="error",
                    suggested_fix="Adjust the amounts until nothing is left over",
                ))
            elif allocation.for_fund(FundType.FREEDOM) == 0:
                issues.append(ValidationIssue(
                    field="freedom",
                    issue_type="suspicious_value",
                    message="Nothing goes to the Freedom fund this time",
                    severity="warning",
                ))

        return ValidationResult(action="record_allocation", issues=issues)

    def validate_play_spend(
        self,
        ledger: LedgerState,
        amount: Optional[Number],
    ) -> ValidationResult:
        """A Play withdrawal must be positive and covered by the balance."""
        issues = []
        value = _parse_amount(amount)

        if value is None or value <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a number greater than zero",
                severity="error",
            ))
        elif value > ledger.play_fund:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="overdraw",
                message=f"Amount {value} exceeds the Play fund balance {ledger.play_fund}",
                severity="error",
                suggested_fix="Spend less, or wait for the next income",
            ))

        return ValidationResult(action="spend_play", issues=issues)

    def validate_new_goal(
        self,
        ledger: LedgerState,
        name: Optional[str],
        cost: Optional[Number],
    ) -> ValidationResult:
        issues = []
        name = (name or "").strip()
        value = _parse_amount(cost)

        if not name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Goal name is required",
                severity="error",
            ))
        elif any(g.name == name for g in ledger.dream_goals):
            # Realization reversal finds goals by name
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"A goal named '{name}' already exists",
                severity="warning",
                suggested_fix="Use a distinct name so history stays unambiguous",
            ))

        if value is None or value <= 0:
            issues.append(ValidationIssue(
                field="cost",
                issue_type="invalid_value",
                message="Goal cost must be a number greater than zero",
                severity="error",
            ))

        return ValidationResult(action="add_goal", issues=issues)

    def _open_goal_issues(self, ledger: LedgerState, goal_id: str) -> list[ValidationIssue]:
        goal = ledger.find_goal(goal_id)
        if goal is None:
            return [ValidationIssue(
                field="goal",
                issue_type="not_found",
                message="This goal no longer exists",
                severity="error",
            )]
        if goal.is_achieved:
            return [ValidationIssue(
                field="goal",
                issue_type="already_achieved",
                message=f"'{goal.name}' has already been achieved",
                severity="error",
            )]
        return []

    def validate_realization(self, ledger: LedgerState, goal_id: str) -> ValidationResult:
        return ValidationResult(
            action="realize_goal",
            issues=self._open_goal_issues(ledger, goal_id),
        )

    def validate_goal_deletion(self, ledger: LedgerState, goal_id: str) -> ValidationResult:
        issues = self._open_goal_issues(ledger, goal_id)
        if any(issue.issue_type == "already_achieved" for issue in issues):
            issues[0] = issues[0].model_copy(update={
                "suggested_fix": "Delete the transaction that realized it instead",
            })
        return ValidationResult(action="delete_goal", issues=issues)

    def validate_transaction_deletion(
        self,
        ledger: LedgerState,
        transaction_id: str,
    ) -> ValidationResult:
        """Deleting is always allowed; warns where the reversal is lossy or touches a goal."""
        issues = []
        transaction = ledger.find_transaction(transaction_id)

        if transaction is None:
            issues.append(ValidationIssue(
                field="transaction",
                issue_type="not_found",
                message="This transaction no longer exists",
                severity="error",
            ))
            return ValidationResult(action="delete_transaction", issues=issues)

        balance = ledger.balance(transaction.fund_type)
        if transaction.type == TransactionType.DEPOSIT and transaction.amount > balance:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="inconsistent",
                message=(
                    f"The {transaction.fund_type.value.title()} fund only holds {balance}; "
                    "it will be set to 0"
                ),
                severity="warning",
            ))
        if transaction.description.startswith(GOAL_REALIZED_PREFIX):
            issues.append(ValidationIssue(
                field="goal",
                issue_type="goal_reverted",
                message="The goal this paid for will be marked as not achieved",
                severity="info",
            ))

        return ValidationResult(action="delete_transaction", issues=issues)

    def validate_journal_entry(self, items: Sequence[Optional[str]]) -> ValidationResult:
        issues = []
        if not any(item and item.strip() for item in items):
            issues.append(ValidationIssue(
                field="items",
                issue_type="missing",
                message="Write down at least one thing you are proud of",
                severity="error",
            ))
        return ValidationResult(action="save_journal_entry", issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to a disabled action.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ This can't be done yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please note:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
