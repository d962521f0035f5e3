"""
Ledger Validation

DESIGN DECISION: Every mutation is validated before it touches state.
The ledger calls these checks and raises ValidationError when any
error-level issue is found, so callers no longer have to pre-validate.

Two severities matter:

ERROR:
- Structural problems (missing references for the transaction kind)
- Business rule breaks (wrong sign, empty name, negative goal)
- Hierarchy breaks (sub-account of a sub-account)

WARNING:
- References to entities the ledger does not know (yet)
- These are logged but do not block, because historical records
  may legitimately point at deleted accounts or pots

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the ledger refuses the change.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from finledger.errors import ValidationError
from finledger.models.ledger import (
    Account,
    Category,
    Debt,
    Investment,
    SavingsPot,
    Transaction,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
)


def _error(field: str, issue_type: str, message: str, suggested_fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=suggested_fix,
    )


def _warning(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="warning",
    )


class LedgerValidator:
    """
    Validates entities against the ledger's business rules.

    Each validate_* method returns a ValidationResult; ensure_valid
    turns a result with errors into a ValidationError.
    """

    def validate_account(
        self,
        account: Account,
        accounts: Iterable[Account],
    ) -> ValidationResult:
        """
        Checks:
        - Name present
        - Parent account exists, is not the account itself
        - Hierarchy is at most two levels deep
        """
        issues = []
        others = {a.id: a for a in accounts if a.id != account.id}

        if not account.name.strip():
            issues.append(_error("name", "missing", "Account name is required"))

        parent_id = account.parent_account_id
        if parent_id is not None:
            if parent_id == account.id:
                issues.append(_error(
                    "parent_account_id",
                    "invalid_reference",
                    "An account cannot be its own parent",
                ))
            elif parent_id not in others:
                issues.append(_error(
                    "parent_account_id",
                    "unknown_reference",
                    f"Parent account {parent_id} does not exist",
                ))
            elif others[parent_id].is_subaccount:
                issues.append(_error(
                    "parent_account_id",
                    "hierarchy_too_deep",
                    "A sub-account cannot be the parent of another account",
                    suggested_fix="Choose a top-level account as parent",
                ))

            if any(a.parent_account_id == account.id for a in others.values()):
                issues.append(_error(
                    "parent_account_id",
                    "hierarchy_too_deep",
                    "An account with sub-accounts cannot become a sub-account",
                ))

        return ValidationResult(entity_type="account", entity_id=account.id, issues=issues)

    def validate_transaction(
        self,
        transaction: Transaction,
        accounts: Iterable[Account],
        categories: Iterable[Category],
        pots: Iterable[SavingsPot],
    ) -> ValidationResult:
        """
        Checks:
        - Name present, amount non-zero with the sign its kind requires
        - Kind-specific account references present
        - Pot annotations only on transfers within one account
        - Categories only on income/expense
        """
        issues = []
        t = transaction
        account_ids = {a.id for a in accounts}
        pots_by_id = {p.id: p for p in pots}

        if not t.name.strip():
            issues.append(_error("name", "missing", "Transaction name is required"))

        if t.amount == 0:
            issues.append(_error("amount", "invalid_value", "Amount must not be zero"))
        elif t.kind == TransactionKind.EXPENSE and t.amount > 0:
            issues.append(_error(
                "amount",
                "invalid_sign",
                "Expense amounts must be negative",
                suggested_fix=f"Use {-t.amount}",
            ))
        elif t.kind != TransactionKind.EXPENSE and t.amount < 0:
            issues.append(_error(
                "amount",
                "invalid_sign",
                f"{t.kind.value.capitalize()} amounts must be positive",
                suggested_fix=f"Use {-t.amount}",
            ))

        if t.kind == TransactionKind.TRANSFER:
            if t.from_account_id is None or t.to_account_id is None:
                issues.append(_error(
                    "from_account_id",
                    "missing",
                    "Transfers need both a source and a destination account",
                ))
            if t.account_id is not None:
                issues.append(_error(
                    "account_id",
                    "invalid_reference",
                    "Transfers use from/to accounts, not account_id",
                ))
            if t.category_id is not None:
                issues.append(_error(
                    "category_id",
                    "invalid_reference",
                    "Transfers cannot carry a category",
                ))

            has_pot = t.from_pot_id is not None or t.to_pot_id is not None
            same_account = t.from_account_id is not None and t.from_account_id == t.to_account_id
            if has_pot and not same_account:
                issues.append(_error(
                    "to_pot_id",
                    "invalid_reference",
                    "Pot transfers must stay within one account",
                ))
            if same_account and not has_pot:
                issues.append(_error(
                    "to_account_id",
                    "invalid_reference",
                    "A transfer to the same account must move money into or out of a pot",
                ))

            for field, pot_id in (("from_pot_id", t.from_pot_id), ("to_pot_id", t.to_pot_id)):
                if pot_id is None:
                    continue
                pot = pots_by_id.get(pot_id)
                if pot is None:
                    issues.append(_warning(field, "unknown_reference", f"Pot {pot_id} does not exist"))
                elif pot.account_id != t.from_account_id:
                    issues.append(_error(
                        field,
                        "invalid_reference",
                        f"Pot '{pot.name}' belongs to a different account",
                    ))

            for field, account_id in (("from_account_id", t.from_account_id), ("to_account_id", t.to_account_id)):
                if account_id is not None and account_id not in account_ids:
                    issues.append(_warning(field, "unknown_reference", f"Account {account_id} does not exist"))
        else:
            if t.account_id is None:
                issues.append(_error(
                    "account_id",
                    "missing",
                    f"{t.kind.value.capitalize()} transactions need an account",
                ))
            elif t.account_id not in account_ids:
                issues.append(_warning("account_id", "unknown_reference", f"Account {t.account_id} does not exist"))

            if any(x is not None for x in (t.from_account_id, t.to_account_id, t.from_pot_id, t.to_pot_id)):
                issues.append(_error(
                    "from_account_id",
                    "invalid_reference",
                    "Only transfers may reference from/to accounts or pots",
                ))

            if t.category_id is not None and t.category_id not in {c.id for c in categories}:
                issues.append(_warning("category_id", "unknown_reference", f"Category {t.category_id} does not exist"))

        return ValidationResult(entity_type="transaction", entity_id=t.id, issues=issues)

    def validate_pot(
        self,
        pot: SavingsPot,
        accounts: Iterable[Account],
    ) -> ValidationResult:
        issues = []

        if not pot.name.strip():
            issues.append(_error("name", "missing", "Pot name is required"))
        if pot.goal < 0:
            issues.append(_error(
                "goal",
                "invalid_value",
                "Pot goal cannot be negative",
                suggested_fix="Use 0 for a pot without a target",
            ))
        if pot.account_id not in {a.id for a in accounts}:
            issues.append(_error(
                "account_id",
                "unknown_reference",
                f"Account {pot.account_id} does not exist",
            ))

        return ValidationResult(entity_type="pot", entity_id=pot.id, issues=issues)

    def validate_pot_move(
        self,
        account: Account,
        pot: SavingsPot,
        amount: Decimal,
        available: Optional[Decimal],
    ) -> ValidationResult:
        """
        Checks a deposit into or withdrawal from a pot.

        Args:
            available: Upper bound for the amount (free balance for deposits,
                       saved amount for withdrawals). None skips the bound check.
        """
        issues = []

        if pot.account_id != account.id:
            issues.append(_error(
                "account_id",
                "invalid_reference",
                f"Pot '{pot.name}' does not belong to account '{account.name}'",
            ))
        if not amount.is_finite():
            issues.append(_error("amount", "invalid_value", "Amount must be a finite number"))
        elif amount <= 0:
            issues.append(_error("amount", "invalid_value", "Amount must be greater than zero"))
        elif available is not None and amount > available:
            issues.append(_error(
                "amount",
                "exceeds_available",
                f"Amount {amount} exceeds the available {available}",
            ))

        return ValidationResult(entity_type="pot_transfer", entity_id=pot.id, issues=issues)

    def validate_debt(self, debt: Debt) -> ValidationResult:
        issues = []

        if not debt.title.strip():
            issues.append(_error("title", "missing", "Debt title is required"))
        if debt.amount <= 0:
            issues.append(_error(
                "amount",
                "invalid_value",
                "Debt amount must be positive; use the direction for who owes whom",
            ))

        return ValidationResult(entity_type="debt", entity_id=debt.id, issues=issues)

    def validate_category(self, category: Category) -> ValidationResult:
        issues = []

        if not category.name.strip():
            issues.append(_error("name", "missing", "Category name is required"))
        for channel in ("r", "g", "b", "a"):
            value = getattr(category.color, channel)
            if not 0.0 <= value <= 1.0:
                issues.append(_error(
                    f"color.{channel}",
                    "invalid_value",
                    f"Colour channel {channel} must be between 0 and 1",
                ))

        return ValidationResult(entity_type="category", entity_id=category.id, issues=issues)

    def validate_investment(self, investment: Investment) -> ValidationResult:
        issues = []
        if not investment.name.strip():
            issues.append(_error("name", "missing", "Investment name is required"))
        return ValidationResult(entity_type="investment", entity_id=investment.id, issues=issues)

    def validate_unique_id(
        self,
        entity_type: str,
        entity_id: UUID,
        existing: Iterable,
    ) -> ValidationResult:
        """An inserted entity must not reuse the id of one already stored."""
        issues = []
        if any(item.id == entity_id for item in existing):
            issues.append(_error(
                "id",
                "duplicate_id",
                f"A {entity_type} with id {entity_id} already exists",
                suggested_fix="Use update to change the stored record",
            ))
        return ValidationResult(entity_type=entity_type, entity_id=entity_id, issues=issues)

    @staticmethod
    def ensure_valid(result: ValidationResult) -> ValidationResult:
        """Raise ValidationError if the result has errors; otherwise return it."""
        if result.has_errors:
            raise ValidationError(result)
        return result

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Short multi-line summary suitable for showing next to a form."""
        if not result.issues:
            return "All checks passed."

        lines = []
        errors = [i for i in result.issues if i.severity == "error"]
        if errors:
            lines.append(f"Cannot save this {result.entity_type}:")
            for issue in errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
