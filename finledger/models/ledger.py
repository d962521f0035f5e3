"""
Core Data Models for the Finance Ledger

These models define the records the ledger engine works on:
accounts, transactions, savings pots, categories, debts and investments.

They are designed to:
1. Carry money as Decimal, never float
2. Serialize to the camelCase wire format used by the JSON backup bundle
3. Stay permissive about business rules (those live in LedgerValidator)
   so that older backups with odd data can still be loaded

DESIGN DECISION: Balances are never stored on these models.
An account's balance and a pot's saved amount are always derived
from the transaction log by the engine.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
)


def _as_naive_utc(value: datetime) -> datetime:
    """Aware datetimes are converted to naive UTC so that all timestamps compare."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _money_to_json(value: Decimal) -> Union[float, str]:
    """
    JSON number when a double carries the value exactly, otherwise the
    exact decimal string (pydantic reads both back into a Decimal).
    """
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return str(value)


# Decimals travel as JSON numbers in the backup bundle
Money = Annotated[
    Decimal,
    PlainSerializer(_money_to_json, return_type=Union[float, str], when_used="json"),
]

Timestamp = Annotated[datetime, AfterValidator(_as_naive_utc)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountCategory(str, Enum):
    """Kind of money container an account represents."""
    CHECKING = "checking"
    CALL_MONEY = "call_money"
    FIXED_DEPOSIT = "fixed_deposit"
    OTHER_INVESTMENT = "other_investment"


class TransactionKind(str, Enum):
    """
    Transaction kinds.

    The sign convention depends on the kind:
    expenses are stored negative, income and transfers positive.
    A transfer's direction is encoded by its from/to accounts.
    """
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class DebtDirection(str, Enum):
    """Who owes whom."""
    I_OWE = "i_owe"
    OWED_TO_ME = "owed_to_me"


class AppearanceMode(str, Enum):
    """App-wide appearance, carried in the backup bundle settings."""
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class _WireModel(BaseModel):
    """Base for models that use camelCase aliases on the wire."""
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# ACCOUNTS
# =============================================================================

class Account(_WireModel):
    """
    A named money container.

    Accounts form at most a two-level hierarchy: a sub-account points
    at its parent via parent_account_id. At most one account is primary;
    that invariant is enforced by Ledger.set_primary, not by this model.
    """
    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., description="Display name")
    category: AccountCategory
    initial_balance: Money = Field(
        default=Decimal("0"),
        alias="initialBalance",
        description="Opening balance; signed",
    )
    is_available: bool = Field(
        default=True,
        alias="isAvailable",
        description="Liquidity marker; available accounts count towards available_sum",
    )
    is_primary: bool = Field(default=False, alias="isPrimary")
    parent_account_id: Optional[UUID] = Field(default=None, alias="parentAccountID")

    @property
    def is_subaccount(self) -> bool:
        return self.parent_account_id is not None


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(_WireModel):
    """
    A single entry in the transaction log.

    Income/expense reference account_id. Transfers reference
    from_account_id and to_account_id. A transfer whose from and to
    account are the same moves money into (to_pot_id) or out of
    (from_pot_id) a savings pot of that account.
    """
    id: UUID = Field(default_factory=uuid4)
    date: Timestamp
    name: str
    amount: Money = Field(
        ...,
        description="Expense < 0, income > 0, transfer > 0",
    )
    kind: TransactionKind
    account_id: Optional[UUID] = Field(default=None, alias="accountID")
    from_account_id: Optional[UUID] = Field(default=None, alias="fromAccountID")
    to_account_id: Optional[UUID] = Field(default=None, alias="toAccountID")
    from_pot_id: Optional[UUID] = Field(default=None, alias="fromPotID")
    to_pot_id: Optional[UUID] = Field(default=None, alias="toPotID")
    note: Optional[str] = None
    category_id: Optional[UUID] = Field(default=None, alias="categoryID")

    @property
    def is_transfer(self) -> bool:
        return self.kind == TransactionKind.TRANSFER

    @property
    def is_pot_transfer(self) -> bool:
        """Transfer within one account that moves money into or out of a pot."""
        return (
            self.is_transfer
            and self.from_account_id is not None
            and self.from_account_id == self.to_account_id
            and (self.from_pot_id is not None or self.to_pot_id is not None)
        )

    def involves_account(self, account_id: UUID) -> bool:
        if self.is_transfer:
            return account_id in (self.from_account_id, self.to_account_id)
        return self.account_id == account_id


# =============================================================================
# SAVINGS POTS, CATEGORIES, DEBTS, INVESTMENTS
# =============================================================================

class SavingsPot(_WireModel):
    """
    A named sub-goal inside an account.

    A pot has no stored balance. Its saved amount is derived from
    pot-annotated transfers. A goal of 0 means "no target".
    """
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID = Field(..., alias="accountID")
    name: str
    goal: Money = Field(default=Decimal("0"))
    note: Optional[str] = None


class ColorValue(BaseModel):
    """RGBA colour with channels in [0, 1]."""
    r: float
    g: float
    b: float
    a: float = 1.0


class Category(_WireModel):
    """A freely user-defined transaction category."""
    id: UUID = Field(default_factory=uuid4)
    name: str
    color: ColorValue


class Debt(_WireModel):
    """
    Money owed by or to the user.

    Debts are not derived from transactions; they are mutated directly.
    Only unsettled debts count towards net_open_debts.
    """
    id: UUID = Field(default_factory=uuid4)
    title: str
    amount: Money = Field(..., description="Always positive; direction carries the sign")
    direction: DebtDirection
    due_date: Optional[Timestamp] = Field(default=None, alias="dueDate")
    account_id: Optional[UUID] = Field(default=None, alias="accountID")
    note: Optional[str] = None
    is_settled: bool = Field(default=False, alias="isSettled")


class Investment(_WireModel):
    """A manually valued investment, counted in total_value."""
    id: UUID = Field(default_factory=uuid4)
    name: str
    value: Money


class AppSettings(_WireModel):
    """UI settings carried alongside the data in the backup bundle."""
    appearance_mode: AppearanceMode = Field(
        default=AppearanceMode.SYSTEM,
        alias="appearanceMode",
    )
    did_see_onboarding: bool = Field(default=False, alias="didSeeOnboarding")


def default_seed_categories() -> list[Category]:
    """The five categories a fresh ledger starts with."""
    return [
        Category(name="Groceries", color=ColorValue(r=0.20, g=0.70, b=0.35)),
        Category(name="Salary", color=ColorValue(r=0.10, g=0.60, b=0.95)),
        Category(name="Rent", color=ColorValue(r=0.90, g=0.30, b=0.30)),
        Category(name="Transport", color=ColorValue(r=0.95, g=0.70, b=0.10)),
        Category(name="Leisure", color=ColorValue(r=0.70, g=0.40, b=0.90)),
    ]


# =============================================================================
# SNAPSHOT - the persisted state of a ledger
# =============================================================================

class LedgerSnapshot(_WireModel):
    """
    Complete state of a ledger at one point in time.

    This is what the persistence hook receives after each mutation
    and what the backup bundle (version 3) carries.
    """
    accounts: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    investments: list[Investment] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    category_memory: dict[str, UUID] = Field(
        default_factory=dict,
        alias="categoryMemory",
    )
    pots: list[SavingsPot] = Field(default_factory=list)
    settings: AppSettings = Field(default_factory=AppSettings)


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
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_reference')"
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
    """Outcome of validating one entity before a mutation."""

    entity_type: str
    entity_id: Optional[UUID] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
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
        return [i.message for i in self.issues if i.severity == "warning"]
