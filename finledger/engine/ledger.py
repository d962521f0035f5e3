"""
Ledger Aggregate

The Ledger is the single write path for all finance data. It owns the
transaction log and the entity lists, validates every mutation, keeps
the category memory current and detects savings goals being reached.

DESIGN DECISIONS:
1. No global state: callers hold a Ledger and pass it around
2. Derived values (balances, pot amounts) are never stored; they are
   recomputed from the log on every query
3. Validation runs before any state changes; a rejected mutation
   leaves the ledger exactly as it was
4. Persistence is a hook called with a fresh snapshot after each
   mutation; its failures are logged, never raised to the caller
5. The single-primary invariant is enforced by set_primary;
   update_account refuses to promote an account on its own, and a
   loaded state keeps only its first primary account
6. Inserts reject an id that is already stored; use the update methods
   to change a record

Transaction order: descending by date. Python's sort is stable and new
transactions are inserted at the head, so among equal dates the most
recently inserted transaction comes first.
"""

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Iterator, Optional, Union
from uuid import UUID

import structlog

from finledger.audit import AuditLogger
from finledger.engine import calculations
from finledger.engine.category_memory import CategoryMemory, normalize_name
from finledger.errors import NotFoundError, ValidationError
from finledger.models.audit import AuditEventBuilder, GoalReachedEvent
from finledger.models.ledger import (
    Account,
    AppSettings,
    Category,
    ColorValue,
    Debt,
    Investment,
    LedgerSnapshot,
    SavingsPot,
    Transaction,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
    default_seed_categories,
)
from finledger.validation import LedgerValidator


PersistHook = Callable[[LedgerSnapshot], object]
GoalListener = Callable[[GoalReachedEvent], None]

AccountRef = Union[Account, UUID]
TransactionRef = Union[Transaction, UUID]
PotRef = Union[SavingsPot, UUID]
DebtRef = Union[Debt, UUID]
CategoryRef = Union[Category, UUID]
InvestmentRef = Union[Investment, UUID]

logger = structlog.get_logger(__name__)


def _ref_id(ref) -> UUID:
    return ref if isinstance(ref, UUID) else ref.id


def _index_of(items: list, item_id: UUID) -> Optional[int]:
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    return None


def _is_categorizable(t: Transaction) -> bool:
    return t.kind in (TransactionKind.INCOME, TransactionKind.EXPENSE)


class Ledger:
    """
    Mutable aggregate over accounts, transactions, pots, categories,
    debts and investments.

    Usage:
        ledger = Ledger()
        main = ledger.add_account(Account(name="Main", category=AccountCategory.CHECKING,
                                          initial_balance=Decimal("1000")))
        ledger.add_transaction(Transaction(date=..., name="Bakery", amount=Decimal("-8.40"),
                                           kind=TransactionKind.EXPENSE, account_id=main.id))
        ledger.balance(main)
    """

    def __init__(
        self,
        snapshot: Optional[LedgerSnapshot] = None,
        *,
        persist: Optional[PersistHook] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        enforce_pot_bounds: bool = True,
    ):
        """
        Initialize a ledger.

        Args:
            snapshot: Initial state. If None, the ledger starts empty
                      with the seed categories.
            persist: Called with a fresh snapshot after every mutation.
            audit_logger: Receives an event for every mutation.
            validator: Business rule checks; a default one is created if None.
            enforce_pot_bounds: Reject pot moves larger than the free balance
                                (deposits) or the saved amount (withdrawals).
        """
        self._persist_hook = persist
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or LedgerValidator()
        self._enforce_pot_bounds = enforce_pot_bounds
        self._goal_listeners: list[GoalListener] = []
        self._batch_depth = 0
        self._dirty = False

        self._accounts: list[Account] = []
        self._transactions: list[Transaction] = []
        self._pots: list[SavingsPot] = []
        self._categories: list[Category] = []
        self._debts: list[Debt] = []
        self._investments: list[Investment] = []
        self._memory = CategoryMemory()
        self._app_settings = AppSettings()

        self._load(snapshot or LedgerSnapshot())

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def accounts(self) -> list[Account]:
        return list(self._accounts)

    @property
    def transactions(self) -> list[Transaction]:
        """All transactions, newest first."""
        return list(self._transactions)

    @property
    def pots(self) -> list[SavingsPot]:
        return list(self._pots)

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    @property
    def debts(self) -> list[Debt]:
        return list(self._debts)

    @property
    def investments(self) -> list[Investment]:
        return list(self._investments)

    @property
    def category_memory(self) -> dict[str, UUID]:
        return self._memory.as_dict()

    @property
    def app_settings(self) -> AppSettings:
        return self._app_settings.model_copy()

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    @property
    def enforce_pot_bounds(self) -> bool:
        return self._enforce_pot_bounds

    @property
    def primary_account(self) -> Optional[Account]:
        primary = next((a for a in self._accounts if a.is_primary), None)
        return primary.model_copy() if primary is not None else None

    def get_account(self, account_id: UUID) -> Account:
        return self._require(self._accounts, account_id, "Account")

    def get_transaction(self, transaction_id: UUID) -> Transaction:
        return self._require(self._transactions, transaction_id, "Transaction")

    def get_pot(self, pot_id: UUID) -> SavingsPot:
        return self._require(self._pots, pot_id, "Pot")

    def get_debt(self, debt_id: UUID) -> Debt:
        return self._require(self._debts, debt_id, "Debt")

    def category_by_id(self, category_id: Optional[UUID]) -> Optional[Category]:
        if category_id is None:
            return None
        return next((c for c in self._categories if c.id == category_id), None)

    def subaccounts(self, account: AccountRef) -> list[Account]:
        parent_id = _ref_id(account)
        return [a for a in self._accounts if a.parent_account_id == parent_id]

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    def balance(self, account: Account) -> Decimal:
        return calculations.balance(account, self._transactions)

    def saved_amount(self, pot: SavingsPot) -> Decimal:
        return calculations.saved_amount(pot, self._transactions)

    def pots_for(self, account: AccountRef) -> list[SavingsPot]:
        account_id = _ref_id(account)
        return [p for p in self._pots if p.account_id == account_id]

    def total_saved_in_pots(self, account: Account) -> Decimal:
        return calculations.total_saved_in_pots(account, self._pots, self._transactions)

    def free_balance(self, account: Account) -> Decimal:
        return calculations.free_balance(account, self._pots, self._transactions)

    def pot_progress(self, pot: SavingsPot) -> Optional[Decimal]:
        return calculations.pot_progress(pot, self._transactions)

    @property
    def available_sum(self) -> Decimal:
        return calculations.available_sum(self._accounts, self._transactions)

    @property
    def net_open_debts(self) -> Decimal:
        return calculations.net_open_debts(self._debts)

    @property
    def total_value(self) -> Decimal:
        return calculations.total_value(
            self._accounts, self._transactions, self._investments, self._debts
        )

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(self, transaction: Transaction) -> Optional[GoalReachedEvent]:
        """
        Insert a transaction.

        Uncategorized income/expense gets the remembered category for its
        name. A categorized income/expense teaches the memory. A transfer
        into a pot is bracketed by goal detection.

        Returns:
            The GoalReachedEvent if this insert made a pot cross its goal.
        """
        tx = transaction.model_copy()
        self._check_new_id("transaction", tx, self._transactions)
        self._check(self._validator.validate_transaction(
            tx, self._accounts, self._categories, self._pots
        ))

        target_pot = None
        saved_before = None
        if tx.kind == TransactionKind.TRANSFER and tx.to_pot_id is not None:
            index = _index_of(self._pots, tx.to_pot_id)
            if index is not None:
                target_pot = self._pots[index]
                saved_before = self.saved_amount(target_pot)

        if tx.category_id is None and _is_categorizable(tx):
            suggested = self._memory.suggest(tx.name)
            if suggested is not None:
                tx.category_id = suggested

        self._transactions.insert(0, tx)
        self._sort_transactions()

        if tx.category_id is not None and _is_categorizable(tx):
            self._memory.learn(tx.name, tx.category_id)

        self._audit.log(AuditEventBuilder.transaction_added(
            transaction_id=tx.id,
            name=tx.name,
            amount=tx.amount,
            kind=tx.kind.value,
        ))

        reached = None
        if target_pot is not None:
            saved_after = self.saved_amount(target_pot)
            if calculations.goal_crossed(target_pot.goal, saved_before, saved_after):
                reached = GoalReachedEvent(
                    pot_id=target_pot.id,
                    pot_name=target_pot.name,
                    goal=target_pot.goal,
                    saved=saved_after,
                )
                self._notify_goal_reached(reached)

        self._changed()
        return reached

    def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace a transaction by id.

        Returns:
            True if the category differs from the previous one. That is the
            moment to offer apply_category for uncategorized past siblings.

        Raises:
            NotFoundError: If no transaction has this id.
        """
        index = _index_of(self._transactions, transaction.id)
        if index is None:
            raise NotFoundError(f"Transaction {transaction.id} not found")

        tx = transaction.model_copy()
        self._check(self._validator.validate_transaction(
            tx, self._accounts, self._categories, self._pots
        ))

        previous = self._transactions[index]
        self._transactions[index] = tx
        self._sort_transactions()

        if tx.category_id is not None and _is_categorizable(tx):
            self._memory.learn(tx.name, tx.category_id)

        category_changed = previous.category_id != tx.category_id
        self._audit.log(AuditEventBuilder.transaction_updated(
            transaction_id=tx.id,
            name=tx.name,
            category_changed=category_changed,
        ))
        self._changed()
        return category_changed

    def remove_transaction(self, transaction: TransactionRef) -> None:
        """Remove a transaction. Nothing cascades; pot amounts simply change."""
        transaction_id = _ref_id(transaction)
        index = _index_of(self._transactions, transaction_id)
        if index is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        del self._transactions[index]
        self._audit.log(AuditEventBuilder.transaction_removed(transaction_id))
        self._changed()

    def import_transactions(self, transactions: Iterable[Transaction]) -> int:
        """
        Insert a batch of imported transactions in one step.

        Each uncategorized income/expense gets the remembered category for
        its name. Imports do not teach the memory. The whole batch is
        validated first; if any transaction is invalid nothing is inserted.

        Returns:
            Number of transactions inserted.
        """
        batch = [t.model_copy() for t in transactions]
        for i, tx in enumerate(batch):
            self._check_new_id("transaction", tx, self._transactions + batch[:i])
            self._check(self._validator.validate_transaction(
                tx, self._accounts, self._categories, self._pots
            ))
        if not batch:
            return 0

        for tx in batch:
            if tx.category_id is None and _is_categorizable(tx):
                tx.category_id = self._memory.suggest(tx.name)

        self._transactions[0:0] = batch
        self._sort_transactions()
        self._changed()
        return len(batch)

    # =========================================================================
    # CATEGORY MEMORY AND BULK RE-CATEGORIZATION
    # =========================================================================

    def learn_category(self, name: str, category_id: Optional[UUID]) -> None:
        if self._memory.learn(name, category_id):
            self._changed()

    def suggested_category_id(self, name: str) -> Optional[UUID]:
        return self._memory.suggest(name)

    def _past_uncategorized(self, name: str, before: datetime) -> list[int]:
        key = normalize_name(name)
        if not key:
            return []
        return [
            i for i, t in enumerate(self._transactions)
            if t.date < before
            and _is_categorizable(t)
            and t.category_id is None
            and normalize_name(t.name) == key
        ]

    def count_past_uncategorized_transactions(self, name: str, before: datetime) -> int:
        """Income/expense strictly before `before`, uncategorized, with this normalized name."""
        return len(self._past_uncategorized(name, before))

    def apply_category(self, category_id: UUID, name: str, before: datetime) -> int:
        """
        Set category_id on every past uncategorized transaction named `name`.

        Re-learns the mapping when anything changed.

        Returns:
            Number of transactions changed.
        """
        indices = self._past_uncategorized(name, before)
        if not indices:
            return 0

        for i in indices:
            self._transactions[i] = self._transactions[i].model_copy(
                update={"category_id": category_id}
            )
        self._memory.learn(name, category_id)

        self._audit.log(AuditEventBuilder.category_bulk_applied(
            category_id=category_id,
            name=name,
            changed=len(indices),
        ))
        self._changed()
        return len(indices)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(self, account: Account) -> Account:
        """
        Append an account.

        An account added as primary becomes the only primary account.
        """
        new = account.model_copy()
        self._check_new_id("account", new, self._accounts)
        self._check(self._validator.validate_account(new, self._accounts))

        with self.batch():
            make_primary = new.is_primary
            new.is_primary = False
            self._accounts.append(new)
            self._audit.log(AuditEventBuilder.account_added(new.id, new.name))
            if make_primary:
                self.set_primary(new.id)
            else:
                self._changed()
        return self.get_account(new.id)

    def update_account(self, account: Account) -> None:
        """
        Replace an account by id.

        Promoting an account to primary is rejected here; use set_primary,
        which keeps the single-primary invariant. Demoting is allowed.
        """
        index = _index_of(self._accounts, account.id)
        if index is None:
            raise NotFoundError(f"Account {account.id} not found")

        updated = account.model_copy()
        result = self._validator.validate_account(updated, self._accounts)
        if updated.is_primary and not self._accounts[index].is_primary:
            result.issues.append(ValidationIssue(
                field="is_primary",
                issue_type="invariant",
                message="Use set_primary to make an account primary",
                severity="error",
            ))
        self._check(result)

        self._accounts[index] = updated
        self._audit.log(AuditEventBuilder.account_updated(updated.id, updated.name))
        self._changed()

    def remove_account(self, account: AccountRef) -> list[UUID]:
        """
        Remove an account, its direct sub-accounts, and the pots of all of them.

        Transactions are kept as historical records; their account
        references are left dangling.

        Returns:
            Ids of every removed account.
        """
        account_id = _ref_id(account)
        if _index_of(self._accounts, account_id) is None:
            raise NotFoundError(f"Account {account_id} not found")

        removed_ids = [account_id] + [
            a.id for a in self._accounts if a.parent_account_id == account_id
        ]
        removed_set = set(removed_ids)
        removed_pot_ids = [p.id for p in self._pots if p.account_id in removed_set]

        self._pots = [p for p in self._pots if p.account_id not in removed_set]
        self._accounts = [a for a in self._accounts if a.id not in removed_set]

        self._audit.log(AuditEventBuilder.account_removed(
            account_id=account_id,
            removed_account_ids=removed_ids,
            removed_pot_ids=removed_pot_ids,
        ))
        self._changed()
        return removed_ids

    def set_primary(self, account: AccountRef) -> None:
        """
        Make exactly this account primary and every other account not.

        With an id that is not in the ledger, no account is primary afterwards.
        """
        account_id = _ref_id(account)
        self._accounts = [
            a.model_copy(update={"is_primary": a.id == account_id})
            for a in self._accounts
        ]
        self._audit.log(AuditEventBuilder.primary_account_changed(account_id))
        self._changed()

    # =========================================================================
    # SAVINGS POTS
    # =========================================================================

    def add_pot(self, pot: SavingsPot) -> SavingsPot:
        new = pot.model_copy()
        self._check_new_id("pot", new, self._pots)
        self._check(self._validator.validate_pot(new, self._accounts))
        self._pots.append(new)
        self._changed()
        return new.model_copy()

    def update_pot(self, pot: SavingsPot) -> None:
        index = _index_of(self._pots, pot.id)
        if index is None:
            raise NotFoundError(f"Pot {pot.id} not found")
        updated = pot.model_copy()
        self._check(self._validator.validate_pot(updated, self._accounts))
        self._pots[index] = updated
        self._changed()

    def remove_pot(self, pot: PotRef) -> None:
        """
        Remove a pot. Its transfers stay in the log, so the account's
        history is unchanged, but nothing derives a saved amount for it anymore.
        """
        pot_id = _ref_id(pot)
        index = _index_of(self._pots, pot_id)
        if index is None:
            raise NotFoundError(f"Pot {pot_id} not found")
        del self._pots[index]
        self._changed()

    def move_to_pot(
        self,
        account: AccountRef,
        pot: PotRef,
        amount: Decimal,
        date: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> Optional[GoalReachedEvent]:
        """
        Move money from the account's free balance into one of its pots.

        This records a transfer from the account to itself annotated with
        to_pot_id and sends it through add_transaction.
        """
        account_obj = self.get_account(_ref_id(account))
        pot_obj = self.get_pot(_ref_id(pot))
        amount = Decimal(str(amount))

        available = self.free_balance(account_obj) if self._enforce_pot_bounds else None
        self._check(self._validator.validate_pot_move(account_obj, pot_obj, amount, available))

        return self.add_transaction(Transaction(
            date=date or datetime.now(),
            name=f"Into pot: {pot_obj.name}",
            amount=amount,
            kind=TransactionKind.TRANSFER,
            from_account_id=account_obj.id,
            to_account_id=account_obj.id,
            to_pot_id=pot_obj.id,
            note=note,
        ))

    def move_from_pot(
        self,
        account: AccountRef,
        pot: PotRef,
        amount: Decimal,
        date: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> None:
        """Move money out of a pot back into the account's free balance."""
        account_obj = self.get_account(_ref_id(account))
        pot_obj = self.get_pot(_ref_id(pot))
        amount = Decimal(str(amount))

        available = self.saved_amount(pot_obj) if self._enforce_pot_bounds else None
        self._check(self._validator.validate_pot_move(account_obj, pot_obj, amount, available))

        self.add_transaction(Transaction(
            date=date or datetime.now(),
            name=f"From pot: {pot_obj.name}",
            amount=amount,
            kind=TransactionKind.TRANSFER,
            from_account_id=account_obj.id,
            to_account_id=account_obj.id,
            from_pot_id=pot_obj.id,
            note=note,
        ))

    def on_goal_reached(self, listener: GoalListener) -> None:
        """Register a callback for pots crossing their goal."""
        self._goal_listeners.append(listener)

    # =========================================================================
    # DEBTS AND INVESTMENTS
    # =========================================================================

    def add_debt(self, debt: Debt) -> Debt:
        """Insert a debt at the head of the list."""
        new = debt.model_copy()
        self._check_new_id("debt", new, self._debts)
        self._check(self._validator.validate_debt(new))
        self._debts.insert(0, new)
        self._changed()
        return new.model_copy()

    def update_debt(self, debt: Debt) -> None:
        index = _index_of(self._debts, debt.id)
        if index is None:
            raise NotFoundError(f"Debt {debt.id} not found")
        updated = debt.model_copy()
        self._check(self._validator.validate_debt(updated))
        self._debts[index] = updated
        self._changed()

    def remove_debt(self, debt: DebtRef) -> None:
        debt_id = _ref_id(debt)
        index = _index_of(self._debts, debt_id)
        if index is None:
            raise NotFoundError(f"Debt {debt_id} not found")
        del self._debts[index]
        self._changed()

    def toggle_settled(self, debt: DebtRef) -> Debt:
        debt_id = _ref_id(debt)
        index = _index_of(self._debts, debt_id)
        if index is None:
            raise NotFoundError(f"Debt {debt_id} not found")
        current = self._debts[index]
        self._debts[index] = current.model_copy(update={"is_settled": not current.is_settled})
        self._changed()
        return self._debts[index].model_copy()

    def add_investment(self, investment: Investment) -> Investment:
        new = investment.model_copy()
        self._check_new_id("investment", new, self._investments)
        self._check(self._validator.validate_investment(new))
        self._investments.append(new)
        self._changed()
        return new.model_copy()

    def update_investment(self, investment: Investment) -> None:
        index = _index_of(self._investments, investment.id)
        if index is None:
            raise NotFoundError(f"Investment {investment.id} not found")
        updated = investment.model_copy()
        self._check(self._validator.validate_investment(updated))
        self._investments[index] = updated
        self._changed()

    def remove_investment(self, investment: InvestmentRef) -> None:
        investment_id = _ref_id(investment)
        index = _index_of(self._investments, investment_id)
        if index is None:
            raise NotFoundError(f"Investment {investment_id} not found")
        del self._investments[index]
        self._changed()

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def add_category(self, name: str, color: ColorValue) -> Category:
        new = Category(name=name, color=color)
        self._check(self._validator.validate_category(new))
        self._categories.append(new)
        self._changed()
        return new.model_copy()

    def update_category(self, category: Category) -> None:
        index = _index_of(self._categories, category.id)
        if index is None:
            raise NotFoundError(f"Category {category.id} not found")
        updated = category.model_copy()
        self._check(self._validator.validate_category(updated))
        self._categories[index] = updated
        self._changed()

    def remove_category(self, category: CategoryRef) -> int:
        """
        Remove a category, clear it from every transaction and forget
        every memory entry pointing at it.

        Returns:
            Number of transactions that lost the category.
        """
        category_id = _ref_id(category)
        index = _index_of(self._categories, category_id)
        if index is None:
            raise NotFoundError(f"Category {category_id} not found")

        del self._categories[index]
        cleared = 0
        for i, t in enumerate(self._transactions):
            if t.category_id == category_id:
                self._transactions[i] = t.model_copy(update={"category_id": None})
                cleared += 1
        self._memory.forget_category(category_id)

        self._audit.log(AuditEventBuilder.category_removed(category_id, cleared))
        self._changed()
        return cleared

    # =========================================================================
    # SETTINGS, SNAPSHOTS, RESET
    # =========================================================================

    def update_app_settings(self, settings: AppSettings) -> None:
        self._app_settings = settings.model_copy()
        self._changed()

    def snapshot(self) -> LedgerSnapshot:
        """Deep copy of the current state."""
        return LedgerSnapshot(
            accounts=self._accounts,
            transactions=self._transactions,
            investments=self._investments,
            debts=self._debts,
            categories=self._categories,
            category_memory=self._memory.as_dict(),
            pots=self._pots,
            settings=self._app_settings,
        ).model_copy(deep=True)

    def replace_state(self, snapshot: LedgerSnapshot) -> None:
        """Swap in a complete state (e.g. from a backup) and persist it."""
        self._load(snapshot)
        self._changed()

    def reset(self) -> None:
        """Empty the ledger; categories go back to the seed set."""
        self._load(LedgerSnapshot())
        self._audit.log(AuditEventBuilder.ledger_reset())
        self._changed()

    @contextmanager
    def batch(self) -> Iterator["Ledger"]:
        """
        Group several mutations so the persistence hook runs once at the end.

        Usage:
            with ledger.batch():
                ledger.add_account(...)
                ledger.add_pot(...)
        """
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._persist()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _load(self, snapshot: LedgerSnapshot) -> None:
        state = snapshot.model_copy(deep=True)
        self._accounts = self._single_primary(state.accounts)
        self._transactions = list(state.transactions)
        self._pots = list(state.pots)
        self._debts = list(state.debts)
        self._investments = list(state.investments)
        self._categories = list(state.categories) or default_seed_categories()
        self._memory = CategoryMemory(state.category_memory)
        self._app_settings = state.settings
        self._sort_transactions()

    @staticmethod
    def _single_primary(accounts: list[Account]) -> list[Account]:
        """Keep the first primary account of a loaded state; demote the others."""
        primaries = [i for i, a in enumerate(accounts) if a.is_primary]
        if len(primaries) < 2:
            return list(accounts)

        result = list(accounts)
        for i in primaries[1:]:
            result[i] = result[i].model_copy(update={"is_primary": False})
        logger.warning(
            "extra_primary_accounts_demoted",
            primary_id=str(result[primaries[0]].id),
            demoted_ids=[str(result[i].id) for i in primaries[1:]],
        )
        return result

    def _sort_transactions(self) -> None:
        self._transactions.sort(key=lambda t: t.date, reverse=True)

    @staticmethod
    def _require(items: list, item_id: UUID, label: str):
        index = _index_of(items, item_id)
        if index is None:
            raise NotFoundError(f"{label} {item_id} not found")
        return items[index].model_copy()

    def _check_new_id(self, entity_type: str, item, existing: list) -> None:
        self._check(self._validator.validate_unique_id(entity_type, item.id, existing))

    def _check(self, result: ValidationResult) -> None:
        for warning in result.warnings:
            logger.warning(
                "validation_warning",
                entity_type=result.entity_type,
                entity_id=str(result.entity_id) if result.entity_id else None,
                message=warning,
            )
        if result.has_errors:
            self._audit.log(AuditEventBuilder.validation_failed(
                entity_type=result.entity_type,
                entity_id=result.entity_id,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                    if i.severity == "error"
                ],
            ))
            raise ValidationError(result)

    def _notify_goal_reached(self, event: GoalReachedEvent) -> None:
        self._audit.log(AuditEventBuilder.pot_goal_reached(event))
        for listener in list(self._goal_listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error("goal_listener_failed", error=str(e), pot_id=str(event.pot_id))

    def _changed(self) -> None:
        self._dirty = True
        if self._batch_depth == 0:
            self._persist()

    def _persist(self) -> None:
        self._dirty = False
        if self._persist_hook is None:
            return
        try:
            self._persist_hook(self.snapshot())
        except Exception as e:
            # Persistence is best effort; the in-memory state stays authoritative
            self._audit.log(AuditEventBuilder.persist_failed(str(e)))
