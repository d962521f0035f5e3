"""
Derived Balance Calculations

Pure functions over the transaction log. Nothing here is cached:
every call scans the full log, so the answer always reflects the
current state. At personal-finance volumes that is cheap enough.

Contributions to an account's balance:
- income/expense: amount, if account_id matches (expenses are negative)
- transfer: -amount if from_account_id matches, +amount if to_account_id matches

A pot transfer has from == to, so the two legs cancel and the total
balance is unchanged; only the pot allocation moves.
"""

from decimal import Decimal
from typing import Iterable, Optional

from finledger.models.ledger import (
    Account,
    Debt,
    DebtDirection,
    Investment,
    SavingsPot,
    Transaction,
    TransactionKind,
)

ZERO = Decimal("0")


def balance(account: Account, transactions: Iterable[Transaction]) -> Decimal:
    """Initial balance plus every transaction's contribution to this account."""
    total = account.initial_balance
    for t in transactions:
        if t.kind == TransactionKind.TRANSFER:
            if t.from_account_id == account.id:
                total -= t.amount
            if t.to_account_id == account.id:
                total += t.amount
        elif t.account_id == account.id:
            total += t.amount
    return total


def saved_amount(pot: SavingsPot, transactions: Iterable[Transaction]) -> Decimal:
    """
    Money currently held in a pot, derived from pot transfers.

    Only transfers within the pot's own account count. The result is
    clamped at zero even if more was withdrawn than deposited.
    """
    total = ZERO
    for t in transactions:
        if (
            t.kind != TransactionKind.TRANSFER
            or t.from_account_id != pot.account_id
            or t.to_account_id != pot.account_id
        ):
            continue
        if t.to_pot_id == pot.id:
            total += t.amount
        if t.from_pot_id == pot.id:
            total -= t.amount
    return max(ZERO, total)


def pots_for(account: Account, pots: Iterable[SavingsPot]) -> list[SavingsPot]:
    return [p for p in pots if p.account_id == account.id]


def total_saved_in_pots(
    account: Account,
    pots: Iterable[SavingsPot],
    transactions: Iterable[Transaction],
) -> Decimal:
    transactions = list(transactions)
    return sum(
        (saved_amount(p, transactions) for p in pots_for(account, pots)),
        ZERO,
    )


def free_balance(
    account: Account,
    pots: Iterable[SavingsPot],
    transactions: Iterable[Transaction],
) -> Decimal:
    """Account balance minus everything allocated to its pots."""
    transactions = list(transactions)
    return balance(account, transactions) - total_saved_in_pots(account, pots, transactions)


def pot_progress(pot: SavingsPot, transactions: Iterable[Transaction]) -> Optional[Decimal]:
    """Saved fraction of the goal in [0, 1]; None when the pot has no goal."""
    if pot.goal <= 0:
        return None
    return min(Decimal("1"), saved_amount(pot, transactions) / pot.goal)


def goal_crossed(goal: Decimal, before: Decimal, after: Decimal) -> bool:
    """True only on the transition from below the goal to at or above it."""
    return goal > 0 and before < goal <= after


def available_sum(accounts: Iterable[Account], transactions: Iterable[Transaction]) -> Decimal:
    """Sum of balances over accounts flagged as available."""
    transactions = list(transactions)
    return sum(
        (balance(a, transactions) for a in accounts if a.is_available),
        ZERO,
    )


def net_open_debts(debts: Iterable[Debt]) -> Decimal:
    """Owed-to-me minus I-owe, over unsettled debts only."""
    total = ZERO
    for d in debts:
        if d.is_settled:
            continue
        if d.direction == DebtDirection.OWED_TO_ME:
            total += d.amount
        else:
            total -= d.amount
    return total


def total_value(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    investments: Iterable[Investment],
    debts: Iterable[Debt],
) -> Decimal:
    transactions = list(transactions)
    accounts_sum = sum((balance(a, transactions) for a in accounts), ZERO)
    investments_sum = sum((i.value for i in investments), ZERO)
    return accounts_sum + investments_sum + net_open_debts(debts)
