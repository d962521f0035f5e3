"""
Transaction List Queries

Filtering and grouping for the transaction list. All functions read
the ledger and return new lists; nothing is mutated.

Search is case-insensitive and matches, in order:
1. The transaction name and note
2. The names of the accounts involved (both legs for transfers)
3. The category name
"""

from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from finledger.engine import Ledger
from finledger.models.ledger import Transaction, TransactionKind
from finledger.models.query import TransactionFilter


def _matches_accounts(t: Transaction, account_ids: set) -> bool:
    if t.kind == TransactionKind.TRANSFER:
        return t.from_account_id in account_ids or t.to_account_id in account_ids
    return t.account_id in account_ids


def _matches_search(t: Transaction, query: str, account_names: dict, ledger: Ledger) -> bool:
    if query in f"{t.name} {t.note or ''}".casefold():
        return True

    if t.kind == TransactionKind.TRANSFER:
        involved = (t.from_account_id, t.to_account_id)
    else:
        involved = (t.account_id,)
    if any(query in account_names.get(account_id, "") for account_id in involved):
        return True

    category = ledger.category_by_id(t.category_id)
    return category is not None and query in category.name.casefold()


def filter_transactions(
    ledger: Ledger,
    criteria: Optional[TransactionFilter] = None,
) -> list[Transaction]:
    """
    Apply a TransactionFilter to the ledger's transactions.

    Order is preserved (newest first). Date bounds cover whole days.
    """
    criteria = criteria or TransactionFilter()
    txs = ledger.transactions

    if criteria.kinds:
        txs = [t for t in txs if t.kind in criteria.kinds]
    if criteria.account_ids:
        txs = [t for t in txs if _matches_accounts(t, criteria.account_ids)]
    if criteria.date_from is not None:
        start = datetime.combine(criteria.date_from, time.min)
        txs = [t for t in txs if t.date >= start]
    if criteria.date_to is not None:
        end = datetime.combine(criteria.date_to + timedelta(days=1), time.min)
        txs = [t for t in txs if t.date < end]
    if criteria.min_amount is not None:
        txs = [t for t in txs if abs(t.amount) >= criteria.min_amount]
    if criteria.max_amount is not None:
        txs = [t for t in txs if abs(t.amount) <= criteria.max_amount]
    if criteria.only_with_notes:
        txs = [t for t in txs if (t.note or "").strip()]

    query = criteria.search_text.strip().casefold()
    if query:
        account_names = {a.id: a.name.casefold() for a in ledger.accounts}
        txs = [t for t in txs if _matches_search(t, query, account_names, ledger)]

    return txs


def group_by_day(transactions: Iterable[Transaction]) -> "OrderedDict[date, list[Transaction]]":
    """Group by calendar day, newest day first; order within a day is kept."""
    groups: dict[date, list[Transaction]] = {}
    for t in transactions:
        groups.setdefault(t.date.date(), []).append(t)
    return OrderedDict(sorted(groups.items(), key=lambda item: item[0], reverse=True))
