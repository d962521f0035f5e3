"""
Statistics

Monthly series and key figures over the transaction log.

DESIGN DECISION: Every figure is computed from the log on demand,
like balances. Months are identified by their first day.

Conventions:
- Expenses are summed as positive values
- Transfers are never income or expense and are ignored here
- A window of N months ends with the current month; "all" runs from the
  oldest transaction to the current month (or a later newest one) and
  covers at least 6 months so the charts never collapse
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from finledger.engine import Ledger
from finledger.engine.calculations import ZERO
from finledger.models.ledger import AccountCategory, Transaction, TransactionKind
from finledger.models.query import MonthlyPoint, StatsSummary, TimeRange, TopPlace

MIN_ALL_MONTHS = 6


def month_start(value: datetime) -> date:
    return date(value.year, value.month, 1)


def add_months(month: date, count: int) -> date:
    index = month.year * 12 + (month.month - 1) + count
    return date(index // 12, index % 12 + 1, 1)


def month_axis(end: date, count: int) -> list[date]:
    """`count` month starts, oldest first, ending with the month of `end`."""
    last = date(end.year, end.month, 1)
    return [add_months(last, -i) for i in range(max(count, 1) - 1, -1, -1)]


def all_months_axis(transactions: Iterable[Transaction], today: date) -> list[date]:
    """
    Axis for TimeRange.ALL: from the oldest transaction's month to the
    later of the current month and the newest transaction's month,
    at least MIN_ALL_MONTHS long.
    """
    months = [month_start(t.date) for t in transactions]
    end = max(months + [date(today.year, today.month, 1)])
    start = min(months + [add_months(end, -MIN_ALL_MONTHS + 1)])
    count = (end.year - start.year) * 12 + (end.month - start.month) + 1
    return month_axis(end, count)


def transactions_in_range(
    transactions: Iterable[Transaction],
    time_range: TimeRange,
    today: Optional[date] = None,
) -> list[Transaction]:
    """Transactions whose month falls inside the window; all of them for TimeRange.ALL."""
    transactions = list(transactions)
    if time_range.months is None:
        return transactions

    today = today or date.today()
    current = date(today.year, today.month, 1)
    first = add_months(current, -time_range.months + 1)
    after = add_months(current, 1)
    return [t for t in transactions if first <= t.date.date() < after]


def monthly_totals(transactions: Iterable[Transaction], kind: TransactionKind) -> dict[date, Decimal]:
    """Sum of one kind per month; expenses are summed positive."""
    totals: dict[date, Decimal] = {}
    if kind == TransactionKind.TRANSFER:
        return totals

    for t in transactions:
        if t.kind != kind:
            continue
        value = -t.amount if kind == TransactionKind.EXPENSE else t.amount
        key = month_start(t.date)
        totals[key] = totals.get(key, ZERO) + value
    return totals


def monthly_series(
    transactions: Iterable[Transaction],
    time_range: TimeRange = TimeRange.ONE_YEAR,
    today: Optional[date] = None,
) -> dict[str, list[MonthlyPoint]]:
    """
    Income, expense and cash-flow series over the window.

    Every month of the axis has a point, with 0 where nothing happened.

    Returns:
        {"income": [...], "expense": [...], "cashflow": [...]}
    """
    transactions = list(transactions)
    today = today or date.today()

    if time_range.months is not None:
        axis = month_axis(today, time_range.months)
    else:
        axis = all_months_axis(transactions, today)

    in_range = transactions_in_range(transactions, time_range, today)
    income = monthly_totals(in_range, TransactionKind.INCOME)
    expense = monthly_totals(in_range, TransactionKind.EXPENSE)

    income_series = [MonthlyPoint(month=m, value=income.get(m, ZERO)) for m in axis]
    expense_series = [MonthlyPoint(month=m, value=expense.get(m, ZERO)) for m in axis]
    cashflow_series = [
        MonthlyPoint(month=i.month, value=i.value - e.value)
        for i, e in zip(income_series, expense_series)
    ]
    return {
        "income": income_series,
        "expense": expense_series,
        "cashflow": cashflow_series,
    }


def kpis(income: list[MonthlyPoint], expense: list[MonthlyPoint]) -> StatsSummary:
    """Net result, monthly averages and savings rate (net / income, 0 without income)."""
    total_income = sum((p.value for p in income), ZERO)
    total_expense = sum((p.value for p in expense), ZERO)
    net = total_income - total_expense

    return StatsSummary(
        net=net,
        avg_expense=total_expense / len(expense) if expense else ZERO,
        avg_income=total_income / len(income) if income else ZERO,
        savings_rate=net / total_income if total_income > 0 else ZERO,
    )


def top_expense_places(transactions: Iterable[Transaction], limit: int = 6) -> list[TopPlace]:
    """Expense totals per transaction name, largest first."""
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.kind == TransactionKind.EXPENSE:
            totals[t.name] = totals.get(t.name, ZERO) - t.amount

    places = [TopPlace(name=name, value=value) for name, value in totals.items()]
    places.sort(key=lambda p: p.value, reverse=True)
    return places[:limit]


def expense_by_account_category(
    ledger: Ledger,
    transactions: Iterable[Transaction],
) -> list[tuple[AccountCategory, Decimal]]:
    """
    Expenses summed per category of the booking account.

    Categories appear in enum order; those with nothing spent are left out,
    as are expenses on accounts that no longer exist.
    """
    category_of = {a.id: a.category for a in ledger.accounts}
    totals: dict[AccountCategory, Decimal] = {}
    for t in transactions:
        if t.kind != TransactionKind.EXPENSE or t.account_id not in category_of:
            continue
        category = category_of[t.account_id]
        totals[category] = totals.get(category, ZERO) - t.amount

    return [(c, totals[c]) for c in AccountCategory if totals.get(c, ZERO) > 0]
