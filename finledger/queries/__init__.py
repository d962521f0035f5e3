"""Query package: transaction list filtering and statistics."""

from finledger.queries.filters import filter_transactions, group_by_day
from finledger.queries.stats import (
    expense_by_account_category,
    kpis,
    month_axis,
    monthly_series,
    monthly_totals,
    top_expense_places,
    transactions_in_range,
)

__all__ = [
    "filter_transactions",
    "group_by_day",
    "expense_by_account_category",
    "kpis",
    "month_axis",
    "monthly_series",
    "monthly_totals",
    "top_expense_places",
    "transactions_in_range",
]
