"""
Query and Statistics Models

Filters for the transaction list and the result shapes of the
statistics helpers in finledger.queries.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finledger.models.ledger import TransactionKind


class TimeRange(str, Enum):
    """Statistics window, counted in whole months back from the current one."""
    SIX_MONTHS = "6M"
    ONE_YEAR = "12M"
    TWO_YEARS = "24M"
    ALL = "all"

    @property
    def months(self) -> Optional[int]:
        return {
            TimeRange.SIX_MONTHS: 6,
            TimeRange.ONE_YEAR: 12,
            TimeRange.TWO_YEARS: 24,
        }.get(self)


class TransactionFilter(BaseModel):
    """
    Filter options for the transaction list.

    Empty sets and None values mean "no restriction".
    Amount bounds apply to the absolute amount.
    """

    kinds: set[TransactionKind] = Field(default_factory=set)
    account_ids: set[UUID] = Field(default_factory=set)
    date_from: Optional[date] = Field(
        default=None,
        description="Inclusive, from the start of this day"
    )
    date_to: Optional[date] = Field(
        default=None,
        description="Inclusive, up to the end of this day"
    )
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)
    only_with_notes: bool = False
    search_text: str = ""

    @property
    def is_active(self) -> bool:
        return bool(
            self.kinds
            or self.account_ids
            or self.date_from is not None
            or self.date_to is not None
            or self.min_amount is not None
            or self.max_amount is not None
            or self.only_with_notes
            or self.search_text.strip()
        )


class MonthlyPoint(BaseModel):
    """Value of a series for one calendar month."""
    month: date
    value: Decimal


class StatsSummary(BaseModel):
    """Key figures over a monthly window."""
    net: Decimal
    avg_expense: Decimal
    avg_income: Decimal
    savings_rate: Decimal = Field(
        ...,
        description="net / total income; 0 when there is no income"
    )


class TopPlace(BaseModel):
    """Total spent at one transaction name."""
    name: str
    value: Decimal
