"""
finledger - Personal Finance Ledger Engine

Derives account balances, savings-pot allocations and financial totals
from an append-only transaction log, learns transaction categories by
name, and moves data in and out as bank CSV and versioned JSON backups.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Every mutation is validated before it touches state
3. No silent corrections
4. Every mutation is auditable
5. Storage layer is swappable
"""

from finledger.engine import Ledger
from finledger.errors import LedgerError, NotFoundError, ValidationError
from finledger.orchestrator import create_ledger

__version__ = "1.0.0"
__author__ = "finledger contributors"

__all__ = [
    "Ledger",
    "LedgerError",
    "NotFoundError",
    "ValidationError",
    "create_ledger",
]
