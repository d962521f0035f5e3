"""Ledger engine: derived-value calculations, category memory and the Ledger aggregate."""

from finledger.engine import calculations
from finledger.engine.category_memory import CategoryMemory, normalize_name
from finledger.engine.ledger import GoalListener, Ledger, PersistHook

__all__ = [
    "calculations",
    "CategoryMemory",
    "normalize_name",
    "Ledger",
    "GoalListener",
    "PersistHook",
]
