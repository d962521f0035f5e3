"""In-memory snapshot storage for tests and embedding."""

from typing import Optional

from finledger.models.ledger import LedgerSnapshot
from finledger.services.storage.interface import SnapshotStorageInterface


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """Keeps deep copies of saved snapshots; `saves` counts save calls."""

    def __init__(self, initial: Optional[LedgerSnapshot] = None):
        self._snapshot = initial.model_copy(deep=True) if initial is not None else None
        self.saves = 0

    def load(self) -> Optional[LedgerSnapshot]:
        if self._snapshot is None:
            return None
        return self._snapshot.model_copy(deep=True)

    def save(self, snapshot: LedgerSnapshot) -> bool:
        self._snapshot = snapshot.model_copy(deep=True)
        self.saves += 1
        return True
