"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for snapshot persistence.
This allows us to:
1. Swap the JSON file for another backend later
2. Use in-memory storage for testing
3. Keep the ledger decoupled from where its state lives

The interface is intentionally tiny. The ledger only ever needs
"give me the last state" and "here is the new state".
"""

from abc import ABC, abstractmethod
from typing import Optional

from finledger.models.ledger import LedgerSnapshot


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for ledger snapshot storage.

    Any storage implementation (JSON file, database, etc.)
    must implement these methods.
    """

    @abstractmethod
    def load(self) -> Optional[LedgerSnapshot]:
        """
        Load the most recently saved snapshot.

        Returns:
            The snapshot, or None if nothing has been saved yet

        Raises:
            SnapshotDecodeError: If stored content cannot be decoded
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, snapshot: LedgerSnapshot) -> bool:
        """
        Save a snapshot, replacing the previous one.

        Args:
            snapshot: The complete ledger state

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    def __call__(self, snapshot: LedgerSnapshot) -> bool:
        """Storages can be passed directly as the ledger's persist hook."""
        return self.save(snapshot)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class SnapshotDecodeError(StorageError):
    """Stored or imported content matches no known bundle version."""
    pass
