"""
Storage Services Package

Provides the abstract snapshot storage interface and its implementations.
The JSON file backend is the default; the in-memory one serves tests.
"""

from finledger.services.storage.interface import (
    SnapshotDecodeError,
    SnapshotStorageInterface,
    StorageError,
)
from finledger.services.storage.json_file import JsonFileSnapshotStorage
from finledger.services.storage.memory import InMemorySnapshotStorage

__all__ = [
    # Interface
    "SnapshotStorageInterface",
    # Exceptions
    "SnapshotDecodeError",
    "StorageError",
    # Implementations
    "InMemorySnapshotStorage",
    "JsonFileSnapshotStorage",
]
