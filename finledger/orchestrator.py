"""
Ledger Wiring

This module ties together the components a running application needs:
settings, logging, the audit logger, snapshot storage and the Ledger.

DESIGN DECISION: The ledger core knows nothing about files or settings.
It receives a persist hook and an initial snapshot. This factory is the
one place that decides where those come from, so tests and embedders
can build a Ledger directly without touching the environment.

Storage failures at startup never prevent the ledger from starting:
- a missing state file starts a fresh ledger that saves normally
- an unreadable state file starts a fresh ledger WITHOUT autosave,
  so the unreadable file is left alone for the user to recover
"""

from typing import Optional

import structlog

from finledger.audit import AuditLogger, configure_logging
from finledger.config import Settings, get_settings
from finledger.engine import Ledger
from finledger.services.storage import (
    JsonFileSnapshotStorage,
    SnapshotStorageInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)


def create_ledger(
    storage: Optional[SnapshotStorageInterface] = None,
    use_storage: bool = True,
    settings: Optional[Settings] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> tuple[Ledger, Optional[SnapshotStorageInterface]]:
    """
    Factory function to create a ready-to-use ledger.

    Args:
        storage: Storage to load from and save to. Defaults to the JSON
                 state file from the settings.
        use_storage: Whether to use storage at all.
                     Set to False for a purely in-memory ledger.
        settings: Settings to use instead of get_settings().
        audit_logger: Audit logger to use instead of a new one.

    Returns:
        (ledger, storage) - storage is None when the ledger does not persist
    """
    settings = settings or get_settings()
    configure_logging(settings.logging.level, settings.logging.json_output)
    audit_logger = audit_logger or AuditLogger()

    snapshot = None
    if use_storage:
        storage = storage or JsonFileSnapshotStorage(
            settings.storage.state_file,
            write_attempts=settings.storage.write_attempts,
        )
        try:
            snapshot = storage.load()
        except StorageError as e:
            logger.error("state_load_failed", error=str(e))
            storage = None
    else:
        storage = None

    persist = storage if storage is not None and settings.storage.autosave else None
    ledger = Ledger(
        snapshot,
        persist=persist,
        audit_logger=audit_logger,
        enforce_pot_bounds=settings.ledger.enforce_pot_bounds,
    )
    logger.info(
        "ledger_ready",
        accounts=len(ledger.accounts),
        transactions=len(ledger.transactions),
        autosave=persist is not None,
    )
    return ledger, storage
