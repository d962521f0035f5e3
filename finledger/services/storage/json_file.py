"""
JSON File Storage

Persists ledger snapshots as a version 3 backup bundle on disk.

DESIGN DECISIONS:
1. Atomic writes: the bundle goes to a temp file in the same directory
   and is moved over the target with os.replace, so a crash mid-write
   never leaves a half-written state file
2. Transient OS errors (locked file, full buffer) are retried with
   exponential backoff via tenacity
3. A missing file is not an error; it means "fresh ledger"
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finledger.models.ledger import LedgerSnapshot
from finledger.services import snapshot as bundle_codec
from finledger.services.storage.interface import (
    SnapshotStorageInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)


class JsonFileSnapshotStorage(SnapshotStorageInterface):
    """
    Snapshot storage backed by a single JSON file.

    Usage:
        storage = JsonFileSnapshotStorage("finance_state.json")
        ledger = Ledger(storage.load(), persist=storage)
    """

    def __init__(self, path: Union[str, Path], write_attempts: int = 3):
        """
        Initialize file storage.

        Args:
            path: Location of the state file; parent directories are created on save
            write_attempts: How often a failing write is attempted before giving up
        """
        self.path = Path(path)
        self.write_attempts = write_attempts

    def load(self) -> Optional[LedgerSnapshot]:
        if not self.path.exists():
            logger.info("state_file_missing", path=str(self.path))
            return None

        try:
            content = self.path.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e

        decoded = bundle_codec.decode_bundle(content)
        logger.info(
            "state_loaded",
            path=str(self.path),
            version=decoded.version,
            transactions=len(decoded.snapshot.transactions),
        )
        return decoded.snapshot

    def save(self, snapshot: LedgerSnapshot) -> bool:
        content = bundle_codec.encode_bundle(snapshot, created_at=datetime.now())

        writer = self._write_atomic.retry_with(stop=stop_after_attempt(self.write_attempts))
        try:
            writer(self, content)
        except OSError as e:
            raise StorageError(
                f"Could not write {self.path} after {self.write_attempts} attempts: {e}"
            ) from e

        logger.debug("state_saved", path=str(self.path), bytes=len(content))
        return True

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        reraise=True,
    )
    def _write_atomic(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
