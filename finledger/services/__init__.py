"""Services package."""

from finledger.services.storage import (
    InMemorySnapshotStorage,
    JsonFileSnapshotStorage,
    SnapshotDecodeError,
    SnapshotStorageInterface,
    StorageError,
)
from finledger.services.snapshot import (
    DecodedBundle,
    decode_bundle,
    encode_bundle,
    export_ledger,
    import_ledger,
)
from finledger.services.csv_codec import (
    CsvImportResult,
    CsvRow,
    export_transactions_csv,
    import_csv,
    parse_amount,
    parse_csv_text,
    read_csv_bytes,
)

__all__ = [
    # Storage services
    "InMemorySnapshotStorage",
    "JsonFileSnapshotStorage",
    "SnapshotDecodeError",
    "SnapshotStorageInterface",
    "StorageError",
    # Backup bundle
    "DecodedBundle",
    "decode_bundle",
    "encode_bundle",
    "export_ledger",
    "import_ledger",
    # CSV
    "CsvImportResult",
    "CsvRow",
    "export_transactions_csv",
    "import_csv",
    "parse_amount",
    "parse_csv_text",
    "read_csv_bytes",
]
