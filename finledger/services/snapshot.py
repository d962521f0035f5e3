"""
Versioned JSON Backup Bundle

The full state of a ledger is exported as one JSON document:
sorted keys, two-space indent, ISO-8601 dates, camelCase keys.

Three bundle versions exist, each a superset of the previous one:

  v1: version, createdAt, accounts, transactions, investments, debts, settings
  v2: v1 + categories, categoryMemory
  v3: v2 + pots

DESIGN DECISION: Decoding is an explicit fallback chain.
We try the newest schema first and fall back to older ones:

    try v3 -> try v2 -> try v1 -> SnapshotDecodeError

Each schema declares the fields its version added as required, so a
document is read with the newest schema it completely satisfies.
Fields a version does not have are filled with defaults:
empty categories become the seed set, missing memory is {}, missing pots [].
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from finledger.engine import Ledger
from finledger.models.audit import AuditEventBuilder
from finledger.models.ledger import (
    Account,
    AppSettings,
    Category,
    Debt,
    Investment,
    LedgerSnapshot,
    SavingsPot,
    Timestamp,
    Transaction,
    default_seed_categories,
)
from finledger.services.storage.interface import SnapshotDecodeError

logger = structlog.get_logger(__name__)

CURRENT_VERSION = 3


# =============================================================================
# BUNDLE SCHEMAS
# =============================================================================

class BundleV1(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: int = 1
    created_at: Optional[Timestamp] = Field(default=None, alias="createdAt")
    accounts: list[Account]
    transactions: list[Transaction]
    investments: list[Investment] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    settings: AppSettings = Field(default_factory=AppSettings)


class BundleV2(BundleV1):
    """Adds categories and the category memory."""
    categories: list[Category]
    category_memory: dict[str, UUID] = Field(..., alias="categoryMemory")


class BundleV3(BundleV2):
    """Adds savings pots. This is the version written on export."""
    pots: list[SavingsPot]


class DecodedBundle(BaseModel):
    """Result of decoding a bundle: the state and the schema that matched."""
    snapshot: LedgerSnapshot
    version: int
    created_at: Optional[datetime] = None


# Newest first
_DECODE_CHAIN: list[tuple[int, type[BundleV1]]] = [
    (3, BundleV3),
    (2, BundleV2),
    (1, BundleV1),
]


# =============================================================================
# ENCODE / DECODE
# =============================================================================

def encode_bundle(snapshot: LedgerSnapshot, created_at: Optional[datetime] = None) -> str:
    """Serialize a snapshot as a version 3 bundle."""
    bundle = BundleV3(
        version=CURRENT_VERSION,
        created_at=created_at or datetime.now(),
        accounts=snapshot.accounts,
        transactions=snapshot.transactions,
        investments=snapshot.investments,
        debts=snapshot.debts,
        settings=snapshot.settings,
        categories=snapshot.categories,
        category_memory=snapshot.category_memory,
        pots=snapshot.pots,
    )
    data = bundle.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)


def _to_snapshot(bundle: BundleV1) -> LedgerSnapshot:
    categories = getattr(bundle, "categories", None) or default_seed_categories()
    memory = getattr(bundle, "category_memory", None) or {}
    pots = getattr(bundle, "pots", None) or []

    return LedgerSnapshot(
        accounts=bundle.accounts,
        transactions=sorted(bundle.transactions, key=lambda t: t.date, reverse=True),
        investments=bundle.investments,
        debts=bundle.debts,
        categories=categories,
        category_memory=memory,
        pots=pots,
        settings=bundle.settings,
    )


def decode_bundle(content: Union[str, bytes]) -> DecodedBundle:
    """
    Parse a bundle of any known version.

    Raises:
        SnapshotDecodeError: If the content is not JSON or matches no version.
    """
    try:
        # Decimal keeps amounts like 0.1 exact
        data = json.loads(content, parse_float=Decimal)
    except (ValueError, UnicodeDecodeError) as e:
        raise SnapshotDecodeError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise SnapshotDecodeError("Backup must be a JSON object")

    failures = []
    for version, schema in _DECODE_CHAIN:
        try:
            bundle = schema.model_validate(data)
        except PydanticValidationError as e:
            failures.append(f"v{version}: {e.error_count()} errors")
            continue

        logger.debug("bundle_decoded", schema_version=version, declared_version=bundle.version)
        return DecodedBundle(
            snapshot=_to_snapshot(bundle),
            version=version,
            created_at=bundle.created_at,
        )

    raise SnapshotDecodeError(f"Backup matches no known version ({'; '.join(failures)})")


# =============================================================================
# LEDGER HELPERS
# =============================================================================

def export_ledger(ledger: Ledger, created_at: Optional[datetime] = None) -> str:
    return encode_bundle(ledger.snapshot(), created_at)


def import_ledger(ledger: Ledger, content: Union[str, bytes]) -> DecodedBundle:
    """
    Replace the ledger's whole state with a decoded bundle.

    The ledger is untouched if decoding fails.
    """
    decoded = decode_bundle(content)
    ledger.replace_state(decoded.snapshot)
    ledger.audit_logger.log(AuditEventBuilder.snapshot_imported(decoded.version))
    return decoded
