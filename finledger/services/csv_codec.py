"""
CSV Import / Export

Bank exports are read in a three-column European layout:

    name, date (dd.mm.yy), signed amount

e.g. ``"Bäcker Müller",15.09.25,-8.40`` or ``Rent,01.10.25,"-1.250,00"``.

Public entry points:

  parse_csv_text(text)            - rows that parse, plus the skip count
  read_csv_bytes(content)         - same, decoding UTF-8 with Latin-1 fallback
  import_csv(ledger, content, account) - parse, map to transactions, batch insert
  export_transactions_csv(ledger) - write the same layout back out

DESIGN DECISION: Rows that cannot be parsed are skipped, never fatal.
A bank export with one malformed line should still import the rest.
Each skip is logged at debug level with the reason.
"""

import csv
import io
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from finledger.config import CsvSettings
from finledger.engine import Ledger
from finledger.models.audit import AuditEventBuilder
from finledger.models.ledger import Account, Transaction, TransactionKind

logger = structlog.get_logger(__name__)

# 1.234 or 1.234.567 - dots used as thousands separators without a decimal comma
_THOUSANDS_ONLY = re.compile(r"^[+-]?\d{1,3}(\.\d{3})+$")


class CsvRow(BaseModel):
    """One parsed line of a bank export."""
    name: str
    date: datetime
    amount: Decimal


class CsvImportResult(BaseModel):
    imported: int
    skipped: int


# =============================================================================
# FIELD PARSING
# =============================================================================

def parse_amount(raw: str) -> Optional[Decimal]:
    """
    Parse a European-formatted amount.

    - "€" and whitespace are stripped
    - with a comma: dots are thousands separators, the comma is the decimal point
    - without a comma: "1.234" style groups are thousands, otherwise
      the dot is the decimal point ("-8.40" is -8.40)

    Returns None if the value is not a number.
    """
    value = "".join(raw.replace("€", "").split())
    if not value:
        return None

    if "," in value:
        value = value.replace(".", "").replace(",", ".")
    elif _THOUSANDS_ONLY.match(value):
        value = value.replace(".", "")

    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_date(raw: str, date_format: str = "%d.%m.%y") -> Optional[datetime]:
    try:
        return datetime.strptime(raw.strip(), date_format)
    except ValueError:
        return None


def format_amount(amount: Decimal) -> str:
    """Two decimals with a decimal comma: Decimal("-1250") -> "-1250,00"."""
    return f"{amount.quantize(Decimal('0.01'))}".replace(".", ",")


def decode_csv_bytes(content: bytes) -> str:
    """UTF-8 first (BOM tolerated), then Latin-1, which accepts any byte."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


# =============================================================================
# IMPORT
# =============================================================================

def parse_csv_text(
    text: str,
    settings: Optional[CsvSettings] = None,
) -> tuple[list[CsvRow], int]:
    """
    Parse CSV text into rows.

    Name is the first field, date the second, amount the last. Blank
    lines are ignored; rows with fewer than three fields, a bad date or
    a bad amount are skipped.

    Returns:
        (rows, skipped_count)
    """
    settings = settings or CsvSettings()
    rows: list[CsvRow] = []
    skipped = 0

    reader = csv.reader(io.StringIO(text), delimiter=settings.delimiter, quotechar='"')
    for line_no, fields in enumerate(reader, start=1):
        if not fields or all(not f.strip() for f in fields):
            continue

        if len(fields) < 3:
            logger.debug("csv_row_skipped", line=line_no, reason="too_few_fields")
            skipped += 1
            continue

        when = parse_date(fields[1], settings.date_format)
        if when is None:
            logger.debug("csv_row_skipped", line=line_no, reason="bad_date", value=fields[1])
            skipped += 1
            continue

        amount = parse_amount(fields[-1])
        if amount is None:
            logger.debug("csv_row_skipped", line=line_no, reason="bad_amount", value=fields[-1])
            skipped += 1
            continue

        rows.append(CsvRow(name=fields[0].strip(), date=when, amount=amount))

    return rows, skipped


def read_csv_bytes(
    content: bytes,
    settings: Optional[CsvSettings] = None,
) -> tuple[list[CsvRow], int]:
    return parse_csv_text(decode_csv_bytes(content), settings)


def rows_to_transactions(rows: list[CsvRow], account_id: UUID) -> list[Transaction]:
    """Negative amounts become expenses, everything else income."""
    return [
        Transaction(
            date=row.date,
            name=row.name,
            amount=row.amount,
            kind=TransactionKind.EXPENSE if row.amount < 0 else TransactionKind.INCOME,
            account_id=account_id,
        )
        for row in rows
    ]


def import_csv(
    ledger: Ledger,
    content: Union[bytes, str],
    account: Account,
    settings: Optional[CsvSettings] = None,
) -> CsvImportResult:
    """
    Import a bank export into one account.

    Rows the ledger would reject (zero amount, empty name) are skipped
    like unparseable ones. Categories are suggested from the category
    memory but imported rows do not teach it.
    """
    if isinstance(content, bytes):
        rows, skipped = read_csv_bytes(content, settings)
    else:
        rows, skipped = parse_csv_text(content, settings)

    accepted = []
    for tx in rows_to_transactions(rows, account.id):
        result = ledger.validator.validate_transaction(
            tx, ledger.accounts, ledger.categories, ledger.pots
        )
        if result.has_errors:
            logger.debug("csv_row_skipped", reason="invalid", name=tx.name, issues=result.error_count)
            skipped += 1
            continue
        accepted.append(tx)

    imported = ledger.import_transactions(accepted)
    ledger.audit_logger.log(AuditEventBuilder.csv_imported(account.id, imported, skipped))
    return CsvImportResult(imported=imported, skipped=skipped)


# =============================================================================
# EXPORT
# =============================================================================

def export_transactions_csv(
    ledger: Ledger,
    account: Optional[Account] = None,
    settings: Optional[CsvSettings] = None,
) -> str:
    """
    Write transactions in the import layout, newest first.

    A transfer becomes two rows: the negative leg for the source account
    and the positive leg for the destination. With an account filter,
    only the legs touching that account are written.
    """
    settings = settings or CsvSettings()
    out = io.StringIO()
    writer = csv.writer(
        out,
        delimiter=settings.delimiter,
        quotechar='"',
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    account_id = account.id if account is not None else None

    for t in ledger.transactions:
        when = t.date.strftime(settings.date_format)
        if t.kind == TransactionKind.TRANSFER:
            legs = [(t.from_account_id, -t.amount), (t.to_account_id, t.amount)]
        else:
            legs = [(t.account_id, t.amount)]

        for leg_account_id, amount in legs:
            if account_id is not None and leg_account_id != account_id:
                continue
            writer.writerow([t.name, when, format_amount(amount)])

    return out.getvalue()
