"""Statement file parsing.

Turns the raw bytes of an uploaded statement into canonical, not yet
committed, :class:`Transaction` entities. Parsing is all-or-nothing: the first
malformed row aborts the whole file so a corrupt upload can never be partially
imported.
"""

import csv
from uuid import uuid4
from typing import Optional

from importflow.domain.entities import Transaction
from importflow.domain.errors import (
    RowFormatError,
    SchemaError,
    column_count_mismatch,
    invalid_amount,
    invalid_date,
    missing_required_field,
)
from importflow.utils.amount_parser import parse_amount
from importflow.utils.date_parser import parse_date, utc_now

REQUIRED_FIELDS = ("date", "description", "amount")


def decode_content(content: bytes | str) -> str:
    """Decode uploaded bytes as UTF-8, tolerating a byte order mark."""
    if isinstance(content, str):
        return content.lstrip("\ufeff")
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SchemaError(f"File is not valid UTF-8 text: {e.reason}")


def _split_row(line: str, line_number: int, delimiter: str) -> list[str]:
    try:
        row = next(csv.reader([line], delimiter=delimiter), [])
    except csv.Error as e:
        raise RowFormatError(
            f"Invalid CSV format at line {line_number}: {e}", line_number, line
        )
    return [value.strip() for value in row]


def resolve_columns(header: list[str]) -> dict[str, int]:
    """Map each required field to its column index.

    Header names are matched case-insensitively.

    Raises:
        SchemaError: If a required field has no column
    """
    columns = [name.strip().lower() for name in header]
    indexes = {}
    for field in REQUIRED_FIELDS:
        if field not in columns:
            raise SchemaError(missing_required_field(field))
        indexes[field] = columns.index(field)
    return indexes


def parse_transactions(
    content: bytes | str,
    import_batch_id: Optional[str] = None,
    delimiter: str = ",",
) -> list[Transaction]:
    """Parse a delimited statement file into transactions.

    The first non-blank line is the header row; it must name ``date``, ``description``
    and ``amount`` columns. Blank rows are skipped. Line numbers in errors are
    physical, 1-based lines, so in a file without leading blank lines the
    first data row is line 2.

    Args:
        content: Raw file content
        import_batch_id: Batch identifier stamped on every transaction. A new
            one is generated when omitted.
        delimiter: Column delimiter

    Returns:
        Transactions in file order

    Raises:
        SchemaError: If the file has no data rows or lacks a required column
        RowFormatError: If any row is malformed
    """
    # Only trailing whitespace is dropped so line numbers stay physical
    lines = decode_content(content).rstrip().splitlines()
    header_index = next((i for i, line in enumerate(lines) if line.strip()), len(lines))
    if header_index + 1 >= len(lines):
        raise SchemaError("File must contain header and at least one transaction")

    header = _split_row(lines[header_index], header_index + 1, delimiter)
    indexes = resolve_columns(header)

    batch_id = import_batch_id or str(uuid4())
    created_at = utc_now()
    transactions = []

    for line_number, line in enumerate(lines[header_index + 1 :], start=header_index + 2):
        if not line.strip():
            continue

        values = _split_row(line, line_number, delimiter)
        if len(values) != len(header):
            raise RowFormatError(
                column_count_mismatch(line_number, len(header), len(values)),
                line_number,
                line,
            )

        raw_amount = values[indexes["amount"]]
        try:
            amount = parse_amount(raw_amount)
        except ValueError:
            raise RowFormatError(invalid_amount(line_number, raw_amount), line_number, raw_amount)

        raw_date = values[indexes["date"]]
        try:
            txn_date = parse_date(raw_date)
        except ValueError:
            raise RowFormatError(invalid_date(line_number, raw_date), line_number, raw_date)

        transactions.append(
            Transaction(
                id=str(uuid4()),
                date=txn_date,
                description=values[indexes["description"]],
                amount=amount,
                import_batch_id=batch_id,
                created_at=created_at,
            )
        )

    return transactions
