import csv
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, Optional, TextIO, Union

from models import LEDGER_CONTEXT, SCALE, AccountSnapshot, Transaction, TransactionType, to_amount

OUTPUT_HEADER = ["client", "available", "held", "total", "locked"]

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

AMOUNT_TYPES = {TransactionType.DEPOSIT, TransactionType.WITHDRAWAL}

DIGITS = re.compile(r"[0-9]+")


@dataclass
class MalformedRow:
    """A CSV row that could not be decoded into a Transaction."""

    line_number: int
    row: Dict[str, str]
    error: str


def _parse_id(value: str, name: str, maximum: int) -> int:
    if not DIGITS.fullmatch(value):
        raise ValueError(f"{name} {value!r} is not a non-negative integer")
    parsed = int(value)
    if parsed > maximum:
        raise ValueError(f"{name} {parsed} out of range 0..{maximum}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    try:
        return to_amount(Decimal(value))
    except InvalidOperation:
        raise ValueError(f"invalid amount {value!r}") from None


def parse_row(row: Dict[Optional[str], Optional[str]]) -> Transaction:
    """
    Parse CSV row into Transaction.
    Raises KeyError or ValueError if the row does not have the expected shape.
    """
    normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

    transaction_type = TransactionType(normalized["type"].lower())
    client_id = _parse_id(normalized["client"], "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(normalized["tx"], "tx", MAX_TRANSACTION_ID)

    # dispute, resolve and chargeback rows reference the stored deposit amount
    amount = None
    if transaction_type in AMOUNT_TYPES:
        amount_str = normalized.get("amount", "")
        if not amount_str:
            raise ValueError(f"{transaction_type.value} requires an amount")
        amount = _parse_amount(amount_str)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def read_transactions(stream: TextIO) -> Iterator[Union[Transaction, MalformedRow]]:
    """
    Lazily decode CSV rows in input order.
    Rows that fail to decode are yielded as MalformedRow instead of raising.
    """
    reader = csv.DictReader(stream)
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            # the reader has consumed the offending line, so decoding resumes at the next one
            yield MalformedRow(line_number=reader.line_num, row={}, error=str(e))
            continue

        try:
            yield parse_row(row)
        except (KeyError, ValueError) as e:
            yield MalformedRow(line_number=reader.line_num, row=row, error=str(e))


def format_amount(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places."""
    return f"{value.quantize(SCALE, context=LEDGER_CONTEXT):f}"


def write_accounts(snapshots: Iterable[AccountSnapshot], stream: TextIO) -> int:
    """Write account snapshots as CSV. Returns the number of rows written."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    count = 0
    for snapshot in snapshots:
        writer.writerow([
            snapshot.client_id,
            format_amount(snapshot.available),
            format_amount(snapshot.held),
            format_amount(snapshot.total),
            str(snapshot.locked).lower(),
        ])
        count += 1
    return count
