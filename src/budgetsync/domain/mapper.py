"""Mapping of raw bank records to domain transactions.

The mapping is pure: it never touches a store or the clock unless the caller
omits ``now``, in which case timestamps are derived from the bank date so the
same record always yields the same transaction.
"""

from dataclasses import dataclass
from datetime import datetime, date, time, UTC
from decimal import Decimal, InvalidOperation
from typing import Optional, Iterable

from budgetsync.domain.entities import (
    AccountId,
    ImportBatchId,
    Money,
    Transaction,
    TransactionId,
    TransactionStatus,
)
from budgetsync.domain.errors import ValidationError

UNKNOWN_DESCRIPTION = "Unknown transaction"

# Checked in this order; the first missing one is reported.
REQUIRED_FIELDS = ("date", "amount", "currency", "external_id")


@dataclass(frozen=True)
class RawBankRecord:
    """One transaction as delivered by the bank, every field optional."""

    date: Optional[str] = None
    amount: Optional[Decimal | str] = None
    currency: Optional[str] = None
    counter_account: Optional[str] = None
    bank_code: Optional[str] = None
    bank_name: Optional[str] = None
    constant_symbol: Optional[str] = None
    variable_symbol: Optional[str] = None
    specific_symbol: Optional[str] = None
    user_identification: Optional[str] = None
    transaction_type: Optional[str] = None
    counterparty: Optional[str] = None
    comment: Optional[str] = None
    external_id: Optional[str] = None


def parse_bank_date(value: str) -> date:
    """Parse a bank date such as ``2025-03-14+0100``; the zone is ignored."""
    date_part = value.strip().split("+", 1)[0]
    if len(date_part) > 10:
        date_part = date_part[:10]
    try:
        return date.fromisoformat(date_part)
    except ValueError as e:
        raise ValidationError(f"Failed to parse date '{value}': {e}")


def combine_references(
    constant_symbol: Optional[str],
    variable_symbol: Optional[str],
    specific_symbol: Optional[str],
) -> Optional[str]:
    """Join payment symbols as ``KS:.., VS:.., SS:..`` skipping absent ones."""
    parts = [
        f"{prefix}:{value}"
        for prefix, value in (
            ("KS", constant_symbol),
            ("VS", variable_symbol),
            ("SS", specific_symbol),
        )
        if value
    ]
    return ", ".join(parts) if parts else None


def create_description(transaction_type: Optional[str], comment: Optional[str]) -> str:
    if transaction_type and comment:
        return f"{transaction_type} - {comment}"
    return transaction_type or comment or UNKNOWN_DESCRIPTION


def extract_counter_account(
    account_number: Optional[str], bank_code: Optional[str]
) -> Optional[str]:
    if account_number and bank_code:
        return f"{account_number}/{bank_code}"
    return account_number or bank_code or None


def _first_missing_field(record: RawBankRecord) -> Optional[str]:
    for name in REQUIRED_FIELDS:
        value = getattr(record, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return name
    return None


def map_raw_record(
    record: RawBankRecord,
    account_id: AccountId,
    import_batch_id: ImportBatchId,
    now: Optional[datetime] = None,
) -> tuple[Optional[Transaction], Optional[str]]:
    """Convert a raw bank record into a domain transaction.

    Args:
        record: Raw record from the bank source
        account_id: Account the record belongs to
        import_batch_id: Batch of the import run producing the transaction
        now: Timestamp for created_at/updated_at. Defaults to midnight UTC of
            the transaction date.

    Returns:
        ``(transaction, None)`` on success, ``(None, error_message)`` when a
        required field is missing or malformed
    """
    missing = _first_missing_field(record)
    if missing is not None:
        return None, f"missing field {missing}"

    try:
        txn_date = parse_bank_date(record.date)
    except ValidationError as e:
        return None, str(e)

    try:
        amount = Decimal(str(record.amount).strip())
    except InvalidOperation:
        return None, f"Invalid amount format: {record.amount}"
    if not amount.is_finite():
        return None, f"Invalid amount format: {record.amount}"

    try:
        money = Money(amount, record.currency)
        transaction_id = TransactionId(account_id, record.external_id.strip())
    except ValidationError as e:
        return None, str(e)

    timestamp = now or datetime.combine(txn_date, time.min, tzinfo=UTC)
    return (
        Transaction(
            id=transaction_id,
            date=txn_date,
            amount=money,
            description=create_description(record.transaction_type, record.comment),
            import_batch_id=import_batch_id,
            created_at=timestamp,
            updated_at=timestamp,
            counterparty=record.counterparty or None,
            counter_account=extract_counter_account(record.counter_account, record.bank_code),
            reference=combine_references(
                record.constant_symbol, record.variable_symbol, record.specific_symbol
            ),
            transaction_type=record.transaction_type or None,
            comment=record.comment or None,
            message=record.user_identification or None,
            status=TransactionStatus.IMPORTED,
        ),
        None,
    )


def map_raw_records(
    records: Iterable[RawBankRecord],
    account_id: AccountId,
    import_batch_id: ImportBatchId,
    now: Optional[datetime] = None,
) -> tuple[list[Transaction], list[str]]:
    """Map a sequence of records, collecting per-record errors in input order."""
    transactions = []
    errors = []
    for index, record in enumerate(records, start=1):
        transaction, error = map_raw_record(record, account_id, import_batch_id, now=now)
        if error is not None:
            errors.append(f"record {index} ({record.external_id or 'no id'}): {error}")
            continue
        transactions.append(transaction)
    return transactions, errors
