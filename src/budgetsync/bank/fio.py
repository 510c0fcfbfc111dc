"""Fio bank statement files as a transaction source.

Fio exports account statements as JSON documents shaped like the REST API
response::

    {"accountStatement": {
        "info": {"accountId": "2200000001", "bankId": "2010", ...},
        "transactionList": {"transaction": [
            {"column0": {"value": "2025-03-14+0100", "name": "Datum", "id": 0},
             "column1": {"value": -250.0, "name": "Objem", "id": 1},
             ...}
        ]}
    }}

Every ``columnN`` entry may be ``null`` or absent.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from budgetsync.bank.base import BankTransactionSource, DEFAULT_MAX_DATE_RANGE_DAYS
from budgetsync.domain.entities import AccountId, ImportBatchId
from budgetsync.domain.errors import BankSourceError
from budgetsync.domain.mapper import RawBankRecord, parse_bank_date

logger = logging.getLogger(__name__)

FIO_BANK_ID = "2010"

# Fio column number -> RawBankRecord field
COLUMN_FIELDS = {
    0: "date",
    1: "amount",
    2: "counter_account",
    3: "bank_code",
    4: "constant_symbol",
    5: "variable_symbol",
    6: "specific_symbol",
    7: "user_identification",
    8: "transaction_type",
    10: "counterparty",
    12: "bank_name",
    14: "currency",
    22: "external_id",
    25: "comment",
}


def _column_value(transaction: dict[str, Any], number: int) -> Any:
    column = transaction.get(f"column{number}")
    if not isinstance(column, dict):
        return None
    return column.get("value")


def _normalize_id(value: Any) -> Optional[str]:
    """Fio sends ids as JSON numbers (e.g. 26962199069.0)."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    try:
        number = Decimal(text)
    except ArithmeticError:
        return text
    if number == number.to_integral_value():
        return str(int(number))
    return text


def parse_fio_transaction(transaction: dict[str, Any]) -> RawBankRecord:
    """Build a raw record from one entry of ``transactionList.transaction``."""
    values: dict[str, Any] = {}
    for number, field_name in COLUMN_FIELDS.items():
        value = _column_value(transaction, number)
        if value is None or value == "":
            continue
        if field_name == "amount" and isinstance(value, (int, float)):
            values[field_name] = Decimal(str(value))
        elif field_name == "external_id":
            values[field_name] = _normalize_id(value)
        else:
            values[field_name] = str(value).strip()
    return RawBankRecord(**values)


def parse_fio_statement(document: dict[str, Any]) -> tuple[Optional[AccountId], list[RawBankRecord]]:
    """Parse a statement document into its account id and raw records.

    Raises:
        BankSourceError: If the document does not look like a Fio statement
    """
    try:
        statement = document["accountStatement"]
        info = statement.get("info") or {}
        transaction_list = statement.get("transactionList") or {}
        transactions = transaction_list.get("transaction") or []
    except (KeyError, AttributeError, TypeError) as e:
        raise BankSourceError(f"Not a Fio account statement: {e}")

    if not isinstance(info, dict):
        raise BankSourceError(f"Not a Fio account statement: info is {type(info).__name__}")
    if not isinstance(transactions, list):
        raise BankSourceError(f"Not a Fio account statement: transaction list is {type(transactions).__name__}")
    for index, txn in enumerate(transactions, start=1):
        if not isinstance(txn, dict):
            raise BankSourceError(f"Not a Fio account statement: transaction {index} is {type(txn).__name__}")

    account_id = None
    if info.get("accountId") and info.get("bankId"):
        account_id = AccountId(bank_id=str(info["bankId"]), bank_account_id=str(info["accountId"]))
    return account_id, [parse_fio_transaction(txn) for txn in transactions]


class FioStatementSource(BankTransactionSource):
    """Reads exported Fio JSON statements from a directory."""

    def __init__(self, statements_dir: Path | str, max_date_range_days: Optional[int] = DEFAULT_MAX_DATE_RANGE_DAYS):
        self.statements_dir = Path(statements_dir)
        self.max_date_range_days = max_date_range_days

    def _load(self, path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except OSError as e:
            raise BankSourceError(f"Cannot read statement {path}: {e}")
        except json.JSONDecodeError as e:
            raise BankSourceError(f"Invalid JSON in statement {path}: {e}")
        if not isinstance(document, dict):
            raise BankSourceError(f"Not a Fio account statement: {path}")
        return document

    def fetch_transactions(
        self,
        account_id: AccountId,
        start_date: date,
        end_date: date,
        batch_id: ImportBatchId,
    ) -> list[RawBankRecord]:
        if not self.statements_dir.is_dir():
            raise BankSourceError(f"Statement directory not found: {self.statements_dir}")

        records: list[RawBankRecord] = []
        for path in sorted(self.statements_dir.glob("*.json")):
            statement_account, statement_records = parse_fio_statement(self._load(path))
            if statement_account != account_id:
                continue
            for record in statement_records:
                if record.date:
                    try:
                        if not start_date <= parse_bank_date(record.date) <= end_date:
                            continue
                    except ValueError:
                        # left for the mapper to report
                        pass
                records.append(record)
            logger.debug("Read %d records from %s", len(statement_records), path.name)

        logger.info(
            "Fetched %d records for %s between %s and %s (batch %s)",
            len(records),
            account_id,
            start_date,
            end_date,
            batch_id,
        )
        return records
