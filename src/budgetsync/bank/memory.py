"""Programmable in-memory bank source."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from budgetsync.bank.base import BankTransactionSource, DEFAULT_MAX_DATE_RANGE_DAYS
from budgetsync.domain.entities import AccountId, ImportBatchId
from budgetsync.domain.errors import BankSourceError
from budgetsync.domain.mapper import RawBankRecord, parse_bank_date


@dataclass(frozen=True)
class FetchCall:
    """Recorded invocation of ``fetch_transactions``."""

    account_id: AccountId
    start_date: date
    end_date: date
    batch_id: ImportBatchId


class InMemoryBankSource(BankTransactionSource):
    """Serves configured records per account and can be told to fail."""

    def __init__(
        self,
        records: Optional[dict[AccountId, list[RawBankRecord]]] = None,
        max_date_range_days: Optional[int] = DEFAULT_MAX_DATE_RANGE_DAYS,
    ):
        self.records: dict[AccountId, list[RawBankRecord]] = dict(records or {})
        self.max_date_range_days = max_date_range_days
        self.failure: Optional[BankSourceError] = None
        self.calls: list[FetchCall] = []

    def set_records(self, account_id: AccountId, records: list[RawBankRecord]) -> None:
        self.records[account_id] = list(records)

    def fail_with(self, message: str) -> None:
        self.failure = BankSourceError(message)

    def clear_failure(self) -> None:
        self.failure = None

    def fetch_transactions(
        self,
        account_id: AccountId,
        start_date: date,
        end_date: date,
        batch_id: ImportBatchId,
    ) -> list[RawBankRecord]:
        self.calls.append(FetchCall(account_id, start_date, end_date, batch_id))
        if self.failure is not None:
            raise self.failure
        return [
            record
            for record in self.records.get(account_id, [])
            if _in_range(record, start_date, end_date)
        ]


def _in_range(record: RawBankRecord, start_date: date, end_date: date) -> bool:
    # Undated records are passed through so the mapper can report them
    if not record.date:
        return True
    try:
        return start_date <= parse_bank_date(record.date) <= end_date
    except ValueError:
        return True
