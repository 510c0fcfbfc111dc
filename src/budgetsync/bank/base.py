"""Bank transaction source interface."""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from budgetsync.domain.entities import AccountId, ImportBatchId
from budgetsync.domain.errors import InvalidDateRangeError
from budgetsync.domain.mapper import RawBankRecord

DEFAULT_MAX_DATE_RANGE_DAYS = 90


def validate_date_range(
    start_date: Optional[date],
    end_date: Optional[date],
    max_days: Optional[int] = DEFAULT_MAX_DATE_RANGE_DAYS,
    today: Optional[date] = None,
) -> None:
    """Check a requested import range.

    Raises:
        InvalidDateRangeError: If a date is missing, the range is reversed,
            reaches into the future or spans more than ``max_days`` days
            (both ends inclusive)
    """
    today = today or date.today()
    if start_date is None or end_date is None:
        raise InvalidDateRangeError("Both start and end dates are required")
    if start_date > end_date:
        raise InvalidDateRangeError("Start date cannot be after end date")
    if start_date > today or end_date > today:
        raise InvalidDateRangeError("Dates cannot be in the future")
    if max_days is not None and (end_date - start_date).days + 1 > max_days:
        raise InvalidDateRangeError(f"Date range cannot exceed {max_days} days")


class BankTransactionSource(ABC):
    """Fetches raw transactions for an account from a bank."""

    max_date_range_days: Optional[int] = DEFAULT_MAX_DATE_RANGE_DAYS

    def validate_date_range(self, account_id: AccountId, start_date: date, end_date: date) -> None:
        """Apply the bank's range rules for an account.

        Raises:
            InvalidDateRangeError: If the range is not acceptable
        """
        validate_date_range(start_date, end_date, max_days=self.max_date_range_days)

    @abstractmethod
    def fetch_transactions(
        self,
        account_id: AccountId,
        start_date: date,
        end_date: date,
        batch_id: ImportBatchId,
    ) -> list[RawBankRecord]:
        """Fetch raw records dated within the inclusive range.

        Raises:
            BankSourceError: If the bank cannot be reached or rejects the request
        """
        pass
