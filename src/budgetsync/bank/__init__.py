"""Bank transaction sources."""

from budgetsync.bank.base import BankTransactionSource, validate_date_range
from budgetsync.bank.fio import FioStatementSource
from budgetsync.bank.memory import InMemoryBankSource

__all__ = [
    "BankTransactionSource",
    "FioStatementSource",
    "InMemoryBankSource",
    "validate_date_range",
]
