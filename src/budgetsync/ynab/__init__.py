"""Budget service submission ports."""

from budgetsync.ynab.base import SubmissionReceipt, TransactionSubmissionPort
from budgetsync.ynab.memory import InMemorySubmissionPort

__all__ = [
    "InMemorySubmissionPort",
    "SubmissionReceipt",
    "TransactionSubmissionPort",
]
