"""Programmable in-memory budget service."""

from dataclasses import dataclass
from typing import Optional

from budgetsync.domain.entities import Transaction, TransactionId, TransactionProcessingState
from budgetsync.domain.errors import SubmissionError
from budgetsync.ynab.base import SubmissionReceipt, TransactionSubmissionPort


@dataclass(frozen=True)
class SubmitCall:
    """Recorded invocation of ``submit_transaction``."""

    transaction_id: TransactionId
    payee_name: Optional[str]
    category: Optional[str]
    memo: Optional[str]


class InMemorySubmissionPort(TransactionSubmissionPort):
    """Accepts submissions into a dict and can be told to fail."""

    def __init__(self, ynab_account_id: str = "ynab-account"):
        self.ynab_account_id = ynab_account_id
        self.submitted: dict[TransactionId, SubmissionReceipt] = {}
        self.rejected: dict[TransactionId, str] = {}
        self.failure: Optional[SubmissionError] = None
        self.calls: list[SubmitCall] = []

    def fail_with(self, message: str) -> None:
        """Fail every submission and connection check."""
        self.failure = SubmissionError(message)

    def reject(self, transaction_id: TransactionId, reason: str) -> None:
        self.rejected[transaction_id] = reason

    def clear_failure(self) -> None:
        self.failure = None
        self.rejected.clear()

    def submit_transaction(
        self, transaction: Transaction, state: TransactionProcessingState
    ) -> SubmissionReceipt:
        self.calls.append(
            SubmitCall(transaction.id, state.effective_payee_name, state.effective_category, state.effective_memo)
        )
        if self.failure is not None:
            raise self.failure
        if transaction.id in self.rejected:
            raise SubmissionError(self.rejected[transaction.id])

        receipt = self.submitted.get(transaction.id)
        if receipt is None:
            receipt = SubmissionReceipt(
                ynab_transaction_id=f"ynab-{len(self.submitted) + 1}",
                ynab_account_id=self.ynab_account_id,
            )
            self.submitted[transaction.id] = receipt
        return receipt

    def test_connection(self) -> None:
        if self.failure is not None:
            raise self.failure
