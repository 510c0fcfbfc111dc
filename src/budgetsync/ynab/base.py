"""Budget service submission interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from budgetsync.domain.entities import Transaction, TransactionProcessingState


@dataclass(frozen=True)
class SubmissionReceipt:
    """Ids the budget service assigned to a submitted transaction."""

    ynab_transaction_id: str
    ynab_account_id: str


class TransactionSubmissionPort(ABC):
    """Sends categorized transactions to a budget service."""

    @abstractmethod
    def submit_transaction(
        self, transaction: Transaction, state: TransactionProcessingState
    ) -> SubmissionReceipt:
        """Submit one transaction using the state's effective values.

        Submitting a transaction that the service already holds returns
        the original receipt.

        Raises:
            SubmissionError: If the service rejects the transaction or
                cannot be reached
        """
        pass

    @abstractmethod
    def test_connection(self) -> None:
        """Check that the service is reachable.

        Raises:
            SubmissionError: If it is not
        """
        pass
