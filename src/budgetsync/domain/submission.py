"""Submission of categorized transactions to the budget service.

A transaction can be submitted once it is categorized, has an effective
category and payee, and is not marked as duplicate. A successful submission
stores the budget service ids on the processing state and moves both the
state and the transaction to SUBMITTED. Budget service failures are
reported per transaction in the result; storage failures propagate.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Callable, Iterable, Optional

from budgetsync.database.base import ProcessingStateStore, TransactionStore
from budgetsync.domain.categorization import log_event
from budgetsync.domain.entities import (
    AccountId,
    ImportBatchId,
    TransactionId,
    TransactionProcessingState,
    TransactionStatus,
)
from budgetsync.domain.errors import NotFoundError, SubmissionError, transaction_not_found
from budgetsync.ynab.base import TransactionSubmissionPort

logger = logging.getLogger(__name__)

NOT_CATEGORIZED = "Transaction has not been categorized"


@dataclass(frozen=True)
class SubmissionFailure:
    transaction_id: TransactionId
    reason: str


@dataclass(frozen=True)
class TransactionSubmissionResult:
    transaction_id: TransactionId
    submitted: bool
    ynab_transaction_id: Optional[str] = None
    ynab_account_id: Optional[str] = None
    error: Optional[SubmissionFailure] = None


@dataclass(frozen=True)
class SubmissionValidation:
    valid: list[TransactionProcessingState] = field(default_factory=list)
    invalid: list[tuple[TransactionProcessingState, str]] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionResult:
    submitted_count: int
    failed_count: int
    errors: list[SubmissionFailure] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionStatistics:
    total: int
    imported: int
    categorized: int
    submitted: int
    duplicate: int


# Events


@dataclass(frozen=True)
class TransactionSubmitted:
    transaction_id: TransactionId
    ynab_transaction_id: str
    ynab_account_id: str
    occurred_at: datetime


@dataclass(frozen=True)
class TransactionsSubmitted:
    count: int
    ynab_account_id: str
    occurred_at: datetime


@dataclass(frozen=True)
class SubmissionFailed:
    reason: str
    transaction_count: int
    occurred_at: datetime


class SubmissionService:
    """Submits ready transactions through a budget service port."""

    def __init__(
        self,
        transaction_store: TransactionStore,
        state_store: ProcessingStateStore,
        port: TransactionSubmissionPort,
        event_sink: Optional[Callable[[object], None]] = None,
    ):
        """Initialize submission service.

        Args:
            transaction_store: Persisted transactions
            state_store: Per-transaction processing states
            port: Budget service the transactions are sent to
            event_sink: Receives domain events; defaults to logging them
        """
        self.transaction_store = transaction_store
        self.state_store = state_store
        self.port = port
        self.publish = event_sink or log_event

    def validate_for_submission(
        self, states: Iterable[TransactionProcessingState]
    ) -> SubmissionValidation:
        """Split states into submittable ones and the rest with a reason each."""
        validation = SubmissionValidation()
        for state in states:
            problem = state.submission_problem
            if problem is None:
                validation.valid.append(state)
            else:
                validation.invalid.append((state, problem))
        return validation

    def submit_transaction(self, transaction_id: TransactionId) -> TransactionSubmissionResult:
        """Submit one transaction.

        Never raises for a transaction that is missing, not ready or
        rejected by the budget service; the result carries the reason.
        """
        transaction = self.transaction_store.find_by_id(transaction_id)
        state = self.state_store.find_by_transaction_id(transaction_id)
        if transaction is None:
            return self._not_submitted(transaction_id, transaction_not_found(transaction_id))
        if state is None:
            return self._not_submitted(transaction_id, NOT_CATEGORIZED)
        if state.submission_problem is not None:
            return self._not_submitted(transaction_id, state.submission_problem)

        try:
            receipt = self.port.submit_transaction(transaction, state)
        except SubmissionError as e:
            logger.warning("Submission of %s failed: %s", transaction_id, e)
            return self._not_submitted(transaction_id, str(e))

        self.state_store.save(state.with_ynab_submission(receipt.ynab_transaction_id, receipt.ynab_account_id))
        if transaction.status is not TransactionStatus.SUBMITTED:
            self.transaction_store.save(transaction.with_status(TransactionStatus.SUBMITTED))
        self.publish(
            TransactionSubmitted(
                transaction_id=transaction_id,
                ynab_transaction_id=receipt.ynab_transaction_id,
                ynab_account_id=receipt.ynab_account_id,
                occurred_at=datetime.now(UTC),
            )
        )
        return TransactionSubmissionResult(
            transaction_id=transaction_id,
            submitted=True,
            ynab_transaction_id=receipt.ynab_transaction_id,
            ynab_account_id=receipt.ynab_account_id,
        )

    def submit_transactions(self, transaction_ids: Iterable[TransactionId]) -> SubmissionResult:
        """Submit several transactions; ones that cannot be sent count as failed."""
        transaction_ids = list(transaction_ids)
        states = [
            state
            for state in (self.state_store.find_by_transaction_id(tid) for tid in transaction_ids)
            if state is not None
        ]
        validation = self.validate_for_submission(states)
        errors = [
            SubmissionFailure(state.transaction_id, f"Validation failed: {reason}")
            for state, reason in validation.invalid
        ]
        known = {state.transaction_id for state in states}
        errors.extend(
            SubmissionFailure(tid, NOT_CATEGORIZED) for tid in transaction_ids if tid not in known
        )
        if errors:
            self.publish(
                SubmissionFailed(
                    reason=f"Failed to validate {len(errors)} transactions",
                    transaction_count=len(errors),
                    occurred_at=datetime.now(UTC),
                )
            )

        results = [self.submit_transaction(state.transaction_id) for state in validation.valid]
        submitted = [r for r in results if r.submitted]
        send_errors = [r.error for r in results if r.error is not None]

        if submitted:
            self.publish(
                TransactionsSubmitted(
                    count=len(submitted),
                    ynab_account_id=submitted[0].ynab_account_id,
                    occurred_at=datetime.now(UTC),
                )
            )
        if send_errors:
            self.publish(
                SubmissionFailed(
                    reason=f"Failed to submit {len(send_errors)} transactions",
                    transaction_count=len(send_errors),
                    occurred_at=datetime.now(UTC),
                )
            )
        return SubmissionResult(
            submitted_count=len(submitted),
            failed_count=len(transaction_ids) - len(submitted),
            errors=errors + send_errors,
        )

    def submit_batch(self, batch_id: ImportBatchId) -> SubmissionResult:
        """Submit every transaction stored by one import batch."""
        transactions = self.transaction_store.find_by_import_batch(batch_id)
        return self.submit_transactions(txn.id for txn in transactions)

    def mark_duplicate(self, transaction_id: TransactionId) -> TransactionProcessingState:
        """Exclude a stored transaction from categorization and submission.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        transaction = self.transaction_store.find_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        state = self.state_store.find_by_transaction_id(transaction_id)
        if state is None:
            state = TransactionProcessingState.initial(transaction)
        updated = state.mark_as_duplicate()
        self.state_store.save(updated)
        logger.info("Marked %s as duplicate", transaction_id)
        return updated

    def get_submission_statistics(self, account_id: Optional[AccountId] = None) -> SubmissionStatistics:
        """Count stored transactions by stage, optionally for one account."""
        transactions = self.transaction_store.find_all(account_id)
        duplicates = {
            state.transaction_id for state in self.state_store.find_by_account(account_id) if state.is_duplicate
        }
        return SubmissionStatistics(
            total=len(transactions),
            imported=sum(t.status is TransactionStatus.IMPORTED for t in transactions),
            categorized=sum(t.status is TransactionStatus.CATEGORIZED for t in transactions),
            submitted=sum(t.status is TransactionStatus.SUBMITTED for t in transactions),
            duplicate=sum(t.id in duplicates for t in transactions),
        )

    def _not_submitted(self, transaction_id: TransactionId, reason: str) -> TransactionSubmissionResult:
        return TransactionSubmissionResult(
            transaction_id=transaction_id,
            submitted=False,
            error=SubmissionFailure(transaction_id, reason),
        )
