"""Transaction import domain service."""

import logging
from datetime import date
from typing import Optional

from budgetsync.bank.base import BankTransactionSource
from budgetsync.database.base import ImportBatchStore, TransactionStore
from budgetsync.domain.entities import AccountId, ImportBatch, ImportBatchId
from budgetsync.domain.errors import (
    BankSourceError,
    ImportBatchError,
    NotFoundError,
    StorageError,
    import_batch_not_found,
)
from budgetsync.domain.mapper import map_raw_records
from budgetsync.domain.reconcile import ReconcileResult, reconcile

logger = logging.getLogger(__name__)


def completion_message(result: ReconcileResult, mapping_errors: int = 0) -> Optional[str]:
    """Summarize a finished import for the batch record.

    Returns None when every fetched transaction was new and mapped.
    """
    total = result.total
    if total > 0 and result.duplicate_count == total:
        message = f"All {total} transactions were already imported"
    elif result.duplicate_count > 0:
        message = (
            f"Imported {len(result.new)} new transactions, "
            f"skipped {result.duplicate_count} duplicates"
        )
    else:
        message = None

    if mapping_errors:
        suffix = f"{mapping_errors} records could not be mapped"
        message = f"{message}; {suffix}" if message else suffix
    return message


class TransactionImportService:
    """Runs an import for one account and date range.

    Every attempt that passes range validation leaves an ImportBatch record
    behind, completed or failed.
    """

    def __init__(
        self,
        transaction_store: TransactionStore,
        batch_store: ImportBatchStore,
        bank_source: BankTransactionSource,
    ):
        """Initialize import service.

        Args:
            transaction_store: Where imported transactions are persisted
            batch_store: Where import batches are recorded
            bank_source: Bank the raw transactions are fetched from
        """
        self.transaction_store = transaction_store
        self.batch_store = batch_store
        self.bank_source = bank_source

    def validate_date_range(self, account_id: AccountId, start_date: date, end_date: date) -> None:
        """Validate a range with the bank's rules.

        Raises:
            InvalidDateRangeError: If the range is rejected
        """
        self.bank_source.validate_date_range(account_id, start_date, end_date)

    def import_transactions(self, account_id: AccountId, start_date: date, end_date: date) -> ImportBatch:
        """Import an account's transactions for an inclusive date range.

        Args:
            account_id: Account to import
            start_date: First day of the range
            end_date: Last day of the range

        Returns:
            The finalized batch. Bank and storage failures are recorded in a
            batch with status FAILED instead of being raised.

        Raises:
            InvalidDateRangeError: If the range is rejected (no batch is created)
            ImportBatchError: If the batch cannot be opened or finalized
        """
        self.validate_date_range(account_id, start_date, end_date)

        batch = self._open_batch(account_id, start_date, end_date)
        logger.info("Started import batch %s for %s (%s to %s)", batch.id, account_id, start_date, end_date)

        try:
            raw_records = self.bank_source.fetch_transactions(account_id, start_date, end_date, batch.id)
        except BankSourceError as e:
            return self._fail(batch, f"Failed to fetch transactions from bank: {e}")

        candidates, mapping_errors = map_raw_records(raw_records, account_id, batch.id, now=batch.start_time)
        for error in mapping_errors:
            logger.warning("Batch %s: skipping unmappable %s", batch.id, error)

        # Banks may return records dated just outside the requested range
        lookup_start = min([start_date] + [txn.date for txn in candidates])
        lookup_end = max([end_date] + [txn.date for txn in candidates])
        try:
            stored = self.transaction_store.find_by_account_and_date_range(account_id, lookup_start, lookup_end)
            result = reconcile(candidates, stored)
            self.transaction_store.save_all(result.new)
        except StorageError as e:
            return self._fail(batch, f"Failed to save transactions: {e}")

        if result.duplicate_count:
            logger.info("Batch %s: %d duplicates skipped", batch.id, result.duplicate_count)

        completed = batch.mark_completed(
            result.total, completion_message(result, len(mapping_errors))
        )
        self._save_batch(completed)
        logger.info("Completed import batch %s: %d new of %d fetched", batch.id, len(result.new), result.total)
        return completed

    def get_import_status(self, batch_id: ImportBatchId) -> ImportBatch:
        """Get a batch by id.

        Raises:
            NotFoundError: If no such batch exists
        """
        batch = self.batch_store.find_by_id(batch_id)
        if batch is None:
            raise NotFoundError(import_batch_not_found(batch_id))
        return batch

    def get_most_recent_import(self, account_id: AccountId) -> Optional[ImportBatch]:
        return self.batch_store.find_most_recent_by_account_id(account_id)

    def list_imports(self, account_id: AccountId) -> list[ImportBatch]:
        return self.batch_store.find_by_account_id(account_id)

    def _open_batch(self, account_id: AccountId, start_date: date, end_date: date) -> ImportBatch:
        try:
            sequence = self.batch_store.next_sequence_number(account_id)
        except StorageError as e:
            raise ImportBatchError(f"Failed to create import batch: {e}") from e
        batch = ImportBatch.start(ImportBatchId.for_account(account_id, sequence), account_id, start_date, end_date)
        self._save_batch(batch)
        return batch

    def _save_batch(self, batch: ImportBatch) -> None:
        try:
            self.batch_store.save(batch)
        except StorageError as e:
            raise ImportBatchError(f"Failed to save import batch {batch.id}: {e}") from e

    def _fail(self, batch: ImportBatch, message: str) -> ImportBatch:
        logger.error("Import batch %s failed: %s", batch.id, message)
        failed = batch.mark_failed(message)
        self._save_batch(failed)
        return failed
