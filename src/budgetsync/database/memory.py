"""In-memory store implementations.

Used by tests and for dry runs. They honour the same contracts as the
SQLAlchemy stores, including uniqueness of transaction ids and atomic
sequence allocation.
"""

import threading
from collections import defaultdict
from datetime import date
from typing import Optional

from budgetsync.database.base import (
    CategoryStore,
    Database,
    ImportBatchStore,
    ProcessingStateStore,
    TransactionStore,
)
from budgetsync.domain.entities import (
    AccountId,
    Category,
    ImportBatch,
    ImportBatchId,
    ImportStatus,
    Transaction,
    TransactionId,
    TransactionProcessingState,
    TransactionStatus,
)
from budgetsync.domain.errors import (
    ConflictError,
    NotFoundError,
    category_not_found,
    duplicate_transaction,
    transaction_not_found,
)


class InMemoryTransactionStore(TransactionStore):
    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._lock = threading.Lock()
        self._transactions: dict[TransactionId, Transaction] = {}
        for transaction in transactions or []:
            self._transactions[transaction.id] = transaction

    def save(self, transaction: Transaction) -> None:
        with self._lock:
            self._transactions[transaction.id] = transaction

    def save_all(self, transactions: list[Transaction]) -> None:
        with self._lock:
            ids = [txn.id for txn in transactions]
            for transaction_id in ids:
                if transaction_id in self._transactions or ids.count(transaction_id) > 1:
                    raise ConflictError(duplicate_transaction(transaction_id))
            for transaction in transactions:
                self._transactions[transaction.id] = transaction

    def find_by_id(self, transaction_id: TransactionId) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    def find_by_account_and_date_range(
        self, account_id: AccountId, start_date: date, end_date: date
    ) -> list[Transaction]:
        return sorted(
            (
                txn
                for txn in self._transactions.values()
                if txn.account_id == account_id and start_date <= txn.date <= end_date
            ),
            key=lambda txn: txn.date,
        )

    def find_by_import_batch(self, batch_id: ImportBatchId) -> list[Transaction]:
        return [txn for txn in self._transactions.values() if txn.import_batch_id == batch_id]

    def find_all(self, account_id: Optional[AccountId] = None) -> list[Transaction]:
        return sorted(
            (
                txn
                for txn in self._transactions.values()
                if account_id is None or txn.account_id == account_id
            ),
            key=lambda txn: txn.date,
        )

    def update_status_by_import_batch(self, batch_id: ImportBatchId, status: TransactionStatus) -> int:
        updated = 0
        with self._lock:
            for transaction_id, txn in list(self._transactions.items()):
                if txn.import_batch_id != batch_id or txn.status is status:
                    continue
                if txn.status.can_advance_to(status):
                    self._transactions[transaction_id] = txn.with_status(status)
                    updated += 1
        return updated

    def count_by_status(self, status: TransactionStatus) -> int:
        return sum(1 for txn in self._transactions.values() if txn.status is status)

    def __len__(self) -> int:
        return len(self._transactions)


class InMemoryImportBatchStore(ImportBatchStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._batches: dict[ImportBatchId, ImportBatch] = {}
        self._sequences: dict[str, int] = defaultdict(int)

    def save(self, batch: ImportBatch) -> None:
        with self._lock:
            self._batches[batch.id] = batch

    def find_by_id(self, batch_id: ImportBatchId) -> Optional[ImportBatch]:
        return self._batches.get(batch_id)

    def find_by_account_id(self, account_id: AccountId) -> list[ImportBatch]:
        return sorted(
            (batch for batch in self._batches.values() if batch.account_id == account_id),
            key=lambda batch: batch.id.sequence_number,
            reverse=True,
        )

    def find_most_recent_by_account_id(self, account_id: AccountId) -> Optional[ImportBatch]:
        batches = self.find_by_account_id(account_id)
        if not batches:
            return None
        return max(batches, key=lambda batch: (batch.start_time, batch.id.sequence_number))

    def find_by_status(self, status: ImportStatus) -> list[ImportBatch]:
        return sorted(
            (batch for batch in self._batches.values() if batch.status is status),
            key=lambda batch: batch.start_time,
            reverse=True,
        )

    def find_by_date_range(self, start_date: date, end_date: date) -> list[ImportBatch]:
        return sorted(
            (
                batch
                for batch in self._batches.values()
                if batch.start_date <= end_date and batch.end_date >= start_date
            ),
            key=lambda batch: batch.start_time,
            reverse=True,
        )

    def next_sequence_number(self, account_id: AccountId) -> int:
        with self._lock:
            prefix = str(account_id)
            self._sequences[prefix] += 1
            return self._sequences[prefix]


class InMemoryCategoryStore(CategoryStore):
    def __init__(self, categories: Optional[list[Category]] = None):
        self._categories: dict[str, Category] = {c.id: c for c in categories or []}

    def save(self, category: Category) -> None:
        self._categories[category.id] = category

    def save_all(self, categories: list[Category]) -> None:
        for category in categories:
            self.save(category)

    def find_by_id(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def find_all(self, active_only: bool = False) -> list[Category]:
        return sorted(
            (c for c in self._categories.values() if c.active or not active_only),
            key=lambda c: c.name,
        )

    def delete(self, category_id: str) -> None:
        if self._categories.pop(category_id, None) is None:
            raise NotFoundError(category_not_found(category_id))


class InMemoryProcessingStateStore(ProcessingStateStore):
    def __init__(self, transactions: Optional[TransactionStore] = None):
        # When given, saves are checked against the transaction store
        self._transactions = transactions
        self._states: dict[TransactionId, TransactionProcessingState] = {}

    def save(self, state: TransactionProcessingState) -> None:
        if self._transactions is not None and self._transactions.find_by_id(state.transaction_id) is None:
            raise NotFoundError(transaction_not_found(state.transaction_id))
        self._states[state.transaction_id] = state

    def find_by_transaction_id(
        self, transaction_id: TransactionId
    ) -> Optional[TransactionProcessingState]:
        return self._states.get(transaction_id)

    def find_by_account(self, account_id: Optional[AccountId] = None) -> list[TransactionProcessingState]:
        return [
            state
            for state in self._states.values()
            if account_id is None or state.transaction_id.account_id == account_id
        ]


class InMemoryDatabase(Database):
    """All stores kept in process memory."""

    def __init__(self):
        self.transactions = InMemoryTransactionStore()
        self.import_batches = InMemoryImportBatchStore()
        self.categories = InMemoryCategoryStore()
        self.processing_states = InMemoryProcessingStateStore(self.transactions)

    def connect(self) -> None:
        pass

    def disconnect(self) -> None:
        pass

    def initialize_schema(self) -> None:
        pass
