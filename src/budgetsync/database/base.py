"""Abstract store interfaces.

Every operation either returns domain entities or raises a
:class:`~budgetsync.domain.errors.StorageError`; driver exceptions never leak
out of an implementation.
"""

from abc import ABC, abstractmethod
from typing import Optional
from datetime import date

# Import entities directly to avoid circular import through domain/__init__.py
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


class TransactionStore(ABC):
    """Durable storage for transactions keyed by TransactionId."""

    @abstractmethod
    def save(self, transaction: Transaction) -> None:
        """Insert or replace a single transaction."""
        pass

    @abstractmethod
    def save_all(self, transactions: list[Transaction]) -> None:
        """Insert transactions as one logical operation.

        Raises:
            ConflictError: If any transaction id is already stored
        """
        pass

    @abstractmethod
    def find_by_id(self, transaction_id: TransactionId) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def find_by_account_and_date_range(
        self, account_id: AccountId, start_date: date, end_date: date
    ) -> list[Transaction]:
        """List an account's transactions dated within the inclusive range."""
        pass

    @abstractmethod
    def find_by_import_batch(self, batch_id: ImportBatchId) -> list[Transaction]:
        """List transactions persisted by one import batch."""
        pass

    @abstractmethod
    def find_all(self, account_id: Optional[AccountId] = None) -> list[Transaction]:
        """List transactions, optionally filtered by account."""
        pass

    @abstractmethod
    def update_status_by_import_batch(self, batch_id: ImportBatchId, status: TransactionStatus) -> int:
        """Set the status of every transaction in a batch. Returns rows updated."""
        pass

    @abstractmethod
    def count_by_status(self, status: TransactionStatus) -> int:
        """Count transactions with the given status."""
        pass


class ImportBatchStore(ABC):
    """Durable storage for import batches."""

    @abstractmethod
    def save(self, batch: ImportBatch) -> None:
        """Insert or update a batch."""
        pass

    @abstractmethod
    def find_by_id(self, batch_id: ImportBatchId) -> Optional[ImportBatch]:
        """Get batch by ID."""
        pass

    @abstractmethod
    def find_by_account_id(self, account_id: AccountId) -> list[ImportBatch]:
        """List an account's batches, newest first."""
        pass

    @abstractmethod
    def find_most_recent_by_account_id(self, account_id: AccountId) -> Optional[ImportBatch]:
        """Get the batch with the latest start time for an account."""
        pass

    @abstractmethod
    def find_by_status(self, status: ImportStatus) -> list[ImportBatch]:
        """List batches in the given status, newest first."""
        pass

    @abstractmethod
    def find_by_date_range(self, start_date: date, end_date: date) -> list[ImportBatch]:
        """List batches whose import range overlaps the given range."""
        pass

    @abstractmethod
    def next_sequence_number(self, account_id: AccountId) -> int:
        """Atomically allocate the next batch sequence number for an account."""
        pass


class CategoryStore(ABC):
    """Keyed storage for categories."""

    @abstractmethod
    def save(self, category: Category) -> None:
        """Insert or update a category."""
        pass

    @abstractmethod
    def save_all(self, categories: list[Category]) -> None:
        """Insert or update several categories at once."""
        pass

    @abstractmethod
    def find_by_id(self, category_id: str) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def find_all(self, active_only: bool = False) -> list[Category]:
        """List categories ordered by name."""
        pass

    @abstractmethod
    def delete(self, category_id: str) -> None:
        """Delete a category.

        Raises:
            NotFoundError: If the category does not exist
        """
        pass


class ProcessingStateStore(ABC):
    """Storage for the latest processing state of each transaction."""

    @abstractmethod
    def save(self, state: TransactionProcessingState) -> None:
        """Insert or replace the state of a transaction."""
        pass

    @abstractmethod
    def find_by_transaction_id(
        self, transaction_id: TransactionId
    ) -> Optional[TransactionProcessingState]:
        """Get the state of a transaction."""
        pass

    @abstractmethod
    def find_by_account(self, account_id: Optional[AccountId] = None) -> list[TransactionProcessingState]:
        """List states, optionally for one account."""
        pass


class Database(ABC):
    """Bundle of stores sharing one backend connection."""

    transactions: TransactionStore
    import_batches: ImportBatchStore
    categories: CategoryStore
    processing_states: ProcessingStateStore

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass
