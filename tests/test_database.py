"""Tests for the store implementations.

Contract tests run against both the SQLAlchemy and the in-memory stores.
"""

import threading

import pytest
from datetime import date, datetime, UTC

from budgetsync.database.memory import InMemoryDatabase
from budgetsync.domain.entities import (
    Category,
    ConfidenceScore,
    ImportBatch,
    ImportBatchId,
    ImportStatus,
    TransactionId,
    TransactionProcessingState,
    TransactionStatus,
)
from budgetsync.domain.errors import ConflictError, NotFoundError, StorageError
from budgetsync.domain.mapper import map_raw_records


@pytest.fixture(params=["sqlite", "memory"])
def db(request):
    if request.param == "sqlite":
        return request.getfixturevalue("temp_db")
    return InMemoryDatabase()


@pytest.fixture
def batch(db, account_id):
    batch = ImportBatch.start(
        ImportBatchId.for_account(account_id, db.import_batches.next_sequence_number(account_id)),
        account_id,
        date(2025, 3, 1),
        date(2025, 3, 31),
    )
    db.import_batches.save(batch)
    return batch


@pytest.fixture
def transactions(make_record, account_id, batch):
    records = [make_record("1", day=2), make_record("2", day=15), make_record("3", day=28)]
    transactions, _ = map_raw_records(records, account_id, batch.id)
    return transactions


class TestTransactionStore:
    def test_save_all_and_find(self, db, transactions, account_id, batch):
        db.transactions.save_all(transactions)

        assert db.transactions.find_by_id(transactions[0].id) == transactions[0]
        in_range = db.transactions.find_by_account_and_date_range(account_id, date(2025, 3, 1), date(2025, 3, 15))
        assert [t.id.external_id for t in in_range] == ["1", "2"]
        assert len(db.transactions.find_by_import_batch(batch.id)) == 3
        assert len(db.transactions.find_all(account_id)) == 3

    def test_find_missing(self, db, account_id):
        assert db.transactions.find_by_id(TransactionId(account_id, "nope")) is None

    def test_save_all_rejects_stored_id(self, db, transactions):
        db.transactions.save_all(transactions[:1])
        with pytest.raises(ConflictError):
            db.transactions.save_all(transactions)
        assert len(db.transactions.find_all()) == 1

    def test_save_all_rejects_repeated_id(self, db, transactions):
        with pytest.raises(ConflictError):
            db.transactions.save_all([transactions[0], transactions[0]])
        assert db.transactions.find_all() == []

    def test_save_replaces(self, db, transactions):
        db.transactions.save_all(transactions)
        updated = transactions[0].with_status(TransactionStatus.CATEGORIZED)

        db.transactions.save(updated)

        assert db.transactions.find_by_id(updated.id).status is TransactionStatus.CATEGORIZED
        assert len(db.transactions.find_all()) == 3

    def test_update_status_by_import_batch(self, db, transactions, batch):
        db.transactions.save_all(transactions)
        db.transactions.save(transactions[0].with_status(TransactionStatus.SUBMITTED))

        updated = db.transactions.update_status_by_import_batch(batch.id, TransactionStatus.CATEGORIZED)

        assert updated == 2
        assert db.transactions.count_by_status(TransactionStatus.CATEGORIZED) == 2
        assert db.transactions.count_by_status(TransactionStatus.SUBMITTED) == 1
        assert db.transactions.count_by_status(TransactionStatus.IMPORTED) == 0


class TestImportBatchStore:
    def test_round_trip(self, db, batch):
        assert db.import_batches.find_by_id(batch.id) == batch

        completed = batch.mark_completed(5, "Imported 3 new transactions, skipped 2 duplicates")
        db.import_batches.save(completed)

        assert db.import_batches.find_by_id(batch.id) == completed
        assert db.import_batches.find_by_status(ImportStatus.COMPLETED) == [completed]
        assert db.import_batches.find_by_status(ImportStatus.STARTED) == []

    def test_queries(self, db, batch, account_id, other_account_id):
        later = ImportBatch.start(
            ImportBatchId.for_account(account_id, db.import_batches.next_sequence_number(account_id)),
            account_id,
            date(2025, 4, 1),
            date(2025, 4, 30),
            now=datetime.now(UTC),
        )
        db.import_batches.save(later)

        assert [b.id for b in db.import_batches.find_by_account_id(account_id)] == [later.id, batch.id]
        assert db.import_batches.find_most_recent_by_account_id(account_id).id == later.id
        assert db.import_batches.find_most_recent_by_account_id(other_account_id) is None
        assert [b.id for b in db.import_batches.find_by_date_range(date(2025, 4, 15), date(2025, 5, 1))] == [later.id]

    def test_sequence_numbers(self, db, batch, account_id, other_account_id):
        assert batch.id.sequence_number == 1
        assert db.import_batches.next_sequence_number(account_id) == 2
        assert db.import_batches.next_sequence_number(other_account_id) == 1


def test_memory_sequence_allocation_is_atomic(account_id):
    db = InMemoryDatabase()
    allocated = []

    def allocate():
        for _ in range(50):
            allocated.append(db.import_batches.next_sequence_number(account_id))

    threads = [threading.Thread(target=allocate) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(allocated) == list(range(1, 201))


def test_sqlite_rejects_transaction_without_batch(temp_db, make_record, account_id):
    transactions, _ = map_raw_records([make_record("1")], account_id, ImportBatchId.for_account(account_id, 9))
    with pytest.raises(StorageError):
        temp_db.transactions.save_all(transactions)


class TestCategoryStore:
    def test_save_find_delete(self, db):
        food = Category(id="food-dining", name="Food & Dining")
        groceries = Category(id="food-dining/groceries", name="Groceries", parent_id="food-dining")
        db.categories.save_all([food, groceries])
        db.categories.save(Category(id="old", name="Old", active=False))

        assert db.categories.find_by_id("food-dining/groceries") == groceries
        assert [c.id for c in db.categories.find_all(active_only=True)] == ["food-dining", "food-dining/groceries"]
        assert len(db.categories.find_all()) == 3

        db.categories.delete("old")
        assert db.categories.find_by_id("old") is None
        with pytest.raises(NotFoundError):
            db.categories.delete("old")


class TestProcessingStateStore:
    def test_save_and_find(self, db, transactions, account_id):
        db.transactions.save_all(transactions)
        state = TransactionProcessingState.initial(transactions[0]).with_ai_categorization(
            "Uber", "transportation", "Ride", category_confidence=ConfidenceScore(0.9)
        )

        db.processing_states.save(state)
        found = db.processing_states.find_by_transaction_id(transactions[0].id)

        assert found.effective_category == "transportation"
        assert found.category_confidence == ConfidenceScore(0.9)
        assert found.status is TransactionStatus.CATEGORIZED
        assert db.processing_states.find_by_account(account_id) == [found]

        overridden = found.with_user_overrides(category="travel")
        db.processing_states.save(overridden)
        assert db.processing_states.find_by_transaction_id(transactions[0].id).effective_category == "travel"
        assert len(db.processing_states.find_by_account()) == 1

    def test_state_requires_transaction(self, db, account_id):
        with pytest.raises(NotFoundError):
            db.processing_states.save(TransactionProcessingState(transaction_id=TransactionId(account_id, "ghost")))
