"""Tests for domain entities."""

import pytest
from datetime import datetime, date, UTC
from decimal import Decimal

from budgetsync.domain.entities import (
    AccountId,
    UNCATEGORIZED,
    ConfidenceScore,
    ImportBatch,
    ImportBatchId,
    ImportStatus,
    Money,
    Transaction,
    TransactionId,
    TransactionProcessingState,
    TransactionStatus,
)
from budgetsync.domain.errors import ValidationError


class TestIdentifiers:
    def test_account_id_round_trip(self):
        account_id = AccountId(bank_id="2010", bank_account_id="2200000001")
        assert str(account_id) == "2200000001/2010"
        assert AccountId.from_string("2200000001/2010") == account_id

    @pytest.mark.parametrize("bank_id,bank_account_id", [("", "123"), ("2010", "")])
    def test_account_id_rejects_empty_parts(self, bank_id, bank_account_id):
        with pytest.raises(ValidationError, match="must not be empty"):
            AccountId(bank_id=bank_id, bank_account_id=bank_account_id)

    def test_account_id_from_string_requires_separator(self):
        with pytest.raises(ValidationError, match="Expected format"):
            AccountId.from_string("2200000001")

    def test_transaction_id_structural_equality(self):
        account_id = AccountId("2010", "2200000001")
        assert TransactionId(account_id, "42") == TransactionId(AccountId("2010", "2200000001"), "42")
        assert TransactionId(account_id, "42") != TransactionId(account_id, "43")

    def test_transaction_id_from_string(self):
        transaction_id = TransactionId.from_string("2200000001/2010:26000000001")
        assert transaction_id.account_id == AccountId("2010", "2200000001")
        assert transaction_id.external_id == "26000000001"

    def test_import_batch_id_format(self):
        batch_id = ImportBatchId.for_account(AccountId("2010", "2200000001"), 3)
        assert str(batch_id) == "2200000001/2010-3"
        assert ImportBatchId.from_string("2200000001/2010-3") == batch_id

    def test_import_batch_id_requires_positive_sequence(self):
        with pytest.raises(ValidationError):
            ImportBatchId("2200000001/2010", 0)


class TestMoney:
    def test_add_same_currency(self):
        total, error = Money(Decimal("10.50"), "czk").add(Money(Decimal("2.25"), "CZK"))
        assert error is None
        assert total == Money(Decimal("12.75"), "CZK")

    def test_add_different_currency_returns_error(self):
        total, error = Money(Decimal("10"), "CZK").add(Money(Decimal("1"), "EUR"))
        assert total is None
        assert "different currencies" in error

    def test_subtract_different_currency_returns_error(self):
        result, error = Money(Decimal("10"), "CZK").subtract(Money(Decimal("1"), "USD"))
        assert result is None
        assert "CZK" in error and "USD" in error

    def test_multiply_and_negate_keep_currency(self):
        money = Money(Decimal("-4.20"), "EUR")
        assert money.multiply(2) == Money(Decimal("-8.40"), "EUR")
        assert money.negate() == Money(Decimal("4.20"), "EUR")

    def test_sign_predicates(self):
        assert Money.zero("CZK").is_zero()
        assert Money(Decimal("1"), "CZK").is_positive()
        assert Money(Decimal("-1"), "CZK").is_negative()

    def test_invalid_currency(self):
        with pytest.raises(ValidationError, match="Invalid currency"):
            Money(Decimal("1"), "KORUNA")


class TestTransaction:
    def _transaction(self, **overrides):
        account_id = AccountId("2010", "2200000001")
        now = datetime(2025, 3, 10, tzinfo=UTC)
        values = dict(
            id=TransactionId(account_id, "1"),
            date=date(2025, 3, 10),
            amount=Money(Decimal("-100"), "CZK"),
            description="Card payment",
            import_batch_id=ImportBatchId.for_account(account_id, 1),
            created_at=now,
            updated_at=now,
        )
        values.update(overrides)
        return Transaction(**values)

    def test_status_advances(self):
        transaction = self._transaction().with_status(TransactionStatus.CATEGORIZED)
        assert transaction.status is TransactionStatus.CATEGORIZED

    def test_status_cannot_move_backwards(self):
        transaction = self._transaction(status=TransactionStatus.SUBMITTED)
        with pytest.raises(ValidationError, match="Cannot move"):
            transaction.with_status(TransactionStatus.IMPORTED)

    def test_immutability(self):
        transaction = self._transaction()
        with pytest.raises(Exception):  # dataclass frozen raises FrozenInstanceError
            transaction.description = "changed"


class TestImportBatch:
    def _started(self):
        account_id = AccountId("2010", "2200000001")
        return ImportBatch.start(
            ImportBatchId.for_account(account_id, 1),
            account_id,
            date(2025, 3, 1),
            date(2025, 3, 31),
            now=datetime(2025, 4, 1, 8, 0, tzinfo=UTC),
        )

    def test_start(self):
        batch = self._started()
        assert batch.status is ImportStatus.STARTED
        assert batch.transaction_count == 0
        assert batch.end_time is None
        assert batch.completion_time_seconds is None

    def test_complete(self):
        finished = datetime(2025, 4, 1, 8, 0, 5, tzinfo=UTC)
        batch = self._started().mark_completed(4, "Imported 3 new transactions, skipped 1 duplicates", now=finished)
        assert batch.status is ImportStatus.COMPLETED
        assert batch.is_success
        assert batch.transaction_count == 4
        assert batch.end_time == finished
        assert batch.completion_time_seconds == 5

    def test_fail(self):
        batch = self._started().mark_failed("boom")
        assert batch.status is ImportStatus.FAILED
        assert batch.error_message == "boom"
        assert batch.end_time is not None
        assert not batch.is_success

    def test_cannot_finalize_twice(self):
        batch = self._started().mark_completed(0)
        with pytest.raises(ValidationError):
            batch.mark_failed("late failure")
        with pytest.raises(ValidationError):
            batch.mark_completed(1)


class TestConfidenceScore:
    def test_bounds(self):
        with pytest.raises(ValidationError):
            ConfidenceScore(1.5)
        assert ConfidenceScore.of(1.5).value == 1.0
        assert ConfidenceScore.of(-0.2).value == 0.0

    def test_levels(self):
        assert ConfidenceScore(0.9).is_high
        assert ConfidenceScore(0.6).is_medium
        assert ConfidenceScore(0.3).is_low
        assert ConfidenceScore(0.75).exceeds(ConfidenceScore.RELIABLE_THRESHOLD)


class TestProcessingState:
    def _state(self):
        account_id = AccountId("2010", "2200000001")
        return TransactionProcessingState(transaction_id=TransactionId(account_id, "1"))

    def test_override_wins_over_suggestion(self):
        state = self._state().with_ai_categorization(
            "Uber", "transportation", "Ride", category_confidence=ConfidenceScore(0.9)
        )
        assert state.status is TransactionStatus.CATEGORIZED
        assert state.effective_category == "transportation"
        assert state.has_reliable_category

        state = state.with_user_overrides(category="travel")
        assert state.effective_category == "travel"
        assert state.effective_payee_name == "Uber"
        assert state.is_manually_categorized

    def test_none_override_keeps_previous(self):
        state = self._state().with_user_overrides(category="travel", memo="trip")
        state = state.with_user_overrides(payee_name="Airline")
        assert state.override_category == "travel"
        assert state.override_memo == "trip"
        assert state.override_payee_name == "Airline"

    def test_submission_requires_categorized_state(self):
        with pytest.raises(ValidationError, match="must be categorized"):
            self._state().with_ynab_submission("ynab-1", "acct-1")

    def test_submission(self):
        state = self._state().with_ai_categorization("Uber", "transportation", None)
        submitted = state.with_ynab_submission("ynab-1", "acct-1")
        assert submitted.status is TransactionStatus.SUBMITTED
        assert submitted.submitted_at is not None

    def test_ready_for_submission(self):
        state = self._state()
        assert not state.is_ready_for_submission
        assert state.submission_problem == "Invalid status: imported"

        ready = state.with_ai_categorization("Uber", "transportation", None)
        assert ready.is_ready_for_submission
        assert ready.submission_problem is None

        duplicate = ready.mark_as_duplicate()
        assert duplicate.submission_problem == "Transaction is marked as duplicate"
        with pytest.raises(ValidationError, match="duplicate"):
            duplicate.with_ynab_submission("ynab-1", "acct-1")

    def test_missing_payee_blocks_submission(self):
        state = self._state().with_user_overrides(category="transportation")
        assert state.submission_problem == "Missing payee name"


def test_uncategorized_sentinel():
    assert UNCATEGORIZED.id == "uncategorized"
    assert UNCATEGORIZED.parent_id is None
