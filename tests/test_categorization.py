"""Tests for rule based categorization and category overrides."""

import pytest
from datetime import datetime, UTC
from decimal import Decimal

from budgetsync.domain.categorization import (
    BulkCategoryUpdated,
    CategorizationConfig,
    CategorizationService,
    CategoryUpdated,
    RuleBasedCategorizer,
    TransactionCategorization,
    TransactionCategorized,
    TransactionFilter,
    TransactionsCategorized,
    average_confidence,
)
from budgetsync.domain.entities import (
    UNCATEGORIZED,
    Category,
    ConfidenceScore,
    ImportBatch,
    ImportBatchId,
    TransactionId,
    TransactionProcessingState,
    TransactionStatus,
)
from budgetsync.domain.errors import CategorizationError, NotFoundError
from budgetsync.domain.mapper import map_raw_records

TRANSPORT = Category(id="transportation", name="Transportation")
GROCERIES = Category(id="food-dining/groceries", name="Groceries", parent_id="food-dining")
OTHER = Category(id="other", name="Other")


@pytest.fixture
def config():
    return (
        CategorizationConfig()
        .with_rule("uber", TRANSPORT)
        .with_rule("albert", GROCERIES, ConfidenceScore(0.8))
        .with_default(OTHER, ConfidenceScore(0.4))
    )


@pytest.fixture
def stored(memory_db, account_id, make_record):
    """Three imported transactions, one of them an Uber ride."""
    batch_id = ImportBatchId.for_account(account_id, 1)
    memory_db.import_batches.save(
        ImportBatch.start(batch_id, account_id, datetime(2025, 3, 1).date(), datetime(2025, 3, 31).date())
    )
    records = [
        make_record("1", user_identification="UBER *TRIP", comment="Ride"),
        make_record("2", user_identification="ALBERT HYPERMARKET", amount="-1250.50"),
        make_record("3", transaction_type="Incoming payment", comment="Salary", amount="45000", counterparty="ACME s.r.o."),
    ]
    transactions, _ = map_raw_records(records, account_id, batch_id)
    memory_db.transactions.save_all(transactions)
    memory_db.categories.save_all([TRANSPORT, GROCERIES, OTHER])
    return transactions


@pytest.fixture
def events():
    return []


@pytest.fixture
def service(memory_db, config, events):
    return CategorizationService(
        memory_db.transactions,
        memory_db.processing_states,
        memory_db.categories,
        RuleBasedCategorizer(config),
        event_sink=events.append,
    )


class TestRuleBasedCategorizer:
    def test_first_matching_rule_wins(self, config, stored):
        config = config.with_rule("trip", GROCERIES)
        result = RuleBasedCategorizer(config).categorize(stored[0])
        assert result.category == TRANSPORT
        assert result.confidence == ConfidenceScore(0.9)

    def test_match_is_case_insensitive(self, config, stored):
        result = RuleBasedCategorizer(config).categorize(stored[1])
        assert result.category == GROCERIES
        assert result.confidence == ConfidenceScore(0.8)

    def test_default_fallback(self, config, stored):
        result = RuleBasedCategorizer(config).categorize(stored[2])
        assert result.category == OTHER
        assert result.confidence == ConfidenceScore(0.4)
        assert result.payee_name == "ACME s.r.o."

    def test_empty_config_is_uncategorized(self, stored):
        result = RuleBasedCategorizer().categorize(stored[2])
        assert result.category == UNCATEGORIZED
        assert result.is_uncategorized

    def test_matches_type_and_comment(self, stored):
        config = CategorizationConfig().with_rule("salary", Category("income", "Income"))
        assert RuleBasedCategorizer(config).categorize(stored[2]).category.id == "income"

    def test_description_placeholder_does_not_match(self, account_id, make_record):
        batch_id = ImportBatchId.for_account(account_id, 1)
        transactions, _ = map_raw_records(
            [make_record("9", transaction_type=None, comment=None)], account_id, batch_id
        )
        assert transactions[0].description == "Unknown transaction"

        config = CategorizationConfig().with_rule("unknown", OTHER)
        assert RuleBasedCategorizer(config).categorize(transactions[0]).is_uncategorized

    def test_categorize_all(self, config, stored):
        results = RuleBasedCategorizer(config).categorize_all(stored)
        assert [r.category.id for r in results] == ["transportation", "food-dining/groceries", "other"]

    def test_alternatives_exclude_chosen_category(self, config, stored):
        config = config.with_alternatives([TRANSPORT, GROCERIES, OTHER], count=2)
        result = RuleBasedCategorizer(config).categorize(stored[0])
        assert [c.id for c, _ in result.alternatives] == ["food-dining/groceries", "other"]
        assert result.alternatives[0][1].value > result.alternatives[1][1].value

    def test_config_is_immutable(self, config):
        extended = config.with_rule("lidl", GROCERIES)
        assert len(config.rules) == 2
        assert len(extended.rules) == 3

    def test_learn_from_feedback_records(self, config, stored):
        categorizer = RuleBasedCategorizer(config)
        categorizer.learn_from_feedback(stored[2], OTHER, GROCERIES)
        assert categorizer.feedback == [(stored[2].id, "other", "food-dining/groceries")]


def test_average_confidence(account_id):
    transaction_id = TransactionId(account_id, "1")

    def categorization(score):
        return TransactionCategorization(transaction_id, OTHER, score)

    assert average_confidence([]) is None
    assert average_confidence([categorization(None)]) is None
    average = average_confidence([categorization(ConfidenceScore(0.9)), categorization(ConfidenceScore(0.4)), categorization(None)])
    assert average.value == pytest.approx(0.7)


class TestCategorizationService:
    def test_categorize_transactions(self, service, memory_db, stored, events):
        result = service.categorize_transactions([t.id for t in stored])

        assert result.categorized_count == 3
        assert result.failed_count == 0
        state = memory_db.processing_states.find_by_transaction_id(stored[0].id)
        assert state.suggested_category == "transportation"
        assert state.status is TransactionStatus.CATEGORIZED
        assert memory_db.transactions.find_by_id(stored[0].id).status is TransactionStatus.CATEGORIZED
        assert sum(isinstance(e, TransactionCategorized) for e in events) == 3
        assert isinstance(events[-1], TransactionsCategorized)

    def test_missing_and_repeated_count_as_failed(self, service, stored, account_id):
        service.categorize_transactions([stored[0].id])

        result = service.categorize_transactions([stored[0].id, TransactionId(account_id, "404")])

        assert result.categorized_count == 0
        assert result.failed_count == 2

    def test_duplicates_are_skipped(self, service, memory_db, stored):
        memory_db.processing_states.save(TransactionProcessingState.initial(stored[1]).mark_as_duplicate())

        result = service.categorize_transactions([stored[1].id])

        assert result.failed_count == 1

    def test_uncategorized_leaves_status(self, memory_db, stored):
        service = CategorizationService(
            memory_db.transactions, memory_db.processing_states, memory_db.categories, RuleBasedCategorizer()
        )

        result = service.categorize_transactions([stored[2].id])

        assert result.categorized_count == 1
        state = memory_db.processing_states.find_by_transaction_id(stored[2].id)
        assert state.suggested_category is None
        assert memory_db.transactions.find_by_id(stored[2].id).status is TransactionStatus.IMPORTED

    def test_categorize_batch(self, service, stored):
        result = service.categorize_batch(stored[0].import_batch_id)
        assert result.categorized_count == 3
        assert result.average_confidence.value == pytest.approx(0.7)

    def test_update_category_creates_state(self, service, memory_db, stored, events):
        state = service.update_category(stored[2].id, "food-dining/groceries", memo="weekly shop", payee_name="Albert")

        assert state.effective_category == "food-dining/groceries"
        assert state.effective_memo == "weekly shop"
        assert state.effective_payee_name == "Albert"
        assert memory_db.processing_states.find_by_transaction_id(stored[2].id) == state
        assert memory_db.transactions.find_by_id(stored[2].id).status is TransactionStatus.CATEGORIZED
        assert isinstance(events[-1], CategoryUpdated)
        assert events[-1].old_category is None

    def test_override_wins_over_suggestion(self, service, stored):
        service.categorize_transactions([stored[0].id])

        state = service.update_category(stored[0].id, "other")

        assert state.suggested_category == "transportation"
        assert state.effective_category == "other"

    def test_update_unknown_category_warns(self, service, stored, caplog):
        with caplog.at_level("WARNING"):
            service.update_category(stored[0].id, "no-such-category")
        assert "non-existent category" in caplog.text

    def test_update_missing_transaction(self, service, account_id):
        with pytest.raises(NotFoundError):
            service.update_category(TransactionId(account_id, "404"), "other")

    def test_bulk_update(self, service, memory_db, stored, account_id, events):
        count = service.bulk_update_category(
            TransactionFilter(source_account=account_id, description_contains="UBER"), "transportation"
        )

        assert count == 1
        state = memory_db.processing_states.find_by_transaction_id(stored[0].id)
        assert state.effective_category == "transportation"
        assert memory_db.processing_states.find_by_transaction_id(stored[1].id) is None
        assert isinstance(events[-1], BulkCategoryUpdated)
        assert events[-1].count == 1

    def test_bulk_update_without_match(self, service, stored, events):
        count = service.bulk_update_category(TransactionFilter(counterparty_contains="nobody"), "other")
        assert count == 0
        assert not any(isinstance(e, BulkCategoryUpdated) for e in events)

    def test_bulk_update_amount_filter(self, service, stored):
        count = service.bulk_update_category(TransactionFilter(max_amount=Decimal("-1000")), "food-dining/groceries")
        assert count == 1

    def test_categorizer_errors_propagate(self, memory_db, stored):
        class BrokenCategorizer(RuleBasedCategorizer):
            def categorize(self, transaction):
                raise CategorizationError("model unavailable")

        service = CategorizationService(
            memory_db.transactions, memory_db.processing_states, memory_db.categories, BrokenCategorizer()
        )
        before = memory_db.transactions.find_all()

        with pytest.raises(CategorizationError):
            service.categorize_transactions([stored[0].id])
        assert memory_db.transactions.find_all() == before

    def test_record_feedback(self, service, stored):
        service.categorize_transactions([stored[2].id])
        service.record_feedback(stored[2].id, "food-dining/groceries")
        assert service.categorizer.feedback == [(stored[2].id, "other", "food-dining/groceries")]


class TestTransactionFilter:
    def test_all_criteria_must_match(self, stored, account_id):
        transaction = stored[2]
        assert TransactionFilter().matches(transaction)
        assert TransactionFilter(source_account=account_id, transaction_type="incoming payment").matches(transaction)
        assert not TransactionFilter(source_account=account_id, transaction_type="Card payment").matches(transaction)
        assert TransactionFilter(counterparty_contains="acme", min_amount=Decimal("1000")).matches(transaction)
        assert not TransactionFilter(counterparty_contains="acme", max_amount=Decimal("1000")).matches(transaction)

    def test_other_account_excluded(self, stored, other_account_id):
        assert not TransactionFilter(source_account=other_account_id).matches(stored[0])


def test_event_dataclasses_are_frozen(account_id):
    event = CategoryUpdated(TransactionId(account_id, "1"), None, "other", datetime.now(UTC))
    with pytest.raises(Exception):
        event.new_category = "x"
