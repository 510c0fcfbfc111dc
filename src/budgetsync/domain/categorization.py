"""Keyword rule categorization and user category overrides.

Rules are checked in insertion order against a transaction's message, comment
and type (case-insensitive substring); the first match wins and
anything unmatched gets the configured default. The configuration is an
immutable value: changing it means building a new one.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Optional

from budgetsync.database.base import CategoryStore, ProcessingStateStore, TransactionStore
from budgetsync.domain.entities import (
    UNCATEGORIZED,
    AccountId,
    Category,
    ConfidenceScore,
    ImportBatchId,
    Transaction,
    TransactionId,
    TransactionProcessingState,
    TransactionStatus,
)
from budgetsync.domain.errors import NotFoundError, category_not_found, transaction_not_found

logger = logging.getLogger(__name__)

DEFAULT_RULE_CONFIDENCE = ConfidenceScore(0.9)
DEFAULT_FALLBACK_CONFIDENCE = ConfidenceScore(0.5)
PAYEE_CONFIDENCE = ConfidenceScore(0.8)


@dataclass(frozen=True)
class CategorizationRule:
    keyword: str
    category: Category
    confidence: ConfidenceScore = DEFAULT_RULE_CONFIDENCE

    def matches(self, transaction: Transaction) -> bool:
        keyword = self.keyword.lower()
        fields = (
            transaction.message,
            transaction.comment,
            transaction.transaction_type,
        )
        return any(value and keyword in value.lower() for value in fields)


@dataclass(frozen=True)
class CategorizationConfig:
    rules: tuple[CategorizationRule, ...] = ()
    default_category: Category = UNCATEGORIZED
    default_confidence: ConfidenceScore = DEFAULT_FALLBACK_CONFIDENCE
    generate_alternatives: bool = False
    alternative_categories: tuple[Category, ...] = ()
    num_alternatives: int = 2

    def with_rule(
        self, keyword: str, category: Category, confidence: ConfidenceScore = DEFAULT_RULE_CONFIDENCE
    ) -> "CategorizationConfig":
        return replace(self, rules=self.rules + (CategorizationRule(keyword, category, confidence),))

    def with_default(
        self, category: Category, confidence: ConfidenceScore = DEFAULT_FALLBACK_CONFIDENCE
    ) -> "CategorizationConfig":
        return replace(self, default_category=category, default_confidence=confidence)

    def with_alternatives(self, categories: Iterable[Category], count: int = 2) -> "CategorizationConfig":
        return replace(
            self,
            generate_alternatives=True,
            alternative_categories=tuple(categories),
            num_alternatives=count,
        )


@dataclass(frozen=True)
class TransactionCategorization:
    """Suggested category of one transaction."""

    transaction_id: TransactionId
    category: Category
    confidence: Optional[ConfidenceScore]
    payee_name: Optional[str] = None
    memo: Optional[str] = None
    alternatives: tuple[tuple[Category, ConfidenceScore], ...] = ()

    @property
    def is_uncategorized(self) -> bool:
        return self.category.id == UNCATEGORIZED.id


def average_confidence(categorizations: Iterable[TransactionCategorization]) -> Optional[ConfidenceScore]:
    """Mean of the present confidence scores, rounded to one decimal place.

    Categorizations without a score are left out rather than counted as zero.
    """
    values = [c.confidence.value for c in categorizations if c.confidence is not None]
    if not values:
        return None
    mean = Decimal(str(sum(values) / len(values))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return ConfidenceScore.of(float(mean))


class Categorizer(ABC):
    """Suggests categories for transactions."""

    @abstractmethod
    def categorize(self, transaction: Transaction) -> TransactionCategorization:
        """Categorize one transaction.

        Raises:
            CategorizationError: If no suggestion can be produced
        """
        pass

    def categorize_all(self, transactions: Iterable[Transaction]) -> list[TransactionCategorization]:
        return [self.categorize(txn) for txn in transactions]

    def learn_from_feedback(
        self, transaction: Transaction, assigned: Category, correct: Category
    ) -> None:
        """Hook for categorizers that learn from user corrections."""
        pass


class RuleBasedCategorizer(Categorizer):
    """First matching keyword rule wins; otherwise the configured default."""

    def __init__(self, config: Optional[CategorizationConfig] = None):
        self.config = config or CategorizationConfig()
        self.feedback: list[tuple[TransactionId, str, str]] = []

    def categorize(self, transaction: Transaction) -> TransactionCategorization:
        config = self.config
        rule = next((r for r in config.rules if r.matches(transaction)), None)
        if rule is not None:
            category, confidence = rule.category, rule.confidence
        else:
            category, confidence = config.default_category, config.default_confidence

        alternatives: tuple[tuple[Category, ConfidenceScore], ...] = ()
        if config.generate_alternatives:
            others = [c for c in config.alternative_categories if c.id != category.id]
            alternatives = tuple(
                (alt, ConfidenceScore.of(max(0.1, 0.6 - 0.1 * index)))
                for index, alt in enumerate(others[: config.num_alternatives])
            )

        return TransactionCategorization(
            transaction_id=transaction.id,
            category=category,
            confidence=confidence,
            payee_name=transaction.counterparty or transaction.message,
            memo=transaction.comment or transaction.description,
            alternatives=alternatives,
        )

    def learn_from_feedback(
        self, transaction: Transaction, assigned: Category, correct: Category
    ) -> None:
        # Rules are maintained by hand; corrections are only recorded
        logger.info(
            "Feedback for %s: %s should have been %s", transaction.id, assigned.name, correct.name
        )
        self.feedback.append((transaction.id, assigned.id, correct.id))


@dataclass(frozen=True)
class TransactionFilter:
    """Criteria for bulk updates. Every set field must match."""

    source_account: Optional[AccountId] = None
    description_contains: Optional[str] = None
    counterparty_contains: Optional[str] = None
    transaction_type: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None

    def matches(self, transaction: Transaction) -> bool:
        if self.source_account is not None and transaction.account_id != self.source_account:
            return False
        if self.description_contains is not None and not _contains(
            self.description_contains,
            transaction.description,
            transaction.message,
            transaction.comment,
        ):
            return False
        if self.counterparty_contains is not None and not _contains(
            self.counterparty_contains, transaction.counterparty, transaction.counter_account
        ):
            return False
        if self.transaction_type is not None and (
            transaction.transaction_type or ""
        ).lower() != self.transaction_type.lower():
            return False
        if self.min_amount is not None and transaction.amount.amount < self.min_amount:
            return False
        if self.max_amount is not None and transaction.amount.amount > self.max_amount:
            return False
        return True


def _contains(needle: str, *haystacks: Optional[str]) -> bool:
    needle = needle.lower()
    return any(value and needle in value.lower() for value in haystacks)


# Events


@dataclass(frozen=True)
class TransactionCategorized:
    transaction_id: TransactionId
    category: str
    payee_name: str
    by_ai: bool
    occurred_at: datetime


@dataclass(frozen=True)
class TransactionsCategorized:
    transaction_count: int
    source_account: AccountId
    average_confidence: Optional[ConfidenceScore]
    occurred_at: datetime


@dataclass(frozen=True)
class CategoryUpdated:
    transaction_id: TransactionId
    old_category: Optional[str]
    new_category: str
    occurred_at: datetime


@dataclass(frozen=True)
class BulkCategoryUpdated:
    count: int
    category: str
    filter_criteria: str
    occurred_at: datetime


def log_event(event: object) -> None:
    logger.info("Event: %s", event)


@dataclass(frozen=True)
class CategorizationResult:
    categorized_count: int
    failed_count: int
    average_confidence: Optional[ConfidenceScore] = None
    categorizations: list[TransactionCategorization] = field(default_factory=list)


class CategorizationService:
    """Applies categorizer suggestions and user overrides to stored transactions."""

    def __init__(
        self,
        transaction_store: TransactionStore,
        state_store: ProcessingStateStore,
        category_store: CategoryStore,
        categorizer: Categorizer,
        event_sink: Optional[Callable[[object], None]] = None,
    ):
        """Initialize categorization service.

        Args:
            transaction_store: Persisted transactions
            state_store: Per-transaction processing states
            category_store: Known categories, used to warn about unknown ids
            categorizer: Source of suggestions
            event_sink: Receives domain events; defaults to logging them
        """
        self.transaction_store = transaction_store
        self.state_store = state_store
        self.category_store = category_store
        self.categorizer = categorizer
        self.publish = event_sink or log_event

    def _state_for(self, transaction: Transaction) -> TransactionProcessingState:
        state = self.state_store.find_by_transaction_id(transaction.id)
        return state if state is not None else TransactionProcessingState.initial(transaction)

    def _advance(self, transaction: Transaction) -> None:
        if transaction.status is TransactionStatus.IMPORTED:
            self.transaction_store.save(transaction.with_status(TransactionStatus.CATEGORIZED))

    def categorize_transaction(self, transaction_id: TransactionId) -> Optional[TransactionCategorization]:
        """Suggest a category for one imported transaction.

        Returns None when the transaction is missing, marked duplicate or
        already past the IMPORTED stage.
        """
        transaction = self.transaction_store.find_by_id(transaction_id)
        if transaction is None:
            return None
        state = self._state_for(transaction)
        if state.is_duplicate or state.status is not TransactionStatus.IMPORTED:
            return None

        categorization = self.categorizer.categorize(transaction)
        category_id = None if categorization.is_uncategorized else categorization.category.id
        self.state_store.save(
            state.with_ai_categorization(
                payee_name=categorization.payee_name,
                category=category_id,
                memo=categorization.memo,
                category_confidence=categorization.confidence,
                payee_confidence=PAYEE_CONFIDENCE if categorization.payee_name else None,
            )
        )
        if category_id is not None:
            self._advance(transaction)
            self.publish(
                TransactionCategorized(
                    transaction_id=transaction_id,
                    category=category_id,
                    payee_name=categorization.payee_name or "Unknown",
                    by_ai=True,
                    occurred_at=datetime.now(UTC),
                )
            )
        return categorization

    def categorize_transactions(self, transaction_ids: Iterable[TransactionId]) -> CategorizationResult:
        """Categorize several transactions; skipped ones count as failed."""
        transaction_ids = list(transaction_ids)
        categorizations = []
        for transaction_id in transaction_ids:
            categorization = self.categorize_transaction(transaction_id)
            if categorization is not None:
                categorizations.append(categorization)

        average = average_confidence(categorizations)
        if categorizations:
            self.publish(
                TransactionsCategorized(
                    transaction_count=len(categorizations),
                    source_account=categorizations[0].transaction_id.account_id,
                    average_confidence=average,
                    occurred_at=datetime.now(UTC),
                )
            )
        return CategorizationResult(
            categorized_count=len(categorizations),
            failed_count=len(transaction_ids) - len(categorizations),
            average_confidence=average,
            categorizations=categorizations,
        )

    def categorize_batch(self, batch_id: ImportBatchId) -> CategorizationResult:
        """Categorize every transaction stored by one import batch."""
        transactions = self.transaction_store.find_by_import_batch(batch_id)
        return self.categorize_transactions(txn.id for txn in transactions)

    def update_category(
        self,
        transaction_id: TransactionId,
        category_id: str,
        memo: Optional[str] = None,
        payee_name: Optional[str] = None,
    ) -> TransactionProcessingState:
        """Set a user override, which takes precedence over any suggestion.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        transaction = self.transaction_store.find_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if self.category_store.find_by_id(category_id) is None:
            logger.warning("Attempting to set non-existent category: %s", category_id)

        state = self._state_for(transaction)
        updated = state.with_user_overrides(payee_name=payee_name, category=category_id, memo=memo)
        self.state_store.save(updated)
        self._advance(transaction)
        self.publish(
            CategoryUpdated(
                transaction_id=transaction_id,
                old_category=state.effective_category,
                new_category=category_id,
                occurred_at=datetime.now(UTC),
            )
        )
        return updated

    def bulk_update_category(
        self,
        transaction_filter: TransactionFilter,
        category_id: str,
        memo: Optional[str] = None,
        payee_name: Optional[str] = None,
    ) -> int:
        """Apply ``update_category`` to every matching transaction.

        Returns:
            Number of transactions updated
        """
        if self.category_store.find_by_id(category_id) is None:
            logger.warning("Attempting to bulk update with non-existent category: %s", category_id)

        matching = [
            txn
            for txn in self.transaction_store.find_all(transaction_filter.source_account)
            if transaction_filter.matches(txn)
        ]
        for transaction in matching:
            self.update_category(transaction.id, category_id, memo=memo, payee_name=payee_name)

        if matching:
            self.publish(
                BulkCategoryUpdated(
                    count=len(matching),
                    category=category_id,
                    filter_criteria=f"Filter: {transaction_filter}",
                    occurred_at=datetime.now(UTC),
                )
            )
        return len(matching)

    def get_state(self, transaction_id: TransactionId) -> Optional[TransactionProcessingState]:
        return self.state_store.find_by_transaction_id(transaction_id)

    def record_feedback(self, transaction_id: TransactionId, correct_category_id: str) -> None:
        """Tell the categorizer which category a transaction should have had.

        Raises:
            NotFoundError: If the transaction or category does not exist
        """
        transaction = self.transaction_store.find_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        correct = self.category_store.find_by_id(correct_category_id)
        if correct is None:
            raise NotFoundError(category_not_found(correct_category_id))
        state = self._state_for(transaction)
        assigned_id = state.suggested_category
        assigned = (self.category_store.find_by_id(assigned_id) if assigned_id else None) or UNCATEGORIZED
        self.categorizer.learn_from_feedback(transaction, assigned, correct)
