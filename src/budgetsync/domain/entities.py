"""Domain model entities for budgetsync.

These are pure data classes representing business concepts, independent of
database schema and of the bank API payloads. Entities are frozen; state
changes produce new instances via ``dataclasses.replace``.
"""

from dataclasses import dataclass, replace
from datetime import datetime, date, UTC
from decimal import Decimal
from enum import Enum
from typing import Optional

from budgetsync.domain.errors import (
    ValidationError,
    account_id_part_empty,
    currency_mismatch,
    invalid_batch_transition,
)


@dataclass(frozen=True)
class AccountId:
    """Composite natural key of a bank account."""

    bank_id: str
    bank_account_id: str

    def __post_init__(self):
        if not self.bank_id:
            raise ValidationError(account_id_part_empty("Bank ID"))
        if not self.bank_account_id:
            raise ValidationError(account_id_part_empty("Bank account ID"))

    def __str__(self) -> str:
        return f"{self.bank_account_id}/{self.bank_id}"

    @classmethod
    def from_string(cls, value: str) -> "AccountId":
        """Parse the ``bank_account_id/bank_id`` form.

        Raises:
            ValidationError: If the string is not in the expected form
        """
        if not value or "/" not in value:
            raise ValidationError(
                f"Invalid account ID '{value}'. Expected format: 'bankAccountId/bankId'"
            )
        bank_account_id, bank_id = value.rsplit("/", 1)
        return cls(bank_id=bank_id.strip(), bank_account_id=bank_account_id.strip())


@dataclass(frozen=True)
class TransactionId:
    """Identifies a transaction by its account and the bank's own id."""

    account_id: AccountId
    external_id: str

    def __post_init__(self):
        if not self.external_id:
            raise ValidationError(account_id_part_empty("External transaction ID"))

    def __str__(self) -> str:
        return f"{self.account_id}:{self.external_id}"

    @classmethod
    def from_string(cls, value: str) -> "TransactionId":
        """Parse the ``bank_account_id/bank_id:external_id`` form."""
        if not value or ":" not in value:
            raise ValidationError(
                f"Invalid transaction ID '{value}'. Expected format: 'bankAccountId/bankId:externalId'"
            )
        account_part, external_id = value.rsplit(":", 1)
        return cls(account_id=AccountId.from_string(account_part), external_id=external_id)


@dataclass(frozen=True)
class ImportBatchId:
    """Identifies one import run; the sequence number grows per account."""

    account_prefix: str
    sequence_number: int

    def __post_init__(self):
        if not self.account_prefix:
            raise ValidationError(account_id_part_empty("Account prefix"))
        if self.sequence_number <= 0:
            raise ValidationError("Sequence number must be positive")

    def __str__(self) -> str:
        return f"{self.account_prefix}-{self.sequence_number}"

    @classmethod
    def for_account(cls, account_id: AccountId, sequence_number: int) -> "ImportBatchId":
        return cls(account_prefix=str(account_id), sequence_number=sequence_number)

    @classmethod
    def from_string(cls, value: str) -> "ImportBatchId":
        """Parse the ``prefix-sequence`` form.

        Raises:
            ValidationError: If the string is malformed
        """
        if not value or "-" not in value:
            raise ValidationError(
                f"Invalid import batch ID '{value}'. Expected format: 'accountPrefix-sequenceNumber'"
            )
        prefix, sequence = value.rsplit("-", 1)
        try:
            sequence_number = int(sequence)
        except ValueError:
            raise ValidationError(
                f"Invalid sequence number format: {sequence}. Expected a positive number."
            )
        return cls(account_prefix=prefix, sequence_number=sequence_number)


@dataclass(frozen=True)
class Money:
    """Amount in a single currency.

    ``add`` and ``subtract`` never raise on a currency mismatch; they return a
    ``(result, error)`` pair where exactly one side is set.
    """

    amount: Decimal
    currency: str

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        currency = (self.currency or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError(f"Invalid currency code: {self.currency}")
        object.__setattr__(self, "currency", currency)

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(Decimal("0"), currency)

    def add(self, other: "Money") -> tuple[Optional["Money"], Optional[str]]:
        if self.currency != other.currency:
            return None, currency_mismatch("add", self.currency, other.currency)
        return Money(self.amount + other.amount, self.currency), None

    def subtract(self, other: "Money") -> tuple[Optional["Money"], Optional[str]]:
        if self.currency != other.currency:
            return None, currency_mismatch("subtract", self.currency, other.currency)
        return Money(self.amount - other.amount, self.currency), None

    def multiply(self, factor: Decimal | int) -> "Money":
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def negate(self) -> "Money":
        return Money(-self.amount, self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


class TransactionStatus(str, Enum):
    """Processing stage of a transaction. Moves forward only."""

    IMPORTED = "imported"
    CATEGORIZED = "categorized"
    SUBMITTED = "submitted"

    @property
    def rank(self) -> int:
        return list(TransactionStatus).index(self)

    def can_advance_to(self, target: "TransactionStatus") -> bool:
        return target.rank >= self.rank


class ImportStatus(str, Enum):
    """Lifecycle of an import batch."""

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ImportStatus.STARTED


@dataclass(frozen=True)
class Transaction:
    """Bank transaction domain entity."""

    id: TransactionId
    date: date
    amount: Money
    description: str
    import_batch_id: ImportBatchId
    created_at: datetime
    updated_at: datetime
    counterparty: Optional[str] = None
    counter_account: Optional[str] = None
    reference: Optional[str] = None
    transaction_type: Optional[str] = None
    comment: Optional[str] = None
    message: Optional[str] = None
    status: TransactionStatus = TransactionStatus.IMPORTED

    @property
    def account_id(self) -> AccountId:
        return self.id.account_id

    def with_status(self, status: TransactionStatus, now: Optional[datetime] = None) -> "Transaction":
        """Return a copy advanced to ``status``.

        Raises:
            ValidationError: If the move would go backwards
        """
        if not self.status.can_advance_to(status):
            raise ValidationError(
                f"Cannot move transaction {self.id} from {self.status.value} to {status.value}"
            )
        return replace(self, status=status, updated_at=now or datetime.now(UTC))


@dataclass(frozen=True)
class ImportBatch:
    """Summary record of a single import run."""

    id: ImportBatchId
    account_id: AccountId
    start_date: date
    end_date: date
    status: ImportStatus
    transaction_count: int
    start_time: datetime
    created_at: datetime
    updated_at: datetime
    error_message: Optional[str] = None
    end_time: Optional[datetime] = None

    @classmethod
    def start(
        cls,
        batch_id: ImportBatchId,
        account_id: AccountId,
        start_date: date,
        end_date: date,
        now: Optional[datetime] = None,
    ) -> "ImportBatch":
        """Create a batch in the ``STARTED`` state."""
        if start_date > end_date:
            raise ValidationError("Start date cannot be after end date")
        now = now or datetime.now(UTC)
        return cls(
            id=batch_id,
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            status=ImportStatus.STARTED,
            transaction_count=0,
            start_time=now,
            created_at=now,
            updated_at=now,
        )

    def mark_completed(
        self, transaction_count: int, message: Optional[str] = None, now: Optional[datetime] = None
    ) -> "ImportBatch":
        if self.status is not ImportStatus.STARTED:
            raise ValidationError(invalid_batch_transition("complete", self.status.value))
        now = now or datetime.now(UTC)
        return replace(
            self,
            status=ImportStatus.COMPLETED,
            transaction_count=transaction_count,
            error_message=message,
            end_time=now,
            updated_at=now,
        )

    def mark_failed(self, error_message: str, now: Optional[datetime] = None) -> "ImportBatch":
        if self.status is not ImportStatus.STARTED:
            raise ValidationError(invalid_batch_transition("fail", self.status.value))
        now = now or datetime.now(UTC)
        return replace(
            self,
            status=ImportStatus.FAILED,
            error_message=error_message,
            end_time=now,
            updated_at=now,
        )

    @property
    def is_success(self) -> bool:
        return self.status is ImportStatus.COMPLETED

    @property
    def completion_time_seconds(self) -> Optional[int]:
        if self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds())


@dataclass(frozen=True)
class ConfidenceScore:
    """Confidence of an automated suggestion, between 0 and 1."""

    value: float

    MIN = 0.0
    MAX = 1.0
    RELIABLE_THRESHOLD = 0.7

    def __post_init__(self):
        if not self.MIN <= self.value <= self.MAX:
            raise ValidationError(
                f"Confidence score must be between {self.MIN} and {self.MAX}, got {self.value}"
            )

    @classmethod
    def of(cls, value: float) -> "ConfidenceScore":
        """Build a score, clamping the value into range."""
        return cls(max(cls.MIN, min(cls.MAX, float(value))))

    def exceeds(self, threshold: float) -> bool:
        return self.value > threshold

    @property
    def is_high(self) -> bool:
        return self.value >= 0.8

    @property
    def is_medium(self) -> bool:
        return 0.5 <= self.value < 0.8

    @property
    def is_low(self) -> bool:
        return self.value < 0.5


@dataclass(frozen=True)
class Category:
    """Budget category, optionally nested under a parent."""

    id: str
    name: str
    parent_id: Optional[str] = None
    active: bool = True


UNCATEGORIZED = Category(id="uncategorized", name="Uncategorized")


def effective(suggested: Optional[str], override: Optional[str]) -> Optional[str]:
    """Resolve a user-facing value: the override wins over the suggestion."""
    return override if override is not None else suggested


@dataclass(frozen=True)
class TransactionProcessingState:
    """Suggested and user-overridden values for a transaction.

    Only the latest state is kept; there is no override history.
    """

    transaction_id: TransactionId
    status: TransactionStatus = TransactionStatus.IMPORTED
    is_duplicate: bool = False
    suggested_payee_name: Optional[str] = None
    suggested_category: Optional[str] = None
    suggested_memo: Optional[str] = None
    category_confidence: Optional[ConfidenceScore] = None
    payee_confidence: Optional[ConfidenceScore] = None
    override_payee_name: Optional[str] = None
    override_category: Optional[str] = None
    override_memo: Optional[str] = None
    ynab_transaction_id: Optional[str] = None
    ynab_account_id: Optional[str] = None
    processed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    @classmethod
    def initial(cls, transaction: Transaction) -> "TransactionProcessingState":
        return cls(transaction_id=transaction.id, status=transaction.status)

    @property
    def effective_payee_name(self) -> Optional[str]:
        return effective(self.suggested_payee_name, self.override_payee_name)

    @property
    def effective_category(self) -> Optional[str]:
        return effective(self.suggested_category, self.override_category)

    @property
    def effective_memo(self) -> Optional[str]:
        return effective(self.suggested_memo, self.override_memo)

    @property
    def is_manually_categorized(self) -> bool:
        return self.override_category is not None

    @property
    def has_reliable_category(self) -> bool:
        return self.category_confidence is not None and self.category_confidence.exceeds(
            ConfidenceScore.RELIABLE_THRESHOLD
        )

    @property
    def submission_problem(self) -> Optional[str]:
        """Why the state cannot be submitted yet, or None when it can."""
        if self.is_duplicate:
            return "Transaction is marked as duplicate"
        if self.status is not TransactionStatus.CATEGORIZED:
            return f"Invalid status: {self.status.value}"
        if self.effective_category is None:
            return "Missing category"
        if self.effective_payee_name is None:
            return "Missing payee name"
        return None

    @property
    def is_ready_for_submission(self) -> bool:
        return self.submission_problem is None

    def with_ai_categorization(
        self,
        payee_name: Optional[str],
        category: Optional[str],
        memo: Optional[str],
        category_confidence: Optional[ConfidenceScore] = None,
        payee_confidence: Optional[ConfidenceScore] = None,
        now: Optional[datetime] = None,
    ) -> "TransactionProcessingState":
        status = self.status
        if category is not None and status is TransactionStatus.IMPORTED:
            status = TransactionStatus.CATEGORIZED
        return replace(
            self,
            status=status,
            suggested_payee_name=payee_name,
            suggested_category=category,
            suggested_memo=memo,
            category_confidence=category_confidence,
            payee_confidence=payee_confidence,
            processed_at=now or datetime.now(UTC),
        )

    def with_user_overrides(
        self,
        payee_name: Optional[str] = None,
        category: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> "TransactionProcessingState":
        """Apply user overrides. ``None`` keeps the existing override."""
        override_category = category if category is not None else self.override_category
        status = self.status
        if override_category is not None and status is TransactionStatus.IMPORTED:
            status = TransactionStatus.CATEGORIZED
        return replace(
            self,
            status=status,
            override_payee_name=payee_name if payee_name is not None else self.override_payee_name,
            override_category=override_category,
            override_memo=memo if memo is not None else self.override_memo,
        )

    def with_ynab_submission(
        self, ynab_transaction_id: str, ynab_account_id: str, now: Optional[datetime] = None
    ) -> "TransactionProcessingState":
        """Record a successful submission to YNAB.

        Raises:
            ValidationError: If the state is not categorized or lacks a
                category or payee
        """
        if self.is_duplicate:
            raise ValidationError("Cannot submit a transaction marked as duplicate")
        if self.status is not TransactionStatus.CATEGORIZED:
            raise ValidationError(
                f"Cannot submit transaction with status {self.status.value}, must be categorized"
            )
        if self.effective_category is None:
            raise ValidationError("Cannot submit transaction without a category")
        if self.effective_payee_name is None:
            raise ValidationError("Cannot submit transaction without a payee name")
        return replace(
            self,
            status=TransactionStatus.SUBMITTED,
            ynab_transaction_id=ynab_transaction_id,
            ynab_account_id=ynab_account_id,
            submitted_at=now or datetime.now(UTC),
        )

    def mark_as_duplicate(self) -> "TransactionProcessingState":
        return replace(self, is_duplicate=True)
