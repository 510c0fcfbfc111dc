"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class InvalidDateRangeError(ValidationError):
    """Requested import date range is rejected by the bank rules."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class TransactionImportError(DomainError):
    """Base class for failures while running an import."""


class BankSourceError(TransactionImportError):
    """Bank API unreachable, rejected the credentials or returned garbage."""


class StorageError(TransactionImportError):
    """A store could not read or write its entities."""


class ConflictError(StorageError):
    """Uniqueness violation in a store, such as a duplicate transaction id."""


class ImportBatchError(TransactionImportError):
    """Import batch could not be created, loaded or saved."""


class CategorizationError(DomainError):
    """Categorization engine failed to produce a result."""


class SubmissionError(DomainError):
    """Budget service rejected a transaction or could not be reached."""


def account_id_part_empty(part: str) -> str:
    """Return message for an empty account id component."""
    return f"{part} must not be empty"


def transaction_not_found(transaction_id: object) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def import_batch_not_found(batch_id: object) -> str:
    """Return message for missing import batch."""
    return f"Import batch not found with ID: {batch_id}"


def category_not_found(category_id: str) -> str:
    """Return message for missing category by ID."""
    return f"Category '{category_id}' not found"


def duplicate_transaction(transaction_id: object) -> str:
    """Return message for a transaction id that is already stored."""
    return f"Transaction '{transaction_id}' already exists"


def invalid_batch_transition(action: str, status: object) -> str:
    """Return message when a batch is finalized from a non-started state."""
    return f"Cannot {action} import with status {status}"


def currency_mismatch(operation: str, left: str, right: str) -> str:
    """Return message for arithmetic between different currencies."""
    return f"Cannot {operation} money with different currencies: {left} and {right}"
