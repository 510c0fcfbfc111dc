"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so the domain entities stay free of
persistence concerns such as surrogate keys and naive SQLite timestamps.
"""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional

from budgetsync.domain import entities as domain
from budgetsync.database.models import (
    Category as ORMCategory,
    ImportBatch as ORMImportBatch,
    ProcessingState as ORMProcessingState,
    Transaction as ORMTransaction,
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite returns naive datetimes; everything is stored as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _score(value: Optional[float]) -> Optional[domain.ConfidenceScore]:
    return None if value is None else domain.ConfidenceScore.of(value)


def import_batch_id_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatchId:
    return domain.ImportBatchId(
        account_prefix=orm_batch.account_prefix,
        sequence_number=orm_batch.sequence_number,
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    """Convert SQLAlchemy ImportBatch model to domain ImportBatch entity."""
    return domain.ImportBatch(
        id=import_batch_id_to_domain(orm_batch),
        account_id=domain.AccountId(
            bank_id=orm_batch.bank_id, bank_account_id=orm_batch.bank_account_id
        ),
        start_date=orm_batch.start_date,
        end_date=orm_batch.end_date,
        status=domain.ImportStatus(orm_batch.status),
        transaction_count=orm_batch.transaction_count,
        error_message=orm_batch.error_message,
        start_time=_aware(orm_batch.start_time),
        end_time=_aware(orm_batch.end_time),
        created_at=_aware(orm_batch.created_at),
        updated_at=_aware(orm_batch.updated_at),
    )


def apply_import_batch(batch: domain.ImportBatch, orm_batch: ORMImportBatch) -> ORMImportBatch:
    """Copy domain ImportBatch fields onto a (new or loaded) ORM row."""
    orm_batch.account_prefix = batch.id.account_prefix
    orm_batch.sequence_number = batch.id.sequence_number
    orm_batch.bank_id = batch.account_id.bank_id
    orm_batch.bank_account_id = batch.account_id.bank_account_id
    orm_batch.start_date = batch.start_date
    orm_batch.end_date = batch.end_date
    orm_batch.status = batch.status.value
    orm_batch.transaction_count = batch.transaction_count
    orm_batch.error_message = batch.error_message
    orm_batch.start_time = batch.start_time
    orm_batch.end_time = batch.end_time
    orm_batch.created_at = batch.created_at
    orm_batch.updated_at = batch.updated_at
    return orm_batch


def transaction_id_to_domain(orm_transaction: ORMTransaction) -> domain.TransactionId:
    return domain.TransactionId(
        account_id=domain.AccountId(
            bank_id=orm_transaction.bank_id,
            bank_account_id=orm_transaction.bank_account_id,
        ),
        external_id=orm_transaction.external_id,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=transaction_id_to_domain(orm_transaction),
        date=orm_transaction.date,
        amount=domain.Money(Decimal(orm_transaction.amount), orm_transaction.currency),
        description=orm_transaction.description,
        import_batch_id=import_batch_id_to_domain(orm_transaction.import_batch),
        created_at=_aware(orm_transaction.created_at),
        updated_at=_aware(orm_transaction.updated_at),
        counterparty=orm_transaction.counterparty,
        counter_account=orm_transaction.counter_account,
        reference=orm_transaction.reference,
        transaction_type=orm_transaction.transaction_type,
        comment=orm_transaction.comment,
        message=orm_transaction.message,
        status=domain.TransactionStatus(orm_transaction.status),
    )


def transaction_to_orm(transaction: domain.Transaction, import_batch_pk: int) -> ORMTransaction:
    """Build a new ORM row for a domain Transaction."""
    return ORMTransaction(
        bank_id=transaction.id.account_id.bank_id,
        bank_account_id=transaction.id.account_id.bank_account_id,
        external_id=transaction.id.external_id,
        date=transaction.date,
        amount=transaction.amount.amount,
        currency=transaction.amount.currency,
        description=transaction.description,
        counterparty=transaction.counterparty,
        counter_account=transaction.counter_account,
        reference=transaction.reference,
        transaction_type=transaction.transaction_type,
        comment=transaction.comment,
        message=transaction.message,
        import_batch_id=import_batch_pk,
        status=transaction.status.value,
        created_at=transaction.created_at,
        updated_at=transaction.updated_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        active=orm_category.active,
    )


def processing_state_to_domain(orm_state: ORMProcessingState) -> domain.TransactionProcessingState:
    """Convert SQLAlchemy ProcessingState model to domain entity."""
    return domain.TransactionProcessingState(
        transaction_id=transaction_id_to_domain(orm_state.transaction),
        status=domain.TransactionStatus(orm_state.status),
        is_duplicate=orm_state.is_duplicate,
        suggested_payee_name=orm_state.suggested_payee_name,
        suggested_category=orm_state.suggested_category,
        suggested_memo=orm_state.suggested_memo,
        category_confidence=_score(orm_state.category_confidence),
        payee_confidence=_score(orm_state.payee_confidence),
        override_payee_name=orm_state.override_payee_name,
        override_category=orm_state.override_category,
        override_memo=orm_state.override_memo,
        ynab_transaction_id=orm_state.ynab_transaction_id,
        ynab_account_id=orm_state.ynab_account_id,
        processed_at=_aware(orm_state.processed_at),
        submitted_at=_aware(orm_state.submitted_at),
    )


def apply_processing_state(
    state: domain.TransactionProcessingState, orm_state: ORMProcessingState
) -> ORMProcessingState:
    """Copy domain processing state fields onto an ORM row."""
    orm_state.status = state.status.value
    orm_state.is_duplicate = state.is_duplicate
    orm_state.suggested_payee_name = state.suggested_payee_name
    orm_state.suggested_category = state.suggested_category
    orm_state.suggested_memo = state.suggested_memo
    orm_state.category_confidence = (
        state.category_confidence.value if state.category_confidence else None
    )
    orm_state.payee_confidence = state.payee_confidence.value if state.payee_confidence else None
    orm_state.override_payee_name = state.override_payee_name
    orm_state.override_category = state.override_category
    orm_state.override_memo = state.override_memo
    orm_state.ynab_transaction_id = state.ynab_transaction_id
    orm_state.ynab_account_id = state.ynab_account_id
    orm_state.processed_at = state.processed_at
    orm_state.submitted_at = state.submitted_at
    return orm_state
