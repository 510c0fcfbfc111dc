"""Duplicate reconciliation of freshly fetched transactions."""

from dataclasses import dataclass, field
from typing import Iterable

from budgetsync.domain.entities import Transaction, TransactionId


@dataclass(frozen=True)
class ReconcileResult:
    """Partition of candidates into new transactions and duplicates."""

    new: list[Transaction] = field(default_factory=list)
    duplicates: list[Transaction] = field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)

    @property
    def total(self) -> int:
        return len(self.new) + len(self.duplicates)


def reconcile(
    candidates: Iterable[Transaction], already_stored: Iterable[Transaction]
) -> ReconcileResult:
    """Split candidates into new ones and duplicates of stored transactions.

    A candidate is a duplicate when its id (account + external id) matches a
    stored transaction or an earlier candidate of the same batch. New
    transactions keep the order in which the source delivered them.
    """
    seen: set[TransactionId] = {txn.id for txn in already_stored}
    new = []
    duplicates = []
    for candidate in candidates:
        if candidate.id in seen:
            duplicates.append(candidate)
            continue
        seen.add(candidate.id)
        new.append(candidate)
    return ReconcileResult(new=new, duplicates=duplicates)
