"""Database layer for budgetsync application."""

from budgetsync.database.base import (
    CategoryStore,
    Database,
    ImportBatchStore,
    ProcessingStateStore,
    TransactionStore,
)
from budgetsync.database.factories import create_database, create_sqlite_database

__all__ = [
    "CategoryStore",
    "Database",
    "ImportBatchStore",
    "ProcessingStateStore",
    "TransactionStore",
    "create_database",
    "create_sqlite_database",
]
