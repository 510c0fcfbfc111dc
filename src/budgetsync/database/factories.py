"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from budgetsync.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "BUDGETSYNC_DB_PATH"


def default_database_path() -> Path:
    """Return BUDGETSYNC_DB_PATH if set, else ~/.budgetsync/budgetsync.db."""
    env_path = os.environ.get(DB_PATH_ENV)
    if env_path:
        return Path(env_path)
    return Path.home() / ".budgetsync" / "budgetsync.db"


def create_database(database_url: str) -> SQLAlchemyDatabase:
    """Create a database for any SQLAlchemy URL."""
    return SQLAlchemyDatabase(database_url)


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks
            BUDGETSYNC_DB_PATH environment variable, then defaults to
            ~/.budgetsync/budgetsync.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    path = Path(database_path) if database_path is not None else default_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    return create_database(f"sqlite:///{path}")
