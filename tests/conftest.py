"""Shared pytest fixtures for budgetsync tests."""

import json
import os
import tempfile

import pytest

from budgetsync.bank.memory import InMemoryBankSource
from budgetsync.database.factories import create_sqlite_database
from budgetsync.database.memory import InMemoryDatabase
from budgetsync.domain.entities import AccountId
from budgetsync.domain.mapper import RawBankRecord
from budgetsync.domain.transaction_import import TransactionImportService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def memory_db():
    """All stores in memory."""
    return InMemoryDatabase()


@pytest.fixture
def account_id():
    return AccountId(bank_id="2010", bank_account_id="2200000001")


@pytest.fixture
def other_account_id():
    return AccountId(bank_id="0800", bank_account_id="1234567890")


@pytest.fixture
def make_record():
    """Factory for raw bank records with sensible defaults."""

    def _make(external_id="1001", day=10, amount="-250.00", **overrides):
        values = {
            "date": f"2025-03-{day:02d}+0100",
            "amount": amount,
            "currency": "CZK",
            "external_id": external_id,
            "transaction_type": "Card payment",
            "comment": "Groceries",
        }
        values.update(overrides)
        return RawBankRecord(**values)

    return _make


@pytest.fixture
def bank_source():
    return InMemoryBankSource()


@pytest.fixture
def import_service(memory_db, bank_source):
    """Import service over in-memory stores and bank."""
    return TransactionImportService(memory_db.transactions, memory_db.import_batches, bank_source)


@pytest.fixture
def sql_import_service(temp_db, bank_source):
    """Import service over the temporary SQLite database."""
    return TransactionImportService(temp_db.transactions, temp_db.import_batches, bank_source)


def fio_column(number, value):
    return {"value": value, "name": f"column{number}", "id": number}


def fio_statement(account="2200000001", bank="2010", transactions=()):
    """Build a Fio statement document."""
    return {
        "accountStatement": {
            "info": {"accountId": account, "bankId": bank, "currency": "CZK"},
            "transactionList": {"transaction": list(transactions)},
        }
    }


def fio_transaction(move_id, day, amount, message=None, comment=None, counterparty=None):
    transaction = {
        "column0": fio_column(0, f"2025-03-{day:02d}+0100"),
        "column1": fio_column(1, amount),
        "column8": fio_column(8, "Card payment"),
        "column14": fio_column(14, "CZK"),
        "column22": fio_column(22, move_id),
    }
    if message is not None:
        transaction["column7"] = fio_column(7, message)
    if comment is not None:
        transaction["column25"] = fio_column(25, comment)
    if counterparty is not None:
        transaction["column10"] = fio_column(10, counterparty)
    return transaction


@pytest.fixture
def statements_dir(tmp_path):
    """Directory holding one Fio statement for March 2025."""
    directory = tmp_path / "statements"
    directory.mkdir()
    document = fio_statement(
        transactions=[
            fio_transaction(26000000001, 3, -189.0, message="UBER *TRIP", comment="Ride"),
            fio_transaction(26000000002, 5, -1250.5, message="ALBERT HYPERMARKET", comment="Groceries"),
            fio_transaction(26000000003, 12, 45000.0, comment="Salary", counterparty="ACME s.r.o."),
        ]
    )
    (directory / "2025-03.json").write_text(json.dumps(document), encoding="utf-8")
    return directory


@pytest.fixture
def rules_file(tmp_path):
    """YAML categorization rules."""
    path = tmp_path / "rules.yaml"
    path.write_text(
        "rules:\n"
        "  - keyword: uber\n"
        "    category: transportation\n"
        "    name: Transportation\n"
        "  - keyword: albert\n"
        "    category: food-dining/groceries\n"
        "    name: Groceries\n"
        "    confidence: 0.8\n"
        "default_category: other\n"
        "default_confidence: 0.4\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
