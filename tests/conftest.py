"""
Shared pytest fixtures for txmatch tests.

Provides preferences, stores, sample records and file helpers.
"""

import pytest
import sys
from pathlib import Path
from datetime import date
from decimal import Decimal

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from txmatch.core.models import BankTransaction, Receipt, TransactionType
from txmatch.core.preferences import Preferences
from txmatch.core.store import InMemoryStore, SqliteStore


# Fixed reference date for aging tests
AS_OF = date(2024, 3, 1)


@pytest.fixture
def preferences():
    """Provide default preferences."""
    return Preferences()


@pytest.fixture
def memory_store():
    """Provide an empty in-memory collection store."""
    return InMemoryStore()


@pytest.fixture
def sqlite_store(tmp_path):
    """Provide a file-backed SQLite store that is closed after the test."""
    store = SqliteStore(tmp_path / "txmatch.db")
    yield store
    store.close()


@pytest.fixture
def as_of():
    return AS_OF


def make_bank(id, amount, on, description="CARD PURCHASE", type=TransactionType.DEBIT):
    """Build a BankTransaction with a string or Decimal amount."""
    return BankTransaction(
        id=id,
        date=on,
        description=description,
        amount=Decimal(str(amount)),
        type=type,
    )


def make_receipt(id, amount, on, employee="Jane Doe", job="JOB-1", description=""):
    """Build a Receipt with a string or Decimal amount."""
    return Receipt(
        id=id,
        date=on,
        employee=employee,
        job=job,
        amount=Decimal(str(amount)),
        description=description,
    )


@pytest.fixture
def sample_bank_transactions():
    """Three bank transactions spread over February 2024."""
    return [
        make_bank("b1", "42.50", date(2024, 2, 20), "SHELL OIL 1234"),
        make_bank("b2", "100.00", date(2024, 2, 1), "HOME DEPOT"),
        make_bank("b3", "15.99", date(2024, 1, 10), "OFFICE SUPPLY CO"),
    ]


@pytest.fixture
def sample_receipts():
    """Receipts that match two of the sample bank transactions."""
    return [
        make_receipt("r1", "42.50", date(2024, 2, 21), employee="John Smith", job="WO-7"),
        make_receipt("r2", "100.00", date(2024, 2, 15), employee="Jane Doe", job="WO-3"),
    ]


@pytest.fixture
def write_file(tmp_path):
    """Write text content to a file in tmp_path and return its path."""
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def bank_factory():
    """Provide the BankTransaction builder."""
    return make_bank


@pytest.fixture
def receipt_factory():
    """Provide the Receipt builder."""
    return make_receipt
