import os
from decimal import Decimal
from typing import Optional

import pytest

from config import TestingSettings, get_settings
from main import configure_logging
from models import TransactionRecord
from repositories import InMemoryAccountRepository, InMemoryTransactionRepository
from services import TransactionManager

FIXTURES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")


def txn(kind: str, client: int, tx: int, amount: Optional[str] = None) -> TransactionRecord:
    """Shorthand for building an input record in tests."""
    return TransactionRecord(
        kind=kind,
        client=client,
        id=tx,
        amount=Decimal(amount) if amount is not None else None,
    )


@pytest.fixture(autouse=True, scope="session")
def testing_logging():
    """Keep log output on stderr and quiet for the whole session."""
    configure_logging(TestingSettings())


@pytest.fixture(autouse=True)
def testing_environment(monkeypatch):
    """Make get_settings() resolve to TestingSettings for every test."""
    monkeypatch.setenv("TXNFLOW_ENV", "testing")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return TestingSettings()


@pytest.fixture
def transaction_repo():
    return InMemoryTransactionRepository()


@pytest.fixture
def account_repo():
    return InMemoryAccountRepository()


@pytest.fixture
def manager(transaction_repo, account_repo):
    return TransactionManager(transaction_repo, account_repo)


@pytest.fixture
def fixture_path():
    def _path(filename: str) -> str:
        return os.path.join(FIXTURES_DIR, filename)
    return _path
