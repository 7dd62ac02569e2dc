"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from ledger_core.api.main import create_app
from ledger_core.infrastructure.database.models import Base, Account
from ledger_core.infrastructure.database.repositories import AccountRepository
from ledger_core.infrastructure.database.session import get_db
from ledger_core.api.dependencies import get_transaction_service
from ledger_core.services.transactions import TransactionService
from ledger_core.domain.models import CreditCardPolicy, Transaction


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

FIXED_NOW = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def service(db: Session) -> TransactionService:
    """Transaction service with a frozen clock"""
    return TransactionService(db, clock=lambda: FIXED_NOW)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transaction_service] = lambda: TransactionService(db, clock=lambda: FIXED_NOW)
    return TestClient(app)


@pytest.fixture
def card_account(db: Session) -> Account:
    """Credit card due on the 15th, cutoff 5 days earlier"""
    account = AccountRepository(db).create_account(
        name="Visa", kind="credit_card", due_day=15, cutoff_days_before_due=5
    )
    db.commit()
    return account


@pytest.fixture
def checking_account(db: Session) -> Account:
    account = AccountRepository(db).create_account(name="Checking", kind="depository")
    db.commit()
    return account


@pytest.fixture
def card_policy() -> CreditCardPolicy:
    return CreditCardPolicy(due_day=15, cutoff_days_before_due=5)


@pytest.fixture
def make_transaction():
    """Factory for in-memory domain transactions"""

    def _make(txn_date: date, **kwargs) -> Transaction:
        defaults = dict(
            id="txn_1",
            account_id="acct_1",
            name="Coffee",
            date=txn_date,
            amount=Decimal("4.50"),
        )
        defaults.update(kwargs)
        return Transaction(**defaults)

    return _make
