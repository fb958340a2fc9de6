"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from exposure_gateway.api.main import create_app
from exposure_gateway.infrastructure.database.models import Base
from exposure_gateway.infrastructure.database.session import get_db
from exposure_gateway.infrastructure.database.repositories import (
    BankRepository,
    CollateralRepository,
    FacilityRepository,
    LoanRepository,
    TransactionRepository,
)
from exposure_gateway.domain.models import Bank, Facility, Loan, Transaction


USER_ID = "user_alpha"

# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def headers() -> dict:
    return {"X-User-ID": USER_ID}


@pytest.fixture
def sample_loan() -> Loan:
    """100,000 SAR for 90 days at 5.5% SIBOR + 2.75% margin (8.25% all-in)"""
    return Loan(
        id="loan-1",
        facility_id="fac-a",
        user_id=USER_ID,
        amount=Decimal("100000"),
        sibor_rate=Decimal("5.5"),
        bank_rate=Decimal("2.75"),
        start_date=date(2024, 1, 1),
        due_date=date(2024, 3, 31),  # 90 days
    )


@pytest.fixture
def sample_banks() -> list[Bank]:
    return [
        Bank(id="bank-a", name="Al Rajhi Bank", code="RJHI"),
        Bank(id="bank-b", name="Saudi National Bank", code="SNB"),
    ]


@pytest.fixture
def sample_facilities() -> list[Facility]:
    """Facility A: 1M limit at 7% all-in; facility B: 500k limit at 9% all-in"""
    return [
        Facility(
            id="fac-a",
            bank_id="bank-a",
            user_id=USER_ID,
            facility_type="term",
            credit_limit=Decimal("1000000"),
            sibor_rate=Decimal("5"),
            margin_rate=Decimal("2"),
            start_date=date(2024, 1, 1),
            expiry_date=date(2026, 12, 31),
        ),
        Facility(
            id="fac-b",
            bank_id="bank-b",
            user_id=USER_ID,
            facility_type="term",
            credit_limit=Decimal("500000"),
            sibor_rate=Decimal("5"),
            margin_rate=Decimal("4"),
            start_date=date(2024, 1, 1),
            expiry_date=date(2026, 12, 31),
        ),
    ]


def _make_transaction(loan: Loan, txn_type: str, txn_date: date, amount: str, txn_id: str = None) -> Transaction:
    return Transaction(
        id=txn_id or f"{txn_type}-{txn_date.isoformat()}",
        user_id=loan.user_id,
        bank_id="bank-a",
        date=txn_date,
        type=txn_type,
        amount=Decimal(amount),
        facility_id=loan.facility_id,
        loan_id=loan.id,
    )


@pytest.fixture
def ledger_entry():
    """Factory for ledger entries of a loan; ids default to type + date"""
    return _make_transaction


@pytest.fixture
def seeded_portfolio(db: Session) -> dict:
    """
    Persist the two-bank portfolio used by the API tests.

    Facility A (1M, 7%) carries a 200k loan and facility B (500k, 9%) a 450k
    loan, both drawn on the ledger. 250k of collateral is pledged.
    """
    banks = BankRepository(db)
    facilities = FacilityRepository(db)
    loans = LoanRepository(db)
    ledger = TransactionRepository(db)

    bank_a = banks.create_bank("Al Rajhi Bank", "RJHI")
    bank_b = banks.create_bank("Saudi National Bank", "SNB")

    fac_a = facilities.create_facility(
        USER_ID, bank_a.id, "term", Decimal("1000000"), Decimal("5"), Decimal("2"),
        date(2024, 1, 1), date(2030, 12, 31),
    )
    fac_b = facilities.create_facility(
        USER_ID, bank_b.id, "term", Decimal("500000"), Decimal("5"), Decimal("4"),
        date(2024, 1, 1), date(2030, 12, 31), max_revolving_period_days=365,
    )

    loan_a = loans.create_loan(
        USER_ID, fac_a.id, Decimal("200000"), Decimal("5"), Decimal("2"),
        date(2024, 1, 1), date(2024, 12, 31), "LN-A-001",
    )
    loan_b = loans.create_loan(
        USER_ID, fac_b.id, Decimal("450000"), Decimal("5"), Decimal("4"),
        date(2024, 1, 1), date(2024, 4, 1), "LN-B-001",
    )
    for loan, facility in ((loan_a, fac_a), (loan_b, fac_b)):
        ledger.append(
            user_id=USER_ID,
            bank_id=facility.bank_id,
            type="draw",
            date=loan.start_date,
            amount=loan.amount,
            facility_id=facility.id,
            loan_id=loan.id,
        )

    CollateralRepository(db).create_collateral(USER_ID, "real_estate", Decimal("250000"), name="Warehouse")
    db.commit()

    return {
        "bank_a": bank_a,
        "bank_b": bank_b,
        "facility_a": fac_a,
        "facility_b": fac_b,
        "loan_a": loan_a,
        "loan_b": loan_b,
    }
