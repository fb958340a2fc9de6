"""Load a tenant's portfolio from the datastore and derive balances by replay"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from exposure_gateway.config import settings
from exposure_gateway.domain.exposure import aggregate
from exposure_gateway.domain.models import (
    Bank,
    Facility,
    Loan,
    LoanBalance,
    PortfolioSummary,
    SettlementRecord,
    Transaction,
)
from exposure_gateway.domain.settlement import replay_loan
from exposure_gateway.infrastructure.database.repositories import (
    BankRepository,
    CollateralRepository,
    FacilityRepository,
    LoanRepository,
    TransactionRepository,
)
from exposure_gateway.infrastructure.observability.metrics import replay_duration_histogram


@dataclass
class PortfolioState:
    """Everything one request needs about a tenant, balances already derived"""

    as_of: date
    banks: List[Bank]
    facilities: List[Facility]
    loans: List[Loan]
    transactions: List[Transaction]
    records: Dict[str, SettlementRecord] = field(default_factory=dict)
    summary: Optional[PortfolioSummary] = None


def replay_loans(loans: List[Loan], transactions: List[Transaction], as_of: date) -> Dict[str, SettlementRecord]:
    """Replay every loan's ledger with the configured payment waterfall"""
    with replay_duration_histogram.time():
        return {
            loan.id: replay_loan(loan, transactions, as_of, settings.payment_waterfall)
            for loan in loans
        }


def load_portfolio(db: Session, user_id: str, as_of: date) -> PortfolioState:
    facilities = FacilityRepository(db).list_facilities(user_id)
    loans = LoanRepository(db).list_loans(user_id)
    transactions = TransactionRepository(db).list_by_user(user_id)
    banks = BankRepository(db).list_banks()
    collateral = CollateralRepository(db).list_collateral(user_id)

    records = replay_loans(loans, transactions, as_of)
    summary = aggregate(
        [LoanBalance.from_record(r) for r in records.values()],
        facilities,
        collateral,
        banks,
    )
    return PortfolioState(
        as_of=as_of,
        banks=banks,
        facilities=facilities,
        loans=loans,
        transactions=transactions,
        records=records,
        summary=summary,
    )
