"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class FacilityType(str, Enum):
    TERM = "term"
    REVOLVING = "revolving"
    WORKING_CAPITAL = "working_capital"
    OVERDRAFT = "overdraft"
    BRIDGE = "bridge"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    OVERDUE = "overdue"
    SETTLED = "settled"
    RESTRUCTURED = "restructured"


class TransactionType(str, Enum):
    DRAW = "draw"
    REPAYMENT = "repayment"
    FEE = "fee"
    INTEREST = "interest"
    LIMIT_CHANGE = "limit_change"
    OTHER = "other"


@dataclass
class Bank:
    """Lending bank"""

    id: str
    name: str
    code: str = ""
    is_active: bool = True


@dataclass
class Facility:
    """Credit facility granted by one bank to one tenant"""

    id: str
    bank_id: str
    user_id: str
    facility_type: str
    credit_limit: Decimal
    sibor_rate: Decimal
    margin_rate: Decimal
    start_date: date
    expiry_date: date
    is_active: bool = True
    max_revolving_period_days: Optional[int] = None  # None = revolving period not tracked

    @property
    def all_in_rate(self) -> Decimal:
        return self.sibor_rate + self.margin_rate


@dataclass
class Loan:
    """Drawdown against a facility. `amount` is the original drawdown and never changes."""

    id: str
    facility_id: str
    user_id: str
    amount: Decimal
    sibor_rate: Decimal
    bank_rate: Decimal
    start_date: date
    due_date: date
    status: str = LoanStatus.ACTIVE.value
    reference_number: str = ""
    settled_date: Optional[date] = None
    settled_amount: Optional[Decimal] = None

    @property
    def all_in_rate(self) -> Decimal:
        return self.sibor_rate + self.bank_rate

    @property
    def duration_days(self) -> int:
        return (self.due_date - self.start_date).days


@dataclass
class Transaction:
    """Immutable ledger entry"""

    id: str
    user_id: str
    bank_id: str
    date: date
    type: str
    amount: Decimal  # signed; repayments may be recorded negative
    facility_id: Optional[str] = None
    loan_id: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class Collateral:
    """Pledged asset, used only as the LTV denominator"""

    id: str
    user_id: str
    asset_type: str
    current_value: Decimal
    name: str = ""
    facility_id: Optional[str] = None
    loan_id: Optional[str] = None
    is_active: bool = True


@dataclass
class ExposureSnapshot:
    """Point-in-time cache of aggregator output"""

    user_id: str
    date: date
    outstanding: Decimal
    credit_limit: Decimal
    bank_id: Optional[str] = None
    facility_id: Optional[str] = None


@dataclass
class Allocation:
    """Split of one payment across the waterfall buckets"""

    fees_paid: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    remainder: Decimal

    @property
    def total_applied(self) -> Decimal:
        return self.fees_paid + self.interest_paid + self.principal_paid


@dataclass
class SettlementBreakdown:
    principal_paid: Decimal
    principal_remaining: Decimal
    interest_paid: Decimal
    interest_remaining: Decimal
    fees_paid: Decimal
    fees_remaining: Decimal


@dataclass
class SettlementRecord:
    """Result of replaying one loan's ledger as of a given date"""

    loan_id: str
    facility_id: str
    as_of: date
    settlement_status: str
    restructured: bool
    settlement_progress: Decimal
    principal_progress: Decimal
    interest_progress: Decimal
    total_drawn: Decimal
    total_repaid: Decimal
    total_interest_accrued: Decimal
    total_fees_charged: Decimal
    outstanding_principal: Decimal
    outstanding_balance: Decimal
    unapplied_credit: Decimal
    breakdown: SettlementBreakdown
    transaction_count: int
    last_transaction_date: Optional[date] = None
    settled_date: Optional[date] = None
    settled_amount: Optional[Decimal] = None


@dataclass
class SettlementSummary:
    total_loans: int
    active_loans: int
    overdue_loans: int
    settled_loans: int
    total_outstanding: Decimal
    average_settlement_progress: Decimal


@dataclass
class LoanBalance:
    """Derived outstanding principal of one loan, input to the aggregator"""

    loan_id: str
    facility_id: str
    outstanding: Decimal
    status: str = LoanStatus.ACTIVE.value

    @classmethod
    def from_record(cls, record: SettlementRecord) -> "LoanBalance":
        return cls(
            loan_id=record.loan_id,
            facility_id=record.facility_id,
            outstanding=record.outstanding_principal,
            status=record.settlement_status,
        )


@dataclass
class BankExposure:
    bank_id: str
    bank_name: str
    outstanding: Decimal
    credit_limit: Decimal
    utilization: Decimal
    utilization_defined: bool
    concentration: Decimal


@dataclass
class FacilityExposure:
    facility_id: str
    bank_id: str
    outstanding: Decimal
    credit_limit: Decimal
    available_credit: Decimal
    utilization: Decimal
    utilization_defined: bool


@dataclass
class PortfolioSummary:
    total_outstanding: Decimal
    total_credit_limit: Decimal
    available_credit: Decimal
    total_collateral_value: Decimal
    portfolio_ltv: Decimal
    ltv_applicable: bool
    active_loans_count: int
    bank_exposures: List[BankExposure] = field(default_factory=list)
    facility_exposures: List[FacilityExposure] = field(default_factory=list)


@dataclass
class LoanCost:
    """Baseline cost of a loan over its full tenor"""

    amount: Decimal
    rate: Decimal
    duration_days: int
    interest: Decimal
    total_cost: Decimal
    due_date: date


@dataclass
class ScenarioResult:
    """One what-if projection; fields not relevant to the scenario type stay None"""

    type: str  # "refinance" | "early_payment" | "partial_payment" | "term_change"
    name: str
    interest: Decimal
    total_cost: Decimal
    verdict: str
    recommendation: str
    savings: Optional[Decimal] = None
    savings_percent: Optional[Decimal] = None
    difference: Optional[Decimal] = None
    difference_percent: Optional[Decimal] = None
    new_rate: Optional[Decimal] = None
    payment_amount: Optional[Decimal] = None
    payment_date: Optional[date] = None
    days_elapsed: Optional[int] = None
    interest_to_date: Optional[Decimal] = None
    future_interest: Optional[Decimal] = None
    remaining_principal: Optional[Decimal] = None
    remainder: Optional[Decimal] = None
    new_duration_days: Optional[int] = None
    new_due_date: Optional[date] = None


@dataclass
class ScenarioAnalysis:
    loan_id: str
    current: LoanCost
    scenarios: List[ScenarioResult] = field(default_factory=list)


@dataclass
class RevolvingUsage:
    facility_id: str
    max_revolving_period_days: int
    days_used: int
    days_remaining: int
    percentage_used: Decimal
    status: str  # "available" | "warning" | "critical" | "expired"
    can_revolve: bool
    active_loans: int
    total_loans: int


@dataclass
class FacilityCandidate:
    """Facility joined with its exposure figures, input to the matcher"""

    facility: Facility
    bank_name: str
    outstanding: Decimal
    available_credit: Decimal
    utilization: Decimal
    revolving: Optional[RevolvingUsage] = None

    @property
    def facility_name(self) -> str:
        return f"{self.bank_name} - {self.facility.facility_type}"


@dataclass
class FacilityScore:
    facility_id: str
    facility_name: str
    bank_name: str
    facility_type: str
    credit_limit: Decimal
    outstanding: Decimal
    available_credit: Decimal
    utilization_percent: Decimal
    interest_rate: Decimal
    score: Decimal
    eligible: bool
    reasons: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class MatchResult:
    requested_amount: Decimal
    message: str
    recommendation: Optional[FacilityScore] = None
    alternatives: List[FacilityScore] = field(default_factory=list)
    all_facilities: List[FacilityScore] = field(default_factory=list)
