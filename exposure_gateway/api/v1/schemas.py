"""Pydantic schemas for API request/response validation

Monetary amounts and percentages leave the service as strings quantized to
two decimal places; the engine itself never rounds.
"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from exposure_gateway.domain.accrual import to_minor_unit
from exposure_gateway.domain.models import (
    Allocation,
    BankExposure,
    ExposureSnapshot,
    FacilityExposure,
    FacilityScore,
    LoanCost,
    MatchResult,
    PortfolioSummary,
    RevolvingUsage,
    ScenarioAnalysis,
    ScenarioResult,
    SettlementRecord,
    SettlementSummary,
)


def money(amount: Optional[Decimal]) -> Optional[str]:
    return str(to_minor_unit(amount)) if amount is not None else None


# Percentages share the minor-unit quantum (two places)
percent = money


# Requests


class RefinanceInput(BaseModel):
    new_rate: Decimal = Field(..., description="Proposed all-in annual rate, percent")


class EarlyPaymentInput(BaseModel):
    payment_amount: Decimal
    payment_date: Optional[date] = Field(None, description="Defaults to the analysis date")


class TermChangeInput(BaseModel):
    new_duration_days: int


class ScenarioInputs(BaseModel):
    refinance: Optional[RefinanceInput] = None
    early_payment: Optional[EarlyPaymentInput] = None
    term_change: Optional[TermChangeInput] = None


class WhatIfRequest(BaseModel):
    """Request body for POST /v1/scenarios/what-if"""

    loan_id: str = Field(..., min_length=1)
    scenarios: ScenarioInputs = Field(default_factory=ScenarioInputs)
    as_of: Optional[date] = None


class MatchRequest(BaseModel):
    """Request body for POST /v1/facilities/match"""

    loan_amount: Decimal = Field(..., description="Requested drawdown in SAR")
    facility_type: Optional[str] = Field(
        None, description="term, revolving, working_capital, overdraft or bridge; hyphens are accepted"
    )
    duration: Optional[int] = Field(None, description="Intended loan duration in days")
    as_of: Optional[date] = None


class DrawRequest(BaseModel):
    """Request body for POST /v1/facilities/{facility_id}/draws"""

    amount: Decimal = Field(..., gt=0)
    due_date: date
    start_date: Optional[date] = None
    sibor_rate: Optional[Decimal] = Field(None, ge=0, description="Defaults to the facility's SIBOR")
    bank_rate: Optional[Decimal] = Field(None, ge=0, description="Defaults to the facility's margin")
    reference_number: str = ""


class RepaymentRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/repayments"""

    amount: Decimal = Field(..., gt=0, description="Repayment in SAR")
    payment_date: Optional[date] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


# Scenarios


class LoanCostSchema(BaseModel):
    amount: str
    rate: str
    duration_days: int
    interest: str
    total_cost: str
    due_date: date

    @classmethod
    def from_domain(cls, cost: LoanCost) -> "LoanCostSchema":
        return cls(
            amount=money(cost.amount),
            rate=percent(cost.rate),
            duration_days=cost.duration_days,
            interest=money(cost.interest),
            total_cost=money(cost.total_cost),
            due_date=cost.due_date,
        )


class ScenarioSchema(BaseModel):
    type: str
    name: str
    interest: str
    total_cost: str
    verdict: str
    recommendation: str
    savings: Optional[str] = None
    savings_percent: Optional[str] = None
    difference: Optional[str] = None
    difference_percent: Optional[str] = None
    new_rate: Optional[str] = None
    payment_amount: Optional[str] = None
    payment_date: Optional[date] = None
    days_elapsed: Optional[int] = None
    interest_to_date: Optional[str] = None
    future_interest: Optional[str] = None
    remaining_principal: Optional[str] = None
    remainder: Optional[str] = None
    new_duration_days: Optional[int] = None
    new_due_date: Optional[date] = None

    @classmethod
    def from_domain(cls, result: ScenarioResult) -> "ScenarioSchema":
        return cls(
            type=result.type,
            name=result.name,
            interest=money(result.interest),
            total_cost=money(result.total_cost),
            verdict=result.verdict,
            recommendation=result.recommendation,
            savings=money(result.savings),
            savings_percent=percent(result.savings_percent),
            difference=money(result.difference),
            difference_percent=percent(result.difference_percent),
            new_rate=percent(result.new_rate),
            payment_amount=money(result.payment_amount),
            payment_date=result.payment_date,
            days_elapsed=result.days_elapsed,
            interest_to_date=money(result.interest_to_date),
            future_interest=money(result.future_interest),
            remaining_principal=money(result.remaining_principal),
            remainder=money(result.remainder),
            new_duration_days=result.new_duration_days,
            new_due_date=result.new_due_date,
        )


class WhatIfResponse(BaseModel):
    """Response for POST /v1/scenarios/what-if"""

    loan_id: str
    current: LoanCostSchema
    scenarios: List[ScenarioSchema]

    @classmethod
    def from_domain(cls, analysis: ScenarioAnalysis) -> "WhatIfResponse":
        return cls(
            loan_id=analysis.loan_id,
            current=LoanCostSchema.from_domain(analysis.current),
            scenarios=[ScenarioSchema.from_domain(s) for s in analysis.scenarios],
        )


# Facility matching


class FacilityScoreSchema(BaseModel):
    facility_id: str
    facility_name: str
    bank_name: str
    facility_type: str
    credit_limit: str
    outstanding: str
    available_credit: str
    utilization_percent: str
    interest_rate: str
    score: str
    eligible: bool
    reasons: List[str]
    warnings: List[str]

    @classmethod
    def from_domain(cls, score: FacilityScore) -> "FacilityScoreSchema":
        return cls(
            facility_id=score.facility_id,
            facility_name=score.facility_name,
            bank_name=score.bank_name,
            facility_type=score.facility_type,
            credit_limit=money(score.credit_limit),
            outstanding=money(score.outstanding),
            available_credit=money(score.available_credit),
            utilization_percent=percent(score.utilization_percent),
            interest_rate=percent(score.interest_rate),
            score=percent(score.score),
            eligible=score.eligible,
            reasons=list(score.reasons),
            warnings=list(score.warnings),
        )


class MatchResponse(BaseModel):
    """Response for POST /v1/facilities/match"""

    requested_amount: str
    message: str
    recommendation: Optional[FacilityScoreSchema] = None
    alternatives: List[FacilityScoreSchema]
    all_facilities: List[FacilityScoreSchema]

    @classmethod
    def from_domain(cls, result: MatchResult) -> "MatchResponse":
        return cls(
            requested_amount=money(result.requested_amount),
            message=result.message,
            recommendation=FacilityScoreSchema.from_domain(result.recommendation) if result.recommendation else None,
            alternatives=[FacilityScoreSchema.from_domain(s) for s in result.alternatives],
            all_facilities=[FacilityScoreSchema.from_domain(s) for s in result.all_facilities],
        )


class RevolvingUsageResponse(BaseModel):
    """Response for GET /v1/facilities/{facility_id}/revolving-usage"""

    facility_id: str
    max_revolving_period_days: int
    days_used: int
    days_remaining: int
    percentage_used: str
    status: str
    can_revolve: bool
    active_loans: int
    total_loans: int

    @classmethod
    def from_domain(cls, usage: RevolvingUsage) -> "RevolvingUsageResponse":
        return cls(
            facility_id=usage.facility_id,
            max_revolving_period_days=usage.max_revolving_period_days,
            days_used=usage.days_used,
            days_remaining=usage.days_remaining,
            percentage_used=percent(usage.percentage_used),
            status=usage.status,
            can_revolve=usage.can_revolve,
            active_loans=usage.active_loans,
            total_loans=usage.total_loans,
        )


class DrawResponse(BaseModel):
    """Response for POST /v1/facilities/{facility_id}/draws"""

    loan_id: str
    facility_id: str
    transaction_id: str
    amount: str
    all_in_rate: str
    start_date: date
    due_date: date
    status: str


# Portfolio


class BankExposureSchema(BaseModel):
    bank_id: str
    bank_name: str
    outstanding: str
    credit_limit: str
    utilization: str
    utilization_defined: bool
    concentration: str

    @classmethod
    def from_domain(cls, exposure: BankExposure) -> "BankExposureSchema":
        return cls(
            bank_id=exposure.bank_id,
            bank_name=exposure.bank_name,
            outstanding=money(exposure.outstanding),
            credit_limit=money(exposure.credit_limit),
            utilization=percent(exposure.utilization),
            utilization_defined=exposure.utilization_defined,
            concentration=percent(exposure.concentration),
        )


class FacilityExposureSchema(BaseModel):
    facility_id: str
    bank_id: str
    outstanding: str
    credit_limit: str
    available_credit: str
    utilization: str
    utilization_defined: bool

    @classmethod
    def from_domain(cls, exposure: FacilityExposure) -> "FacilityExposureSchema":
        return cls(
            facility_id=exposure.facility_id,
            bank_id=exposure.bank_id,
            outstanding=money(exposure.outstanding),
            credit_limit=money(exposure.credit_limit),
            available_credit=money(exposure.available_credit),
            utilization=percent(exposure.utilization),
            utilization_defined=exposure.utilization_defined,
        )


class PortfolioSummaryResponse(BaseModel):
    """Response for GET /v1/portfolio/summary"""

    as_of: date
    total_outstanding: str
    total_credit_limit: str
    available_credit: str
    total_collateral_value: str
    portfolio_ltv: str
    ltv_applicable: bool
    active_loans_count: int
    bank_exposures: List[BankExposureSchema]
    facility_exposures: List[FacilityExposureSchema]

    @classmethod
    def from_domain(cls, summary: PortfolioSummary, as_of: date) -> "PortfolioSummaryResponse":
        return cls(
            as_of=as_of,
            total_outstanding=money(summary.total_outstanding),
            total_credit_limit=money(summary.total_credit_limit),
            available_credit=money(summary.available_credit),
            total_collateral_value=money(summary.total_collateral_value),
            portfolio_ltv=percent(summary.portfolio_ltv),
            ltv_applicable=summary.ltv_applicable,
            active_loans_count=summary.active_loans_count,
            bank_exposures=[BankExposureSchema.from_domain(b) for b in summary.bank_exposures],
            facility_exposures=[FacilityExposureSchema.from_domain(f) for f in summary.facility_exposures],
        )


class SnapshotSchema(BaseModel):
    snapshot_date: date
    scope: str  # portfolio | bank | facility
    bank_id: Optional[str] = None
    facility_id: Optional[str] = None
    outstanding: str
    credit_limit: str

    @classmethod
    def from_domain(cls, snapshot: ExposureSnapshot) -> "SnapshotSchema":
        if snapshot.facility_id:
            scope = "facility"
        elif snapshot.bank_id:
            scope = "bank"
        else:
            scope = "portfolio"
        return cls(
            snapshot_date=snapshot.date,
            scope=scope,
            bank_id=snapshot.bank_id,
            facility_id=snapshot.facility_id,
            outstanding=money(snapshot.outstanding),
            credit_limit=money(snapshot.credit_limit),
        )


class SnapshotCaptureResponse(BaseModel):
    """Response for POST /v1/portfolio/snapshots"""

    snapshot_date: date
    created: bool
    snapshots: List[SnapshotSchema]


class SnapshotListResponse(BaseModel):
    """Response for GET /v1/portfolio/snapshots"""

    user_id: str
    snapshots: List[SnapshotSchema]


# Settlements


class SettlementBreakdownSchema(BaseModel):
    principal_paid: str
    principal_remaining: str
    interest_paid: str
    interest_remaining: str
    fees_paid: str
    fees_remaining: str


class SettlementRecordSchema(BaseModel):
    loan_id: str
    facility_id: str
    as_of: date
    loan_status: str
    settlement_status: str
    restructured: bool
    settlement_progress: str
    principal_progress: str
    interest_progress: str
    total_drawn: str
    total_repaid: str
    total_interest_accrued: str
    total_fees_charged: str
    outstanding_principal: str
    outstanding_balance: str
    unapplied_credit: str
    breakdown: SettlementBreakdownSchema
    transaction_count: int
    last_transaction_date: Optional[date] = None
    settled_date: Optional[date] = None
    settled_amount: Optional[str] = None

    @classmethod
    def from_domain(cls, record: SettlementRecord, loan_status: str) -> "SettlementRecordSchema":
        b = record.breakdown
        return cls(
            loan_id=record.loan_id,
            facility_id=record.facility_id,
            as_of=record.as_of,
            loan_status=loan_status,
            settlement_status=record.settlement_status,
            restructured=record.restructured,
            settlement_progress=percent(record.settlement_progress),
            principal_progress=percent(record.principal_progress),
            interest_progress=percent(record.interest_progress),
            total_drawn=money(record.total_drawn),
            total_repaid=money(record.total_repaid),
            total_interest_accrued=money(record.total_interest_accrued),
            total_fees_charged=money(record.total_fees_charged),
            outstanding_principal=money(record.outstanding_principal),
            outstanding_balance=money(record.outstanding_balance),
            unapplied_credit=money(record.unapplied_credit),
            breakdown=SettlementBreakdownSchema(
                principal_paid=money(b.principal_paid),
                principal_remaining=money(b.principal_remaining),
                interest_paid=money(b.interest_paid),
                interest_remaining=money(b.interest_remaining),
                fees_paid=money(b.fees_paid),
                fees_remaining=money(b.fees_remaining),
            ),
            transaction_count=record.transaction_count,
            last_transaction_date=record.last_transaction_date,
            settled_date=record.settled_date,
            settled_amount=money(record.settled_amount),
        )


class SettlementSummarySchema(BaseModel):
    total_loans: int
    active_loans: int
    overdue_loans: int
    settled_loans: int
    total_outstanding: str
    average_settlement_progress: str

    @classmethod
    def from_domain(cls, summary: SettlementSummary) -> "SettlementSummarySchema":
        return cls(
            total_loans=summary.total_loans,
            active_loans=summary.active_loans,
            overdue_loans=summary.overdue_loans,
            settled_loans=summary.settled_loans,
            total_outstanding=money(summary.total_outstanding),
            average_settlement_progress=percent(summary.average_settlement_progress),
        )


class SettlementListResponse(BaseModel):
    """Response for GET /v1/settlements"""

    as_of: date
    summary: SettlementSummarySchema
    settlements: List[SettlementRecordSchema]


class AllocationSchema(BaseModel):
    fees_paid: str
    interest_paid: str
    principal_paid: str
    remainder: str

    @classmethod
    def from_domain(cls, allocation: Allocation) -> "AllocationSchema":
        return cls(
            fees_paid=money(allocation.fees_paid),
            interest_paid=money(allocation.interest_paid),
            principal_paid=money(allocation.principal_paid),
            remainder=money(allocation.remainder),
        )


class RepaymentResponse(BaseModel):
    """Response for POST /v1/loans/{loan_id}/repayments"""

    transaction_id: str
    loan_id: str
    status: str
    allocation: AllocationSchema
    settlement: SettlementRecordSchema
