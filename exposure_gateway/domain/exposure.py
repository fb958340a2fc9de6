"""Exposure aggregator - per-bank and portfolio roll-up of outstanding balances and limits"""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from exposure_gateway.domain.accrual import HUNDRED, ZERO, to_decimal
from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.domain.models import (
    Bank,
    BankExposure,
    Collateral,
    ExposureSnapshot,
    Facility,
    FacilityExposure,
    LoanBalance,
    LoanStatus,
    PortfolioSummary,
)


def _ratio_percent(part: Decimal, whole: Decimal) -> Decimal:
    return part / whole * HUNDRED


def is_active_balance(balance: LoanBalance) -> bool:
    return balance.status != LoanStatus.SETTLED.value and balance.outstanding > 0


def ensure_can_draw(facility: Facility, amount: Decimal, available_credit: Decimal, as_of: date) -> None:
    """Reject a new drawdown that the facility cannot accept"""
    if amount <= 0:
        raise ValidationError(f"Drawdown amount must be > 0, got {amount}")
    if not facility.is_active:
        raise ValidationError(f"Facility {facility.id} is inactive and cannot accept new loans")
    if as_of < facility.start_date or as_of > facility.expiry_date:
        raise ValidationError(
            f"Facility {facility.id} is only available from {facility.start_date} to {facility.expiry_date}"
        )
    if amount > available_credit:
        raise ValidationError(
            f"Insufficient credit on facility {facility.id}: {available_credit} available, {amount} requested"
        )


def aggregate(
    loan_balances: Iterable[LoanBalance],
    facilities: Iterable[Facility],
    collateral: Iterable[Collateral],
    banks: Optional[Iterable[Bank]] = None,
) -> PortfolioSummary:
    """
    Roll up derived loan balances into portfolio and per-bank exposure.

    - total outstanding: sum of active loan principal
    - total credit limit: sum of active facility limits
    - per-bank utilization = outstanding / limit * 100, reported as 0 and
      flagged undefined when the bank has no limit
    - portfolio LTV = outstanding / active collateral value * 100, reported as
      0 and flagged not applicable when there is no collateral

    Loans on inactive facilities still count as exposure against that bank.
    """
    facility_by_id: Dict[str, Facility] = {f.id: f for f in facilities}
    facility_list = list(facility_by_id.values())
    bank_names = {b.id: b.name for b in (banks or [])}

    active = [b for b in loan_balances if is_active_balance(b)]

    facility_outstanding: Dict[str, Decimal] = {}
    for balance in active:
        if balance.facility_id not in facility_by_id:
            raise ValidationError(
                f"Loan {balance.loan_id} references facility {balance.facility_id} outside this portfolio"
            )
        facility_outstanding[balance.facility_id] = (
            facility_outstanding.get(balance.facility_id, ZERO) + to_decimal(balance.outstanding)
        )

    # Bank order follows first appearance in the facility list
    bank_outstanding: Dict[str, Decimal] = {}
    bank_limit: Dict[str, Decimal] = {}
    facility_exposures: List[FacilityExposure] = []

    for facility in facility_list:
        limit = to_decimal(facility.credit_limit)
        if limit < 0:
            raise ValidationError(f"Facility {facility.id} has a negative credit limit")
        counted_limit = limit if facility.is_active else ZERO
        outstanding = facility_outstanding.get(facility.id, ZERO)

        bank_outstanding[facility.bank_id] = bank_outstanding.get(facility.bank_id, ZERO) + outstanding
        bank_limit[facility.bank_id] = bank_limit.get(facility.bank_id, ZERO) + counted_limit

        facility_exposures.append(
            FacilityExposure(
                facility_id=facility.id,
                bank_id=facility.bank_id,
                outstanding=outstanding,
                credit_limit=counted_limit,
                available_credit=counted_limit - outstanding,
                utilization=_ratio_percent(outstanding, counted_limit) if counted_limit > 0 else ZERO,
                utilization_defined=counted_limit > 0,
            )
        )

    total_outstanding = sum(facility_outstanding.values(), ZERO)
    total_credit_limit = sum(bank_limit.values(), ZERO)

    bank_exposures = [
        BankExposure(
            bank_id=bank_id,
            bank_name=bank_names.get(bank_id, "Unknown Bank"),
            outstanding=bank_outstanding[bank_id],
            credit_limit=bank_limit[bank_id],
            utilization=_ratio_percent(bank_outstanding[bank_id], bank_limit[bank_id])
            if bank_limit[bank_id] > 0
            else ZERO,
            utilization_defined=bank_limit[bank_id] > 0,
            concentration=_ratio_percent(bank_outstanding[bank_id], total_outstanding)
            if total_outstanding > 0
            else ZERO,
        )
        for bank_id in bank_outstanding
    ]

    collateral_value = sum((to_decimal(c.current_value) for c in collateral if c.is_active), ZERO)
    ltv_applicable = collateral_value > 0

    return PortfolioSummary(
        total_outstanding=total_outstanding,
        total_credit_limit=total_credit_limit,
        available_credit=total_credit_limit - total_outstanding,
        total_collateral_value=collateral_value,
        portfolio_ltv=_ratio_percent(total_outstanding, collateral_value) if ltv_applicable else ZERO,
        ltv_applicable=ltv_applicable,
        active_loans_count=len(active),
        bank_exposures=bank_exposures,
        facility_exposures=facility_exposures,
    )


def build_snapshots(summary: PortfolioSummary, user_id: str, as_of: date) -> List[ExposureSnapshot]:
    """Materialize a summary as portfolio, per-bank and per-facility snapshot rows"""
    snapshots = [
        ExposureSnapshot(
            user_id=user_id,
            date=as_of,
            outstanding=summary.total_outstanding,
            credit_limit=summary.total_credit_limit,
        )
    ]
    snapshots.extend(
        ExposureSnapshot(
            user_id=user_id,
            date=as_of,
            outstanding=bank.outstanding,
            credit_limit=bank.credit_limit,
            bank_id=bank.bank_id,
        )
        for bank in summary.bank_exposures
    )
    snapshots.extend(
        ExposureSnapshot(
            user_id=user_id,
            date=as_of,
            outstanding=facility.outstanding,
            credit_limit=facility.credit_limit,
            bank_id=facility.bank_id,
            facility_id=facility.facility_id,
        )
        for facility in summary.facility_exposures
    )
    return snapshots
