"""Revolving period usage for facilities with a capped revolving window"""

from datetime import date
from decimal import Decimal
from typing import Iterable

from exposure_gateway.domain.accrual import HUNDRED, ZERO
from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.domain.models import Facility, Loan, LoanStatus, RevolvingUsage
from exposure_gateway.utils.date_utils import days_between

WARNING_PERCENT = Decimal(70)
CRITICAL_PERCENT = Decimal(90)


def usage_status(percentage_used: Decimal) -> str:
    if percentage_used >= HUNDRED:
        return "expired"
    if percentage_used >= CRITICAL_PERCENT:
        return "critical"
    if percentage_used >= WARNING_PERCENT:
        return "warning"
    return "available"


def revolving_usage(facility: Facility, loans: Iterable[Loan], as_of: date) -> RevolvingUsage:
    """
    Days of the facility's revolving window consumed by its loans.

    Each loan uses the days from its start to its settlement date, or to its
    due date while unsettled. Loans starting after `as_of` are not counted.
    """
    max_period = facility.max_revolving_period_days
    if not max_period or max_period <= 0:
        raise ValidationError(f"Revolving period tracking is not enabled for facility {facility.id}")

    days_used = 0
    active_loans = 0
    total_loans = 0
    for loan in loans:
        if loan.facility_id != facility.id or loan.start_date > as_of:
            continue
        total_loans += 1
        end = min(loan.settled_date, loan.due_date) if loan.settled_date else loan.due_date
        days_used += max(0, days_between(loan.start_date, end))
        if loan.status != LoanStatus.SETTLED.value:
            active_loans += 1

    percentage = max(ZERO, min(Decimal(days_used) / Decimal(max_period) * HUNDRED, HUNDRED))
    days_remaining = max(0, max_period - days_used)

    return RevolvingUsage(
        facility_id=facility.id,
        max_revolving_period_days=max_period,
        days_used=days_used,
        days_remaining=days_remaining,
        percentage_used=percentage,
        status=usage_status(percentage),
        can_revolve=days_remaining > 0,
        active_loans=active_loans,
        total_loans=total_loans,
    )
