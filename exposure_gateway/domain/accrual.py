"""Accrual calculator - simple daily interest on outstanding principal"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.domain.models import Loan
from exposure_gateway.utils.date_utils import days_between

Number = Union[Decimal, int, str]

DAYS_IN_YEAR = Decimal(365)
HUNDRED = Decimal(100)
ZERO = Decimal(0)
MINOR_UNIT = Decimal("0.01")  # SAR halalas


def to_decimal(value: Number) -> Decimal:
    """Coerce to Decimal without passing through binary floats"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def accrue(principal: Number, annual_rate_percent: Number, days_elapsed: int) -> Decimal:
    """
    Interest owed on `principal` after `days_elapsed` days at an annual rate.

    interest = principal * (rate / 100) * days / 365

    Example:
        100,000 SAR at 8.25% for 90 days -> 2034.246575... SAR

    No rounding is applied; callers quantize with to_minor_unit() at presentation.
    """
    principal = to_decimal(principal)
    rate = to_decimal(annual_rate_percent)

    if days_elapsed < 0:
        raise ValidationError(f"days_elapsed must be >= 0, got {days_elapsed}")
    if principal < 0:
        raise ValidationError(f"principal must be >= 0, got {principal}")
    if rate < 0:
        raise ValidationError(f"annual rate must be >= 0, got {rate}")

    if days_elapsed == 0 or rate == 0 or principal == 0:
        return ZERO

    return principal * rate * Decimal(days_elapsed) / (HUNDRED * DAYS_IN_YEAR)


def all_in_rate(sibor_rate: Number, margin_rate: Number) -> Decimal:
    """Effective annual rate: floating reference plus the bank margin fixed at drawdown"""
    return to_decimal(sibor_rate) + to_decimal(margin_rate)


def accrued_interest_to_date(loan: Loan, as_of: date) -> Decimal:
    """Interest on the original drawdown from start to as_of (capped at the due date)"""
    end = min(as_of, loan.due_date)
    days = days_between(loan.start_date, end)
    if days <= 0:
        return ZERO
    return accrue(loan.amount, loan.all_in_rate, days)


def projected_total_interest(loan: Loan) -> Decimal:
    """Interest on the original drawdown over the full tenor"""
    return accrue(loan.amount, loan.all_in_rate, max(loan.duration_days, 0))


def to_minor_unit(amount: Decimal) -> Decimal:
    """Round to halalas for display. Never call inside the engine."""
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
