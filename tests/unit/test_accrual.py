"""Unit tests for interest accrual"""

import pytest
from datetime import date
from decimal import Decimal
from exposure_gateway.domain.accrual import (
    accrue,
    accrued_interest_to_date,
    all_in_rate,
    projected_total_interest,
    to_minor_unit,
)
from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.utils.date_utils import days_between


def test_accrue_reference_example():
    """100,000 SAR at 8.25% for 90 days"""
    interest = accrue(Decimal("100000"), Decimal("8.25"), 90)

    # 100000 * 8.25 * 90 / 36500 = 2034.2465...
    assert to_minor_unit(interest) == Decimal("2034.25")


def test_accrue_is_not_rounded():
    """Rounding happens only at presentation"""
    interest = accrue(Decimal("100000"), Decimal("8.25"), 90)
    assert interest != to_minor_unit(interest)


def test_accrue_zero_days_and_zero_rate():
    assert accrue(Decimal("100000"), Decimal("8.25"), 0) == Decimal("0")
    assert accrue(Decimal("100000"), Decimal("0"), 30) == Decimal("0")
    assert accrue(Decimal("0"), Decimal("8.25"), 30) == Decimal("0")


def test_accrue_linear_in_time():
    """accrue(p, r, a + b) == accrue(p, r, a) + accrue(p, r, b)"""
    principal, rate = Decimal("365000"), Decimal("10")

    # 365000 * 10 / 36500 = 100 per day, exact in Decimal
    assert accrue(principal, rate, 30) == Decimal("3000")
    assert accrue(principal, rate, 75) == accrue(principal, rate, 30) + accrue(principal, rate, 45)


def test_accrue_full_year_equals_rate():
    assert accrue(Decimal("50000"), Decimal("6"), 365) == Decimal("3000")


def test_accrue_accepts_ints_and_floats():
    assert accrue(36500, 1, 1) == Decimal("1")
    assert accrue(36500, 1.0, 1) == Decimal("1")


@pytest.mark.parametrize(
    "principal,rate,days",
    [
        (Decimal("100000"), Decimal("8.25"), -1),
        (Decimal("-1"), Decimal("8.25"), 30),
        (Decimal("100000"), Decimal("-0.5"), 30),
    ],
)
def test_accrue_rejects_negative_inputs(principal, rate, days):
    with pytest.raises(ValidationError):
        accrue(principal, rate, days)


def test_all_in_rate_is_sibor_plus_margin():
    assert all_in_rate(Decimal("5.5"), Decimal("2.75")) == Decimal("8.25")


def test_days_between_counts_actual_days():
    assert days_between(date(2024, 1, 1), date(2024, 3, 1)) == 60  # leap year
    assert days_between(date(2024, 3, 1), date(2024, 1, 1)) == -60


def test_accrued_interest_to_date_caps_at_due_date(sample_loan):
    """Interest stops accruing on the original drawdown at the due date"""
    at_due = accrued_interest_to_date(sample_loan, sample_loan.due_date)
    after_due = accrued_interest_to_date(sample_loan, date(2025, 1, 1))

    assert at_due == after_due == projected_total_interest(sample_loan)


def test_accrued_interest_to_date_before_start(sample_loan):
    assert accrued_interest_to_date(sample_loan, date(2023, 12, 1)) == Decimal("0")


def test_to_minor_unit_rounds_half_up():
    assert to_minor_unit(Decimal("10.005")) == Decimal("10.01")
    assert to_minor_unit(Decimal("10.004")) == Decimal("10.00")
