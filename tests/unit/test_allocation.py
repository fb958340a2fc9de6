"""Unit tests for the payment waterfall"""

import pytest
from decimal import Decimal
from exposure_gateway.domain.allocation import (
    DEFAULT_WATERFALL,
    FEES,
    INTEREST,
    PRINCIPAL,
    allocate,
    validate_waterfall,
)
from exposure_gateway.domain.exceptions import ValidationError


def test_allocate_reference_example():
    """Fees first, then interest, then principal"""
    split = allocate(Decimal("2000"), Decimal("500"), Decimal("1200"), Decimal("50000"))

    assert split.fees_paid == Decimal("500")
    assert split.interest_paid == Decimal("1200")
    assert split.principal_paid == Decimal("300")
    assert split.remainder == Decimal("0")


@pytest.mark.parametrize(
    "payment,fees,interest,principal",
    [
        ("2000", "500", "1200", "50000"),
        ("100", "500", "1200", "50000"),
        ("60000", "500", "1200", "50000"),
        ("0", "500", "1200", "50000"),
        ("750.33", "0", "0.01", "700"),
    ],
)
def test_allocate_conserves_payment(payment, fees, interest, principal):
    """paid + remainder == payment and no bucket is overpaid"""
    split = allocate(Decimal(payment), Decimal(fees), Decimal(interest), Decimal(principal))

    assert split.total_applied + split.remainder == Decimal(payment)
    assert split.fees_paid <= Decimal(fees)
    assert split.interest_paid <= Decimal(interest)
    assert split.principal_paid <= Decimal(principal)


def test_allocate_overpayment_returns_remainder():
    split = allocate(Decimal("60000"), Decimal("500"), Decimal("1200"), Decimal("50000"))

    assert split.principal_paid == Decimal("50000")
    assert split.remainder == Decimal("8300")


def test_allocate_partial_covers_fees_only():
    split = allocate(Decimal("100"), Decimal("500"), Decimal("1200"), Decimal("50000"))

    assert split.fees_paid == Decimal("100")
    assert split.interest_paid == Decimal("0")
    assert split.principal_paid == Decimal("0")


def test_allocate_custom_order():
    """Principal-first waterfall skips fees and interest until principal is cleared"""
    split = allocate(
        Decimal("2000"), Decimal("500"), Decimal("1200"), Decimal("50000"),
        order=(PRINCIPAL, INTEREST, FEES),
    )

    assert split.principal_paid == Decimal("2000")
    assert split.fees_paid == Decimal("0")


def test_allocate_rejects_negative_payment():
    with pytest.raises(ValidationError):
        allocate(Decimal("-1"), Decimal("0"), Decimal("0"), Decimal("100"))


def test_allocate_rejects_negative_outstanding():
    with pytest.raises(ValidationError):
        allocate(Decimal("10"), Decimal("-5"), Decimal("0"), Decimal("100"))


def test_validate_waterfall():
    assert validate_waterfall([INTEREST, FEES, PRINCIPAL]) == (INTEREST, FEES, PRINCIPAL)
    assert validate_waterfall(DEFAULT_WATERFALL) == (FEES, INTEREST, PRINCIPAL)

    with pytest.raises(ValidationError):
        validate_waterfall([FEES, FEES, PRINCIPAL])
    with pytest.raises(ValidationError):
        validate_waterfall([FEES, INTEREST])
