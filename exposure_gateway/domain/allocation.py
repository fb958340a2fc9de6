"""Payment allocator - fixed waterfall across fees, interest and principal"""

from decimal import Decimal
from typing import Dict, Sequence

from exposure_gateway.domain.accrual import Number, ZERO, to_decimal
from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.domain.models import Allocation

FEES = "fees"
INTEREST = "interest"
PRINCIPAL = "principal"

# The one payment policy for the whole engine (override: PAYMENT_WATERFALL setting)
DEFAULT_WATERFALL = (FEES, INTEREST, PRINCIPAL)


def validate_waterfall(order: Sequence[str]) -> tuple:
    """Waterfall must name each bucket exactly once"""
    order = tuple(order)
    if sorted(order) != sorted(DEFAULT_WATERFALL):
        raise ValidationError(
            f"waterfall must be a permutation of {list(DEFAULT_WATERFALL)}, got {list(order)}"
        )
    return order


def allocate(
    payment: Number,
    outstanding_fees: Number,
    outstanding_interest: Number,
    outstanding_principal: Number,
    order: Sequence[str] = DEFAULT_WATERFALL,
) -> Allocation:
    """
    Apply a payment across obligations in waterfall order.

    Each bucket takes at most its outstanding amount; whatever is left after
    every bucket is covered comes back as `remainder` for the caller to treat
    as prepayment credit or reject.

    Example:
        payment 2,000 vs fees 500 / interest 1,200 / principal 50,000
        -> fees 500, interest 1,200, principal 300, remainder 0
    """
    order = validate_waterfall(order)
    payment = to_decimal(payment)
    owed: Dict[str, Decimal] = {
        FEES: to_decimal(outstanding_fees),
        INTEREST: to_decimal(outstanding_interest),
        PRINCIPAL: to_decimal(outstanding_principal),
    }

    if payment < 0:
        raise ValidationError(f"payment must be >= 0, got {payment}")
    for bucket, amount in owed.items():
        if amount < 0:
            raise ValidationError(f"outstanding {bucket} must be >= 0, got {amount}")

    paid: Dict[str, Decimal] = {bucket: ZERO for bucket in owed}
    left = payment
    for bucket in order:
        portion = min(left, owed[bucket])
        paid[bucket] = portion
        left -= portion

    return Allocation(
        fees_paid=paid[FEES],
        interest_paid=paid[INTEREST],
        principal_paid=paid[PRINCIPAL],
        remainder=left,
    )
