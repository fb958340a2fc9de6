"""What-if scenario simulator - pure projections of alternate loan timelines"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from exposure_gateway.domain.accrual import HUNDRED, ZERO, Number, accrue, to_decimal, to_minor_unit
from exposure_gateway.domain.allocation import allocate
from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.domain.models import Loan, LoanCost, ScenarioAnalysis, ScenarioResult
from exposure_gateway.utils.date_utils import add_days, clamp_days, days_between

MAX_RATE_PERCENT = Decimal(100)

STRONGLY_RECOMMENDED = "strongly_recommended"
RECOMMENDED = "recommended"
NEUTRAL = "neutral"
NOT_RECOMMENDED = "not_recommended"

VERDICT_LABELS = {
    STRONGLY_RECOMMENDED: "Strongly recommended",
    RECOMMENDED: "Recommended",
    NEUTRAL: "No change",
    NOT_RECOMMENDED: "Not recommended",
}


@dataclass(frozen=True)
class RecommendationThresholds:
    strong_savings_percent: Decimal = Decimal(5)  # of principal


DEFAULT_THRESHOLDS = RecommendationThresholds()


def _money(amount: Decimal) -> str:
    return f"SAR {to_minor_unit(amount):,}"


def _percent_of(part: Decimal, whole: Decimal) -> Decimal:
    return part / whole * HUNDRED if whole > 0 else ZERO


def verdict_for(savings: Decimal, principal: Decimal, thresholds: RecommendationThresholds = DEFAULT_THRESHOLDS) -> str:
    """Map the sign and size of a saving to a recommendation level"""
    if savings > 0 and savings > principal * thresholds.strong_savings_percent / HUNDRED:
        return STRONGLY_RECOMMENDED
    if savings > 0:
        return RECOMMENDED
    if savings == 0:
        return NEUTRAL
    return NOT_RECOMMENDED


def _validate_loan(loan: Loan) -> None:
    if to_decimal(loan.amount) <= 0:
        raise ValidationError(f"Loan {loan.id} amount must be > 0")
    if loan.due_date < loan.start_date:
        raise ValidationError(f"Loan {loan.id} due date precedes start date")


def _validate_rate(new_rate: Decimal) -> None:
    if new_rate < 0 or new_rate > MAX_RATE_PERCENT:
        raise ValidationError(f"Interest rate must be between 0 and 100, got {new_rate}")


def _validate_payment(loan: Loan, amount: Decimal, payment_date: Optional[date]) -> None:
    if amount <= 0:
        raise ValidationError(f"Payment amount must be positive, got {amount}")
    if payment_date is None:
        raise ValidationError("Payment date is required")
    if payment_date < loan.start_date:
        raise ValidationError(f"Payment date {payment_date} precedes loan start {loan.start_date}")


def _validate_duration(new_duration_days: int) -> None:
    if new_duration_days <= 0:
        raise ValidationError(f"Duration must be positive, got {new_duration_days}")


def current_cost(loan: Loan) -> LoanCost:
    """Baseline: interest on the original drawdown over the full tenor"""
    _validate_loan(loan)
    interest = accrue(loan.amount, loan.all_in_rate, loan.duration_days)
    return LoanCost(
        amount=loan.amount,
        rate=loan.all_in_rate,
        duration_days=loan.duration_days,
        interest=interest,
        total_cost=loan.amount + interest,
        due_date=loan.due_date,
    )


def refinance(
    loan: Loan,
    new_rate: Number,
    effective_date: Optional[date] = None,
    thresholds: RecommendationThresholds = DEFAULT_THRESHOLDS,
) -> ScenarioResult:
    """
    Interest already run at the current rate up to `effective_date`, the rest
    of the term at `new_rate`. Without an effective date the whole term is
    repriced.
    """
    new_rate = to_decimal(new_rate)
    _validate_rate(new_rate)
    current = current_cost(loan)

    elapsed = 0
    if effective_date is not None:
        elapsed = clamp_days(days_between(loan.start_date, effective_date), 0, current.duration_days)
    remaining = current.duration_days - elapsed

    interest = accrue(loan.amount, current.rate, elapsed) + accrue(loan.amount, new_rate, remaining)
    savings = current.interest - interest
    savings_percent = _percent_of(savings, current.interest)
    verdict = verdict_for(savings, loan.amount, thresholds)
    label = VERDICT_LABELS[verdict]

    if savings > 0:
        message = f"{label}: refinancing at {new_rate}% would save {_money(savings)} ({savings_percent:.1f}% reduction in interest)"
    elif savings == 0:
        message = f"{label}: refinancing at {new_rate}% leaves the interest cost unchanged"
    else:
        message = f"{label}: refinancing at {new_rate}% would increase cost by {_money(-savings)}"

    return ScenarioResult(
        type="refinance",
        name="Refinance at Different Rate",
        interest=interest,
        total_cost=loan.amount + interest,
        savings=savings,
        savings_percent=savings_percent,
        verdict=verdict,
        recommendation=message,
        new_rate=new_rate,
        days_elapsed=elapsed,
    )


def early_payment(
    loan: Loan,
    payment_amount: Number,
    payment_date: Optional[date],
    thresholds: RecommendationThresholds = DEFAULT_THRESHOLDS,
) -> ScenarioResult:
    """
    Pay `payment_amount` on `payment_date`: the waterfall settles interest
    accrued so far, the rest reduces principal, and the remaining term accrues
    on what is left.
    """
    payment_amount = to_decimal(payment_amount)
    _validate_payment(loan, payment_amount, payment_date)
    current = current_cost(loan)

    # Elapsed days are capped at the term
    elapsed = clamp_days(days_between(loan.start_date, payment_date), 0, current.duration_days)
    remaining = current.duration_days - elapsed

    interest_to_date = accrue(loan.amount, current.rate, elapsed)
    split = allocate(payment_amount, ZERO, interest_to_date, loan.amount)
    remaining_principal = loan.amount - split.principal_paid
    future_interest = accrue(remaining_principal, current.rate, remaining)
    total_interest = interest_to_date + future_interest

    savings = current.interest - total_interest
    savings_percent = _percent_of(savings, current.interest)
    verdict = verdict_for(savings, loan.amount, thresholds)
    label = VERDICT_LABELS[verdict]
    full_payoff = remaining_principal == 0

    if full_payoff:
        message = f"{label}: paying off the loan early would save {_money(savings)} ({savings_percent:.1f}% of total interest)"
    else:
        message = (
            f"{label}: partial payment of {_money(payment_amount)} would save {_money(savings)} "
            f"({savings_percent:.1f}% reduction in interest)"
        )

    return ScenarioResult(
        type="early_payment" if full_payoff else "partial_payment",
        name="Full Early Payment" if full_payoff else "Partial Early Payment",
        interest=total_interest,
        total_cost=loan.amount + total_interest,
        savings=savings,
        savings_percent=savings_percent,
        verdict=verdict,
        recommendation=message,
        payment_amount=payment_amount,
        payment_date=payment_date,
        days_elapsed=elapsed,
        interest_to_date=interest_to_date,
        future_interest=future_interest,
        remaining_principal=remaining_principal,
        remainder=split.remainder,
    )


def term_change(
    loan: Loan,
    new_duration_days: int,
    thresholds: RecommendationThresholds = DEFAULT_THRESHOLDS,
) -> ScenarioResult:
    """Same rate, different tenor. Positive difference means the loan gets more expensive."""
    _validate_duration(new_duration_days)
    current = current_cost(loan)

    interest = accrue(loan.amount, current.rate, new_duration_days)
    total_cost = loan.amount + interest
    difference = total_cost - current.total_cost
    difference_percent = _percent_of(difference, current.interest)
    verdict = verdict_for(-difference, loan.amount, thresholds)
    label = VERDICT_LABELS[verdict]
    delta_days = new_duration_days - current.duration_days

    if delta_days > 0:
        name = "Extend Loan Term"
        message = f"{label}: extending the term by {delta_days} days would cost an additional {_money(difference)} in interest"
    elif delta_days < 0:
        name = "Reduce Loan Term"
        message = f"{label}: reducing the term by {-delta_days} days would save {_money(-difference)} in interest"
    else:
        name = "Keep Loan Term"
        message = f"{label}: the term is unchanged"

    return ScenarioResult(
        type="term_change",
        name=name,
        interest=interest,
        total_cost=total_cost,
        difference=difference,
        difference_percent=difference_percent,
        verdict=verdict,
        recommendation=message,
        new_duration_days=new_duration_days,
        new_due_date=add_days(loan.start_date, new_duration_days),
    )


def simulate(
    loan: Loan,
    refinance_rate: Optional[Number] = None,
    early_payment_amount: Optional[Number] = None,
    early_payment_date: Optional[date] = None,
    new_duration_days: Optional[int] = None,
    as_of: Optional[date] = None,
    thresholds: RecommendationThresholds = DEFAULT_THRESHOLDS,
) -> ScenarioAnalysis:
    """
    Run every requested scenario against one loan.

    All inputs are validated before anything is computed, so a bad scenario
    rejects the whole request. The loan is never modified.
    """
    _validate_loan(loan)
    if refinance_rate is not None:
        _validate_rate(to_decimal(refinance_rate))
    if early_payment_amount is not None:
        early_payment_date = early_payment_date or as_of
        _validate_payment(loan, to_decimal(early_payment_amount), early_payment_date)
    if new_duration_days is not None:
        _validate_duration(new_duration_days)

    analysis = ScenarioAnalysis(loan_id=loan.id, current=current_cost(loan))
    if refinance_rate is not None:
        analysis.scenarios.append(refinance(loan, refinance_rate, as_of, thresholds))
    if early_payment_amount is not None:
        analysis.scenarios.append(early_payment(loan, early_payment_amount, early_payment_date, thresholds))
    if new_duration_days is not None:
        analysis.scenarios.append(term_change(loan, new_duration_days, thresholds))
    return analysis
