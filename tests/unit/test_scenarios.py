"""Unit tests for what-if scenario projections"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from exposure_gateway.domain.accrual import accrue
from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.domain.scenarios import (
    RecommendationThresholds,
    current_cost,
    early_payment,
    refinance,
    simulate,
    term_change,
    verdict_for,
)

PRINCIPAL = Decimal("100000")
RATE = Decimal("8.25")


def _close(a: Decimal, b: Decimal) -> bool:
    """Equal up to Decimal context precision"""
    return abs(a - b) < Decimal("1e-15")


def test_current_cost(sample_loan):
    cost = current_cost(sample_loan)

    assert cost.duration_days == 90
    assert cost.rate == RATE
    assert cost.interest == accrue(PRINCIPAL, RATE, 90)
    assert cost.total_cost == PRINCIPAL + cost.interest


def test_refinance_at_current_rate_saves_nothing(sample_loan):
    result = refinance(sample_loan, RATE)

    assert result.savings == Decimal("0")
    assert result.verdict == "neutral"


def test_refinance_lower_rate_whole_term(sample_loan):
    result = refinance(sample_loan, Decimal("6.25"))

    # 2 points cheaper over 90 days: 100000 * 2 * 90 / 36500
    assert _close(result.savings, accrue(PRINCIPAL, Decimal("2"), 90))
    assert result.interest == accrue(PRINCIPAL, Decimal("6.25"), 90)
    assert result.verdict == "recommended"
    assert result.recommendation.startswith("Recommended: refinancing at 6.25%")


def test_refinance_from_effective_date(sample_loan):
    """Days already run keep the old rate"""
    result = refinance(sample_loan, Decimal("6.25"), effective_date=date(2024, 1, 31))

    assert result.days_elapsed == 30
    assert result.interest == accrue(PRINCIPAL, RATE, 30) + accrue(PRINCIPAL, Decimal("6.25"), 60)


def test_refinance_effective_after_due_date_changes_nothing(sample_loan):
    result = refinance(sample_loan, Decimal("1"), effective_date=date(2025, 1, 1))

    assert result.days_elapsed == 90
    assert result.savings == Decimal("0")


def test_refinance_higher_rate_not_recommended(sample_loan):
    result = refinance(sample_loan, Decimal("10"))

    assert result.savings < 0
    assert result.verdict == "not_recommended"
    assert "increase cost" in result.recommendation


@pytest.mark.parametrize("rate", [Decimal("-1"), Decimal("100.01")])
def test_refinance_rejects_out_of_range_rate(sample_loan, rate):
    with pytest.raises(ValidationError):
        refinance(sample_loan, rate)


def test_early_payment_full_payoff(sample_loan):
    interest_to_date = accrue(PRINCIPAL, RATE, 30)

    result = early_payment(sample_loan, Decimal("200000"), date(2024, 1, 31))

    assert result.type == "early_payment"
    assert result.remaining_principal == Decimal("0")
    assert result.future_interest == Decimal("0")
    assert result.interest == interest_to_date
    assert _close(result.remainder, Decimal("200000") - PRINCIPAL - interest_to_date)
    assert _close(result.savings, accrue(PRINCIPAL, RATE, 90) - interest_to_date)


def test_early_payment_partial(sample_loan):
    """Accrued interest is settled first, the rest reduces principal"""
    interest_to_date = accrue(PRINCIPAL, RATE, 30)

    result = early_payment(sample_loan, Decimal("50000"), date(2024, 1, 31))

    remaining = PRINCIPAL - (Decimal("50000") - interest_to_date)
    assert result.type == "partial_payment"
    assert result.interest_to_date == interest_to_date
    assert _close(result.remaining_principal, remaining)
    assert _close(result.future_interest, accrue(remaining, RATE, 60))
    assert result.savings > 0


@pytest.mark.parametrize(
    "amount,payment_date",
    [
        (Decimal("0"), date(2024, 1, 31)),
        (Decimal("-10"), date(2024, 1, 31)),
        (Decimal("1000"), date(2023, 12, 31)),
        (Decimal("1000"), None),
    ],
)
def test_early_payment_rejects_invalid_input(sample_loan, amount, payment_date):
    with pytest.raises(ValidationError):
        early_payment(sample_loan, amount, payment_date)


def test_early_payment_after_due_date_is_capped_at_term(sample_loan):
    """Past the due date the whole term has accrued, so nothing is saved"""
    full_interest = accrue(PRINCIPAL, RATE, 90)

    result = early_payment(sample_loan, Decimal("1000"), date(2024, 6, 1))

    assert result.days_elapsed == 90
    assert result.interest_to_date == full_interest
    assert result.future_interest == Decimal("0")
    assert result.savings == Decimal("0")
    assert result.verdict == "neutral"


def test_simulate_early_payment_defaults_to_as_of_past_due(sample_loan):
    analysis = simulate(sample_loan, early_payment_amount=Decimal("1000"), as_of=date(2024, 6, 1))

    (result,) = analysis.scenarios
    assert result.payment_date == date(2024, 6, 1)
    assert result.days_elapsed == 90


def test_term_extension_costs_more(sample_loan):
    result = term_change(sample_loan, 120)

    assert result.name == "Extend Loan Term"
    assert _close(result.difference, accrue(PRINCIPAL, RATE, 30))
    assert result.verdict == "not_recommended"
    assert result.new_due_date == date(2024, 4, 30)


def test_term_reduction_saves(sample_loan):
    result = term_change(sample_loan, 60)

    assert result.name == "Reduce Loan Term"
    assert _close(result.difference, -accrue(PRINCIPAL, RATE, 30))
    assert result.verdict == "recommended"


def test_term_unchanged(sample_loan):
    result = term_change(sample_loan, 90)

    assert result.difference == Decimal("0")
    assert result.verdict == "neutral"


def test_term_change_rejects_non_positive_duration(sample_loan):
    with pytest.raises(ValidationError):
        term_change(sample_loan, 0)


def test_verdict_levels():
    principal = Decimal("100000")

    assert verdict_for(Decimal("6000"), principal) == "strongly_recommended"
    assert verdict_for(Decimal("5000"), principal) == "recommended"
    assert verdict_for(Decimal("0"), principal) == "neutral"
    assert verdict_for(Decimal("-1"), principal) == "not_recommended"


def test_verdict_threshold_is_configurable(sample_loan):
    thresholds = RecommendationThresholds(strong_savings_percent=Decimal("1"))

    result = refinance(sample_loan, Decimal("0"), thresholds=thresholds)

    # 2034.25 saved > 1% of principal
    assert result.verdict == "strongly_recommended"


def test_simulate_runs_requested_scenarios(sample_loan):
    analysis = simulate(
        sample_loan,
        refinance_rate=Decimal("6.25"),
        early_payment_amount=Decimal("50000"),
        new_duration_days=60,
        as_of=date(2024, 1, 31),
    )

    assert analysis.loan_id == "loan-1"
    assert [s.type for s in analysis.scenarios] == ["refinance", "partial_payment", "term_change"]
    # Payment date defaults to the analysis date
    assert analysis.scenarios[1].payment_date == date(2024, 1, 31)


def test_simulate_with_no_scenarios_returns_baseline(sample_loan):
    analysis = simulate(sample_loan)

    assert analysis.scenarios == []
    assert analysis.current.interest == accrue(PRINCIPAL, RATE, 90)


def test_simulate_rejects_whole_request_on_one_bad_input(sample_loan):
    with pytest.raises(ValidationError):
        simulate(sample_loan, refinance_rate=Decimal("6"), new_duration_days=-5)


def test_simulate_does_not_modify_loan(sample_loan):
    before = replace(sample_loan)

    simulate(sample_loan, refinance_rate=Decimal("6"), early_payment_amount=Decimal("100"), as_of=date(2024, 2, 1))

    assert sample_loan == before
