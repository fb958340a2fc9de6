"""Unit tests for portfolio exposure aggregation"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from exposure_gateway.domain.exposure import aggregate, build_snapshots, ensure_can_draw
from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.domain.models import Collateral, LoanBalance


def _balances():
    return [
        LoanBalance(loan_id="l1", facility_id="fac-a", outstanding=Decimal("200000")),
        LoanBalance(loan_id="l2", facility_id="fac-b", outstanding=Decimal("450000")),
        LoanBalance(loan_id="l3", facility_id="fac-a", outstanding=Decimal("0"), status="settled"),
    ]


def _collateral(value="1300000", active=True):
    return [Collateral(id="c1", user_id="user_alpha", asset_type="real_estate", current_value=Decimal(value), is_active=active)]


def test_aggregate_totals(sample_facilities, sample_banks):
    summary = aggregate(_balances(), sample_facilities, _collateral(), sample_banks)

    assert summary.total_outstanding == Decimal("650000")
    assert summary.total_credit_limit == Decimal("1500000")
    assert summary.available_credit == Decimal("850000")
    assert summary.active_loans_count == 2
    assert summary.portfolio_ltv == Decimal("50")  # 650k / 1.3M
    assert summary.ltv_applicable is True


def test_aggregate_bank_totals_reconcile(sample_facilities, sample_banks):
    """Per-bank outstanding and limits sum to the portfolio totals"""
    summary = aggregate(_balances(), sample_facilities, _collateral(), sample_banks)

    assert sum(b.outstanding for b in summary.bank_exposures) == summary.total_outstanding
    assert sum(b.credit_limit for b in summary.bank_exposures) == summary.total_credit_limit
    assert abs(sum(b.concentration for b in summary.bank_exposures) - Decimal("100")) < Decimal("1e-20")


def test_aggregate_bank_utilization_and_names(sample_facilities, sample_banks):
    summary = aggregate(_balances(), sample_facilities, _collateral(), sample_banks)
    by_bank = {b.bank_id: b for b in summary.bank_exposures}

    assert by_bank["bank-a"].bank_name == "Al Rajhi Bank"
    assert by_bank["bank-a"].utilization == Decimal("20")
    assert by_bank["bank-b"].utilization == Decimal("90")
    assert by_bank["bank-b"].utilization_defined is True


def test_aggregate_no_collateral_ltv_not_applicable(sample_facilities):
    summary = aggregate(_balances(), sample_facilities, [])

    assert summary.portfolio_ltv == Decimal("0")
    assert summary.ltv_applicable is False


def test_aggregate_ignores_inactive_collateral(sample_facilities):
    summary = aggregate(_balances(), sample_facilities, _collateral(active=False))

    assert summary.total_collateral_value == Decimal("0")
    assert summary.ltv_applicable is False


def test_aggregate_zero_limit_bank_utilization_undefined(sample_facilities):
    """An inactive facility adds no limit but its loans still count as exposure"""
    facilities = [sample_facilities[0], replace(sample_facilities[1], is_active=False)]

    summary = aggregate(_balances(), facilities, [])
    bank_b = next(b for b in summary.bank_exposures if b.bank_id == "bank-b")

    assert bank_b.outstanding == Decimal("450000")
    assert bank_b.credit_limit == Decimal("0")
    assert bank_b.utilization == Decimal("0")
    assert bank_b.utilization_defined is False
    assert summary.total_credit_limit == Decimal("1000000")


def test_aggregate_deduplicates_facilities(sample_facilities):
    summary = aggregate(_balances(), sample_facilities + sample_facilities, [])

    assert summary.total_credit_limit == Decimal("1500000")
    assert len(summary.facility_exposures) == 2


def test_aggregate_empty_portfolio():
    summary = aggregate([], [], [])

    assert summary.total_outstanding == Decimal("0")
    assert summary.bank_exposures == []
    assert summary.ltv_applicable is False


def test_aggregate_rejects_loan_outside_portfolio(sample_facilities):
    balances = [LoanBalance(loan_id="l9", facility_id="fac-other", outstanding=Decimal("10"))]

    with pytest.raises(ValidationError):
        aggregate(balances, sample_facilities, [])


def test_build_snapshots_scopes(sample_facilities, sample_banks):
    summary = aggregate(_balances(), sample_facilities, [], sample_banks)

    snapshots = build_snapshots(summary, "user_alpha", date(2024, 6, 30))

    portfolio = [s for s in snapshots if s.bank_id is None]
    banks = [s for s in snapshots if s.bank_id and s.facility_id is None]
    facilities = [s for s in snapshots if s.facility_id]
    assert len(portfolio) == 1 and portfolio[0].outstanding == Decimal("650000")
    assert len(banks) == 2
    assert len(facilities) == 2
    assert all(s.date == date(2024, 6, 30) for s in snapshots)


def test_ensure_can_draw(sample_facilities):
    facility = sample_facilities[0]
    as_of = date(2024, 6, 1)

    ensure_can_draw(facility, Decimal("100000"), Decimal("800000"), as_of)

    with pytest.raises(ValidationError):
        ensure_can_draw(facility, Decimal("900000"), Decimal("800000"), as_of)
    with pytest.raises(ValidationError):
        ensure_can_draw(replace(facility, is_active=False), Decimal("100"), Decimal("800000"), as_of)
    with pytest.raises(ValidationError):
        ensure_can_draw(facility, Decimal("100"), Decimal("800000"), date(2027, 1, 1))
    with pytest.raises(ValidationError):
        ensure_can_draw(facility, Decimal("0"), Decimal("800000"), as_of)
