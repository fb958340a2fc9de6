"""Facility matcher - scores a user's facilities against a requested drawdown"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from exposure_gateway.domain.accrual import HUNDRED, ZERO, Number, to_decimal, to_minor_unit
from exposure_gateway.domain.exceptions import ValidationError
from exposure_gateway.domain.models import (
    Bank,
    Facility,
    FacilityCandidate,
    FacilityScore,
    FacilityType,
    MatchResult,
    PortfolioSummary,
    RevolvingUsage,
)
from exposure_gateway.utils.date_utils import add_days

TWO = Decimal(2)


@dataclass(frozen=True)
class MatcherWeights:
    """
    Points per criterion (100 in total) and risk-flag thresholds.

    - headroom: available credit vs request, scaled by the facility's own limit
    - utilization: lower current utilization scores higher
    - rate: cheaper all-in rate within the portfolio's range scores higher
    - type_match: requested facility type
    - revolving: revolving facility inside its available period
    """

    headroom: Decimal = Decimal(40)
    utilization: Decimal = Decimal(20)
    rate: Decimal = Decimal(20)
    type_match: Decimal = Decimal(10)
    revolving: Decimal = Decimal(10)
    near_limit_utilization: Decimal = Decimal(80)
    high_utilization: Decimal = Decimal(60)
    low_utilization: Decimal = Decimal(30)
    rate_gap_warning: Decimal = Decimal(1)


DEFAULT_WEIGHTS = MatcherWeights()


def build_candidates(
    facilities: Iterable[Facility],
    summary: PortfolioSummary,
    banks: Iterable[Bank],
    revolving_usage: Optional[Dict[str, RevolvingUsage]] = None,
) -> List[FacilityCandidate]:
    """Join facilities with the aggregator's per-facility exposure figures"""
    exposures = {e.facility_id: e for e in summary.facility_exposures}
    bank_names = {b.id: b.name for b in banks}
    revolving_usage = revolving_usage or {}

    candidates = []
    for facility in facilities:
        exposure = exposures.get(facility.id)
        outstanding = exposure.outstanding if exposure else ZERO
        limit = to_decimal(facility.credit_limit)
        if exposure and exposure.utilization_defined:
            utilization = exposure.utilization
        else:
            utilization = outstanding / limit * HUNDRED if limit > 0 else ZERO
        candidates.append(
            FacilityCandidate(
                facility=facility,
                bank_name=bank_names.get(facility.bank_id, "Unknown Bank"),
                outstanding=outstanding,
                available_credit=limit - outstanding,
                utilization=utilization,
                revolving=revolving_usage.get(facility.id),
            )
        )
    return candidates


def _money(amount: Decimal) -> str:
    return f"SAR {to_minor_unit(amount):,}"


def _disqualifications(
    candidate: FacilityCandidate,
    requested: Decimal,
    facility_type: Optional[str],
    as_of: Optional[date],
) -> List[str]:
    facility = candidate.facility
    warnings = []
    if not facility.is_active:
        warnings.append("Facility is inactive")
    if as_of is not None and as_of > facility.expiry_date:
        warnings.append(f"Facility expired on {facility.expiry_date.isoformat()}")
    if as_of is not None and as_of < facility.start_date:
        warnings.append(f"Facility not available until {facility.start_date.isoformat()}")
    if facility_type and facility.facility_type != facility_type:
        warnings.append(f"Facility type {facility.facility_type} does not match requested {facility_type}")
    if candidate.available_credit < requested:
        warnings.append(
            f"Insufficient credit: {_money(max(candidate.available_credit, ZERO))} available, {_money(requested)} needed"
        )
    return warnings


def _revolving_points(
    candidate: FacilityCandidate,
    duration_days: Optional[int],
    weights: MatcherWeights,
    reasons: List[str],
    warnings: List[str],
) -> Decimal:
    if candidate.facility.facility_type != FacilityType.REVOLVING.value:
        return weights.revolving / TWO

    usage = candidate.revolving
    if usage is None:
        reasons.append("Revolving facility within its availability period")
        return weights.revolving
    if not usage.can_revolve:
        warnings.append("Revolving period exhausted")
        return ZERO
    if duration_days and usage.days_remaining < duration_days:
        warnings.append(
            f"Insufficient revolving period: {usage.days_remaining} days available, {duration_days} needed"
        )
        return ZERO
    reasons.append(f"Sufficient revolving period: {usage.days_remaining} days available")
    return weights.revolving


def _score(
    candidate: FacilityCandidate,
    requested: Decimal,
    facility_type: Optional[str],
    duration_days: Optional[int],
    as_of: Optional[date],
    min_rate: Decimal,
    max_rate: Decimal,
    weights: MatcherWeights,
) -> FacilityScore:
    facility = candidate.facility
    rate = facility.all_in_rate
    limit = to_decimal(facility.credit_limit)
    disqualified = _disqualifications(candidate, requested, facility_type, as_of)
    warnings = list(disqualified)
    reasons: List[str] = []
    score = ZERO

    if not disqualified:
        # Headroom
        coverage = min(Decimal(1), candidate.available_credit / requested)
        score += weights.headroom * coverage * (candidate.available_credit / limit)
        credit_ratio = candidate.available_credit / requested
        if credit_ratio >= 3:
            reasons.append("Excellent available credit")
        elif credit_ratio >= Decimal("1.5"):
            reasons.append("Good available credit")
        else:
            warnings.append("Limited available credit after drawdown")

        # Utilization
        utilization = max(ZERO, min(candidate.utilization, HUNDRED))
        score += weights.utilization * (1 - utilization / HUNDRED)
        if utilization >= weights.near_limit_utilization:
            warnings.append(f"Near credit limit: {utilization:.1f}% utilized")
        elif utilization >= weights.high_utilization:
            warnings.append("High utilization")
        elif utilization < weights.low_utilization:
            reasons.append("Low utilization")
        after_draw = (candidate.outstanding + requested) / limit * HUNDRED
        if utilization < weights.near_limit_utilization <= after_draw:
            warnings.append(f"Drawdown would take utilization to {after_draw:.1f}%")

        # Rate
        if max_rate == min_rate:
            score += weights.rate
        else:
            score += weights.rate * (max_rate - rate) / (max_rate - min_rate)
        if rate == min_rate:
            reasons.append(f"Best interest rate: {rate}%")
        elif rate - min_rate >= weights.rate_gap_warning:
            warnings.append(f"Higher interest rate: {rate}% vs {min_rate}%")

        # Type
        if facility_type:
            score += weights.type_match
            reasons.append("Facility type matches requirement")
        else:
            score += weights.type_match / TWO

        # Revolving period
        score += _revolving_points(candidate, duration_days, weights, reasons, warnings)

        if duration_days and as_of is not None and add_days(as_of, duration_days) > facility.expiry_date:
            warnings.append(f"Loan would run past facility expiry on {facility.expiry_date.isoformat()}")

    return FacilityScore(
        facility_id=facility.id,
        facility_name=candidate.facility_name,
        bank_name=candidate.bank_name,
        facility_type=facility.facility_type,
        credit_limit=limit,
        outstanding=candidate.outstanding,
        available_credit=candidate.available_credit,
        utilization_percent=candidate.utilization,
        interest_rate=rate,
        score=max(ZERO, min(score, HUNDRED)),
        eligible=not disqualified,
        reasons=reasons,
        warnings=warnings,
    )


def match(
    requested_amount: Number,
    candidates: Iterable[FacilityCandidate],
    facility_type: Optional[str] = None,
    duration_days: Optional[int] = None,
    as_of: Optional[date] = None,
    weights: MatcherWeights = DEFAULT_WEIGHTS,
) -> MatchResult:
    """
    Rank facilities for a new drawdown of `requested_amount`.

    Eligible = active, within its validity dates, of the requested type (if
    any) and with available credit >= the request. Ineligible facilities are
    kept in `all_facilities` with the warning that excluded them, so the
    result is never empty when the user holds facilities.
    """
    requested = to_decimal(requested_amount)
    if requested <= 0:
        raise ValidationError(f"Valid loan amount is required, got {requested}")
    if duration_days is not None and duration_days <= 0:
        raise ValidationError(f"Duration must be positive, got {duration_days}")
    if facility_type:
        facility_type = facility_type.replace("-", "_")
    if facility_type and facility_type not in {t.value for t in FacilityType}:
        raise ValidationError(f"Unknown facility type: {facility_type}")

    candidates = list(candidates)
    if not candidates:
        return MatchResult(
            requested_amount=requested,
            message="No facilities available. Please create a facility first.",
        )

    rates = [c.facility.all_in_rate for c in candidates if c.facility.is_active] or [
        c.facility.all_in_rate for c in candidates
    ]
    min_rate, max_rate = min(rates), max(rates)

    scored = [
        _score(c, requested, facility_type, duration_days, as_of, min_rate, max_rate, weights)
        for c in candidates
    ]
    scored.sort(key=lambda s: (not s.eligible, -s.score, s.interest_rate, s.facility_id))
    eligible = [s for s in scored if s.eligible]

    if not eligible:
        return MatchResult(
            requested_amount=requested,
            message=f"No suitable facility: none can accept a drawdown of {_money(requested)}.",
            all_facilities=scored,
        )

    top = eligible[0]
    return MatchResult(
        requested_amount=requested,
        message=f"Recommended: {top.facility_name} (Score: {top.score:.0f}/100)",
        recommendation=top,
        alternatives=eligible[1:3],
        all_facilities=scored,
    )
