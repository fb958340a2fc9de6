"""Facility endpoints - drawdown matching, revolving usage and new draws"""

import time
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from exposure_gateway.api.v1.loaders import load_portfolio
from exposure_gateway.api.v1.schemas import (
    DrawRequest,
    DrawResponse,
    MatchRequest,
    MatchResponse,
    RevolvingUsageResponse,
    money,
    percent,
)
from exposure_gateway.api.dependencies import get_request_id, get_user_id
from exposure_gateway.config import settings
from exposure_gateway.infrastructure.database.session import get_db
from exposure_gateway.infrastructure.database.repositories import (
    FacilityRepository,
    LoanRepository,
    TransactionRepository,
)
from exposure_gateway.domain.exposure import ensure_can_draw
from exposure_gateway.domain.matcher import build_candidates, match
from exposure_gateway.domain.models import TransactionType
from exposure_gateway.domain.revolving import revolving_usage
from exposure_gateway.domain.exceptions import EntityNotFoundError, ValidationError
from exposure_gateway.infrastructure.observability.metrics import record_match, validation_failures_counter
from exposure_gateway.infrastructure.observability.logging import log_match

router = APIRouter()


@router.post("/facilities/match", response_model=MatchResponse)
def match_facility(
    request_body: MatchRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Rank the tenant's facilities for a new drawdown.

    Flow:
    1. Load facilities and derive their outstanding balances from the ledger
    2. Compute revolving usage where the facility tracks a revolving window
    3. Score, filter and rank; "no suitable facility" is still a 200
    """
    start_time = time.time()
    request_id = get_request_id(request)
    as_of = request_body.as_of or date.today()

    try:
        state = load_portfolio(db, user_id, as_of)
        usage = {
            f.id: revolving_usage(f, state.loans, as_of)
            for f in state.facilities
            if f.max_revolving_period_days
        }
        candidates = build_candidates(state.facilities, state.summary, state.banks, usage)
        result = match(
            request_body.loan_amount,
            candidates,
            facility_type=request_body.facility_type,
            duration_days=request_body.duration,
            as_of=as_of,
            weights=settings.matcher_weights(),
        )

        recommended_id = result.recommendation.facility_id if result.recommendation else None
        duration_ms = (time.time() - start_time) * 1000
        record_match(recommended_id is not None)
        log_match(request_id, user_id, money(result.requested_amount), recommended_id, len(candidates), duration_ms)

        return MatchResponse.from_domain(result)

    except ValidationError as e:
        validation_failures_counter.labels(operation="match").inc()
        logging.warning(f"Invalid match request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/facilities/{facility_id}/revolving-usage", response_model=RevolvingUsageResponse)
def get_revolving_usage(
    facility_id: str,
    request: Request,
    as_of: Optional[date] = Query(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Days of the facility's revolving window consumed so far"""
    request_id = get_request_id(request)

    try:
        facility = FacilityRepository(db).get_facility(user_id, facility_id)
        loans = LoanRepository(db).list_loans(user_id, facility_id=facility.id)
        usage = revolving_usage(facility, loans, as_of or date.today())
        return RevolvingUsageResponse.from_domain(usage)

    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationError as e:
        validation_failures_counter.labels(operation="revolving_usage").inc()
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/facilities/{facility_id}/draws", response_model=DrawResponse, status_code=201)
def create_draw(
    facility_id: str,
    request_body: DrawRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Draw a new loan against a facility.

    The loan and its draw transaction are written in one transaction. Rates
    default to the facility's SIBOR and margin and are fixed from then on.
    """
    request_id = get_request_id(request)
    start_date = request_body.start_date or date.today()

    try:
        facility = FacilityRepository(db).get_facility(user_id, facility_id)
        if request_body.due_date < start_date:
            raise ValidationError(f"Due date {request_body.due_date} precedes start date {start_date}")

        state = load_portfolio(db, user_id, start_date)
        exposure = next(e for e in state.summary.facility_exposures if e.facility_id == facility.id)
        ensure_can_draw(facility, request_body.amount, exposure.available_credit, start_date)

        loan = LoanRepository(db).create_loan(
            user_id=user_id,
            facility_id=facility.id,
            amount=request_body.amount,
            sibor_rate=request_body.sibor_rate if request_body.sibor_rate is not None else facility.sibor_rate,
            bank_rate=request_body.bank_rate if request_body.bank_rate is not None else facility.margin_rate,
            start_date=start_date,
            due_date=request_body.due_date,
            reference_number=request_body.reference_number,
        )
        transaction = TransactionRepository(db).append(
            user_id=user_id,
            bank_id=facility.bank_id,
            type=TransactionType.DRAW.value,
            date=start_date,
            amount=request_body.amount,
            facility_id=facility.id,
            loan_id=loan.id,
            reference=request_body.reference_number or None,
        )
        db.commit()

        logging.info(
            "Drawdown recorded",
            extra={"request_id": request_id, "user_id": user_id, "loan_id": loan.id, "facility_id": facility.id},
        )

        return DrawResponse(
            loan_id=loan.id,
            facility_id=facility.id,
            transaction_id=transaction.id,
            amount=money(loan.amount),
            all_in_rate=percent(loan.all_in_rate),
            start_date=loan.start_date,
            due_date=loan.due_date,
            status=loan.status,
        )

    except EntityNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationError as e:
        db.rollback()
        validation_failures_counter.labels(operation="draw").inc()
        logging.warning(f"Drawdown rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
