"""Portfolio exposure endpoints - live summary and materialized snapshots"""

import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from exposure_gateway.api.v1.loaders import load_portfolio
from exposure_gateway.api.v1.schemas import (
    PortfolioSummaryResponse,
    SnapshotCaptureResponse,
    SnapshotListResponse,
    SnapshotSchema,
)
from exposure_gateway.api.dependencies import get_request_id, get_user_id
from exposure_gateway.infrastructure.database.session import get_db
from exposure_gateway.infrastructure.database.repositories import SnapshotRepository
from exposure_gateway.domain.exposure import build_snapshots
from exposure_gateway.domain.exceptions import EntityNotFoundError, ValidationError
from exposure_gateway.infrastructure.observability.metrics import validation_failures_counter

router = APIRouter()


@router.get("/portfolio/summary", response_model=PortfolioSummaryResponse)
def get_portfolio_summary(
    request: Request,
    as_of: Optional[date] = Query(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Outstanding, limits, per-bank concentration and LTV derived from the ledger"""
    request_id = get_request_id(request)
    as_of = as_of or date.today()

    try:
        state = load_portfolio(db, user_id, as_of)
        return PortfolioSummaryResponse.from_domain(state.summary, as_of)

    except ValidationError as e:
        validation_failures_counter.labels(operation="portfolio_summary").inc()
        logging.warning(f"Portfolio rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/portfolio/snapshots", response_model=SnapshotCaptureResponse)
def capture_snapshots(
    request: Request,
    as_of: Optional[date] = Query(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Materialize today's exposure at portfolio, bank and facility level.

    Capturing a date that already has snapshots returns the stored rows
    unchanged, so a scheduler may call this more than once a day.
    """
    request_id = get_request_id(request)
    as_of = as_of or date.today()

    try:
        state = load_portfolio(db, user_id, as_of)
        snapshots, created = SnapshotRepository(db).capture(
            user_id, as_of, build_snapshots(state.summary, user_id, as_of)
        )
        db.commit()

        logging.info(
            "Exposure snapshots captured" if created else "Exposure snapshots already present",
            extra={"request_id": request_id, "user_id": user_id, "snapshot_date": as_of.isoformat(), "rows": len(snapshots)},
        )

        return SnapshotCaptureResponse(
            snapshot_date=as_of,
            created=created,
            snapshots=[SnapshotSchema.from_domain(s) for s in snapshots],
        )

    except ValidationError as e:
        db.rollback()
        validation_failures_counter.labels(operation="capture_snapshots").inc()
        logging.warning(f"Snapshot capture rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/portfolio/snapshots", response_model=SnapshotListResponse)
def list_snapshots(
    request: Request,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    bank_id: Optional[str] = Query(None),
    facility_id: Optional[str] = Query(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Stored snapshots, newest first"""
    request_id = get_request_id(request)

    try:
        snapshots = SnapshotRepository(db).list_snapshots(
            user_id,
            date_from=date_from,
            date_to=date_to,
            bank_id=bank_id,
            facility_id=facility_id,
        )
        return SnapshotListResponse(user_id=user_id, snapshots=[SnapshotSchema.from_domain(s) for s in snapshots])

    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
