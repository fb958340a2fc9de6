"""POST /v1/scenarios/what-if - loan what-if projections"""

import time
import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from exposure_gateway.api.v1.schemas import WhatIfRequest, WhatIfResponse
from exposure_gateway.api.dependencies import get_request_id, get_user_id
from exposure_gateway.config import settings
from exposure_gateway.infrastructure.database.session import get_db
from exposure_gateway.infrastructure.database.repositories import LoanRepository
from exposure_gateway.domain.scenarios import simulate
from exposure_gateway.domain.exceptions import EntityNotFoundError, ValidationError
from exposure_gateway.infrastructure.observability.metrics import record_scenarios, validation_failures_counter
from exposure_gateway.infrastructure.observability.logging import log_scenario

router = APIRouter()


@router.post("/scenarios/what-if", response_model=WhatIfResponse)
def what_if(
    request_body: WhatIfRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Project refinance, early payment and term change scenarios for one loan.

    Nothing is persisted; the loan is read, simulated and returned.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    inputs = request_body.scenarios

    try:
        loan = LoanRepository(db).get_loan(user_id, request_body.loan_id)

        analysis = simulate(
            loan,
            refinance_rate=inputs.refinance.new_rate if inputs.refinance else None,
            early_payment_amount=inputs.early_payment.payment_amount if inputs.early_payment else None,
            early_payment_date=inputs.early_payment.payment_date if inputs.early_payment else None,
            new_duration_days=inputs.term_change.new_duration_days if inputs.term_change else None,
            as_of=request_body.as_of or date.today(),
            thresholds=settings.recommendation_thresholds(),
        )

        scenario_types = [s.type for s in analysis.scenarios]
        duration_ms = (time.time() - start_time) * 1000
        record_scenarios(scenario_types)
        log_scenario(request_id, user_id, loan.id, scenario_types, duration_ms)

        return WhatIfResponse.from_domain(analysis)

    except EntityNotFoundError as e:
        logging.warning(f"Not found: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationError as e:
        validation_failures_counter.labels(operation="what_if").inc()
        logging.warning(f"Invalid scenario: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
