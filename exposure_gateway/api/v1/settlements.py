"""Settlement endpoints - replayed loan status and repayment recording"""

import time
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from exposure_gateway.api.v1.loaders import replay_loans
from exposure_gateway.api.v1.schemas import (
    AllocationSchema,
    RepaymentRequest,
    RepaymentResponse,
    SettlementListResponse,
    SettlementRecordSchema,
    SettlementSummarySchema,
    money,
)
from exposure_gateway.api.dependencies import get_event_client, get_request_id, get_user_id
from exposure_gateway.config import settings
from exposure_gateway.infrastructure.database.session import get_db
from exposure_gateway.infrastructure.database.repositories import (
    FacilityRepository,
    LoanRepository,
    TransactionRepository,
)
from exposure_gateway.infrastructure.clients.events import EventClient
from exposure_gateway.domain.allocation import allocate
from exposure_gateway.domain.models import LoanStatus, TransactionType
from exposure_gateway.domain.settlement import replay_loan, resolve_status, summarize_settlements
from exposure_gateway.domain.exceptions import EntityNotFoundError, ValidationError
from exposure_gateway.infrastructure.observability.metrics import repayment_counter, validation_failures_counter
from exposure_gateway.infrastructure.observability.logging import log_repayment, log_replay

router = APIRouter()


@router.get("/loans/{loan_id}/settlement", response_model=SettlementRecordSchema)
def get_loan_settlement(
    loan_id: str,
    request: Request,
    as_of: Optional[date] = Query(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Replay one loan's ledger and report its settlement progress"""
    start_time = time.time()
    request_id = get_request_id(request)
    as_of = as_of or date.today()

    try:
        loan = LoanRepository(db).get_loan(user_id, loan_id)
        transactions = TransactionRepository(db).list_for_loans(user_id, [loan.id])
        record = replay_loans([loan], transactions, as_of)[loan.id]

        log_replay(request_id, user_id, 1, len(transactions), (time.time() - start_time) * 1000)
        return SettlementRecordSchema.from_domain(record, loan.status)

    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationError as e:
        validation_failures_counter.labels(operation="settlement").inc()
        logging.warning(f"Ledger rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/settlements", response_model=SettlementListResponse)
def list_settlements(
    request: Request,
    as_of: Optional[date] = Query(None),
    bank_id: Optional[str] = Query(None),
    facility_id: Optional[str] = Query(None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Settlement records for every loan of the tenant, with a roll-up"""
    start_time = time.time()
    request_id = get_request_id(request)
    as_of = as_of or date.today()

    try:
        loans = LoanRepository(db).list_loans(user_id, facility_id=facility_id, bank_id=bank_id)
        transactions = TransactionRepository(db).list_for_loans(user_id, [loan.id for loan in loans])
        records = replay_loans(loans, transactions, as_of)
        summary = summarize_settlements(list(records.values()))

        log_replay(request_id, user_id, len(loans), len(transactions), (time.time() - start_time) * 1000)
        return SettlementListResponse(
            as_of=as_of,
            summary=SettlementSummarySchema.from_domain(summary),
            settlements=[SettlementRecordSchema.from_domain(records[loan.id], loan.status) for loan in loans],
        )

    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationError as e:
        validation_failures_counter.labels(operation="settlements").inc()
        logging.warning(f"Ledger rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/loans/{loan_id}/repayments", response_model=RepaymentResponse, status_code=201)
async def record_repayment(
    loan_id: str,
    request_body: RepaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    event_client: EventClient = Depends(get_event_client),
):
    """
    Append a repayment to the ledger and settle the loan if it is paid off.

    Flow:
    1. Replay the ledger up to the payment date to split the payment
       across fees, interest and principal
    2. Append the repayment transaction
    3. Replay again and persist the resulting status transition
    4. Send LOAN_SETTLED webhook in the background once principal reaches zero
    """
    request_id = get_request_id(request)
    today = date.today()
    payment_date = request_body.payment_date or today
    order = settings.payment_waterfall

    try:
        loan_repo = LoanRepository(db)
        transaction_repo = TransactionRepository(db)

        loan = loan_repo.get_loan(user_id, loan_id)
        if loan.status == LoanStatus.SETTLED.value:
            raise ValidationError(f"Loan {loan.id} is already settled")
        if payment_date < loan.start_date:
            raise ValidationError(f"Payment date {payment_date} precedes loan start {loan.start_date}")
        if payment_date > today:
            raise ValidationError(f"Payment date {payment_date} is in the future")
        facility = FacilityRepository(db).get_facility(user_id, loan.facility_id)

        # 1. Split the payment against the balances owed on the payment date
        transactions = transaction_repo.list_for_loans(user_id, [loan.id])
        before = replay_loan(loan, transactions, payment_date, order).breakdown
        allocation = allocate(
            request_body.amount,
            before.fees_remaining,
            before.interest_remaining,
            before.principal_remaining,
            order,
        )

        # 2. Append to the ledger
        transaction = transaction_repo.append(
            user_id=user_id,
            bank_id=facility.bank_id,
            type=TransactionType.REPAYMENT.value,
            date=payment_date,
            amount=request_body.amount,
            facility_id=facility.id,
            loan_id=loan.id,
            reference=request_body.reference,
            notes=request_body.notes,
        )

        # 3. Derive and persist the new status
        record = replay_loans([loan], transactions + [transaction], today)[loan.id]
        status = resolve_status(loan.status, record)
        became_settled = status == LoanStatus.SETTLED.value
        loan_repo.update_status(
            user_id,
            loan.id,
            status,
            settled_date=record.settled_date if became_settled else None,
            settled_amount=record.settled_amount if became_settled else None,
        )

        db.commit()

        # 4. Schedule async webhook
        if became_settled:
            background_tasks.add_task(
                event_client.send_event,
                {
                    "event": "LOAN_SETTLED",
                    "loan_id": loan.id,
                    "facility_id": facility.id,
                    "user_id": user_id,
                    "settled_date": record.settled_date.isoformat(),
                    "settled_amount": money(record.settled_amount),
                },
            )

        repayment_counter.labels(resulting_status=status).inc()
        log_repayment(request_id, user_id, loan.id, money(request_body.amount), status)

        return RepaymentResponse(
            transaction_id=transaction.id,
            loan_id=loan.id,
            status=status,
            allocation=AllocationSchema.from_domain(allocation),
            settlement=SettlementRecordSchema.from_domain(record, status),
        )

    except EntityNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationError as e:
        db.rollback()
        validation_failures_counter.labels(operation="repayment").inc()
        logging.warning(f"Repayment rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
