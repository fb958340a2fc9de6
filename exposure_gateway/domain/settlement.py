"""Settlement tracker - derives loan state and repayment progress by replaying the ledger"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from exposure_gateway.domain.accrual import HUNDRED, ZERO, accrue, to_decimal
from exposure_gateway.domain.allocation import DEFAULT_WATERFALL, allocate, validate_waterfall
from exposure_gateway.domain.exceptions import InvalidStatusTransitionError, ValidationError
from exposure_gateway.domain.models import (
    Loan,
    LoanStatus,
    SettlementBreakdown,
    SettlementRecord,
    SettlementSummary,
    Transaction,
    TransactionType,
)
from exposure_gateway.utils.date_utils import days_between

# Same-day ordering: obligations land before repayments that settle them
TYPE_PRECEDENCE: Dict[str, int] = {
    TransactionType.DRAW.value: 0,
    TransactionType.FEE.value: 1,
    TransactionType.INTEREST.value: 2,
    TransactionType.LIMIT_CHANGE.value: 3,
    TransactionType.OTHER.value: 3,
    TransactionType.REPAYMENT.value: 4,
}

ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    LoanStatus.ACTIVE.value: {LoanStatus.OVERDUE.value, LoanStatus.RESTRUCTURED.value, LoanStatus.SETTLED.value},
    LoanStatus.OVERDUE.value: {LoanStatus.RESTRUCTURED.value, LoanStatus.SETTLED.value},
    LoanStatus.RESTRUCTURED.value: {LoanStatus.ACTIVE.value, LoanStatus.OVERDUE.value, LoanStatus.SETTLED.value},
    LoanStatus.SETTLED.value: set(),
}

# (date, type precedence, input position, type, amount)
_Event = Tuple[date, int, int, str, Decimal]


def validate_status_transition(current: str, new: str) -> str:
    """
    Enforce the monotonic loan lifecycle.

    active -> overdue | restructured | settled
    overdue -> restructured | settled
    restructured -> active | overdue | settled (continues under new terms)
    settled is terminal

    Staying in the same status is always allowed.
    """
    if current not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Unknown loan status: {current}")
    if new not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Unknown loan status: {new}")
    if current == new:
        return new
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(f"Loan cannot move from {current} to {new}")
    return new


def resolve_status(stored: str, record: SettlementRecord) -> str:
    """Status to persist after a replay; a restructured loan keeps its flag until settled"""
    target = record.settlement_status
    if stored == LoanStatus.RESTRUCTURED.value and target != LoanStatus.SETTLED.value:
        return stored
    return validate_status_transition(stored, target)


@dataclass
class _LedgerState:
    principal: Decimal = ZERO
    interest: Decimal = ZERO
    fees: Decimal = ZERO
    total_drawn: Decimal = ZERO
    total_repaid: Decimal = ZERO
    total_interest: Decimal = ZERO
    total_fees: Decimal = ZERO
    principal_paid: Decimal = ZERO
    interest_paid: Decimal = ZERO
    fees_paid: Decimal = ZERO
    unapplied: Decimal = ZERO
    settled_on: Optional[date] = None

    def accrue(self, rate: Decimal, days: int) -> None:
        charge = accrue(self.principal, rate, days)
        self.interest += charge
        self.total_interest += charge


def _loan_events(loan: Loan, transactions: Iterable[Transaction], as_of: date) -> List[_Event]:
    events: List[_Event] = []
    for position, txn in enumerate(transactions):
        if txn.loan_id != loan.id or txn.date > as_of:
            continue
        if txn.type not in TYPE_PRECEDENCE:
            raise ValidationError(f"Unknown transaction type: {txn.type}")
        if txn.date < loan.start_date:
            raise ValidationError(
                f"Transaction {txn.id} dated {txn.date} precedes loan start {loan.start_date}"
            )
        events.append((txn.date, TYPE_PRECEDENCE[txn.type], position, txn.type, to_decimal(txn.amount)))

    has_draw = any(event[3] == TransactionType.DRAW.value for event in events)
    if not has_draw and loan.start_date <= as_of:
        # Drawdown not recorded on the ledger: the loan amount is the implied draw
        events.append((loan.start_date, TYPE_PRECEDENCE[TransactionType.DRAW.value], -1, TransactionType.DRAW.value, loan.amount))

    return sorted(events)


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return max(ZERO, min(part / whole * HUNDRED, HUNDRED))


def replay_loan(
    loan: Loan,
    transactions: Iterable[Transaction],
    as_of: date,
    order: Sequence[str] = DEFAULT_WATERFALL,
) -> SettlementRecord:
    """
    Replay a loan's ledger up to `as_of` and derive its settlement state.

    Interest accrues day by day on outstanding principal at the loan's all-in
    rate; every repayment goes through the payment waterfall. Entries for other
    loans or dated after `as_of` are ignored. The result depends only on the
    arguments, so replaying the same ledger twice yields the same record.
    """
    if to_decimal(loan.amount) <= 0:
        raise ValidationError(f"Loan {loan.id} amount must be > 0")
    if loan.due_date < loan.start_date:
        raise ValidationError(f"Loan {loan.id} due date precedes start date")
    order = validate_waterfall(order)

    rate = loan.all_in_rate
    state = _LedgerState()
    events = _loan_events(loan, transactions, as_of)
    cursor = loan.start_date
    last_date: Optional[date] = None

    for event_date, _, position, txn_type, amount in events:
        if event_date > cursor:
            state.accrue(rate, days_between(cursor, event_date))
            cursor = event_date
        if position >= 0:
            last_date = event_date

        if txn_type == TransactionType.DRAW.value:
            # Negative draws are reversals
            state.principal = max(ZERO, state.principal + amount)
            state.total_drawn += amount
            if amount > 0:
                state.settled_on = None
        elif txn_type == TransactionType.FEE.value:
            state.total_fees += amount
            state.fees = max(ZERO, state.fees + amount)
        elif txn_type == TransactionType.INTEREST.value:
            state.total_interest += amount
            state.interest = max(ZERO, state.interest + amount)
        elif txn_type == TransactionType.REPAYMENT.value:
            paid = abs(amount)
            split = allocate(paid, state.fees, state.interest, state.principal, order)
            state.fees -= split.fees_paid
            state.interest -= split.interest_paid
            state.principal -= split.principal_paid
            state.fees_paid += split.fees_paid
            state.interest_paid += split.interest_paid
            state.principal_paid += split.principal_paid
            state.unapplied += split.remainder
            state.total_repaid += paid
            if state.principal == 0 and state.total_drawn > 0 and state.settled_on is None:
                state.settled_on = event_date

    if as_of > cursor:
        state.accrue(rate, days_between(cursor, as_of))

    if state.total_drawn > 0 and state.principal == 0:
        status = LoanStatus.SETTLED.value
    elif state.principal > 0 and as_of > loan.due_date:
        status = LoanStatus.OVERDUE.value
    else:
        status = LoanStatus.ACTIVE.value
    settled = status == LoanStatus.SETTLED.value

    return SettlementRecord(
        loan_id=loan.id,
        facility_id=loan.facility_id,
        as_of=as_of,
        settlement_status=status,
        restructured=loan.status == LoanStatus.RESTRUCTURED.value,
        settlement_progress=_percent(state.total_repaid, state.total_drawn + state.total_interest),
        principal_progress=_percent(state.principal_paid, state.total_drawn),
        interest_progress=_percent(state.interest_paid, state.total_interest),
        total_drawn=state.total_drawn,
        total_repaid=state.total_repaid,
        total_interest_accrued=state.total_interest,
        total_fees_charged=state.total_fees,
        outstanding_principal=state.principal,
        outstanding_balance=state.principal + state.interest + state.fees,
        unapplied_credit=state.unapplied,
        breakdown=SettlementBreakdown(
            principal_paid=state.principal_paid,
            principal_remaining=state.principal,
            interest_paid=state.interest_paid,
            interest_remaining=state.interest,
            fees_paid=state.fees_paid,
            fees_remaining=state.fees,
        ),
        transaction_count=sum(1 for event in events if event[2] >= 0),
        last_transaction_date=last_date,
        settled_date=state.settled_on if settled else None,
        settled_amount=state.total_repaid if settled else None,
    )


def summarize_settlements(records: List[SettlementRecord]) -> SettlementSummary:
    """Portfolio-level roll-up for history views"""
    count = len(records)
    by_status = {status.value: 0 for status in LoanStatus}
    for record in records:
        by_status[record.settlement_status] += 1

    average = sum((r.settlement_progress for r in records), ZERO) / count if count else ZERO

    return SettlementSummary(
        total_loans=count,
        active_loans=by_status[LoanStatus.ACTIVE.value],
        overdue_loans=by_status[LoanStatus.OVERDUE.value],
        settled_loans=by_status[LoanStatus.SETTLED.value],
        total_outstanding=sum((r.outstanding_balance for r in records), ZERO),
        average_settlement_progress=average,
    )
