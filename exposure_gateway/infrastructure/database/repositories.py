"""Data access layer for portfolio entities"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session
from exposure_gateway.infrastructure.database.models import (
    BankRecord,
    CollateralRecord,
    ExposureSnapshotRecord,
    FacilityRecord,
    LoanRecord,
    TransactionRecord,
)
from exposure_gateway.domain.exceptions import EntityNotFoundError
from exposure_gateway.domain.models import (
    Bank,
    Collateral,
    ExposureSnapshot,
    Facility,
    Loan,
    LoanStatus,
    Transaction,
)


def _to_uuid(value: str, entity: str) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise EntityNotFoundError(f"{entity} {value} not found")


def _str_or_none(value: Optional[uuid.UUID]) -> Optional[str]:
    return str(value) if value is not None else None


def _to_bank(record: BankRecord) -> Bank:
    return Bank(id=str(record.id), name=record.name, code=record.code, is_active=record.is_active)


def _to_facility(record: FacilityRecord) -> Facility:
    return Facility(
        id=str(record.id),
        bank_id=str(record.bank_id),
        user_id=record.user_id,
        facility_type=record.facility_type,
        credit_limit=Decimal(record.credit_limit),
        sibor_rate=Decimal(record.sibor_rate),
        margin_rate=Decimal(record.margin_rate),
        start_date=record.start_date,
        expiry_date=record.expiry_date,
        is_active=record.is_active,
        max_revolving_period_days=record.max_revolving_period_days,
    )


def _to_loan(record: LoanRecord) -> Loan:
    return Loan(
        id=str(record.id),
        facility_id=str(record.facility_id),
        user_id=record.user_id,
        amount=Decimal(record.amount),
        sibor_rate=Decimal(record.sibor_rate),
        bank_rate=Decimal(record.bank_rate),
        start_date=record.start_date,
        due_date=record.due_date,
        status=record.status,
        reference_number=record.reference_number,
        settled_date=record.settled_date,
        settled_amount=Decimal(record.settled_amount) if record.settled_amount is not None else None,
    )


def _to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=str(record.id),
        user_id=record.user_id,
        bank_id=str(record.bank_id),
        date=record.date,
        type=record.type,
        amount=Decimal(record.amount),
        facility_id=_str_or_none(record.facility_id),
        loan_id=_str_or_none(record.loan_id),
        reference=record.reference,
        notes=record.notes,
    )


def _to_collateral(record: CollateralRecord) -> Collateral:
    return Collateral(
        id=str(record.id),
        user_id=record.user_id,
        asset_type=record.asset_type,
        current_value=Decimal(record.current_value),
        name=record.name,
        facility_id=_str_or_none(record.facility_id),
        loan_id=_str_or_none(record.loan_id),
        is_active=record.is_active,
    )


def _to_snapshot(record: ExposureSnapshotRecord) -> ExposureSnapshot:
    return ExposureSnapshot(
        user_id=record.user_id,
        date=record.date,
        outstanding=Decimal(record.outstanding),
        credit_limit=Decimal(record.credit_limit),
        bank_id=_str_or_none(record.bank_id),
        facility_id=_str_or_none(record.facility_id),
    )


class BankRepository:
    """Repository for lending banks (shared reference data)"""

    def __init__(self, db: Session):
        self.db = db

    def create_bank(self, name: str, code: str) -> Bank:
        db_bank = BankRecord(name=name, code=code)
        self.db.add(db_bank)
        self.db.flush()  # Get ID without committing
        return _to_bank(db_bank)

    def get_bank(self, bank_id: str) -> Bank:
        record = self.db.query(BankRecord).filter(BankRecord.id == _to_uuid(bank_id, "Bank")).first()
        if record is None:
            raise EntityNotFoundError(f"Bank {bank_id} not found")
        return _to_bank(record)

    def list_banks(self) -> List[Bank]:
        return [_to_bank(r) for r in self.db.query(BankRecord).order_by(BankRecord.name).all()]


class FacilityRepository:
    """Repository for credit facilities, always scoped to one tenant"""

    def __init__(self, db: Session):
        self.db = db

    def create_facility(
        self,
        user_id: str,
        bank_id: str,
        facility_type: str,
        credit_limit: Decimal,
        sibor_rate: Decimal,
        margin_rate: Decimal,
        start_date: date,
        expiry_date: date,
        max_revolving_period_days: Optional[int] = None,
    ) -> Facility:
        db_facility = FacilityRecord(
            user_id=user_id,
            bank_id=_to_uuid(bank_id, "Bank"),
            facility_type=facility_type,
            credit_limit=credit_limit,
            sibor_rate=sibor_rate,
            margin_rate=margin_rate,
            start_date=start_date,
            expiry_date=expiry_date,
            max_revolving_period_days=max_revolving_period_days,
        )
        self.db.add(db_facility)
        self.db.flush()
        return _to_facility(db_facility)

    def get_facility(self, user_id: str, facility_id: str) -> Facility:
        """Fetch a facility; facilities of other tenants are reported as missing"""
        record = (
            self.db.query(FacilityRecord)
            .filter(FacilityRecord.id == _to_uuid(facility_id, "Facility"))
            .filter(FacilityRecord.user_id == user_id)
            .first()
        )
        if record is None:
            raise EntityNotFoundError(f"Facility {facility_id} not found")
        return _to_facility(record)

    def list_facilities(self, user_id: str, bank_id: Optional[str] = None) -> List[Facility]:
        query = self.db.query(FacilityRecord).filter(FacilityRecord.user_id == user_id)
        if bank_id:
            query = query.filter(FacilityRecord.bank_id == _to_uuid(bank_id, "Bank"))
        return [_to_facility(r) for r in query.order_by(FacilityRecord.created_at).all()]


class LoanRepository:
    """Repository for loans; balances are never stored, only status fields"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(
        self,
        user_id: str,
        facility_id: str,
        amount: Decimal,
        sibor_rate: Decimal,
        bank_rate: Decimal,
        start_date: date,
        due_date: date,
        reference_number: str = "",
    ) -> Loan:
        db_loan = LoanRecord(
            user_id=user_id,
            facility_id=_to_uuid(facility_id, "Facility"),
            amount=amount,
            sibor_rate=sibor_rate,
            bank_rate=bank_rate,
            start_date=start_date,
            due_date=due_date,
            reference_number=reference_number,
            status=LoanStatus.ACTIVE.value,
        )
        self.db.add(db_loan)
        self.db.flush()
        return _to_loan(db_loan)

    def _get_record(self, user_id: str, loan_id: str) -> LoanRecord:
        record = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.id == _to_uuid(loan_id, "Loan"))
            .filter(LoanRecord.user_id == user_id)
            .first()
        )
        if record is None:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return record

    def get_loan(self, user_id: str, loan_id: str) -> Loan:
        return _to_loan(self._get_record(user_id, loan_id))

    def list_loans(
        self,
        user_id: str,
        facility_id: Optional[str] = None,
        bank_id: Optional[str] = None,
    ) -> List[Loan]:
        query = self.db.query(LoanRecord).filter(LoanRecord.user_id == user_id)
        if facility_id:
            query = query.filter(LoanRecord.facility_id == _to_uuid(facility_id, "Facility"))
        if bank_id:
            query = query.join(FacilityRecord, LoanRecord.facility_id == FacilityRecord.id).filter(
                FacilityRecord.bank_id == _to_uuid(bank_id, "Bank")
            )
        return [_to_loan(r) for r in query.order_by(LoanRecord.start_date, LoanRecord.created_at).all()]

    def update_status(
        self,
        user_id: str,
        loan_id: str,
        status: str,
        settled_date: Optional[date] = None,
        settled_amount: Optional[Decimal] = None,
    ) -> Loan:
        """Persist a status already checked by validate_status_transition"""
        record = self._get_record(user_id, loan_id)
        record.status = status
        if settled_date is not None:
            record.settled_date = settled_date
            record.settled_amount = settled_amount
        self.db.flush()
        return _to_loan(record)


class TransactionRepository:
    """Append-only ledger: entries are never updated or deleted"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        user_id: str,
        bank_id: str,
        type: str,
        date: date,
        amount: Decimal,
        facility_id: Optional[str] = None,
        loan_id: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        db_transaction = TransactionRecord(
            user_id=user_id,
            bank_id=_to_uuid(bank_id, "Bank"),
            facility_id=_to_uuid(facility_id, "Facility") if facility_id else None,
            loan_id=_to_uuid(loan_id, "Loan") if loan_id else None,
            type=type,
            date=date,
            amount=amount,
            reference=reference,
            notes=notes,
        )
        self.db.add(db_transaction)
        self.db.flush()
        return _to_transaction(db_transaction)

    def list_for_loans(self, user_id: str, loan_ids: Iterable[str]) -> List[Transaction]:
        ids = [_to_uuid(loan_id, "Loan") for loan_id in loan_ids]
        if not ids:
            return []
        records = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.user_id == user_id)
            .filter(TransactionRecord.loan_id.in_(ids))
            .order_by(TransactionRecord.date, TransactionRecord.created_at)
            .all()
        )
        return [_to_transaction(r) for r in records]

    def list_by_user(self, user_id: str) -> List[Transaction]:
        records = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.user_id == user_id)
            .order_by(TransactionRecord.date, TransactionRecord.created_at)
            .all()
        )
        return [_to_transaction(r) for r in records]


class CollateralRepository:
    """Repository for pledged assets"""

    def __init__(self, db: Session):
        self.db = db

    def create_collateral(
        self,
        user_id: str,
        asset_type: str,
        current_value: Decimal,
        name: str = "",
        facility_id: Optional[str] = None,
        loan_id: Optional[str] = None,
    ) -> Collateral:
        db_collateral = CollateralRecord(
            user_id=user_id,
            asset_type=asset_type,
            current_value=current_value,
            name=name,
            facility_id=_to_uuid(facility_id, "Facility") if facility_id else None,
            loan_id=_to_uuid(loan_id, "Loan") if loan_id else None,
        )
        self.db.add(db_collateral)
        self.db.flush()
        return _to_collateral(db_collateral)

    def list_collateral(self, user_id: str) -> List[Collateral]:
        records = self.db.query(CollateralRecord).filter(CollateralRecord.user_id == user_id).all()
        return [_to_collateral(r) for r in records]


class SnapshotRepository:
    """Repository for materialized exposure snapshots"""

    def __init__(self, db: Session):
        self.db = db

    def capture(self, user_id: str, as_of: date, snapshots: List[ExposureSnapshot]) -> Tuple[List[ExposureSnapshot], bool]:
        """
        Store the snapshots for `as_of` unless that date was already captured.

        Returns the rows stored for the date and whether they were created now.
        """
        existing = (
            self.db.query(ExposureSnapshotRecord)
            .filter(ExposureSnapshotRecord.user_id == user_id)
            .filter(ExposureSnapshotRecord.date == as_of)
            .all()
        )
        if existing:
            return [_to_snapshot(r) for r in existing], False

        records = [
            ExposureSnapshotRecord(
                user_id=user_id,
                date=as_of,
                bank_id=_to_uuid(s.bank_id, "Bank") if s.bank_id else None,
                facility_id=_to_uuid(s.facility_id, "Facility") if s.facility_id else None,
                outstanding=s.outstanding,
                credit_limit=s.credit_limit,
            )
            for s in snapshots
        ]
        self.db.add_all(records)
        self.db.flush()
        return [_to_snapshot(r) for r in records], True

    def list_snapshots(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        bank_id: Optional[str] = None,
        facility_id: Optional[str] = None,
    ) -> List[ExposureSnapshot]:
        query = self.db.query(ExposureSnapshotRecord).filter(ExposureSnapshotRecord.user_id == user_id)
        if date_from:
            query = query.filter(ExposureSnapshotRecord.date >= date_from)
        if date_to:
            query = query.filter(ExposureSnapshotRecord.date <= date_to)
        if bank_id:
            query = query.filter(ExposureSnapshotRecord.bank_id == _to_uuid(bank_id, "Bank"))
        if facility_id:
            query = query.filter(ExposureSnapshotRecord.facility_id == _to_uuid(facility_id, "Facility"))
        records = query.order_by(ExposureSnapshotRecord.date.desc()).all()
        return [_to_snapshot(r) for r in records]
