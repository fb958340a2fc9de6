"""SQLAlchemy ORM models for the portfolio datastore"""

import uuid
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, Date, Integer, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(15, 2)
RATE = Numeric(7, 4)


class BankRecord(Base):
    """Lending bank"""

    __tablename__ = "bank"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    code = Column(String(10), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    facilities = relationship("FacilityRecord", back_populates="bank")


class FacilityRecord(Base):
    """Credit facility held by a tenant"""

    __tablename__ = "facility"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("bank.id"), nullable=False)
    user_id = Column(Text, nullable=False, index=True)
    facility_type = Column(String(50), nullable=False)
    credit_limit = Column(MONEY, nullable=False)
    sibor_rate = Column(RATE, nullable=False)
    margin_rate = Column(RATE, nullable=False)
    start_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False)
    max_revolving_period_days = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    bank = relationship("BankRecord", back_populates="facilities")
    loans = relationship("LoanRecord", back_populates="facility")


class LoanRecord(Base):
    """Drawdown against a facility; balances are derived from the ledger, never stored"""

    __tablename__ = "loan"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    facility_id = Column(UUID(as_uuid=True), ForeignKey("facility.id"), nullable=False)
    user_id = Column(Text, nullable=False, index=True)
    reference_number = Column(String(50), nullable=False)
    amount = Column(MONEY, nullable=False)
    sibor_rate = Column(RATE, nullable=False)
    bank_rate = Column(RATE, nullable=False)
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    settled_date = Column(Date, nullable=True)
    settled_amount = Column(MONEY, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    facility = relationship("FacilityRecord", back_populates="loans")


class TransactionRecord(Base):
    """Append-only ledger entry"""

    __tablename__ = "ledger_transaction"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("bank.id"), nullable=False)
    facility_id = Column(UUID(as_uuid=True), ForeignKey("facility.id"), nullable=True)
    loan_id = Column(UUID(as_uuid=True), ForeignKey("loan.id"), nullable=True, index=True)
    type = Column(String(20), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(MONEY, nullable=False)
    reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CollateralRecord(Base):
    """Pledged asset"""

    __tablename__ = "collateral"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    asset_type = Column(String(50), nullable=False)
    name = Column(String(200), nullable=False, default="")
    current_value = Column(MONEY, nullable=False)
    facility_id = Column(UUID(as_uuid=True), ForeignKey("facility.id"), nullable=True)
    loan_id = Column(UUID(as_uuid=True), ForeignKey("loan.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ExposureSnapshotRecord(Base):
    """Materialized aggregator output for one date and scope"""

    __tablename__ = "exposure_snapshot"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    date = Column(Date, nullable=False)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("bank.id"), nullable=True)
    facility_id = Column(UUID(as_uuid=True), ForeignKey("facility.id"), nullable=True)
    outstanding = Column(MONEY, nullable=False)
    credit_limit = Column(MONEY, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
