"""SQLAlchemy ORM models for students, credit transactions and sweep runs"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class StudentRecord(Base):
    """Student account (compliance-relevant columns only)"""

    __tablename__ = "student"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(Text, nullable=False, unique=True, index=True)  # e.g. "2201-000245"
    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    loyalty = Column(Integer, nullable=False, default=25)
    is_active = Column(Boolean, nullable=False, default=True)
    suspension_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class TransactionRecord(Base):
    """Canteen purchase with payment-tracking columns"""

    __tablename__ = "credit_transaction"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(Text, nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Text, nullable=False, index=True)  # Paid | Partial | Credit
    due_date = Column(DateTime(timezone=True), nullable=True)
    is_overdue = Column(Boolean, nullable=False, default=False, index=True)
    loyalty_deductions = Column(Integer, nullable=False, default=0)
    last_deduction_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class JobExecutionRecord(Base):
    """Audit trail of sweep runs"""

    __tablename__ = "job_execution"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    job_type = Column(Text, nullable=False)
    execution_date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    status = Column(Text, nullable=False, default="running")
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    processed_transactions = Column(Integer, nullable=False, default=0)
    deducted_transactions = Column(Integer, nullable=False, default=0)
    errors = Column(JSON, nullable=True)
    executed_by = Column(Text, nullable=False, default="system")
