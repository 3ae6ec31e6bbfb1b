"""Data access layer for students, credit transactions and sweep runs"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen_compliance.domain.calendar import calendar_day, ensure_utc
from canteen_compliance.domain.exceptions import (
    StoreFailureError,
    StudentNotFoundError,
    TransactionNotFoundError,
)
from canteen_compliance.domain.models import (
    ExecutedBy,
    JobExecution,
    PaymentTracking,
    RunStatus,
    Student,
    SweepResult,
    Transaction,
    TransactionStatus,
)
from canteen_compliance.domain.store import TransactionFilter
from canteen_compliance.infrastructure.database.models import (
    JobExecutionRecord,
    StudentRecord,
    TransactionRecord,
)

logger = logging.getLogger(__name__)

DAILY_PAYMENT_JOB = "daily_payment_processing"

TRANSACTION_FIELDS = {"due_date", "is_overdue", "loyalty_deductions", "last_deduction_date", "status"}
STUDENT_FIELDS = {"loyalty", "is_active", "suspension_date"}


def _utc_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def to_transaction(record: TransactionRecord) -> Transaction:
    """Map ORM row to domain Transaction; only Partial/Credit rows carry tracking"""
    status = TransactionStatus(record.status)
    tracking = None
    if status.tracks_payment:
        tracking = PaymentTracking(
            due_date=_utc_or_none(record.due_date),
            is_overdue=bool(record.is_overdue),
            loyalty_deductions=record.loyalty_deductions or 0,
            last_deduction_date=_utc_or_none(record.last_deduction_date),
        )
    return Transaction(
        id=record.id,
        student_id=record.student_id,
        total_amount=Decimal(record.total_amount),
        status=status,
        created_at=_utc_or_none(record.created_at),
        tracking=tracking,
    )


def to_student(record: StudentRecord) -> Student:
    return Student(
        student_id=record.student_id,
        loyalty=record.loyalty or 0,
        is_active=bool(record.is_active),
        suspension_date=_utc_or_none(record.suspension_date),
    )


class SqlAlchemyRecordStore:
    """RecordStore backed by a SQLAlchemy session; writes are flushed, committed by atomic()"""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def atomic(self) -> Iterator["SqlAlchemyRecordStore"]:
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreFailureError(f"Commit failed: {e}") from e
        except Exception:
            self.db.rollback()
            raise

    def find_transactions(self, criteria: TransactionFilter) -> List[Transaction]:
        """Fetch transactions matching status / overdue flag / student"""
        statuses = [TransactionStatus(s).value for s in criteria.statuses]
        try:
            query = self.db.query(TransactionRecord).filter(TransactionRecord.status.in_(statuses))
            if criteria.is_overdue is not None:
                query = query.filter(TransactionRecord.is_overdue == criteria.is_overdue)
            if criteria.student_id is not None:
                query = query.filter(TransactionRecord.student_id == criteria.student_id)
            records = query.order_by(TransactionRecord.created_at, TransactionRecord.id).all()
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Transaction query failed: {e}") from e
        return [to_transaction(r) for r in records]

    def find_transaction_by_id(self, transaction_id: str) -> Transaction:
        return to_transaction(self._get_transaction(transaction_id))

    def update_transaction(self, transaction_id: str, **fields) -> None:
        """Partial update of payment-tracking columns"""
        unknown = set(fields) - TRANSACTION_FIELDS
        if unknown:
            raise ValueError(f"Unsupported transaction fields: {sorted(unknown)}")

        record = self._get_transaction(transaction_id)
        for name, value in fields.items():
            if isinstance(value, TransactionStatus):
                value = value.value
            setattr(record, name, value)
        self._flush()

    def find_student_by_id(self, student_id: str) -> Student:
        return to_student(self._get_student(student_id))

    def update_student(self, student_id: str, **fields) -> None:
        """Partial update of loyalty / activation columns"""
        unknown = set(fields) - STUDENT_FIELDS
        if unknown:
            raise ValueError(f"Unsupported student fields: {sorted(unknown)}")

        record = self._get_student(student_id)
        for name, value in fields.items():
            setattr(record, name, value)
        self._flush()

    def _get_transaction(self, transaction_id: str) -> TransactionRecord:
        try:
            record = self.db.get(TransactionRecord, transaction_id)
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Transaction lookup failed: {e}") from e
        if record is None:
            raise TransactionNotFoundError(transaction_id)
        return record

    def _get_student(self, student_id: str) -> StudentRecord:
        try:
            record = (
                self.db.query(StudentRecord)
                .filter(StudentRecord.student_id == student_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Student lookup failed: {e}") from e
        if record is None:
            raise StudentNotFoundError(student_id)
        return record

    def _flush(self) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            raise StoreFailureError(f"Write failed: {e}") from e


def to_job_execution(record: JobExecutionRecord) -> JobExecution:
    return JobExecution(
        id=record.id,
        job_type=record.job_type,
        execution_date=record.execution_date,
        status=RunStatus(record.status),
        start_time=ensure_utc(record.start_time),
        executed_by=ExecutedBy(record.executed_by),
        end_time=_utc_or_none(record.end_time),
        processed_transactions=record.processed_transactions or 0,
        deducted_transactions=record.deducted_transactions or 0,
        errors=list(record.errors or []),
    )


class JobExecutionRepository:
    """Repository for the sweep execution log"""

    def __init__(self, db: Session, job_type: str = DAILY_PAYMENT_JOB):
        self.db = db
        self.job_type = job_type

    def log_start(
        self,
        started_at: datetime,
        executed_by: ExecutedBy,
        execution_day: Optional[date] = None,
    ) -> str:
        """Persist a running execution and return its id"""
        execution_day = execution_day or calendar_day(started_at)
        record = JobExecutionRecord(
            job_type=self.job_type,
            execution_date=execution_day.isoformat(),
            status=RunStatus.RUNNING.value,
            start_time=started_at,
            executed_by=executed_by.value,
        )
        self.db.add(record)
        self.db.commit()
        return record.id

    def log_completion(self, execution_id: str, result: SweepResult) -> None:
        """Close an execution; failures here are logged, never raised into the sweep"""
        try:
            record = self.db.get(JobExecutionRecord, execution_id)
            if record is None:
                logger.warning("Job execution not found", extra={"execution_id": execution_id})
                return
            record.status = result.status.value
            record.end_time = result.finished_at
            record.processed_transactions = result.processed_count
            record.deducted_transactions = result.deducted_count
            messages = [f"{e.transaction_id}: {e.message}" for e in result.errors]
            if result.failure_reason:
                messages.append(result.failure_reason)
            record.errors = messages or None
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to log job completion: {e}", extra={"execution_id": execution_id})

    def has_run_on(self, day: date) -> bool:
        """True if a completed execution exists for the given day"""
        return (
            self.db.query(JobExecutionRecord)
            .filter(
                JobExecutionRecord.job_type == self.job_type,
                JobExecutionRecord.execution_date == day.isoformat(),
                JobExecutionRecord.status == RunStatus.COMPLETED.value,
            )
            .first()
            is not None
        )

    def last_execution(self) -> Optional[JobExecution]:
        """Most recent completed execution"""
        record = (
            self.db.query(JobExecutionRecord)
            .filter(
                JobExecutionRecord.job_type == self.job_type,
                JobExecutionRecord.status == RunStatus.COMPLETED.value,
            )
            .order_by(JobExecutionRecord.start_time.desc())
            .first()
        )
        return to_job_execution(record) if record else None

    def history(self, limit: int = 10) -> List[JobExecution]:
        records = (
            self.db.query(JobExecutionRecord)
            .filter(JobExecutionRecord.job_type == self.job_type)
            .order_by(JobExecutionRecord.start_time.desc())
            .limit(limit)
            .all()
        )
        return [to_job_execution(r) for r in records]
