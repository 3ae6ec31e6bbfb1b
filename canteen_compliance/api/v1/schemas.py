"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class SweepErrorSchema(BaseModel):
    """Per-record failure inside a sweep"""

    transaction_id: str
    student_id: Optional[str] = None
    stage: str
    message: str


class SweepResultResponse(BaseModel):
    """Response for POST /v1/sweep/run"""

    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    processed_count: int
    flag_updates: int
    overdue_count: int
    deducted_count: int
    points_deducted: int
    suspended_students: List[str]
    banned_students: List[str]
    errors: List[SweepErrorSchema]
    failure_reason: Optional[str] = None


class SweepStatusResponse(BaseModel):
    """Response for GET /v1/sweep/status"""

    state: str
    is_running: bool
    is_active: bool
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    last_result: Optional[SweepResultResponse] = None


class JobExecutionSchema(BaseModel):
    """Single entry in the sweep execution log"""

    id: str
    execution_date: str
    status: str
    executed_by: str
    start_time: datetime
    end_time: Optional[datetime] = None
    processed_transactions: int
    deducted_transactions: int
    errors: List[str]


class SweepHistoryResponse(BaseModel):
    """Response for GET /v1/sweep/history"""

    executions: List[JobExecutionSchema]


class ScheduledPaymentResponse(BaseModel):
    """Response for POST /v1/transactions/{transaction_id}/schedule"""

    transaction_id: str
    student_id: str
    status: str
    total_amount: Decimal
    due_date: datetime
    is_overdue: bool


class DeductionSummaryResponse(BaseModel):
    """Response for GET /v1/transactions/{transaction_id}/deduction-summary"""

    transaction_id: str
    is_overdue: bool
    days_overdue: int
    alarm_level: str
    next_deduction: int
    total_deducted: int
    processed_today: bool
    last_deduction_date: Optional[datetime] = None


class OverdueTransactionSchema(BaseModel):
    """Overdue purchase in a student's payment status"""

    transaction_id: str
    total_amount: Decimal
    status: str
    due_date: Optional[datetime] = None
    loyalty_deductions: int


class PaymentStatusResponse(BaseModel):
    """Response for GET /v1/students/{student_id}/payment-status"""

    student_id: str
    loyalty: int
    is_active: bool
    suspension_date: Optional[datetime] = None
    overdue_transactions: List[OverdueTransactionSchema]
    total_overdue: Decimal
    can_make_new_transactions: bool
    restriction_reason: Optional[str] = None
