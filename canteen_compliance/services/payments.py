"""Single-record payment operations: due-date assignment and status views"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from canteen_compliance.domain.account_policy import can_make_new_transactions, restriction_reason
from canteen_compliance.domain.calendar import ensure_utc, utc_now
from canteen_compliance.domain.deductions import deduction_summary, is_overdue
from canteen_compliance.domain.due_dates import compute_due_date
from canteen_compliance.domain.exceptions import InvalidTransactionStateError
from canteen_compliance.domain.models import (
    DeductionSummary,
    PaymentTracking,
    StudentPaymentStatus,
    Transaction,
)
from canteen_compliance.domain.policy import CompliancePolicy, DEFAULT_POLICY
from canteen_compliance.domain.store import RecordStore, TransactionFilter

logger = logging.getLogger(__name__)


def schedule_payment(
    store: RecordStore,
    transaction_id: str,
    policy: CompliancePolicy = DEFAULT_POLICY,
    now: Optional[datetime] = None,
) -> Transaction:
    """
    Compute and persist the due date and initial overdue flag of a credit purchase.

    The due date counts from the purchase time (created_at).

    Raises:
        TransactionNotFoundError: Unknown transaction id
        InvalidTransactionStateError: Transaction is already Paid
    """
    now = ensure_utc(now) if now is not None else utc_now()
    transaction = store.find_transaction_by_id(transaction_id)
    if not transaction.status.tracks_payment:
        raise InvalidTransactionStateError(
            f"Transaction {transaction_id} is {transaction.status.value}; only Partial/Credit purchases have a due date"
        )

    due_date = compute_due_date(transaction.created_at, transaction.total_amount, policy)
    tracking = transaction.tracking or PaymentTracking()
    tracking.due_date = due_date
    transaction.tracking = tracking
    tracking.is_overdue = is_overdue(transaction, now, policy)

    with store.atomic():
        store.update_transaction(transaction_id, due_date=due_date, is_overdue=tracking.is_overdue)

    logger.info(
        "Payment scheduled",
        extra={
            "transaction_id": transaction_id,
            "student_id": transaction.student_id,
            "due_date": due_date.isoformat(),
            "is_overdue": tracking.is_overdue,
        },
    )
    return transaction


def get_deduction_summary(
    store: RecordStore,
    transaction_id: str,
    policy: CompliancePolicy = DEFAULT_POLICY,
    now: Optional[datetime] = None,
) -> DeductionSummary:
    """Raises TransactionNotFoundError for unknown ids"""
    transaction = store.find_transaction_by_id(transaction_id)
    return deduction_summary(transaction, now or utc_now(), policy)


def get_student_payment_status(
    store: RecordStore,
    student_id: str,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> StudentPaymentStatus:
    """
    Outstanding overdue purchases and restriction state for a student.

    Raises:
        StudentNotFoundError: Unknown student id
    """
    student = store.find_student_by_id(student_id)
    overdue = store.find_transactions(TransactionFilter(is_overdue=True, student_id=student_id))
    total_overdue = sum((t.total_amount for t in overdue), Decimal("0"))

    return StudentPaymentStatus(
        student=student,
        overdue_transactions=overdue,
        total_overdue=total_overdue,
        can_make_new_transactions=can_make_new_transactions(student, policy),
        restriction_reason=restriction_reason(student, policy),
    )
