"""GET /v1/students/{student_id}/payment-status - Outstanding obligations and restrictions"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from canteen_compliance.api.dependencies import get_policy, get_request_id, get_store
from canteen_compliance.api.v1.schemas import OverdueTransactionSchema, PaymentStatusResponse
from canteen_compliance.domain.exceptions import StoreFailureError, StudentNotFoundError
from canteen_compliance.domain.policy import CompliancePolicy
from canteen_compliance.infrastructure.database.repositories import SqlAlchemyRecordStore
from canteen_compliance.services.payments import get_student_payment_status

router = APIRouter()


@router.get("/students/{student_id}/payment-status", response_model=PaymentStatusResponse)
def get_payment_status(
    student_id: str,
    request: Request,
    store: SqlAlchemyRecordStore = Depends(get_store),
    policy: CompliancePolicy = Depends(get_policy),
):
    """
    Retrieve a student's overdue purchases and whether they may buy on credit.

    Returns:
        Loyalty balance, overdue list with totals, and restriction reason if inactive
    """
    try:
        status = get_student_payment_status(store, student_id, policy)
    except StudentNotFoundError:
        raise HTTPException(status_code=404, detail="Student not found")
    except StoreFailureError as e:
        logging.error(f"Store error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Record store unavailable")

    overdue = [
        OverdueTransactionSchema(
            transaction_id=t.id,
            total_amount=t.total_amount,
            status=t.status.value,
            due_date=t.tracking.due_date if t.tracking else None,
            loyalty_deductions=t.tracking.loyalty_deductions if t.tracking else 0,
        )
        for t in status.overdue_transactions
    ]

    return PaymentStatusResponse(
        student_id=status.student.student_id,
        loyalty=status.student.loyalty,
        is_active=status.student.is_active,
        suspension_date=status.student.suspension_date,
        overdue_transactions=overdue,
        total_overdue=status.total_overdue,
        can_make_new_transactions=status.can_make_new_transactions,
        restriction_reason=status.restriction_reason,
    )
