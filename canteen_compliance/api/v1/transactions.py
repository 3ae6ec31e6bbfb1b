"""POST /v1/transactions/{transaction_id}/schedule, GET .../deduction-summary"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from canteen_compliance.api.dependencies import get_policy, get_request_id, get_store
from canteen_compliance.api.v1.schemas import DeductionSummaryResponse, ScheduledPaymentResponse
from canteen_compliance.domain.exceptions import (
    InvalidTransactionStateError,
    StoreFailureError,
    TransactionNotFoundError,
)
from canteen_compliance.domain.policy import CompliancePolicy
from canteen_compliance.infrastructure.database.repositories import SqlAlchemyRecordStore
from canteen_compliance.services.payments import get_deduction_summary, schedule_payment

router = APIRouter()


@router.post("/transactions/{transaction_id}/schedule", response_model=ScheduledPaymentResponse)
def schedule_transaction_payment(
    transaction_id: str,
    request: Request,
    store: SqlAlchemyRecordStore = Depends(get_store),
    policy: CompliancePolicy = Depends(get_policy),
):
    """
    Assign the due date of a Partial/Credit purchase.

    Flow:
    1. Look up the purchase
    2. Payment term from amount, rolled forward past weekends and holidays
    3. Persist due date and initial overdue flag
    """
    try:
        transaction = schedule_payment(store, transaction_id, policy)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransactionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreFailureError as e:
        logging.error(f"Store error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Record store unavailable")

    return ScheduledPaymentResponse(
        transaction_id=transaction.id,
        student_id=transaction.student_id,
        status=transaction.status.value,
        total_amount=transaction.total_amount,
        due_date=transaction.tracking.due_date,
        is_overdue=transaction.tracking.is_overdue,
    )


@router.get("/transactions/{transaction_id}/deduction-summary", response_model=DeductionSummaryResponse)
def get_transaction_deduction_summary(
    transaction_id: str,
    request: Request,
    store: SqlAlchemyRecordStore = Depends(get_store),
    policy: CompliancePolicy = Depends(get_policy),
):
    """Where the purchase sits in the grace / overdue / deduction timeline right now"""
    try:
        summary = get_deduction_summary(store, transaction_id, policy)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreFailureError as e:
        logging.error(f"Store error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Record store unavailable")

    return DeductionSummaryResponse(
        transaction_id=transaction_id,
        is_overdue=summary.is_overdue,
        days_overdue=summary.days_overdue,
        alarm_level=summary.alarm_level.value,
        next_deduction=summary.next_deduction,
        total_deducted=summary.total_deducted,
        processed_today=summary.processed_today,
        last_deduction_date=summary.last_deduction_date,
    )
