"""One full compliance sweep over outstanding Partial/Credit transactions"""

import logging
import time
from datetime import datetime, timedelta
from typing import List, Optional

from canteen_compliance.domain.account_policy import (
    account_updates,
    apply_deduction,
    evaluate_account_action,
)
from canteen_compliance.domain.calendar import ensure_utc, utc_now
from canteen_compliance.domain.deductions import calculate_deduction, is_overdue
from canteen_compliance.domain.exceptions import CandidateFetchError, DomainException
from canteen_compliance.domain.models import RunStatus, SweepError, SweepResult, Transaction
from canteen_compliance.domain.policy import CompliancePolicy, DEFAULT_POLICY
from canteen_compliance.domain.store import RecordStore, TransactionFilter

logger = logging.getLogger(__name__)

OUTSTANDING = TransactionFilter()
OUTSTANDING_OVERDUE = TransactionFilter(is_overdue=True)


def _fetch(store: RecordStore, criteria: TransactionFilter) -> List[Transaction]:
    try:
        return store.find_transactions(criteria)
    except DomainException as e:
        raise CandidateFetchError(f"Could not load transactions to sweep: {e}") from e


def _record_error(result: SweepResult, transaction: Transaction, stage: str, error: Exception) -> None:
    result.errors.append(
        SweepError(
            transaction_id=transaction.id,
            student_id=transaction.student_id,
            stage=stage,
            message=str(error),
        )
    )


def refresh_overdue_flags(
    store: RecordStore,
    now: datetime,
    result: SweepResult,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> None:
    """
    Pass 1: persist is_overdue wherever the cached flag disagrees with the clock.

    Raises:
        CandidateFetchError: If the outstanding transactions cannot be listed
    """
    transactions = _fetch(store, OUTSTANDING)
    result.processed_count = len(transactions)

    for transaction in transactions:
        cached = transaction.tracking.is_overdue if transaction.tracking else False
        current = is_overdue(transaction, now, policy)
        if cached == current:
            continue

        try:
            with store.atomic():
                store.update_transaction(transaction.id, is_overdue=current)
            result.flag_updates += 1
        except DomainException as e:
            logger.warning(
                f"Overdue flag update failed: {e}",
                extra={"transaction_id": transaction.id, "student_id": transaction.student_id},
            )
            _record_error(result, transaction, "overdue_flag", e)
        except Exception as e:
            logger.exception(
                "Unexpected error updating overdue flag",
                extra={"transaction_id": transaction.id, "student_id": transaction.student_id},
            )
            _record_error(result, transaction, "overdue_flag", e)


def apply_transaction_deduction(
    store: RecordStore,
    transaction: Transaction,
    now: datetime,
    result: SweepResult,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> bool:
    """
    Deduct today's points for one overdue transaction and apply account actions.

    The student balance, the transaction's deduction fields and any account restriction
    are written in one atomic block, so a transaction is never charged twice in a day.
    A student already at zero has nothing left to deduct: nothing is written and the
    account action (already taken when the balance reached zero) is not re-evaluated.

    Returns:
        True if a deduction was applied
    """
    points = calculate_deduction(transaction, now, policy)
    if points == 0:
        return False

    with store.atomic():
        student = store.find_student_by_id(transaction.student_id)
        new_balance = apply_deduction(student.loyalty, points)
        applied = student.loyalty - new_balance
        if applied == 0:
            logger.debug(
                "Balance already at zero, no deduction",
                extra={"transaction_id": transaction.id, "student_id": student.student_id},
            )
            return False

        store.update_student(student.student_id, loyalty=new_balance)
        store.update_transaction(
            transaction.id,
            loyalty_deductions=transaction.tracking.loyalty_deductions + applied,
            last_deduction_date=now,
        )

        action = evaluate_account_action(new_balance, transaction.total_amount, policy)
        updates = account_updates(student, action, now)
        if updates:
            store.update_student(student.student_id, **updates)

    result.deducted_count += 1
    result.points_deducted += applied

    if action.suspend and student.is_active:
        result.suspended_students.append(student.student_id)
    if action.ban.ban and updates.get("suspension_date", now) > now:
        result.banned_students.append(student.student_id)

    logger.info(
        "Loyalty deduction applied",
        extra={
            "transaction_id": transaction.id,
            "student_id": student.student_id,
            "points": applied,
            "loyalty": new_balance,
            "suspended": action.suspend,
            "banned": action.ban.ban,
            "ban_days": action.ban.ban_days,
        },
    )
    return True


def apply_deductions(
    store: RecordStore,
    now: datetime,
    result: SweepResult,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> None:
    """
    Pass 2: deduct points for every overdue transaction not yet charged today.

    Raises:
        CandidateFetchError: If the overdue transactions cannot be listed
    """
    transactions = _fetch(store, OUTSTANDING_OVERDUE)
    result.overdue_count = len(transactions)

    for transaction in transactions:
        try:
            apply_transaction_deduction(store, transaction, now, result, policy)
        except DomainException as e:
            logger.warning(
                f"Deduction failed: {e}",
                extra={"transaction_id": transaction.id, "student_id": transaction.student_id},
            )
            _record_error(result, transaction, "deduction", e)
        except Exception as e:
            logger.exception(
                "Unexpected error applying deduction",
                extra={"transaction_id": transaction.id, "student_id": transaction.student_id},
            )
            _record_error(result, transaction, "deduction", e)


def run_sweep(
    store: RecordStore,
    now: Optional[datetime] = None,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> SweepResult:
    """
    Main entry point: refresh overdue flags, then apply deductions and account actions.

    Per-record errors are collected in the result. A failure to load the candidate set
    ends the run early with status FAILED; it is reported, not raised.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    result = SweepResult(started_at=now)
    started = time.monotonic()

    try:
        refresh_overdue_flags(store, now, result, policy)
        apply_deductions(store, now, result, policy)
        result.status = RunStatus.COMPLETED
    except CandidateFetchError as e:
        logger.error(f"Sweep aborted: {e}")
        result.status = RunStatus.FAILED
        result.failure_reason = str(e)

    result.finished_at = now + timedelta(seconds=time.monotonic() - started)
    return result
