"""Overdue detection and tiered loyalty deductions - core compliance logic"""

from datetime import datetime, timedelta
from typing import Optional

from canteen_compliance.domain.calendar import calendar_day, ensure_utc
from canteen_compliance.domain.models import AlarmLevel, DeductionSummary, Transaction
from canteen_compliance.domain.policy import CompliancePolicy, DEFAULT_POLICY

ONE_DAY = timedelta(days=1)


def _due_date(transaction: Transaction) -> Optional[datetime]:
    """Due date of a tracked Partial/Credit transaction, None for everything else"""
    if not transaction.status.tracks_payment or transaction.tracking is None:
        return None
    if transaction.tracking.due_date is None:
        return None
    return ensure_utc(transaction.tracking.due_date)


def grace_end(transaction: Transaction, policy: CompliancePolicy = DEFAULT_POLICY) -> Optional[datetime]:
    """Moment the grace period expires (due date + grace period)"""
    due_date = _due_date(transaction)
    if due_date is None:
        return None
    return due_date + policy.grace_period


def is_overdue(transaction: Transaction, now: datetime, policy: CompliancePolicy = DEFAULT_POLICY) -> bool:
    """
    A transaction is overdue once the grace period after its due date has passed.

    Transactions without a due date (or that are not Partial/Credit) are never overdue.
    """
    end = grace_end(transaction, policy)
    if end is None:
        return False
    return ensure_utc(now) > end


def is_in_grace(transaction: Transaction, now: datetime, policy: CompliancePolicy = DEFAULT_POLICY) -> bool:
    """Past the due date but not past the grace period"""
    due_date = _due_date(transaction)
    if due_date is None:
        return False
    now = ensure_utc(now)
    return due_date < now <= due_date + policy.grace_period


def days_overdue(transaction: Transaction, now: datetime, policy: CompliancePolicy = DEFAULT_POLICY) -> int:
    """Whole days elapsed since the grace period ended; 0 when not overdue"""
    if not is_overdue(transaction, now, policy):
        return 0
    return (ensure_utc(now) - grace_end(transaction, policy)) // ONE_DAY


def deduction_for_days(days: int, policy: CompliancePolicy = DEFAULT_POLICY) -> int:
    """
    Tier amount for a number of whole days past grace.

    Boundaries (defaults):
    - 0-1 days:  1 point
    - 2-4 days:  2 points
    - 5+ days:   4 points (maximum)
    """
    if days >= policy.max_tier_start_day:
        return policy.tier3_points
    elif days >= policy.mid_tier_start_day:
        return policy.tier2_points
    else:
        return policy.tier1_points


def has_been_processed_today(
    transaction: Transaction,
    now: datetime,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> bool:
    """True iff the last deduction fell on the same calendar day as now, in the policy day zone"""
    if transaction.tracking is None or transaction.tracking.last_deduction_date is None:
        return False
    last = ensure_utc(transaction.tracking.last_deduction_date)
    return calendar_day(last, policy.zone) == calendar_day(ensure_utc(now), policy.zone)


def _deducted_on_or_after_today(transaction: Transaction, now: datetime, policy: CompliancePolicy) -> bool:
    last = transaction.tracking.last_deduction_date if transaction.tracking else None
    if last is None:
        return False
    return calendar_day(ensure_utc(last), policy.zone) >= calendar_day(ensure_utc(now), policy.zone)


def calculate_deduction(
    transaction: Transaction,
    now: datetime,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> int:
    """
    Points to deduct for this transaction at `now`. Pure: applying it is the caller's job.

    Returns 0 when:
    - the transaction has no due date or is not Partial/Credit
    - it is not yet due, or still within the grace period
    - a deduction was already recorded for the current calendar day
      (or, after clock skew, for a later day)
    """
    if not is_overdue(transaction, now, policy):
        return 0
    if _deducted_on_or_after_today(transaction, now, policy):
        return 0
    return deduction_for_days(days_overdue(transaction, now, policy), policy)


def payment_alarm_level(
    transaction: Transaction,
    now: datetime,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> AlarmLevel:
    """Display severity, using the same tier boundaries as calculate_deduction"""
    if is_in_grace(transaction, now, policy):
        return AlarmLevel.GRACE
    if not is_overdue(transaction, now, policy):
        return AlarmLevel.NONE

    days = days_overdue(transaction, now, policy)
    if days >= policy.max_tier_start_day:
        return AlarmLevel.CRITICAL
    elif days >= policy.mid_tier_start_day:
        return AlarmLevel.ESCALATED
    return AlarmLevel.WARNING


def deduction_summary(
    transaction: Transaction,
    now: datetime,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> DeductionSummary:
    """Read-only snapshot of where a transaction sits in the deduction state machine"""
    tracking = transaction.tracking
    overdue = is_overdue(transaction, now, policy)
    return DeductionSummary(
        is_overdue=overdue,
        days_overdue=days_overdue(transaction, now, policy),
        alarm_level=payment_alarm_level(transaction, now, policy),
        next_deduction=calculate_deduction(transaction, now, policy),
        total_deducted=tracking.loyalty_deductions if tracking else 0,
        processed_today=has_been_processed_today(transaction, now, policy),
        last_deduction_date=tracking.last_deduction_date if tracking else None,
    )
