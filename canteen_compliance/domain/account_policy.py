"""Suspension and ban thresholds driven by loyalty balance"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from canteen_compliance.domain.calendar import ensure_utc
from canteen_compliance.domain.models import AccountAction, BanDecision, Student
from canteen_compliance.domain.policy import CompliancePolicy, DEFAULT_POLICY

Amount = Union[int, float, Decimal]

NO_BAN = BanDecision(ban=False, ban_days=0)


def apply_deduction(loyalty: int, points: int) -> int:
    """New balance after deducting points, floored at 0"""
    return max(0, loyalty - points)


def should_suspend(loyalty_balance: int, policy: CompliancePolicy = DEFAULT_POLICY) -> bool:
    """Suspend at or below the threshold (default 20 points)"""
    return loyalty_balance <= policy.suspension_threshold


def should_ban(loyalty_balance: int, amount: Amount, policy: CompliancePolicy = DEFAULT_POLICY) -> BanDecision:
    """
    Ban only once the balance is exhausted.

    Ban length depends on the triggering purchase:
    - amount <= 50: short ban (5 days)
    - amount > 50:  long ban (7 days)
    """
    if loyalty_balance > 0:
        return NO_BAN

    ban_days = policy.short_ban_days if amount <= policy.ban_amount_threshold else policy.long_ban_days
    return BanDecision(ban=True, ban_days=ban_days)


def evaluate_account_action(
    loyalty_balance: int,
    amount: Amount,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> AccountAction:
    """Suspension and ban are independent; both are always evaluated"""
    return AccountAction(
        suspend=should_suspend(loyalty_balance, policy),
        ban=should_ban(loyalty_balance, amount, policy),
    )


def account_updates(student: Student, action: AccountAction, now: datetime) -> dict:
    """
    Student fields to write for an account action.

    Suspension deactivates the account and stamps suspension_date with now, unless it is
    already inactive. A ban stores its end date in suspension_date, and never shortens an
    existing restriction.
    """
    updates: dict = {}
    now = ensure_utc(now)

    if action.suspend and student.is_active:
        updates["is_active"] = False
        updates["suspension_date"] = now

    if action.ban.ban:
        ban_end = now + timedelta(days=action.ban.ban_days)
        current = ensure_utc(student.suspension_date) if student.suspension_date else None
        if student.is_active or current is None or current < ban_end:
            updates["is_active"] = False
            updates["suspension_date"] = ban_end

    return updates


def can_make_new_transactions(student: Student, policy: CompliancePolicy = DEFAULT_POLICY) -> bool:
    return student.is_active and student.loyalty > policy.suspension_threshold


def restriction_reason(student: Student, policy: CompliancePolicy = DEFAULT_POLICY) -> Optional[str]:
    """Human readable reason an account is inactive, None while active"""
    if student.is_active:
        return None
    if student.loyalty <= 0:
        return "Account banned due to zero loyalty points"
    elif student.loyalty <= policy.suspension_threshold:
        return "Account suspended due to low loyalty points"
    return "Account suspended for other reasons"
