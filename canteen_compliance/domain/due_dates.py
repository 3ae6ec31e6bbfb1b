"""Payment terms and due-date calculation for credit purchases"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Union

from canteen_compliance.domain.calendar import advance_to_business_day
from canteen_compliance.domain.policy import CompliancePolicy, DEFAULT_POLICY

Amount = Union[int, float, Decimal]


def payment_term_days(amount: Amount, policy: CompliancePolicy = DEFAULT_POLICY) -> int:
    """
    Map a purchase amount to the number of calendar days the student has to settle it.

    Tiers use inclusive upper bounds:
    - amount <= 50:       3 days
    - 51 <= amount <= 99: 4 days
    - amount >= 100:      5 days
    """
    if amount <= policy.low_term_max_amount:
        return policy.low_term_days
    elif amount <= policy.medium_term_max_amount:
        return policy.medium_term_days
    else:
        return policy.high_term_days


def compute_due_date(
    transaction_date: datetime,
    amount: Amount,
    policy: CompliancePolicy = DEFAULT_POLICY,
) -> datetime:
    """
    Add the payment term to the purchase time, then roll forward past weekends and holidays.

    Example:
        Friday 2024-06-07, amount 40 -> +3 days = Monday 2024-06-10 (business day)
        Sunday 2024-06-09, amount 40 -> +3 days = Wednesday 2024-06-12 (holiday) -> Thursday 2024-06-13
    """
    due_date = transaction_date + timedelta(days=payment_term_days(amount, policy))
    return advance_to_business_day(due_date)
