"""Unit tests for payment terms and due-date calculation"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from canteen_compliance.domain.calendar import is_holiday, is_weekend
from canteen_compliance.domain.due_dates import compute_due_date, payment_term_days
from canteen_compliance.domain.policy import CompliancePolicy


@pytest.mark.parametrize(
    "amount,days",
    [
        (0, 3),
        (1, 3),
        (50, 3),
        (Decimal("50.00"), 3),
        (51, 4),
        (75, 4),
        (99, 4),
        (100, 5),
        (Decimal("1250.75"), 5),
    ],
)
def test_payment_term_days_tiers(amount, days):
    """Inclusive upper bounds at 50 and 99"""
    assert payment_term_days(amount) == days


def test_payment_term_days_monotonic():
    terms = [payment_term_days(amount) for amount in range(0, 301)]
    assert terms == sorted(terms)
    assert set(terms) == {3, 4, 5}


def test_compute_due_date_plain_business_day():
    """Friday purchase of 40 -> +3 days lands on Monday"""
    created = datetime(2024, 6, 7, 10, 0, tzinfo=timezone.utc)
    assert compute_due_date(created, 40) == datetime(2024, 6, 10, 10, 0, tzinfo=timezone.utc)


def test_compute_due_date_rolls_past_holiday():
    """Sunday purchase of 40 -> +3 days = Independence Day -> next business day"""
    created = datetime(2024, 6, 9, 10, 0, tzinfo=timezone.utc)
    assert compute_due_date(created, 40) == datetime(2024, 6, 13, 10, 0, tzinfo=timezone.utc)


def test_compute_due_date_rolls_past_weekend_and_holiday():
    """Christmas purchase of 40 -> Sat 28 -> Sun -> Rizal Day -> Tue 31"""
    created = datetime(2024, 12, 25, 12, 0, tzinfo=timezone.utc)
    assert compute_due_date(created, 40).date() == date(2024, 12, 31)


def test_compute_due_date_uses_amount_tier():
    created = datetime(2024, 6, 3, 8, 0, tzinfo=timezone.utc)  # Monday
    assert compute_due_date(created, 50).date() == date(2024, 6, 6)  # Thursday
    assert compute_due_date(created, 51).date() == date(2024, 6, 7)  # Friday
    assert compute_due_date(created, 100).date() == date(2024, 6, 10)  # Saturday -> Monday


def test_compute_due_date_never_weekend_or_holiday():
    """Exhaustive over the holiday years for each payment tier"""
    start = date(2023, 12, 20)
    for offset in range((date(2025, 12, 31) - start).days + 1):
        day = start + timedelta(days=offset)
        created = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)
        for amount in (10, 50, 51, 99, 100, 500):
            due = compute_due_date(created, amount)
            assert not is_weekend(due), (day, amount)
            assert not is_holiday(due), (day, amount)
            assert due >= created + timedelta(days=payment_term_days(amount))


def test_compute_due_date_custom_policy():
    policy = CompliancePolicy(low_term_days=1, medium_term_days=2, high_term_days=3)
    created = datetime(2024, 6, 3, 8, 0, tzinfo=timezone.utc)  # Monday
    assert compute_due_date(created, 20, policy).date() == date(2024, 6, 4)
