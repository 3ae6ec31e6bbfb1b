"""Unit tests for overdue detection and tiered loyalty deductions"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from canteen_compliance.domain.deductions import (
    calculate_deduction,
    days_overdue,
    deduction_for_days,
    deduction_summary,
    has_been_processed_today,
    is_in_grace,
    is_overdue,
    payment_alarm_level,
)
from canteen_compliance.domain.models import AlarmLevel, PaymentTracking, Transaction, TransactionStatus
from canteen_compliance.domain.policy import CompliancePolicy

NOW = datetime(2024, 6, 20, 6, 0, tzinfo=timezone.utc)


def make_transaction(
    due_date=None,
    status=TransactionStatus.PARTIAL,
    last_deduction_date=None,
    loyalty_deductions=0,
) -> Transaction:
    tracking = None
    if status.tracks_payment:
        tracking = PaymentTracking(
            due_date=due_date,
            loyalty_deductions=loyalty_deductions,
            last_deduction_date=last_deduction_date,
        )
    return Transaction(
        id="txn-1",
        student_id="2201-000245",
        total_amount=Decimal("40"),
        status=status,
        created_at=NOW - timedelta(days=10),
        tracking=tracking,
    )


def past_due(hours: float) -> Transaction:
    return make_transaction(due_date=NOW - timedelta(hours=hours))


def test_no_due_date_is_never_overdue():
    transaction = make_transaction(due_date=None)
    assert is_overdue(transaction, NOW) is False
    assert calculate_deduction(transaction, NOW) == 0


def test_paid_transaction_is_not_tracked():
    transaction = make_transaction(status=TransactionStatus.PAID)
    assert transaction.tracking is None
    assert is_overdue(transaction, NOW) is False
    assert calculate_deduction(transaction, NOW) == 0


def test_not_yet_due():
    transaction = make_transaction(due_date=NOW + timedelta(hours=1))
    assert is_overdue(transaction, NOW) is False
    assert is_in_grace(transaction, NOW) is False
    assert payment_alarm_level(transaction, NOW) == AlarmLevel.NONE


def test_within_grace_period_no_deduction():
    """12 hours past due with a 24 hour grace period"""
    transaction = past_due(12)
    assert is_in_grace(transaction, NOW)
    assert is_overdue(transaction, NOW) is False
    assert calculate_deduction(transaction, NOW) == 0
    assert payment_alarm_level(transaction, NOW) == AlarmLevel.GRACE


def test_grace_boundary_is_inclusive():
    """Overdue strictly after due_date + grace"""
    exactly_at_grace_end = past_due(24)
    assert is_overdue(exactly_at_grace_end, NOW) is False

    one_second_later = make_transaction(due_date=NOW - timedelta(hours=24, seconds=1))
    assert is_overdue(one_second_later, NOW) is True
    assert days_overdue(one_second_later, NOW) == 0
    assert calculate_deduction(one_second_later, NOW) == 1


def test_25_hours_past_due_is_tier_one():
    transaction = past_due(25)
    assert is_overdue(transaction, NOW)
    assert calculate_deduction(transaction, NOW) == 1
    assert payment_alarm_level(transaction, NOW) == AlarmLevel.WARNING


def test_6_days_past_due_is_max_tier():
    transaction = past_due(6 * 24)
    assert days_overdue(transaction, NOW) == 5
    assert calculate_deduction(transaction, NOW) == 4
    assert payment_alarm_level(transaction, NOW) == AlarmLevel.CRITICAL


@pytest.mark.parametrize(
    "days_past_grace,points",
    [(0, 1), (1, 1), (2, 2), (3, 2), (4, 2), (5, 4), (6, 4), (30, 4)],
)
def test_deduction_tiers_by_days_past_grace(days_past_grace, points):
    transaction = past_due(24 + days_past_grace * 24 + 1)
    assert days_overdue(transaction, NOW) == days_past_grace
    assert calculate_deduction(transaction, NOW) == points


def test_deduction_monotonic_in_days():
    amounts = [deduction_for_days(day) for day in range(0, 15)]
    assert amounts == sorted(amounts)


def test_alarm_level_matches_deduction_tier():
    """Display severity and deduction share one set of boundaries"""
    expected = {1: AlarmLevel.WARNING, 2: AlarmLevel.ESCALATED, 4: AlarmLevel.CRITICAL}
    for day in range(0, 10):
        transaction = past_due(24 + day * 24 + 1)
        assert payment_alarm_level(transaction, NOW) == expected[calculate_deduction(transaction, NOW)]


def test_processed_today_blocks_second_deduction():
    transaction = past_due(3 * 24)
    first = calculate_deduction(transaction, NOW)
    assert first == calculate_deduction(transaction, NOW)  # pure

    transaction.tracking.last_deduction_date = NOW
    assert has_been_processed_today(transaction, NOW)
    assert calculate_deduction(transaction, NOW) == 0


def test_processed_today_is_calendar_day_not_rolling_window():
    transaction = past_due(3 * 24)

    # Earlier the same UTC day
    transaction.tracking.last_deduction_date = datetime(2024, 6, 20, 0, 30, tzinfo=timezone.utc)
    assert has_been_processed_today(transaction, NOW)
    assert calculate_deduction(transaction, NOW) == 0

    # Less than 24 hours ago, but yesterday
    transaction.tracking.last_deduction_date = datetime(2024, 6, 19, 7, 0, tzinfo=timezone.utc)
    assert not has_been_processed_today(transaction, NOW)
    assert calculate_deduction(transaction, NOW) == 2


def test_processed_today_follows_policy_day_timezone():
    """06:00 in Manila is 22:00 UTC the day before; both belong to the same Manila day"""
    try:
        manila = CompliancePolicy(day_timezone="Asia/Manila")
    except ValueError:
        pytest.skip("tz database not available")

    transaction = past_due(3 * 24)
    transaction.tracking.last_deduction_date = datetime(2024, 6, 19, 22, 0, tzinfo=timezone.utc)

    assert not has_been_processed_today(transaction, NOW)
    assert has_been_processed_today(transaction, NOW, manila)
    assert calculate_deduction(transaction, NOW, manila) == 0
    assert deduction_summary(transaction, NOW, manila).processed_today is True

    next_manila_day = datetime(2024, 6, 20, 16, 0, tzinfo=timezone.utc)  # 00:00 on 06-21 in Manila
    assert calculate_deduction(transaction, next_manila_day, manila) > 0


def test_policy_rejects_unknown_day_timezone():
    with pytest.raises(ValueError):
        CompliancePolicy(day_timezone="Mars/Olympus_Mons")


def test_future_last_deduction_date_blocks_deduction():
    transaction = past_due(3 * 24)
    transaction.tracking.last_deduction_date = NOW + timedelta(days=1)
    assert calculate_deduction(transaction, NOW) == 0


def test_naive_datetimes_are_treated_as_utc():
    transaction = make_transaction(due_date=datetime(2024, 6, 18, 0, 0))
    assert is_overdue(transaction, NOW)
    assert calculate_deduction(transaction, NOW.replace(tzinfo=None)) == 1


def test_twelve_hour_grace_policy():
    policy = CompliancePolicy(grace_period=timedelta(hours=12))
    transaction = past_due(13)
    assert is_overdue(transaction, NOW, policy)
    assert calculate_deduction(transaction, NOW, policy) == 1
    assert is_overdue(transaction, NOW) is False


def test_custom_tier_amounts():
    policy = CompliancePolicy(tier1_points=2, tier2_points=3, tier3_points=5, mid_tier_start_day=1, max_tier_start_day=3)
    assert [deduction_for_days(d, policy) for d in range(5)] == [2, 3, 3, 5, 5]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"mid_tier_start_day": 6, "max_tier_start_day": 5},
        {"tier1_points": 5, "tier2_points": 2},
        {"grace_period": timedelta(hours=-1)},
        {"low_term_max_amount": 100, "medium_term_max_amount": 99},
    ],
)
def test_invalid_policy_rejected(kwargs):
    with pytest.raises(ValueError):
        CompliancePolicy(**kwargs)


def test_deduction_summary():
    transaction = make_transaction(
        due_date=NOW - timedelta(days=4),
        loyalty_deductions=3,
        last_deduction_date=NOW - timedelta(days=1),
    )
    summary = deduction_summary(transaction, NOW)

    assert summary.is_overdue is True
    assert summary.days_overdue == 3
    assert summary.alarm_level == AlarmLevel.ESCALATED
    assert summary.next_deduction == 2
    assert summary.total_deducted == 3
    assert summary.processed_today is False
