"""Unit tests for suspension and ban thresholds"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from canteen_compliance.domain.account_policy import (
    account_updates,
    apply_deduction,
    can_make_new_transactions,
    evaluate_account_action,
    restriction_reason,
    should_ban,
    should_suspend,
)
from canteen_compliance.domain.models import BanDecision, Student

NOW = datetime(2024, 6, 20, 6, 0, tzinfo=timezone.utc)


def test_should_suspend_threshold():
    assert should_suspend(20) is True
    assert should_suspend(21) is False
    assert should_suspend(0) is True


def test_should_ban_only_at_zero():
    assert should_ban(0, 50) == BanDecision(ban=True, ban_days=5)
    assert should_ban(0, 51) == BanDecision(ban=True, ban_days=7)
    assert should_ban(0, Decimal("50.00")) == BanDecision(ban=True, ban_days=5)
    assert should_ban(1, 10) == BanDecision(ban=False, ban_days=0)
    assert should_ban(1, 1000) == BanDecision(ban=False, ban_days=0)


def test_apply_deduction_floors_at_zero():
    assert apply_deduction(25, 4) == 21
    assert apply_deduction(3, 4) == 0
    assert apply_deduction(0, 1) == 0


def test_suspension_and_ban_evaluated_together():
    action = evaluate_account_action(0, 80)
    assert action.suspend is True
    assert action.ban == BanDecision(ban=True, ban_days=7)

    action = evaluate_account_action(18, 80)
    assert action.suspend is True
    assert action.ban.ban is False

    assert evaluate_account_action(24, 80).any is False


def test_account_updates_suspends_active_student():
    student = Student(student_id="2201-000245", loyalty=18)
    updates = account_updates(student, evaluate_account_action(18, 40), NOW)
    assert updates == {"is_active": False, "suspension_date": NOW}


def test_account_updates_keeps_existing_suspension():
    earlier = NOW - timedelta(days=2)
    student = Student(student_id="2201-000245", loyalty=16, is_active=False, suspension_date=earlier)
    assert account_updates(student, evaluate_account_action(16, 40), NOW) == {}


def test_account_updates_ban_sets_end_date():
    student = Student(student_id="2201-000245", loyalty=0)
    updates = account_updates(student, evaluate_account_action(0, 80), NOW)
    assert updates == {"is_active": False, "suspension_date": NOW + timedelta(days=7)}


def test_account_updates_ban_never_shortens_restriction():
    later = NOW + timedelta(days=10)
    student = Student(student_id="2201-000245", loyalty=0, is_active=False, suspension_date=later)
    assert account_updates(student, evaluate_account_action(0, 30), NOW) == {}


def test_can_make_new_transactions():
    assert can_make_new_transactions(Student(student_id="a", loyalty=25)) is True
    assert can_make_new_transactions(Student(student_id="a", loyalty=20)) is False
    assert can_make_new_transactions(Student(student_id="a", loyalty=25, is_active=False)) is False


def test_restriction_reason():
    assert restriction_reason(Student(student_id="a", loyalty=25)) is None
    assert "banned" in restriction_reason(Student(student_id="a", loyalty=0, is_active=False))
    assert "low loyalty" in restriction_reason(Student(student_id="a", loyalty=15, is_active=False))
    assert "other reasons" in restriction_reason(Student(student_id="a", loyalty=40, is_active=False))
