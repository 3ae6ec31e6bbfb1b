"""Weekend and holiday aware date arithmetic"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import FrozenSet, Union

DateLike = Union[date, datetime]

# Philippine regular and special non-working holidays, maintained per year.
HOLIDAYS_2024 = frozenset(
    {
        "2024-01-01",  # New Year's Day
        "2024-02-09",  # Chinese New Year
        "2024-02-10",  # Chinese New Year
        "2024-03-28",  # Maundy Thursday
        "2024-03-29",  # Good Friday
        "2024-04-09",  # Araw ng Kagitingan
        "2024-05-01",  # Labor Day
        "2024-06-12",  # Independence Day
        "2024-08-26",  # National Heroes Day
        "2024-11-30",  # Bonifacio Day
        "2024-12-25",  # Christmas Day
        "2024-12-30",  # Rizal Day
    }
)

HOLIDAYS_2025 = frozenset(
    {
        "2025-01-01",  # New Year's Day
        "2025-01-28",  # Chinese New Year
        "2025-01-29",  # Chinese New Year
        "2025-04-17",  # Maundy Thursday
        "2025-04-18",  # Good Friday
        "2025-04-21",  # Easter Monday
        "2025-05-01",  # Labor Day
        "2025-06-12",  # Independence Day
        "2025-08-25",  # National Heroes Day
        "2025-11-30",  # Bonifacio Day
        "2025-12-25",  # Christmas Day
        "2025-12-30",  # Rizal Day
    }
)

HOLIDAYS: FrozenSet[str] = HOLIDAYS_2024 | HOLIDAYS_2025


def calendar_day(value: DateLike, zone: tzinfo = timezone.utc) -> date:
    """Calendar day of a datetime in `zone` (UTC by default); dates pass through unchanged"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(zone)
        return value.date()
    return value


def is_weekend(value: DateLike) -> bool:
    """Saturday or Sunday"""
    return calendar_day(value).weekday() >= 5


def is_holiday(value: DateLike, holidays: FrozenSet[str] = HOLIDAYS) -> bool:
    """True if the UTC calendar day (YYYY-MM-DD) is a listed holiday"""
    return calendar_day(value).isoformat() in holidays


def is_business_day(value: DateLike, holidays: FrozenSet[str] = HOLIDAYS) -> bool:
    return not (is_weekend(value) or is_holiday(value, holidays))


def advance_to_business_day(value: DateLike, holidays: FrozenSet[str] = HOLIDAYS) -> DateLike:
    """Move forward one day at a time until the date is a business day"""
    adjusted = value
    while not is_business_day(adjusted, holidays):
        adjusted = adjusted + timedelta(days=1)
    return adjusted


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (as read back from SQLite) and normalize aware ones"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
