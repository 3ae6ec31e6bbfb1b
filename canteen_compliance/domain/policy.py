"""Named, configurable constants for the payment-compliance rules"""

from dataclasses import dataclass
from datetime import timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class CompliancePolicy:
    """
    Every threshold the compliance engine uses, in one immutable object.

    Deduction tiers are keyed by whole days past the end of the grace period:
    - days < mid_tier_start_day:                      tier1_points
    - mid_tier_start_day <= days < max_tier_start_day: tier2_points
    - days >= max_tier_start_day:                     tier3_points

    `day_timezone` fixes where one calendar day ends and the next begins for
    the once-per-day deduction guard and the daily sweep trigger alike.
    """

    grace_period: timedelta = timedelta(hours=24)
    mid_tier_start_day: int = 2
    max_tier_start_day: int = 5
    tier1_points: int = 1
    tier2_points: int = 2
    tier3_points: int = 4

    suspension_threshold: int = 20
    ban_amount_threshold: int = 50
    short_ban_days: int = 5
    long_ban_days: int = 7

    low_term_max_amount: int = 50
    medium_term_max_amount: int = 99
    low_term_days: int = 3
    medium_term_days: int = 4
    high_term_days: int = 5

    day_timezone: str = "UTC"

    def __post_init__(self) -> None:
        if self.grace_period < timedelta(0):
            raise ValueError("grace_period must not be negative")
        if not 0 < self.mid_tier_start_day <= self.max_tier_start_day:
            raise ValueError("tier day thresholds must satisfy 0 < mid <= max")
        if not 0 <= self.tier1_points <= self.tier2_points <= self.tier3_points:
            raise ValueError("tier points must be non-decreasing")
        if self.low_term_max_amount >= self.medium_term_max_amount:
            raise ValueError("payment term bounds must be increasing")
        try:
            self.zone
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown day_timezone: {self.day_timezone}") from e

    @property
    def zone(self) -> tzinfo:
        if self.day_timezone == "UTC":
            return timezone.utc
        return ZoneInfo(self.day_timezone)

    @classmethod
    def from_settings(cls, settings) -> "CompliancePolicy":
        """Build a policy from application Settings"""
        return cls(
            grace_period=timedelta(hours=settings.grace_period_hours),
            mid_tier_start_day=settings.mid_tier_start_day,
            max_tier_start_day=settings.max_tier_start_day,
            tier1_points=settings.tier1_points,
            tier2_points=settings.tier2_points,
            tier3_points=settings.tier3_points,
            suspension_threshold=settings.suspension_threshold,
            ban_amount_threshold=settings.ban_amount_threshold,
            short_ban_days=settings.short_ban_days,
            long_ban_days=settings.long_ban_days,
            low_term_max_amount=settings.low_term_max_amount,
            medium_term_max_amount=settings.medium_term_max_amount,
            low_term_days=settings.low_term_days,
            medium_term_days=settings.medium_term_days,
            high_term_days=settings.high_term_days,
            day_timezone=settings.sweep_timezone,
        )


DEFAULT_POLICY = CompliancePolicy()
