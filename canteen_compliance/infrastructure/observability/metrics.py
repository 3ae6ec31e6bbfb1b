"""Prometheus metrics for monitoring sweep runs, deductions and account actions"""

from prometheus_client import Counter, Histogram

from canteen_compliance.domain.models import SweepResult

# Sweep metrics
sweep_runs_counter = Counter(
    "canteen_sweep_runs_total",
    "Daily sweep invocations",
    ["outcome"],  # completed | failed | skipped
)

sweep_duration_histogram = Histogram(
    "canteen_sweep_duration_seconds",
    "Wall time of one sweep",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

sweep_record_errors_counter = Counter(
    "canteen_sweep_record_errors_total",
    "Transactions that failed during a sweep",
)

# Compliance outcomes
loyalty_points_deducted_counter = Counter(
    "canteen_loyalty_points_deducted_total",
    "Loyalty points deducted for overdue payments",
)

account_actions_counter = Counter(
    "canteen_account_actions_total",
    "Account restrictions applied",
    ["action"],  # suspended | banned
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_sweep(result: SweepResult) -> None:
    """Record sweep metrics from a finished run"""
    sweep_runs_counter.labels(outcome=result.status.value).inc()
    sweep_duration_histogram.observe(result.duration_seconds)

    if result.errors:
        sweep_record_errors_counter.inc(len(result.errors))
    if result.points_deducted:
        loyalty_points_deducted_counter.inc(result.points_deducted)
    if result.suspended_students:
        account_actions_counter.labels(action="suspended").inc(len(result.suspended_students))
    if result.banned_students:
        account_actions_counter.labels(action="banned").inc(len(result.banned_students))


def record_skipped_sweep() -> None:
    sweep_runs_counter.labels(outcome="skipped").inc()
