"""Daily sweep job: once-a-day trigger, re-entrancy guard and run bookkeeping"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen_compliance.domain.calendar import ensure_utc, utc_now
from canteen_compliance.domain.models import ExecutedBy, RunStatus, SweepResult
from canteen_compliance.domain.policy import CompliancePolicy, DEFAULT_POLICY
from canteen_compliance.infrastructure.database.repositories import (
    JobExecutionRepository,
    SqlAlchemyRecordStore,
)
from canteen_compliance.infrastructure.observability.logging import log_sweep
from canteen_compliance.infrastructure.observability.metrics import record_skipped_sweep, record_sweep
from canteen_compliance.services.sweep import run_sweep

logger = logging.getLogger(__name__)

POLL_JOB_ID = "daily_payment_sweep_poll"


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class SchedulerStatus:
    """Snapshot returned by DailySweepJob.status()"""

    state: JobState
    is_running: bool
    is_active: bool
    last_run: Optional[datetime]
    next_run: Optional[datetime]
    last_result: Optional[SweepResult]


class DailySweepJob:
    """
    Runs the compliance sweep once per calendar day at a fixed wall-clock time.

    The scheduler polls every `poll_seconds`; the first poll fires immediately, so a
    process started after the sweep time on a day without a run catches up at once.
    Triggers arriving while a sweep is in progress are dropped, not queued.

    Only a completed sweep counts as the day's run. After a failed one the job keeps
    polling and retries once `failure_backoff` has passed.

    The day boundary is the policy's `day_timezone`, the same one the deduction guard
    uses; passing `timezone_name` overrides it for both.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy: CompliancePolicy = DEFAULT_POLICY,
        sweep_time: time = time(6, 0),
        timezone_name: Optional[str] = None,
        poll_seconds: int = 60,
        clock: Callable[[], datetime] = utc_now,
        failure_backoff: timedelta = timedelta(minutes=15),
    ):
        if timezone_name is not None and timezone_name != policy.day_timezone:
            policy = replace(policy, day_timezone=timezone_name)

        self._session_factory = session_factory
        self.policy = policy
        self.sweep_time = sweep_time
        self.timezone_name = policy.day_timezone
        self.timezone = policy.zone
        self.poll_seconds = poll_seconds
        self.failure_backoff = failure_backoff
        self._clock = clock

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self.last_run: Optional[datetime] = None
        self.last_failure: Optional[datetime] = None
        self.next_run: Optional[datetime] = None
        self.last_result: Optional[SweepResult] = None

    @classmethod
    def from_settings(cls, settings, session_factory: Callable[[], Session]) -> "DailySweepJob":
        return cls(
            session_factory=session_factory,
            policy=CompliancePolicy.from_settings(settings),
            sweep_time=time(settings.sweep_hour, settings.sweep_minute),
            poll_seconds=settings.sweep_poll_seconds,
        )

    # -- trigger policy -------------------------------------------------

    def _local(self, moment: datetime) -> datetime:
        return ensure_utc(moment).astimezone(self.timezone)

    def _scheduled_on(self, day: date) -> datetime:
        return datetime.combine(day, self.sweep_time, tzinfo=self.timezone)

    def has_run_today(self, now: datetime) -> bool:
        if self.last_run is None:
            return False
        return self._local(self.last_run).date() == self._local(now).date()

    def is_due(self, now: datetime) -> bool:
        """Sweep time reached for today and no completed run yet today"""
        local_now = self._local(now)
        return local_now >= self._scheduled_on(local_now.date()) and not self.has_run_today(now)

    def is_backing_off(self, now: datetime) -> bool:
        """A failed run happened less than `failure_backoff` ago"""
        if self.last_failure is None:
            return False
        return ensure_utc(now) < self.last_failure + self.failure_backoff

    def next_run_after(self, now: datetime) -> datetime:
        """UTC time of the next sweep the trigger policy would start"""
        local_now = self._local(now)
        if self.is_due(now):
            if self.is_backing_off(now):
                return self.last_failure + self.failure_backoff
            return ensure_utc(now)

        today_run = self._scheduled_on(local_now.date())
        if local_now < today_run:
            return today_run.astimezone(timezone.utc)
        return self._scheduled_on(local_now.date() + timedelta(days=1)).astimezone(timezone.utc)

    # -- lifecycle ------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Begin polling. Must be called from within a running event loop."""
        if self.is_active:
            logger.info("Daily sweep scheduler is already running")
            return

        self._load_last_run()

        self._scheduler = AsyncIOScheduler(timezone=self.timezone_name)
        self._scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=self.poll_seconds),
            id=POLL_JOB_ID,
            name="Poll for daily payment sweep",
            next_run_time=datetime.now(timezone.utc),
            coalesce=True,
            max_instances=1,
            replace_existing=True,
        )
        self._scheduler.start()

        self.next_run = self.next_run_after(self._clock())
        logger.info(
            "Daily sweep scheduler started",
            extra={"next_run": self.next_run.isoformat(), "sweep_timezone": self.timezone_name},
        )

    def stop(self) -> None:
        if not self.is_active:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Daily sweep scheduler stopped")

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            state=JobState.RUNNING if self._running else JobState.IDLE,
            is_running=self._running,
            is_active=self.is_active,
            last_run=self.last_run,
            next_run=self.next_run,
            last_result=self.last_result,
        )

    def _load_last_run(self) -> None:
        """Seed last_run from the execution log so a same-day restart does not re-run"""
        db = self._session_factory()
        try:
            last = JobExecutionRepository(db).last_execution()
            if last is not None:
                self.last_run = last.end_time or last.start_time
        except SQLAlchemyError as e:
            logger.warning(f"Could not read job execution log: {e}")
        finally:
            db.close()

    # -- execution ------------------------------------------------------

    async def _tick(self) -> None:
        now = self._clock()
        if self.is_due(now) and not self.is_backing_off(now):
            await self.run_now(executed_by=ExecutedBy.SYSTEM)

    async def run_now(self, executed_by: ExecutedBy = ExecutedBy.MANUAL) -> Optional[SweepResult]:
        """
        Run one sweep immediately.

        Returns:
            The sweep summary, or None if a sweep was already in progress (or, for
            system triggers, the execution log already holds today's completed run)
        """
        if self._running:
            logger.info("Daily sweep is already running, skipping", extra={"executed_by": executed_by.value})
            record_skipped_sweep()
            return None

        self._running = True
        try:
            result = await asyncio.to_thread(self._execute, executed_by)
        finally:
            self._running = False

        finished = self._clock()
        if result is None or result.status == RunStatus.COMPLETED:
            self.last_run = finished
            self.last_failure = None
        else:
            self.last_failure = ensure_utc(finished)
        if result is not None:
            self.last_result = result
        self.next_run = self.next_run_after(finished)
        return result

    def _execute(self, executed_by: ExecutedBy) -> Optional[SweepResult]:
        now = self._clock()
        day = self._local(now).date()
        db = self._session_factory()
        execution_id = None
        try:
            log = JobExecutionRepository(db)
            if executed_by == ExecutedBy.SYSTEM and self._completed_in_log(log, day):
                logger.info("Daily sweep already completed today, skipping", extra={"execution_date": day.isoformat()})
                record_skipped_sweep()
                return None

            try:
                execution_id = log.log_start(now, executed_by, day)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Could not log job start: {e}")

            try:
                result = run_sweep(SqlAlchemyRecordStore(db), now, self.policy)
            except Exception as e:
                logger.exception("Sweep failed unexpectedly")
                db.rollback()
                result = SweepResult(
                    started_at=now,
                    finished_at=now,
                    status=RunStatus.FAILED,
                    failure_reason=str(e),
                )

            if execution_id is not None:
                log.log_completion(execution_id, result)
        finally:
            db.close()

        record_sweep(result)
        log_sweep(result, executed_by, execution_id)
        return result

    @staticmethod
    def _completed_in_log(log: JobExecutionRepository, day: date) -> bool:
        """Another process may have finished today's sweep; an unreadable log does not block the run"""
        try:
            return log.has_run_on(day)
        except SQLAlchemyError as e:
            log.db.rollback()
            logger.warning(f"Could not read job execution log: {e}")
            return False
