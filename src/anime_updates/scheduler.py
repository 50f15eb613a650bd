"""Fixed-interval scheduling for the long-running mode."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .logger import get_logger

logger = get_logger(__name__)

JOB_ID = "check_updates"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UpdateScheduler:
    """
    Runs the check cycle immediately and then once per interval.

    The APScheduler instance and clock are injectable so tests can inspect
    the registered job without waiting on the wall clock.
    """

    def __init__(
        self,
        interval: timedelta,
        scheduler: BaseScheduler | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        self.interval = interval
        self.clock = clock
        self.scheduler = scheduler or BlockingScheduler(timezone=timezone.utc)
        self._setup_scheduler_listeners()

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        self.scheduler.add_listener(self._job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._job_error_listener, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._job_missed_listener, EVENT_JOB_MISSED)

    def _job_executed_listener(self, event: Any) -> None:
        result = event.retval
        if result is not None and not getattr(result, "success", True):
            logger.warning(f"Job {event.job_id} finished with failure: {result.message}")
        else:
            logger.info(f"Job {event.job_id} executed successfully")

    def _job_error_listener(self, event: Any) -> None:
        logger.error(f"Job {event.job_id} raised: {event.exception}")

    def _job_missed_listener(self, event: Any) -> None:
        logger.warning(f"Job {event.job_id} missed its run time {event.scheduled_run_time}")

    def add_job(self, job: Callable[[], Any]) -> None:
        """Register the job on an interval trigger, first run now."""
        self.scheduler.add_job(
            func=job,
            trigger=IntervalTrigger(seconds=self.interval.total_seconds(), timezone=timezone.utc),
            id=JOB_ID,
            name="Anime update check",
            next_run_time=self.clock(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(f"Added update check job (every {self.interval})")

    def start(self, job: Callable[[], Any]) -> None:
        """Schedule the job and block until the scheduler is shut down."""
        self.add_job(job)
        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Stopping scheduler")
            self.stop()

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
