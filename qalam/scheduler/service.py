"""Periodic processor runs for daemon mode."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from qalam.logging import get_logger
from qalam.processing import BatchResult, EventFetchError

logger = get_logger(__name__, component="scheduler")

JOB_ID = "notification-events"


class SchedulerService:
    """Runs ``process_pending`` on a fixed interval in a background thread.

    At most one run is active at a time and missed runs are coalesced. The
    first run starts immediately.
    """

    def __init__(
        self,
        process_callable: Callable[[], BatchResult],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got: {interval_seconds}")
        self.process_callable = process_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.run_job,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=JOB_ID,
            name="Process pending notification events",
            replace_existing=True,
            next_run_time=next_run,
        )
        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat(),
            },
        )

    def run_job(self) -> Optional[BatchResult]:
        """One scheduled run. Errors are logged; the next interval retries."""
        try:
            return self.process_callable()
        except EventFetchError as e:
            logger.error(
                f"Scheduled run could not fetch events: {e.__cause__ or e}",
                extra={"event": "scheduler.run.fetch_failed"},
            )
        except Exception as e:
            logger.error(
                f"Scheduled run failed: {e}",
                exc_info=True,
                extra={"event": "scheduler.run.failed"},
            )
        return None

    def shutdown(self, wait: bool = False) -> None:
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        if self.shutdown_event:
            self.shutdown_event.set()
        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self) -> Optional[BatchResult]:
        """Run once synchronously in the calling thread."""
        logger.info("Triggering immediate run", extra={"event": "scheduler.trigger_now"})
        return self.run_job()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
