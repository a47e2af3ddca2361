"""Interval scheduling for daemon mode."""

from .service import JOB_ID, SchedulerService

__all__ = ["SchedulerService", "JOB_ID"]
