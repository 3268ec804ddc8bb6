# logplatform/services/scheduler.py
"""
Periodic trigger for the archive and cleanup jobs.

The jobs themselves are injected callables, so this module knows nothing
about storage. Jobs are registered with `max_instances=1` and `coalesce=True`:
a run that is still going when its next fire time arrives is not overlapped,
and missed fire times collapse into one run.
"""

from __future__ import annotations

import logging
from datetime import timezone
from typing import Awaitable, Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

ArchiveJob = Callable[[int], Awaitable[int]]
SweepJob = Callable[[], Awaitable[int]]

ARCHIVE_JOB_ID = "archive"
CLEANUP_JOB_ID = "cleanup"


class ArchiveScheduler:
    def __init__(
        self,
        archive_job: ArchiveJob,
        sweep_job: SweepJob,
        archive_schedule: str = "0 2 * * *",
        cleanup_schedule: str = "0 3 * * *",
        days_old: int = 1,
    ) -> None:
        self._archive_job = archive_job
        self._sweep_job = sweep_job
        self._archive_schedule = archive_schedule
        self._cleanup_schedule = cleanup_schedule
        self._days_old = days_old
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def job_ids(self) -> List[str]:
        if self._scheduler is None:
            return []
        return sorted(job.id for job in self._scheduler.get_jobs())

    def start(self) -> None:
        """Register both cron jobs. Must be called from inside the running event loop."""
        if self._scheduler is not None:
            return

        logger.info("Starting archive scheduler...")
        logger.info("Archive schedule: %s (%d days old)", self._archive_schedule, self._days_old)
        logger.info("Cleanup schedule: %s", self._cleanup_schedule)

        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self.archive_tick,
            CronTrigger.from_crontab(self._archive_schedule, timezone=timezone.utc),
            id=ARCHIVE_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_job(
            self.cleanup_tick,
            CronTrigger.from_crontab(self._cleanup_schedule, timezone=timezone.utc),
            id=CLEANUP_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")

    async def archive_tick(self) -> None:
        """Scheduled archive run. Errors are logged, never raised into the scheduler."""
        try:
            logger.info("Running scheduled archive job...")
            await self._archive_job(self._days_old)
        except Exception:
            logger.exception("Scheduled archive job failed")

    async def cleanup_tick(self) -> None:
        try:
            logger.info("Running scheduled cleanup job...")
            await self._sweep_job()
        except Exception:
            logger.exception("Scheduled cleanup job failed")

    async def run_archive_now(self) -> int:
        """Manual archive with the configured age. Errors propagate to the caller."""
        logger.info("Running manual archive job...")
        try:
            count = await self._archive_job(self._days_old)
        except Exception:
            logger.exception("Manual archive job failed")
            raise
        logger.info("Manual archive complete: %d logs archived", count)
        return count
