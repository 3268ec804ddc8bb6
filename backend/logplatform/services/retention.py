# logplatform/services/retention.py
"""
Retention sweeper: drops whole date partitions past the retention window.

A date directory is eligible when its midnight (UTC) is older than
`now - retention_days`. Each directory is removed independently: a failure is
logged and the sweep moves on to the next one (continue-on-error). The
returned count only includes directories that were actually removed.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from datetime import datetime, time, timedelta
from typing import Callable

from logplatform.services.archive_layout import list_partition_dates, partition_dir
from logplatform.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


class RetentionSweeper:
    def __init__(
        self,
        root: str,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._root = root
        self._retention_days = retention_days
        self._clock = clock

    async def sweep(self) -> int:
        cutoff = self._clock() - timedelta(days=self._retention_days)
        days = await asyncio.to_thread(list_partition_dates, self._root)

        deleted = 0
        failed = 0
        for day in days:
            if datetime.combine(day, time.min) >= cutoff:
                continue

            path = partition_dir(self._root, day)
            try:
                await asyncio.to_thread(shutil.rmtree, path)
            except OSError as exc:
                failed += 1
                logger.error("Failed to delete archive directory %s: %s", path, exc)
                continue

            deleted += 1
            logger.info("Deleted old archive directory: %s", day.isoformat())

        if deleted or failed:
            logger.info(
                "Cleanup complete: %d old archive directories deleted, %d failed",
                deleted,
                failed,
            )
        return deleted
