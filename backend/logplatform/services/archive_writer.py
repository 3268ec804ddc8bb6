# logplatform/services/archive_writer.py
"""
Archive writer: migrates aged rows from the hot store into JSONL partitions.

Flow per run:
1) cutoff = start of the UTC day `days_old` days ago
2) per service, fetch one oldest-first batch of rows older than cutoff
3) group the batch by UTC calendar date
4) per (date, service): append the lines, then delete exactly those ids

Append-then-delete means a crash between the two steps leaves an entry in
both tiers; the query merger deduplicates by id, so the failure mode is
duplication, never loss. Re-running after a failure is safe.

A service name that cannot be used as a file name fails the run with
`ArchiveWriteError`; its rows stay in the hot store until it is fixed.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Sequence

import aiofiles
import aiofiles.os

from logplatform.core.entries import LogEntry
from logplatform.core.errors import ArchiveWriteError
from logplatform.services.archive_layout import encode_line, partition_path
from logplatform.services.hot_store import HotStore
from logplatform.utils.timeutil import iso_z, start_of_day, utcnow

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10_000


class ArchiveWriter:
    def __init__(
        self,
        hot_store: HotStore,
        root: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._hot_store = hot_store
        self._root = root
        self._batch_size = batch_size
        self._clock = clock
        # One run at a time; appends to the same partition are serialized.
        self._run_lock = asyncio.Lock()
        self._partition_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def cutoff_for(self, days_old: int) -> datetime:
        return start_of_day(self._clock() - timedelta(days=days_old))

    async def archive(self, days_old: int = 1) -> int:
        """
        Move hot rows older than the cutoff into the archive.

        Returns the number of entries migrated. Errors stop the run and
        propagate; partitions committed before the error stay committed.
        """
        if days_old < 0:
            raise ValueError("days_old must be >= 0")

        async with self._run_lock:
            cutoff = self.cutoff_for(days_old)
            logger.info("Archiving logs older than %s...", iso_z(cutoff))

            total = 0
            for service in await self._hot_store.list_distinct_services():
                try:
                    total += await self._archive_service(service, cutoff)
                except Exception:
                    logger.exception("Archive run aborted at service=%s after %d logs", service, total)
                    raise

            logger.info("Archive complete: %d logs archived", total)
            return total

    async def _archive_service(self, service: str, cutoff: datetime) -> int:
        batch = await self._hot_store.fetch_archivable(service, cutoff, self._batch_size)
        if not batch:
            return 0

        by_date: Dict[date, List[LogEntry]] = {}
        for entry in batch:
            by_date.setdefault(entry.timestamp.date(), []).append(entry)

        migrated = 0
        for day, entries in by_date.items():
            try:
                path = partition_path(self._root, day, service)
            except ValueError as exc:
                raise ArchiveWriteError(os.path.join(self._root, day.isoformat(), service), exc)

            await self._append(path, entries)
            await self._hot_store.delete_by_ids([e.id for e in entries])

            migrated += len(entries)
            logger.info("Archived %d logs for %s on %s", len(entries), service, day.isoformat())

        return migrated

    async def _append(self, path: str, entries: Sequence[LogEntry]) -> None:
        payload = b"".join(encode_line(e) for e in entries)
        async with self._partition_locks[path]:
            try:
                await aiofiles.os.makedirs(os.path.dirname(path), exist_ok=True)
                async with aiofiles.open(path, mode="ab") as f:
                    await f.write(payload)
            except OSError as exc:
                raise ArchiveWriteError(path, exc)
