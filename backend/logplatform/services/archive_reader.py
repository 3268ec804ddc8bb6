# logplatform/services/archive_reader.py
"""
Archive reader: streams matching entries out of JSONL partitions.

Archived history is best-effort auxiliary data, so `read()` never raises:
missing partitions are skipped, oversized files are skipped with a warning,
bad lines are logged and skipped, and an I/O error on one date only loses
that date.

Memory is bounded by streaming files line by line and by `max_results`,
which stops the scan once enough entries are collected. Dates are scanned
newest first, so an early stop keeps the entries a newest-first page needs.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

import aiofiles
import aiofiles.os

from logplatform.core.entries import LogEntry, LogFilter
from logplatform.core.errors import ArchiveReadError
from logplatform.services.archive_layout import (
    decode_line,
    is_safe_service_name,
    list_partition_dates,
    partition_path,
)
from logplatform.utils.timeutil import EPOCH, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 100 * 1024 * 1024


class ArchiveReader:
    def __init__(
        self,
        root: str,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._root = root
        self._max_file_bytes = max_file_bytes
        self._clock = clock

    async def read(
        self,
        service: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        level: Optional[str] = None,
        correlation_id: Optional[str] = None,
        max_results: Optional[int] = None,
    ) -> List[LogEntry]:
        """Archived entries of `service` matching the filters, newest first."""
        if not is_safe_service_name(service):
            return []

        flt = LogFilter(
            service=service,
            level=level,
            start_time=start_time or EPOCH,
            end_time=end_time or self._clock(),
            correlation_id=correlation_id,
        )

        try:
            days = await asyncio.to_thread(list_partition_dates, self._root)
        except OSError as exc:
            logger.error("Error listing archive root %s: %s", self._root, exc)
            return []

        first, last = flt.start_time.date(), flt.end_time.date()
        days = [d for d in days if first <= d <= last]

        collected: List[LogEntry] = []
        for day in reversed(days):
            if max_results is not None and len(collected) >= max_results:
                break
            path = partition_path(self._root, day, service)
            try:
                await self._scan(path, flt, collected, max_results)
            except Exception:
                logger.exception("Error reading archived logs from %s; skipping date", path)

        collected.sort(key=lambda e: e.timestamp, reverse=True)
        return collected

    async def _scan(
        self,
        path: str,
        flt: LogFilter,
        collected: List[LogEntry],
        max_results: Optional[int],
    ) -> None:
        if not await aiofiles.os.path.exists(path):
            return

        size = (await aiofiles.os.stat(path)).st_size
        if size > self._max_file_bytes:
            logger.warning("Archive file %s is too large (%d bytes), skipping", path, size)
            return

        async with aiofiles.open(path, mode="r", encoding="utf-8", errors="replace") as f:
            lineno = 0
            async for line in f:
                lineno += 1
                if not line.strip():
                    continue
                try:
                    entry = decode_line(line)
                except ArchiveReadError as exc:
                    logger.error("Failed to parse log line %s:%d: %s", path, lineno, exc)
                    continue

                if not flt.matches(entry):
                    continue

                collected.append(entry)
                if max_results is not None and len(collected) >= max_results:
                    return
