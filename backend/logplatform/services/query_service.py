# logplatform/services/query_service.py
"""
Merged query over both tiers.

Flow:
1) Hot store query and archive read run concurrently
2) Results are keyed by entry id: archive first, then hot (hot wins)
3) Sort newest first, count, slice the requested page

`total` counts the deduplicated list. `database_count` / `archived_count` are
raw per-tier counts taken before the merge, so they can add up to more than
`total` while an entry is mid-migration.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from logplatform.core.entries import LogEntry, LogFilter
from logplatform.core.errors import QueryTimeoutError
from logplatform.services.archive_reader import ArchiveReader
from logplatform.services.hot_store import HotStore

logger = logging.getLogger(__name__)

MIN_ARCHIVE_SCAN = 1000


def archive_scan_bound(limit: int, offset: int) -> int:
    """How many archived entries to collect for a page at `offset` of size `limit`."""
    return max((limit + offset) * 2, MIN_ARCHIVE_SCAN)


@dataclass(frozen=True)
class QueryResult:
    logs: List[LogEntry] = field(default_factory=list)
    total: int = 0
    database_count: int = 0
    archived_count: int = 0


def merge_tiers(hot: List[LogEntry], archived: List[LogEntry]) -> List[LogEntry]:
    """Deduplicate by id with the hot copy taking precedence; newest first."""
    merged: Dict[str, LogEntry] = {}
    for entry in archived:
        merged[entry.id] = entry
    for entry in hot:
        merged[entry.id] = entry
    return sorted(merged.values(), key=lambda e: e.timestamp, reverse=True)


class QueryMerger:
    def __init__(
        self,
        hot_store: HotStore,
        archive_reader: ArchiveReader,
        timeout: Optional[float] = None,
    ) -> None:
        self._hot_store = hot_store
        self._archive_reader = archive_reader
        self._timeout = timeout

    async def query_logs(self, flt: LogFilter, limit: int = 100, offset: int = 0) -> QueryResult:
        """
        One page of merged results for `flt.service`.

        Raises StorageError if the hot store is unreachable (the hot tier is
        required) and QueryTimeoutError if the configured deadline passes.
        """
        if self._timeout is None:
            return await self._merge(flt, limit, offset)
        try:
            return await asyncio.wait_for(self._merge(flt, limit, offset), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Query for service=%s timed out after %.1fs", flt.service, self._timeout)
            raise QueryTimeoutError(self._timeout)

    async def _merge(self, flt: LogFilter, limit: int, offset: int) -> QueryResult:
        t0 = time.perf_counter()
        hot, archived = await asyncio.gather(
            self._hot_store.query(flt),
            self._archive_reader.read(
                flt.service,
                start_time=flt.start_time,
                end_time=flt.end_time,
                level=flt.level,
                correlation_id=flt.correlation_id,
                max_results=archive_scan_bound(limit, offset),
            ),
        )

        ordered = merge_tiers(hot, archived)
        logger.debug(
            "query service=%s hot=%d archived=%d merged=%d ms=%.2f",
            flt.service,
            len(hot),
            len(archived),
            len(ordered),
            (time.perf_counter() - t0) * 1000,
        )

        return QueryResult(
            logs=ordered[offset : offset + limit],
            total=len(ordered),
            database_count=len(hot),
            archived_count=len(archived),
        )
