# logplatform/services/platform.py
"""
Wiring of the storage engine from settings.

`build_platform()` creates every component once; the FastAPI app keeps the
result on `app.state.platform` and routes reach it through dependencies.
Nothing here runs I/O until `startup()`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncEngine

from logplatform.core.config import Settings
from logplatform.db.session import create_engine_for, init_db
from logplatform.services.archive_reader import ArchiveReader
from logplatform.services.archive_writer import ArchiveWriter
from logplatform.services.hot_store import HotStore
from logplatform.services.query_service import QueryMerger
from logplatform.services.registry import ServiceRegistry
from logplatform.services.retention import RetentionSweeper
from logplatform.services.scheduler import ArchiveScheduler
from logplatform.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


@dataclass
class Platform:
    settings: Settings
    engine: AsyncEngine
    hot_store: HotStore
    registry: ServiceRegistry
    archive_writer: ArchiveWriter
    archive_reader: ArchiveReader
    sweeper: RetentionSweeper
    query_merger: QueryMerger
    scheduler: ArchiveScheduler
    clock: Callable[[], datetime] = utcnow

    async def startup(self) -> None:
        await init_db(self.engine)

        if self.settings.ADMIN_API_KEY is None:
            logger.warning("ADMIN_API_KEY is not set; all admin endpoints will be rejected.")

        if self.settings.SCHEDULER_ENABLED:
            self.scheduler.start()
        else:
            logger.info("Scheduler disabled; archive/cleanup run only on admin request.")

    async def shutdown(self) -> None:
        self.scheduler.stop()
        await self.engine.dispose()


def build_platform(settings: Settings, clock: Callable[[], datetime] = utcnow) -> Platform:
    engine = create_engine_for(settings.DATABASE_URL)
    hot_store = HotStore(engine, clock=clock)
    archive_writer = ArchiveWriter(
        hot_store,
        settings.ARCHIVE_DIR,
        batch_size=settings.ARCHIVE_BATCH_SIZE,
        clock=clock,
    )
    archive_reader = ArchiveReader(
        settings.ARCHIVE_DIR,
        max_file_bytes=settings.ARCHIVE_MAX_FILE_BYTES,
        clock=clock,
    )
    sweeper = RetentionSweeper(
        settings.ARCHIVE_DIR,
        retention_days=settings.ARCHIVE_RETENTION_DAYS,
        clock=clock,
    )
    return Platform(
        settings=settings,
        engine=engine,
        hot_store=hot_store,
        registry=ServiceRegistry(engine, clock=clock),
        archive_writer=archive_writer,
        archive_reader=archive_reader,
        sweeper=sweeper,
        query_merger=QueryMerger(hot_store, archive_reader, timeout=settings.QUERY_TIMEOUT_SECONDS),
        scheduler=ArchiveScheduler(
            archive_writer.archive,
            sweeper.sweep,
            archive_schedule=settings.ARCHIVE_SCHEDULE,
            cleanup_schedule=settings.CLEANUP_SCHEDULE,
            days_old=settings.ARCHIVE_DAYS_OLD,
        ),
        clock=clock,
    )
