"""Shared fixtures: temp SQLite hot store, temp archive root, frozen clock."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy import text

from logplatform.core.config import Settings
from logplatform.core.entries import LogEntry
from logplatform.db.session import create_engine_for, init_db
from logplatform.services.archive_reader import ArchiveReader
from logplatform.services.archive_writer import ArchiveWriter
from logplatform.services.hot_store import HotStore

FROZEN_NOW = datetime(2024, 1, 20, 12, 0, 0)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_entry(
    service: str = "svc-a",
    timestamp: Optional[datetime] = None,
    level: str = "info",
    message: str = "hello",
    correlation_id: Optional[str] = None,
    context: Any = None,
    entry_id: Optional[str] = None,
) -> LogEntry:
    ts = timestamp or FROZEN_NOW
    return LogEntry(
        id=entry_id or str(uuid.uuid4()),
        timestamp=ts,
        level=level,
        service=service,
        message=message,
        context=context,
        correlation_id=correlation_id,
        created_at=ts,
    )


async def block_deletes(db_url: str, when: str = "1") -> None:
    """Install a trigger that aborts any DELETE on `logs` matching `when`."""
    engine = create_engine_for(db_url)
    async with engine.begin() as conn:
        await conn.execute(
            text(
                "CREATE TRIGGER block_log_delete BEFORE DELETE ON logs "
                f"WHEN {when} BEGIN SELECT RAISE(ABORT, 'delete blocked'); END"
            )
        )
    await engine.dispose()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(FROZEN_NOW)


@pytest.fixture
def archive_root(tmp_path: Path) -> Path:
    return tmp_path / "archives"


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'logs.db'}"


@pytest_asyncio.fixture
async def hot_store(db_url: str, clock: FrozenClock) -> AsyncGenerator[HotStore, None]:
    engine = create_engine_for(db_url)
    await init_db(engine)
    yield HotStore(engine, clock=clock)
    await engine.dispose()


@pytest.fixture
def writer(hot_store: HotStore, archive_root: Path, clock: FrozenClock) -> ArchiveWriter:
    return ArchiveWriter(hot_store, str(archive_root), clock=clock)


@pytest.fixture
def reader(archive_root: Path, clock: FrozenClock) -> ArchiveReader:
    return ArchiveReader(str(archive_root), clock=clock)


@pytest.fixture
def settings(db_url: str, archive_root: Path) -> Settings:
    return Settings(
        _env_file=None,
        ENV="test",
        LOG_LEVEL="WARNING",
        DATABASE_URL=db_url,
        ARCHIVE_DIR=str(archive_root),
        ADMIN_API_KEY="admin-secret",
        SCHEDULER_ENABLED=False,
    )
