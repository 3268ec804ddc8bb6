# logplatform/db/session.py
"""
Database engine and initialization utilities.

We use:
- SQLAlchemy async engine + AsyncSession
- SQLite via aiosqlite by default; PostgreSQL via asyncpg when DATABASE_URL says so

The backend is chosen purely by the URL. Anything dialect-specific lives in
`_DIALECT_SETUP`, keyed by backend name, so the hot store itself never
branches on the database type.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Dict

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from logplatform.db.models import Base

logger = logging.getLogger(__name__)


def _setup_sqlite(engine: AsyncEngine) -> None:
    """
    Pragmas rationale:
    - journal_mode=WAL: readers don't block the archive job's deletes
    - synchronous=NORMAL: good balance for durability vs speed
    - busy_timeout: concurrent ingestion waits instead of failing with "database is locked"
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


_DIALECT_SETUP: Dict[str, Callable[[AsyncEngine], None]] = {
    "sqlite": _setup_sqlite,
}


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """
    Build the async engine for a configured DATABASE_URL.

    Keep echo=False to avoid logging SQL in normal use.
    """
    backend = make_url(url).get_backend_name()
    kwargs = {}
    if backend == "postgresql":
        kwargs["pool_pre_ping"] = True

    engine = create_async_engine(url, echo=echo, future=True, **kwargs)

    setup = _DIALECT_SETUP.get(backend)
    if setup is not None:
        setup(engine)

    logger.info("Hot store backend: %s", backend)
    return engine


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,  # rows are converted to LogEntry after commit
        class_=AsyncSession,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create tables and indexes if they don't exist."""
    database = engine.url.database
    if engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(database)), exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
