# logplatform/services/hot_store.py
"""
Hot store: the live, mutable, SQL-queryable tier.

Every mutation runs inside one transaction (`session.begin()`), so a batch
insert or a bulk delete either fully lands or fully rolls back. SQLAlchemy
errors are translated into `StorageError` here; nothing above this module
sees driver exceptions.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from logplatform.core.entries import LogEntry, LogFilter, decode_context, encode_context
from logplatform.core.errors import BatchValidationError, DuplicateIdError, StorageError
from logplatform.db.models import LogRecord
from logplatform.db.session import make_sessionmaker, ping
from logplatform.services.validation import check_entry
from logplatform.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

# Keeps each DELETE ... IN (...) under SQLite's bound-parameter limit.
DELETE_CHUNK_SIZE = 500


def _to_record(entry: LogEntry, now: datetime) -> LogRecord:
    return LogRecord(
        id=entry.id,
        timestamp=entry.timestamp,
        level=entry.level,
        service=entry.service,
        message=entry.message,
        context=encode_context(entry.context),
        correlation_id=entry.correlation_id,
        created_at=entry.created_at or now,
    )


def _to_entry(row: LogRecord) -> LogEntry:
    return LogEntry(
        id=row.id,
        timestamp=row.timestamp,
        level=row.level,
        service=row.service,
        message=row.message,
        context=decode_context(row.context),
        correlation_id=row.correlation_id,
        created_at=row.created_at,
    )


class HotStore:
    """
    Async facade over the `logs` table.

    The concrete database (SQLite, PostgreSQL) is whatever engine is passed in;
    see `logplatform.db.session.create_engine_for`.
    """

    def __init__(self, engine: AsyncEngine, clock: Callable[[], datetime] = utcnow) -> None:
        self._engine = engine
        self._sessions = make_sessionmaker(engine)
        self._clock = clock

    async def insert(self, entry: LogEntry) -> LogEntry:
        record = _to_record(entry, self._clock())
        try:
            async with self._sessions() as session:
                async with session.begin():
                    session.add(record)
        except IntegrityError:
            raise DuplicateIdError(entry.id)
        except SQLAlchemyError as exc:
            logger.exception("Insert failed for service=%s", entry.service)
            raise StorageError("Failed to save log") from exc
        return _to_entry(record)

    async def insert_batch(self, entries: Sequence[LogEntry]) -> List[LogEntry]:
        """
        All-or-nothing insert.

        Every entry is checked before anything is written; rows are then added
        in the order given inside a single transaction.
        """
        now = self._clock()
        errors = []
        for index, entry in enumerate(entries):
            problem = check_entry(entry, now)
            if problem:
                errors.append({"index": index, "error": problem})
        if errors:
            raise BatchValidationError(errors)

        records = [_to_record(entry, now) for entry in entries]
        try:
            async with self._sessions() as session:
                async with session.begin():
                    session.add_all(records)
        except SQLAlchemyError as exc:
            logger.exception("Batch insert of %d entries rolled back", len(records))
            raise StorageError("Failed to save logs") from exc
        return [_to_entry(r) for r in records]

    async def query(self, flt: LogFilter) -> List[LogEntry]:
        """All rows matching every provided predicate. Unordered, unbounded."""
        stmt = select(LogRecord).where(LogRecord.service == flt.service)
        if flt.level:
            stmt = stmt.where(LogRecord.level == flt.level)
        if flt.start_time is not None:
            stmt = stmt.where(LogRecord.timestamp >= flt.start_time)
        if flt.end_time is not None:
            stmt = stmt.where(LogRecord.timestamp <= flt.end_time)
        if flt.correlation_id:
            stmt = stmt.where(LogRecord.correlation_id == flt.correlation_id)

        try:
            async with self._sessions() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Hot store query failed for service=%s", flt.service)
            raise StorageError("Failed to query logs") from exc
        return [_to_entry(r) for r in rows]

    async def get_by_id(self, entry_id: str, service: str) -> Optional[LogEntry]:
        stmt = select(LogRecord).where(LogRecord.id == entry_id, LogRecord.service == service)
        try:
            async with self._sessions() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to query log") from exc
        return _to_entry(row) if row is not None else None

    async def delete_by_ids(self, ids: Sequence[str]) -> int:
        """Remove every listed id in one transaction, or none of them."""
        ids = list(ids)
        if not ids:
            return 0

        deleted = 0
        try:
            async with self._sessions() as session:
                async with session.begin():
                    for start in range(0, len(ids), DELETE_CHUNK_SIZE):
                        chunk = ids[start : start + DELETE_CHUNK_SIZE]
                        result = await session.execute(delete(LogRecord).where(LogRecord.id.in_(chunk)))
                        deleted += result.rowcount or 0
        except SQLAlchemyError as exc:
            logger.exception("Delete of %d ids rolled back", len(ids))
            raise StorageError("Failed to delete logs") from exc
        return deleted

    async def list_distinct_services(self) -> List[str]:
        try:
            async with self._sessions() as session:
                rows = (await session.execute(select(LogRecord.service).distinct())).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to list services") from exc
        return sorted(rows)

    async def fetch_archivable(self, service: str, cutoff: datetime, limit: int) -> List[LogEntry]:
        """Oldest-first rows of one service with `timestamp < cutoff`, at most `limit`."""
        stmt = (
            select(LogRecord)
            .where(LogRecord.service == service, LogRecord.timestamp < cutoff)
            .order_by(LogRecord.timestamp.asc())
            .limit(limit)
        )
        try:
            async with self._sessions() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read archivable logs for {service}") from exc
        return [_to_entry(r) for r in rows]

    async def ping(self) -> None:
        try:
            await ping(self._engine)
        except SQLAlchemyError as exc:
            raise StorageError("Database unreachable") from exc
