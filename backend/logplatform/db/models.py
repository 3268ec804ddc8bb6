# logplatform/db/models.py
"""
SQLAlchemy ORM models for the hot store.

Design goals:
- One `logs` table shared by every tenant; service isolation is enforced by
  always filtering on `service`.
- Indexes on the columns the query API filters by (service, level, timestamp,
  correlation_id).
- Plain column types that behave the same on SQLite and PostgreSQL.

Notes:
- Timestamps are stored as naive UTC datetimes (timezone-less) for SQLite simplicity.
  We convert to/from ISO 8601 with a trailing "Z" at the API and archive boundaries.
- `context` is opaque JSON text; it is decoded on read and nulled out if broken.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


class ServiceRecord(Base):
    """
    A tenant allowed to push and read logs.

    Created administratively and never updated; `name` and `api_key` are unique.
    """

    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    api_key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class LogRecord(Base):
    """A hot-tier log entry. Rows are only ever inserted or deleted."""

    __tablename__ = "logs"

    # UUID4, also the dedup key against the archive tier
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=False), index=True, nullable=False)
    level: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    service: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    correlation_id: Mapped[Optional[str]] = mapped_column(String(128), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
