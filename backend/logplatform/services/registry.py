# logplatform/services/registry.py
"""Service (tenant) registry and API-key lookup."""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from logplatform.core.errors import DuplicateServiceNameError, StorageError
from logplatform.db.models import ServiceRecord
from logplatform.db.session import make_sessionmaker
from logplatform.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


def generate_api_key() -> str:
    return f"sk_{secrets.token_hex(32)}"


@dataclass(frozen=True)
class Service:
    id: str
    name: str
    api_key: str
    created_at: datetime


def _to_service(row: ServiceRecord) -> Service:
    return Service(id=row.id, name=row.name, api_key=row.api_key, created_at=row.created_at)


class ServiceRegistry:
    def __init__(self, engine: AsyncEngine, clock: Callable[[], datetime] = utcnow) -> None:
        self._sessions = make_sessionmaker(engine)
        self._clock = clock

    async def create_service(self, name: str) -> Service:
        record = ServiceRecord(
            id=str(uuid.uuid4()),
            name=name,
            api_key=generate_api_key(),
            created_at=self._clock(),
        )
        try:
            async with self._sessions() as session:
                async with session.begin():
                    session.add(record)
        except IntegrityError:
            raise DuplicateServiceNameError(name)
        except SQLAlchemyError as exc:
            logger.exception("Failed to create service %s", name)
            raise StorageError("Failed to create service") from exc

        logger.info("Created service %s (%s)", name, record.id)
        return _to_service(record)

    async def lookup_service_by_key(self, api_key: str) -> Optional[Service]:
        if not api_key:
            return None
        try:
            async with self._sessions() as session:
                row = (
                    await session.execute(select(ServiceRecord).where(ServiceRecord.api_key == api_key))
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to look up API key") from exc
        return _to_service(row) if row is not None else None

    async def list_services(self) -> List[Service]:
        try:
            async with self._sessions() as session:
                rows = (
                    await session.execute(select(ServiceRecord).order_by(ServiceRecord.created_at.desc()))
                ).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to query services") from exc
        return [_to_service(r) for r in rows]
