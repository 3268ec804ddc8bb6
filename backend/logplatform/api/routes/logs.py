# logplatform/api/routes/logs.py
"""
/api/logs

Ingest and browse log entries for the authenticated service.

- POST /api/logs          single entry
- POST /api/logs/batch    all-or-nothing batch
- GET  /api/logs          merged hot + archive query with pagination
- GET  /api/logs/{id}     point lookup in the hot tier

Every read is scoped to the caller's service; there is no way to name
another service in a request.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from logplatform.api.deps import get_current_service, get_platform
from logplatform.core.entries import LogFilter
from logplatform.core.errors import EntryValidationError
from logplatform.schemas.logs import BatchCreatedResponse, LogItem, LogsResponse, SourceCounts
from logplatform.services.platform import Platform
from logplatform.services.registry import Service
from logplatform.services.validation import ERR_LEVEL, build_batch, build_entry, normalize_level
from logplatform.utils.timeutil import parse_timestamp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/logs")


def _parse_time_param(name: str, value: Optional[str]):
    if value is None or value == "":
        return None
    try:
        return parse_timestamp(value)
    except (ValueError, OverflowError):
        raise EntryValidationError(f"Invalid {name} format")


@router.post("", status_code=201, response_model=LogItem)
async def create_log(
    payload: Dict[str, Any] = Body(...),
    service: Service = Depends(get_current_service),
    platform: Platform = Depends(get_platform),
):
    entry = build_entry(payload, service.name, platform.clock())
    stored = await platform.hot_store.insert(entry)
    return LogItem.from_entry(stored)


@router.post("/batch", status_code=201, response_model=BatchCreatedResponse)
async def create_logs_batch(
    payload: Dict[str, Any] = Body(...),
    service: Service = Depends(get_current_service),
    platform: Platform = Depends(get_platform),
):
    """
    Store up to MAX_BATCH_SIZE entries atomically.

    Any invalid entry rejects the whole batch:
      {"error": "...", "errors": [{"index": 1, "error": "..."}], "created": 0}
    """
    logs = payload.get("logs")
    if not isinstance(logs, list):
        raise EntryValidationError("logs must be an array")
    if not logs:
        raise EntryValidationError("logs array cannot be empty")

    max_batch = platform.settings.MAX_BATCH_SIZE
    if len(logs) > max_batch:
        raise EntryValidationError(f"Batch size exceeds maximum of {max_batch}")

    entries = build_batch(logs, service.name, platform.clock())
    stored = await platform.hot_store.insert_batch(entries)
    logger.info("Stored batch of %d logs for %s", len(stored), service.name)

    return BatchCreatedResponse(
        created=len(stored),
        logs=[LogItem.from_entry(e) for e in stored],
    )


@router.get("", response_model=LogsResponse)
async def query_logs(
    level: Optional[str] = Query(default=None, description="Filter by level"),
    start_time: Optional[str] = Query(default=None, description="ISO8601 lower bound (inclusive)"),
    end_time: Optional[str] = Query(default=None, description="ISO8601 upper bound (inclusive)"),
    correlation_id: Optional[str] = Query(default=None, description="Filter by correlation id"),
    limit: int = Query(default=100, ge=1, description="Max results to return"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    service: Service = Depends(get_current_service),
    platform: Platform = Depends(get_platform),
):
    """
    Query the caller's logs across the hot store and the archive.

    Example:
      /api/logs?level=error&start_time=2024-01-15T00:00:00Z&limit=50
    """
    normalized_level = None
    if level:
        normalized_level = normalize_level(level)
        if normalized_level is None:
            raise EntryValidationError(ERR_LEVEL)

    flt = LogFilter(
        service=service.name,
        level=normalized_level,
        start_time=_parse_time_param("start_time", start_time),
        end_time=_parse_time_param("end_time", end_time),
        correlation_id=correlation_id or None,
    )

    result = await platform.query_merger.query_logs(flt, limit=limit, offset=offset)

    return LogsResponse(
        logs=[LogItem.from_entry(e) for e in result.logs],
        total=result.total,
        limit=limit,
        offset=offset,
        sources=SourceCounts(database=result.database_count, archived=result.archived_count),
    )


@router.get("/{log_id}", response_model=LogItem)
async def get_log(
    log_id: str,
    service: Service = Depends(get_current_service),
    platform: Platform = Depends(get_platform),
):
    entry = await platform.hot_store.get_by_id(log_id, service.name)
    if entry is None:
        raise HTTPException(status_code=404, detail="Log not found")
    return LogItem.from_entry(entry)
