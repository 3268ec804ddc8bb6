# logplatform/services/validation.py
"""
Ingestion-side validation and normalization.

Turns wire payloads (`{level, message, context?, correlation_id?, timestamp?}`)
into `LogEntry` objects. Validation is pure: nothing here touches storage, so a
rejected batch never has side effects.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

import orjson

from logplatform.core.entries import LEVELS, LogEntry, encode_context
from logplatform.core.errors import BatchValidationError, EntryValidationError
from logplatform.utils.timeutil import parse_timestamp

MAX_PAST = timedelta(days=365)
MAX_FUTURE = timedelta(hours=1)

ERR_REQUIRED = "Level and message are required"
ERR_LEVEL = f"Invalid level. Must be one of: {', '.join(LEVELS)}"
ERR_MESSAGE = "Message must be a non-empty string"
ERR_TS_FORMAT = "Invalid timestamp format"
ERR_TS_BOUNDS = "Timestamp out of reasonable bounds"
ERR_CORRELATION = "correlation_id must be a string"
ERR_NOT_OBJECT = "Log entry must be an object"
ERR_CONTEXT = "Invalid context"


def normalize_level(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    level = raw.strip().lower()
    return level if level in LEVELS else None


def timestamp_in_bounds(ts: datetime, now: datetime) -> bool:
    return now - MAX_PAST <= ts <= now + MAX_FUTURE


def context_is_encodable(context: Any) -> bool:
    """orjson refuses some valid JSON (integers past 64 bits), so try the real encoder."""
    try:
        encode_context(context)
    except orjson.JSONEncodeError:
        return False
    return True


def check_entry(entry: LogEntry, now: datetime) -> Optional[str]:
    """
    Re-check an already-built entry. Returns the error text, or None if valid.

    Used by `HotStore.insert_batch` so the batch guarantee holds even for
    callers that bypass `build_entry`.
    """
    if not entry.id or not entry.service:
        return ERR_REQUIRED
    if not isinstance(entry.message, str) or not entry.message.strip():
        return ERR_MESSAGE
    if entry.level not in LEVELS:
        return ERR_LEVEL
    if not timestamp_in_bounds(entry.timestamp, now):
        return ERR_TS_BOUNDS
    if not context_is_encodable(entry.context):
        return ERR_CONTEXT
    return None


def build_entry(payload: Mapping[str, Any], service: str, now: datetime) -> LogEntry:
    """
    Validate one wire payload and build the entry to store.

    `id` is generated here; `timestamp` defaults to `now` when absent.
    Raises EntryValidationError with a caller-facing message.
    """
    if not isinstance(payload, Mapping):
        raise EntryValidationError(ERR_NOT_OBJECT)

    raw_level = payload.get("level")
    message = payload.get("message")
    if not raw_level or not message:
        raise EntryValidationError(ERR_REQUIRED)
    if not isinstance(message, str) or not message.strip():
        raise EntryValidationError(ERR_MESSAGE)

    level = normalize_level(raw_level)
    if level is None:
        raise EntryValidationError(ERR_LEVEL)

    correlation_id = payload.get("correlation_id")
    if correlation_id is not None and not isinstance(correlation_id, str):
        raise EntryValidationError(ERR_CORRELATION)

    raw_ts = payload.get("timestamp")
    if raw_ts is None:
        timestamp = now
    else:
        try:
            timestamp = parse_timestamp(raw_ts)
        except (ValueError, OverflowError):
            raise EntryValidationError(ERR_TS_FORMAT)
        if not timestamp_in_bounds(timestamp, now):
            raise EntryValidationError(ERR_TS_BOUNDS)

    context = payload.get("context")
    if not context_is_encodable(context):
        raise EntryValidationError(ERR_CONTEXT)

    return LogEntry(
        id=str(uuid.uuid4()),
        timestamp=timestamp,
        level=level,
        service=service,
        message=message,
        context=context,
        correlation_id=correlation_id or None,
        created_at=now,
    )


def build_batch(
    payloads: Sequence[Mapping[str, Any]],
    service: str,
    now: datetime,
) -> List[LogEntry]:
    """
    Validate every payload before returning anything.

    If any entry fails, raises BatchValidationError listing every failing index.
    """
    entries: List[LogEntry] = []
    errors: List[Dict[str, Any]] = []

    for index, payload in enumerate(payloads):
        try:
            entries.append(build_entry(payload, service, now))
        except EntryValidationError as exc:
            errors.append({"index": index, "error": exc.message})

    if errors:
        raise BatchValidationError(errors)
    return entries
