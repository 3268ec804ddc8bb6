# logplatform/core/entries.py
"""
In-memory log entry shared by both storage tiers.

A `LogEntry` is what the hot store returns, what the archive writer serializes
(one `to_dict()` per JSONL line) and what the archive reader rebuilds with
`from_dict()`. Keeping a single shape means a hot row and its archived copy
compare equal, which is what the query merger relies on when deduplicating.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import orjson

from logplatform.utils.timeutil import iso_z, parse_timestamp

logger = logging.getLogger(__name__)

LEVELS = ("info", "warn", "error", "debug")


def encode_context(context: Any) -> Optional[str]:
    """Serialize an arbitrary context value to the opaque text column."""
    if context is None:
        return None
    return orjson.dumps(context).decode("utf-8")


def decode_context(raw: Optional[str]) -> Any:
    """Stored context that no longer parses is nulled out, never raised."""
    if raw is None or raw == "":
        return None
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        logger.warning("Discarding unparsable stored context (%d chars)", len(raw))
        return None


@dataclass(frozen=True)
class LogEntry:
    id: str
    timestamp: datetime  # naive UTC
    level: str
    service: str
    message: str
    context: Any = None
    correlation_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": iso_z(self.timestamp),
            "level": self.level,
            "service": self.service,
            "message": self.message,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "created_at": iso_z(self.created_at) if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LogEntry":
        """
        Rebuild an entry from a decoded archive line.

        Raises KeyError / ValueError / TypeError on malformed input; callers
        decide whether that is fatal.
        """
        if not isinstance(data, Mapping):
            raise TypeError("archive line is not a JSON object")

        context = data.get("context")
        if isinstance(context, str):
            context = decode_context(context)

        created_raw = data.get("created_at")
        return cls(
            id=str(data["id"]),
            timestamp=parse_timestamp(data["timestamp"]),
            level=str(data["level"]),
            service=str(data["service"]),
            message=str(data["message"]),
            context=context,
            correlation_id=data.get("correlation_id"),
            created_at=parse_timestamp(created_raw) if created_raw else None,
        )


@dataclass(frozen=True)
class LogFilter:
    """Predicates shared by the hot store query and the archive reader."""

    service: str
    level: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    correlation_id: Optional[str] = None

    def matches(self, entry: LogEntry) -> bool:
        if entry.service != self.service:
            return False
        if self.start_time is not None and entry.timestamp < self.start_time:
            return False
        if self.end_time is not None and entry.timestamp > self.end_time:
            return False
        if self.level and entry.level != self.level:
            return False
        if self.correlation_id and entry.correlation_id != self.correlation_id:
            return False
        return True
