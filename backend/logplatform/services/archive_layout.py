# logplatform/services/archive_layout.py
"""
On-disk layout and line codec of the cold archive.

    {archive_root}/{YYYY-MM-DD}/{service}.jsonl

One directory per UTC calendar date, one newline-delimited JSON file per
service inside it. Files are UTF-8 and only ever appended to; a whole date
directory is the unit of retention.
"""

from __future__ import annotations

import os
import re
from datetime import date
from typing import List, Optional

import orjson

from logplatform.core.entries import LogEntry
from logplatform.core.errors import ArchiveReadError

PARTITION_SUFFIX = ".jsonl"

_DATE_DIR = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SERVICE_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$"
_SERVICE_NAME = re.compile(SERVICE_NAME_PATTERN)


def is_safe_service_name(service: str) -> bool:
    """Service names become file names, so they must not be able to escape a date directory."""
    return bool(_SERVICE_NAME.match(service or "")) and ".." not in service


def partition_dir(root: str, day: date) -> str:
    return os.path.join(root, day.isoformat())


def partition_path(root: str, day: date, service: str) -> str:
    if not is_safe_service_name(service):
        raise ValueError(f"service name {service!r} cannot be used as an archive partition")
    return os.path.join(partition_dir(root, day), f"{service}{PARTITION_SUFFIX}")


def parse_partition_date(name: str) -> Optional[date]:
    if not _DATE_DIR.match(name):
        return None
    try:
        return date.fromisoformat(name)
    except ValueError:
        return None


def list_partition_dates(root: str) -> List[date]:
    """
    Dates that have a directory under `root`, ascending. Blocking; run in a thread.

    Non-date entries are ignored. A missing root means an empty archive.
    """
    try:
        entries = list(os.scandir(root))
    except FileNotFoundError:
        return []

    days = []
    for entry in entries:
        if not entry.is_dir():
            continue
        day = parse_partition_date(entry.name)
        if day is not None:
            days.append(day)
    return sorted(days)


def encode_line(entry: LogEntry) -> bytes:
    return orjson.dumps(entry.to_dict()) + b"\n"


def decode_line(line: str) -> LogEntry:
    try:
        return LogEntry.from_dict(orjson.loads(line))
    except orjson.JSONDecodeError as exc:
        raise ArchiveReadError(f"invalid JSON: {exc}") from exc
    except (KeyError, ValueError, TypeError, OverflowError) as exc:
        raise ArchiveReadError(f"malformed entry: {exc!r}") from exc
