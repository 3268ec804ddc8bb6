# logplatform/schemas/logs.py
"""
Schemas for /api/logs.

Request bodies are validated by `logplatform.services.validation` (so error
texts match the ingestion contract); these models describe responses only.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from logplatform.core.entries import LogEntry


class LogItem(BaseModel):
    """A single stored log entry, from either tier."""
    id: str = Field(..., description="Entry UUID")
    timestamp: str = Field(..., description="ISO8601 UTC timestamp of the event")
    level: str = Field(..., description="info|warn|error|debug")
    service: str = Field(..., description="Owning service name")
    message: str = Field(..., description="Log message")
    context: Any = Field(default=None, description="Arbitrary structured context")
    correlation_id: Optional[str] = Field(default=None, description="Cross-entry grouping token")
    created_at: Optional[str] = Field(default=None, description="ISO8601 UTC storage insertion time")

    @classmethod
    def from_entry(cls, entry: LogEntry) -> "LogItem":
        return cls(**entry.to_dict())


class BatchCreatedResponse(BaseModel):
    created: int = Field(..., ge=0, description="Number of entries stored")
    logs: List[LogItem] = Field(default_factory=list)


class SourceCounts(BaseModel):
    """Raw per-tier counts before deduplication."""
    database: int = Field(..., ge=0)
    archived: int = Field(..., ge=0)


class LogsResponse(BaseModel):
    """
    Response for browsing logs across both tiers.

    Example:
    {
      "logs": [...],
      "total": 2,
      "limit": 100,
      "offset": 0,
      "sources": {"database": 0, "archived": 2}
    }
    """
    logs: List[LogItem] = Field(default_factory=list, description="Page of entries, newest first")
    total: int = Field(..., ge=0, description="Deduplicated matches before pagination")
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    sources: SourceCounts
