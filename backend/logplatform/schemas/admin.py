# logplatform/schemas/admin.py
"""Schemas for /api/admin maintenance triggers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ArchiveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    days_old: int = Field(default=1, ge=0, le=3650, alias="daysOld", description="Archive entries older than this many days")


class ArchiveResponse(BaseModel):
    success: bool = True
    archived: int = Field(..., ge=0)
    message: str


class CleanupResponse(BaseModel):
    success: bool = True
    deleted: int = Field(..., ge=0)
    message: str
