# logplatform/schemas/services.py
"""Schemas for /api/services."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ServiceCreated(BaseModel):
    """Returned once at creation; the only time the API key is shown."""
    id: str
    name: str
    api_key: str


class ServiceItem(BaseModel):
    id: str
    name: str
    created_at: str = Field(..., description="ISO8601 UTC creation time")


class ServicesResponse(BaseModel):
    services: List[ServiceItem] = Field(default_factory=list)
