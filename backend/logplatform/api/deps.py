# logplatform/api/deps.py
"""
FastAPI dependencies: platform access and API-key authentication.

Service routes resolve `x-api-key` to a `Service`; every log query is then
scoped to that service's name. Admin routes require the dedicated
ADMIN_API_KEY and fail closed when it is not configured.
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, Header, Request

from logplatform.core.errors import AdminAccessError, AuthError
from logplatform.services.platform import Platform
from logplatform.services.registry import Service


def get_platform(request: Request) -> Platform:
    return request.app.state.platform


async def get_current_service(
    x_api_key: Optional[str] = Header(default=None),
    platform: Platform = Depends(get_platform),
) -> Service:
    if not x_api_key:
        raise AuthError("Missing API key")

    service = await platform.registry.lookup_service_by_key(x_api_key)
    if service is None:
        raise AuthError("Invalid API key")
    return service


async def require_admin(
    x_api_key: Optional[str] = Header(default=None),
    platform: Platform = Depends(get_platform),
) -> None:
    if not x_api_key:
        raise AuthError("Missing API key")

    admin_key = platform.settings.ADMIN_API_KEY
    if admin_key is None:
        raise AdminAccessError("Admin API key is not configured")

    if not hmac.compare_digest(x_api_key.encode("utf-8"), admin_key.encode("utf-8")):
        raise AdminAccessError("Admin access required")
