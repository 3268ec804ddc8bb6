# logplatform/api/routes/services.py
"""
/api/services (admin only)

Create tenants and list them. The generated API key is returned exactly once,
at creation.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from logplatform.api.deps import get_platform, require_admin
from logplatform.core.errors import EntryValidationError
from logplatform.schemas.services import ServiceCreated, ServiceItem, ServicesResponse
from logplatform.services.archive_layout import is_safe_service_name
from logplatform.services.platform import Platform
from logplatform.utils.timeutil import iso_z

router = APIRouter(prefix="/api/services", dependencies=[Depends(require_admin)])


@router.post("", status_code=201, response_model=ServiceCreated)
async def create_service(
    payload: Dict[str, Any] = Body(...),
    platform: Platform = Depends(get_platform),
):
    name = payload.get("name")
    if not name or not isinstance(name, str):
        raise EntryValidationError("Service name is required")

    name = name.strip()
    if not is_safe_service_name(name):
        raise EntryValidationError(
            "Service name must start with a letter or digit and contain only letters, digits, '.', '_' or '-'"
        )

    service = await platform.registry.create_service(name)
    return ServiceCreated(id=service.id, name=service.name, api_key=service.api_key)


@router.get("", response_model=ServicesResponse)
async def list_services(platform: Platform = Depends(get_platform)):
    services = await platform.registry.list_services()
    return ServicesResponse(
        services=[
            ServiceItem(id=s.id, name=s.name, created_at=iso_z(s.created_at))
            for s in services
        ]
    )
