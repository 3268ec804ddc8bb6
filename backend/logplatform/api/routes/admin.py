# logplatform/api/routes/admin.py
"""
/api/admin (admin only)

Manual triggers for the same jobs the scheduler runs. Both return a count.
Archive runs are serialized inside the writer, so a manual trigger that lands
during a scheduled run waits for it instead of overlapping.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from logplatform.api.deps import get_platform, require_admin
from logplatform.schemas.admin import ArchiveRequest, ArchiveResponse, CleanupResponse
from logplatform.services.platform import Platform

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)])


@router.post("/archive", response_model=ArchiveResponse)
async def archive_logs(
    req: Optional[ArchiveRequest] = Body(default=None),
    platform: Platform = Depends(get_platform),
):
    days_old = req.days_old if req is not None else 1
    count = await platform.archive_writer.archive(days_old)
    return ArchiveResponse(archived=count, message=f"Archived {count} logs")


@router.post("/archive-now", response_model=ArchiveResponse)
async def archive_now(platform: Platform = Depends(get_platform)):
    count = await platform.scheduler.run_archive_now()
    return ArchiveResponse(archived=count, message=f"Archived {count} logs")


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_archives(platform: Platform = Depends(get_platform)):
    count = await platform.sweeper.sweep()
    logger.info("Manual cleanup removed %d archive directories", count)
    return CleanupResponse(deleted=count, message=f"Deleted {count} old archive directories")
