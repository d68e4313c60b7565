"""Admin dashboard routes"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.api.dependencies import get_admin_service, get_queue_manager
from sitewatch.core.auth import require_admin
from sitewatch.core.database import get_db
from sitewatch.queues.queue_manager import QueueManager
from sitewatch.services.admin_service import AdminService
from sitewatch.utils.responses import paginated, validate_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/system-health")
async def get_system_health(
    db: AsyncSession = Depends(get_db),
    service: AdminService = Depends(get_admin_service),
    queue: QueueManager = Depends(get_queue_manager),
):
    """Database counters, recent failures and queue depth"""
    try:
        queue_depth = await queue.queue_depth()
    except Exception as e:
        logger.warning(f"Queue depth unavailable: {e}")
        queue_depth = None
    return await service.get_system_health(db, queue_depth=queue_depth)


@router.get("/audit-metrics")
async def get_audit_metrics(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    service: AdminService = Depends(get_admin_service),
):
    return await service.get_audit_metrics(db, days=days)


@router.get("/recent-activity")
async def get_recent_activity(
    limit: int = Query(50, ge=1, le=100),
    event_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    service: AdminService = Depends(get_admin_service),
):
    return await service.get_recent_activity(db, limit=limit, event_type=event_type)


@router.get("/clients")
async def get_clients(
    search: Optional[str] = None,
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    service: AdminService = Depends(get_admin_service),
):
    validate_pagination(page, limit)
    clients, total = await service.get_clients(db, search=search, page=page, limit=limit)
    return paginated(clients, total, page, limit)
