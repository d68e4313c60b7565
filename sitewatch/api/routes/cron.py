"""Cron-triggered batch endpoints"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.api.dependencies import get_monitoring_service, get_scheduled_audit_service
from sitewatch.api.exception_handlers import internal_error_response
from sitewatch.core.auth import CurrentUser, require_admin, verify_cron_secret
from sitewatch.core.database import get_db
from sitewatch.services.monitoring_service import MonitoringService
from sitewatch.services.scheduled_audit_service import ScheduledAuditService
from sitewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


@router.post("/run-scheduled-audits", dependencies=[Depends(verify_cron_secret)])
async def run_scheduled_audits(
    db: AsyncSession = Depends(get_db),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    """
    Run every schedule whose next run is due.

    Called by an external scheduler with the cron secret in the
    Authorization header.
    """
    now = utcnow()
    logger.info("Starting scheduled audit processing")
    try:
        summary = await service.process_due_schedules(db, now)
    except Exception as e:
        return internal_error_response("Failed to process scheduled audits", e)

    return {
        "success": True,
        **summary.to_dict(),
        "timestamp": now.isoformat(),
    }


@router.get("/run-scheduled-audits")
async def get_scheduled_audit_status(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    """Statistics about the scheduled-audit system (admins only)"""
    try:
        return await service.get_stats(db)
    except Exception as e:
        return internal_error_response("Failed to get scheduled audit status", e)


@router.post("/run-monitoring-checks", dependencies=[Depends(verify_cron_secret)])
async def run_monitoring_checks(
    db: AsyncSession = Depends(get_db),
    service: MonitoringService = Depends(get_monitoring_service),
):
    now = utcnow()
    try:
        checked = await service.run_scheduled_checks(db, now)
    except Exception as e:
        return internal_error_response("Failed to run monitoring checks", e)

    return {
        "success": True,
        "message": f"Successfully checked {checked} websites",
        "checked": checked,
        "timestamp": now.isoformat(),
    }
