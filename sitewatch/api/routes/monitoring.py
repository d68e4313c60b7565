"""Continuous monitoring routes"""
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.api.dependencies import get_monitoring_service
from sitewatch.core.auth import CurrentUser, get_current_user
from sitewatch.core.database import get_db
from sitewatch.core.tenant_isolation import get_owned_website
from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.exceptions import MonitoringError
from sitewatch.schemas.audits import AuditResponse
from sitewatch.schemas.monitoring import (
    AlertResponse,
    AlertsMarkRead,
    MonitoringConfigResponse,
    MonitoringConfigUpdate,
    MonitoringToggle,
)
from sitewatch.services.monitoring_service import MonitoringService
from sitewatch.utils.dates import utcnow
from sitewatch.utils.responses import format_success_response, paginated, validate_pagination

router = APIRouter(prefix="/monitor", tags=["monitoring"])


@router.get("/config")
async def get_monitoring_config(
    website_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: MonitoringService = Depends(get_monitoring_service),
):
    website = await get_owned_website(db, website_id, current_user)
    config = await service.get_config(db, website.id)
    return {
        "website_id": str(website.id),
        "monitoring_enabled": website.monitoring_enabled,
        "config": MonitoringConfigResponse.model_validate(config) if config else None,
        "unread_alerts": await service.count_alerts(db, website.id),
    }


@router.put("/config", response_model=MonitoringConfigResponse)
async def update_monitoring_config(
    request: MonitoringConfigUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: MonitoringService = Depends(get_monitoring_service),
):
    """Create or update the monitoring configuration of a website"""
    website = await get_owned_website(db, request.website_id, current_user)
    return await service.update_config(db, website, **request.model_dump(exclude={"website_id"}))


@router.post("/toggle", response_model=MonitoringConfigResponse)
async def toggle_monitoring(
    request: MonitoringToggle,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: MonitoringService = Depends(get_monitoring_service),
):
    website = await get_owned_website(db, request.website_id, current_user)
    return await service.toggle_monitoring(db, website, request.enabled)


@router.post("/check")
async def run_monitoring_check(
    website_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: MonitoringService = Depends(get_monitoring_service),
):
    """Run a monitoring check for one website now"""
    website = await get_owned_website(db, website_id, current_user)
    config = await service.get_config(db, website.id)
    if config is None:
        raise MonitoringError(ErrorCodeDictionary.MONITORING_001, entity_id=website.id)

    outcome = await service.run_monitoring_check(db, config)
    return {
        "website_id": str(website.id),
        "audit": AuditResponse.model_validate(outcome.audit) if outcome.audit else None,
        "alerts": [AlertResponse.model_validate(alert) for alert in outcome.alerts],
        "next_check_at": outcome.next_check_at,
        "error": outcome.error,
    }


@router.get("/alerts")
async def list_alerts(
    website_id: UUID,
    unread_only: bool = False,
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: MonitoringService = Depends(get_monitoring_service),
):
    validate_pagination(page, limit)
    website = await get_owned_website(db, website_id, current_user)
    alerts, total = await service.list_alerts(
        db, website.id, page=page, limit=limit, unread_only=unread_only
    )
    return paginated(
        [AlertResponse.model_validate(alert) for alert in alerts], total, page, limit,
        unread=await service.count_alerts(db, website.id),
    )


@router.patch("/alerts")
async def mark_alerts_read(
    request: AlertsMarkRead,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: MonitoringService = Depends(get_monitoring_service),
):
    website = await get_owned_website(db, request.website_id, current_user)
    if request.all:
        updated = await service.mark_all_alerts_read(db, website.id)
    else:
        updated = await service.mark_alerts_read(db, website.id, request.alert_ids)
    return format_success_response("Alerts marked as read", updated=updated)


@router.delete("/alerts")
async def delete_alerts(
    website_id: UUID,
    older_than_days: Optional[int] = Query(None, ge=0),
    alert_ids: Optional[List[UUID]] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: MonitoringService = Depends(get_monitoring_service),
):
    """Delete alerts, optionally only those older than N days or with given ids"""
    website = await get_owned_website(db, website_id, current_user)
    older_than = utcnow() - timedelta(days=older_than_days) if older_than_days is not None else None
    deleted = await service.delete_alerts(db, website.id, older_than=older_than, alert_ids=alert_ids)
    return format_success_response("Alerts deleted", deleted=deleted)


@router.get("/history")
async def get_monitoring_history(
    website_id: UUID,
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: MonitoringService = Depends(get_monitoring_service),
):
    validate_pagination(page, limit)
    website = await get_owned_website(db, website_id, current_user)
    audits, total = await service.get_history(db, website.id, page=page, limit=limit)
    return paginated([AuditResponse.model_validate(audit) for audit in audits], total, page, limit)
