"""Audit schedule routes"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.api.dependencies import get_scheduled_audit_service
from sitewatch.core.auth import CurrentUser, get_current_user
from sitewatch.core.database import get_db
from sitewatch.core.tenant_isolation import get_owned_website
from sitewatch.schemas.audits import AuditResponse
from sitewatch.schemas.schedules import (
    ScheduleCreate,
    ScheduleResponse,
    ScheduleUpdate,
    WebsiteScheduleRequest,
)
from sitewatch.services.scheduled_audit_service import ScheduledAuditService
from sitewatch.utils.responses import format_success_response, paginated, validate_pagination

router = APIRouter(tags=["schedules"])


@router.get("/schedules")
async def list_schedules(
    website_id: Optional[UUID] = None,
    active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    schedules = await service.list_schedules(db, current_user, website_id=website_id, active=active)
    return {
        "schedules": [ScheduleResponse.model_validate(schedule) for schedule in schedules],
        "count": len(schedules),
    }


@router.post("/schedules", status_code=status.HTTP_201_CREATED, response_model=ScheduleResponse)
async def create_schedule(
    request: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    """
    Create a schedule for a website.

    Example:
    {
      "website_id": "...",
      "frequency": "weekly",
      "day_of_week": 0,
      "time_of_day": "03:00",
      "timezone": "Europe/Berlin"
    }
    """
    website = await get_owned_website(db, request.website_id, current_user)
    values = request.model_dump(exclude={"website_id"})
    return await service.create_schedule(db, website, **values)


@router.get("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    return await service.get_schedule(db, schedule_id, current_user)


@router.patch("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: UUID,
    request: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    """Change a schedule; next_run_at is recomputed from the new rule"""
    schedule = await service.get_schedule(db, schedule_id, current_user)
    return await service.update_schedule(db, schedule, **request.model_dump(exclude_unset=True))


@router.delete("/schedules/{schedule_id}")
async def delete_schedule(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    schedule = await service.get_schedule(db, schedule_id, current_user)
    await service.delete_schedule(db, schedule)
    return format_success_response("Schedule deleted", data={"schedule_id": str(schedule_id)})


@router.get("/websites/{website_id}/schedule")
async def get_website_schedule(
    website_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    """The website's recurring schedule and whether it is enabled"""
    website = await get_owned_website(db, website_id, current_user)
    schedule = await service.get_website_schedule(db, website.id)
    return {
        "website_id": str(website.id),
        "enabled": bool(schedule and schedule.is_active),
        "schedule": ScheduleResponse.model_validate(schedule) if schedule else None,
    }


@router.post("/websites/{website_id}/schedule", response_model=ScheduleResponse)
async def enable_website_schedule(
    website_id: UUID,
    request: WebsiteScheduleRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    """Enable (or reconfigure) recurring audits for a website"""
    website = await get_owned_website(db, website_id, current_user)
    values = request.model_dump(exclude={"frequency", "categories"}, exclude_none=True)
    return await service.enable_website_schedule(
        db, website, frequency=request.frequency, categories=request.categories, **values
    )


@router.delete("/websites/{website_id}/schedule")
async def disable_website_schedule(
    website_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    website = await get_owned_website(db, website_id, current_user)
    schedule = await service.disable_website_schedule(db, website)
    return format_success_response(
        "Scheduled audits disabled",
        data={"website_id": str(website.id), "schedule_id": str(schedule.id) if schedule else None},
    )


@router.get("/websites/{website_id}/schedule/history")
async def get_schedule_history(
    website_id: UUID,
    page: int = Query(1),
    limit: int = Query(10),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: ScheduledAuditService = Depends(get_scheduled_audit_service),
):
    """Audits produced by the website's schedules, newest first"""
    validate_pagination(page, limit)
    website = await get_owned_website(db, website_id, current_user)
    audits, total = await service.get_history(db, website.id, page=page, page_size=limit)
    return paginated([AuditResponse.model_validate(audit) for audit in audits], total, page, limit)
