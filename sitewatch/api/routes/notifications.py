"""Notification routes"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.api.dependencies import get_notification_service
from sitewatch.core.auth import CurrentUser, get_current_user
from sitewatch.core.database import get_db
from sitewatch.db.enums import NotificationPriority, NotificationType
from sitewatch.schemas.notifications import (
    NotificationPreferenceResponse,
    NotificationPreferenceUpdate,
    NotificationResponse,
)
from sitewatch.services.notification_service import NotificationService
from sitewatch.utils.responses import format_success_response, paginated, validate_pagination

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    website_id: Optional[UUID] = None,
    read: Optional[bool] = None,
    type: Optional[NotificationType] = None,
    priority: Optional[NotificationPriority] = None,
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """The current user's notifications, newest first, with the unread count"""
    validate_pagination(page, limit)
    notifications, total, unread = await service.list_notifications(
        db, current_user, website_id=website_id, read=read, type=type,
        priority=priority, page=page, limit=limit,
    )
    return paginated(
        [NotificationResponse.model_validate(n) for n in notifications], total, page, limit,
        unread_count=unread,
    )


@router.get("/preferences", response_model=NotificationPreferenceResponse)
async def get_preferences(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.get_thresholds(db, current_user.user_id)


@router.put("/preferences", response_model=NotificationPreferenceResponse)
async def update_preferences(
    request: NotificationPreferenceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.update_preferences(db, current_user, **request.model_dump(exclude_none=True))


@router.post("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    unread = await service.mark_all_read(db, current_user)
    return format_success_response("All notifications marked as read", unread_count=unread)


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    unread = await service.mark_read(db, [notification_id], current_user)
    return format_success_response("Notification marked as read", unread_count=unread)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    if not await service.delete(db, notification_id, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return format_success_response("Notification deleted", data={"notification_id": str(notification_id)})


@router.delete("")
async def delete_all_notifications(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    deleted = await service.delete_all(db, current_user)
    return format_success_response("Notifications deleted", deleted=deleted)
