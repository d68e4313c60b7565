"""Webhook configuration routes"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.api.dependencies import get_webhook_service
from sitewatch.core.auth import CurrentUser, get_current_user
from sitewatch.core.database import get_db
from sitewatch.schemas.webhooks import WebhookCreate, WebhookDeliveryResponse, WebhookResponse
from sitewatch.services.webhook_service import WebhookService
from sitewatch.utils.responses import format_success_response

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.get("")
async def list_webhooks(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    configs = await service.list_configs(db, current_user)
    return {"webhooks": [WebhookResponse.from_config(config) for config in configs]}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=WebhookResponse)
async def create_webhook(
    request: WebhookCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    config = await service.create_config(
        db, current_user, url=request.url, events=request.events,
        secret=request.secret, active=request.active,
    )
    return WebhookResponse.from_config(config)


@router.delete("/{webhook_id}")
async def delete_webhook(
    webhook_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    await service.delete_config(db, webhook_id, current_user)
    return format_success_response("Webhook deleted", data={"webhook_id": str(webhook_id)})


@router.get("/{webhook_id}/deliveries")
async def list_deliveries(
    webhook_id: UUID,
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    deliveries = await service.list_deliveries(db, webhook_id, current_user, limit=limit)
    return {"deliveries": [WebhookDeliveryResponse.model_validate(d) for d in deliveries]}
