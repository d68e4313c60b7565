"""Website management routes"""
import logging
from typing import Optional
from urllib.parse import urlparse
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.core.auth import CurrentUser, get_current_user
from sitewatch.core.database import get_db
from sitewatch.core.tenant_isolation import get_owned_website, scope_to_user
from sitewatch.db.models import Website
from sitewatch.schemas.websites import WebsiteCreate, WebsiteResponse, WebsiteUpdate
from sitewatch.utils.responses import format_success_response, paginated, validate_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/websites", tags=["websites"])


def _normalize_url(url) -> str:
    value = str(url)
    parsed = urlparse(value)
    if not parsed.netloc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid website URL")
    return value


@router.get("")
async def list_websites(
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """List websites owned by the current user (all websites for admins)"""
    validate_pagination(page, limit)
    query = scope_to_user(select(Website), Website, current_user)
    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
    result = await db.execute(
        query.order_by(Website.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    items = [WebsiteResponse.model_validate(website) for website in result.scalars().all()]
    return paginated(items, total, page, limit)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=WebsiteResponse)
async def create_website(
    website_data: WebsiteCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Register a website for the current user.

    The name falls back to the URL's host.
    """
    url = _normalize_url(website_data.url)
    name = (website_data.name or "").strip() or urlparse(url).netloc

    website = Website(user_id=current_user.user_id, name=name, url=url, monitoring_enabled=False)
    db.add(website)
    await db.commit()
    await db.refresh(website)
    logger.info(f"User {current_user.user_id} registered website {website.id} ({url})")
    return website


@router.get("/{website_id}", response_model=WebsiteResponse)
async def get_website(
    website_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return await get_owned_website(db, website_id, current_user)


@router.patch("/{website_id}", response_model=WebsiteResponse)
async def update_website(
    website_id: UUID,
    website_data: WebsiteUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    website = await get_owned_website(db, website_id, current_user)
    if website_data.name is not None:
        website.name = website_data.name.strip()
    if website_data.url is not None:
        website.url = _normalize_url(website_data.url)
    await db.commit()
    await db.refresh(website)
    return website


@router.delete("/{website_id}")
async def delete_website(
    website_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Delete a website together with its audits, schedules and alerts"""
    website = await get_owned_website(db, website_id, current_user)
    await db.delete(website)
    await db.commit()
    logger.info(f"Deleted website {website_id}")
    return format_success_response("Website deleted", data={"website_id": str(website_id)})
