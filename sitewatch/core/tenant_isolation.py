"""Tenant isolation enforcement"""
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.core.auth import CurrentUser
from sitewatch.db.models import Website


def _not_found(name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{name} not found",
    )


def can_access(user: CurrentUser, owner_id: UUID) -> bool:
    """True if ``user`` owns the resource or is an admin"""
    return user.is_admin or owner_id == user.user_id


async def get_owned_website(
    db: AsyncSession,
    website_id: UUID,
    user: CurrentUser,
) -> Website:
    """
    Fetch a website the user may access.

    Websites belonging to other tenants are reported as missing so their
    existence is not revealed.

    Raises:
        HTTPException: 404 if not found or not owned
    """
    website = await db.get(Website, website_id)
    if not website or not can_access(user, website.user_id):
        raise _not_found("Website")
    return website


def ensure_owned(entity, user: CurrentUser, name: str, owner_attr: str = "user_id"):
    """Return ``entity`` if accessible by ``user``, otherwise raise 404"""
    if entity is None or not can_access(user, getattr(entity, owner_attr)):
        raise _not_found(name)
    return entity


def scope_to_user(query: Select, model, user: CurrentUser) -> Select:
    """Restrict a query to rows owned by ``user`` (admins see everything)"""
    if user.is_admin:
        return query
    return query.where(model.user_id == user.user_id)
