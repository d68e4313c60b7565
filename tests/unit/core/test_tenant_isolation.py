"""Unit tests for tenant isolation"""
import pytest
from uuid import uuid4

from fastapi import HTTPException
from sqlalchemy import select

from sitewatch.core.auth import CurrentUser
from sitewatch.core.tenant_isolation import (
    can_access,
    ensure_owned,
    get_owned_website,
    scope_to_user,
)
from sitewatch.db.enums import UserRole
from sitewatch.db.models import Website


class TestTenantIsolation:
    """Tests for ownership checks"""

    def test_can_access(self):
        """Test owners and admins can access, others cannot"""
        owner_id = uuid4()

        assert can_access(CurrentUser(user_id=owner_id), owner_id)
        assert can_access(CurrentUser(user_id=uuid4(), role=UserRole.ADMIN.value), owner_id)
        assert not can_access(CurrentUser(user_id=uuid4()), owner_id)

    def test_ensure_owned_missing_entity(self):
        """Test missing entity is reported as 404"""
        with pytest.raises(HTTPException) as exc_info:
            ensure_owned(None, CurrentUser(user_id=uuid4()), "Audit")
        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Audit not found"

    @pytest.mark.asyncio
    async def test_get_owned_website_hides_other_tenants(self, make_user, make_website, test_db_session):
        """Test another tenant's website looks like it does not exist"""
        owner = await make_user()
        website = await make_website(owner)

        found = await get_owned_website(test_db_session, website.id, CurrentUser(user_id=owner.id))
        assert found.id == website.id

        with pytest.raises(HTTPException) as exc_info:
            await get_owned_website(test_db_session, website.id, CurrentUser(user_id=uuid4()))
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_scope_to_user(self, make_user, make_website, test_db_session):
        """Test list queries only return the caller's rows unless admin"""
        first = await make_user()
        second = await make_user()
        await make_website(first)
        await make_website(second)

        query = scope_to_user(select(Website), Website, CurrentUser(user_id=first.id))
        rows = (await test_db_session.execute(query)).scalars().all()
        assert [row.user_id for row in rows] == [first.id]

        admin = CurrentUser(user_id=uuid4(), role=UserRole.ADMIN.value)
        rows = (await test_db_session.execute(scope_to_user(select(Website), Website, admin))).scalars().all()
        assert len(rows) == 2
