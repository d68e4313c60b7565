"""Unit tests for authentication utilities"""
import pytest
from datetime import timedelta
from uuid import uuid4

from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from sitewatch.core.auth import (
    AuthError,
    CurrentUser,
    create_access_token,
    create_user_token,
    cron_secret_matches,
    decode_access_token,
    get_current_user,
    require_admin,
)
from sitewatch.db.enums import UserRole


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestTokenGeneration:
    """Tests for JWT token generation"""

    def test_create_access_token(self):
        """Test creating access token"""
        token = create_access_token({"sub": "user-123"})

        assert isinstance(token, str)
        assert len(token) > 0

    def test_create_access_token_with_expiration(self):
        """Test creating token with custom expiration"""
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(minutes=60))

        payload = decode_access_token(token)
        assert "exp" in payload
        assert payload["sub"] == "user-123"

    def test_create_user_token_carries_role(self):
        """Test user token includes subject and role"""
        user_id = uuid4()
        payload = decode_access_token(create_user_token(user_id, UserRole.ADMIN.value))

        assert payload["sub"] == str(user_id)
        assert payload["role"] == "admin"

    def test_decode_access_token_invalid(self):
        """Test decoding invalid token raises AuthError"""
        with pytest.raises(AuthError):
            decode_access_token("invalid.token.here")

    def test_decode_expired_token(self):
        """Test expired token is rejected"""
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(minutes=-5))

        with pytest.raises(AuthError):
            decode_access_token(token)


class TestCurrentUser:
    """Tests for the current-user dependencies"""

    @pytest.mark.asyncio
    async def test_get_current_user_from_token(self):
        """Test a valid token resolves to the user"""
        user_id = uuid4()
        user = await get_current_user(_credentials(create_user_token(user_id)))

        assert user.user_id == user_id
        assert user.role == UserRole.USER.value
        assert not user.is_admin

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        """Test missing bearer token returns 401"""
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_non_uuid_subject(self):
        """Test subject that is not a UUID returns 401"""
        token = create_access_token({"sub": "not-a-uuid"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_credentials(token))
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_require_admin(self):
        """Test admin dependency rejects regular users"""
        admin = CurrentUser(user_id=uuid4(), role=UserRole.ADMIN.value)
        assert await require_admin(admin) is admin

        with pytest.raises(HTTPException) as exc_info:
            await require_admin(CurrentUser(user_id=uuid4()))
        assert exc_info.value.status_code == 403


class TestCronSecret:
    """Tests for cron secret verification"""

    def test_bearer_secret(self):
        assert cron_secret_matches("Bearer test-cron-secret")

    def test_raw_secret(self):
        assert cron_secret_matches("test-cron-secret")

    def test_wrong_or_missing_secret(self):
        """Test wrong and missing headers are rejected"""
        assert not cron_secret_matches("Bearer nope")
        assert not cron_secret_matches(None)
        assert not cron_secret_matches("")
