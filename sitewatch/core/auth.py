"""Authentication and authorization utilities"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID
import hmac
import logging

from fastapi import Depends, HTTPException, status, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from sitewatch.core.config import settings
from sitewatch.db.enums import UserRole
from sitewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


class AuthError(Exception):
    """Authentication error"""
    pass


@dataclass(frozen=True)
class CurrentUser:
    """Identity extracted from a verified access token"""
    user_id: UUID
    role: str = UserRole.USER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_user_token(user_id: UUID, role: str = UserRole.USER.value,
                      expires_delta: Optional[timedelta] = None) -> str:
    """Create an access token for a user"""
    return create_access_token({"sub": str(user_id), "role": role}, expires_delta)


def decode_access_token(token: str) -> dict:
    """Decode and verify JWT token"""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise AuthError("Invalid authentication credentials")


def _unauthorized(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Get current authenticated user from a JWT bearer token.

    Raises:
        HTTPException: 401 if token is invalid or missing
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_access_token(credentials.credentials)
    except AuthError:
        raise _unauthorized()

    subject = payload.get("sub")
    if subject is None:
        raise _unauthorized()

    try:
        user_id = UUID(str(subject))
    except ValueError:
        raise _unauthorized()

    role = payload.get("role") or UserRole.USER.value
    return CurrentUser(user_id=user_id, role=role)


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Allow only users with the admin role"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return current_user


def cron_secret_matches(authorization: Optional[str]) -> bool:
    """
    Check a cron Authorization header against the configured secret.

    Accepts ``Bearer <secret>`` or the raw secret. Always False when no
    secret is configured.
    """
    expected = settings.cron_secret
    if not expected or not authorization:
        return False

    provided = authorization.strip()
    if provided.lower().startswith("bearer "):
        provided = provided[7:].strip()

    return hmac.compare_digest(provided.encode(), expected.encode())


async def verify_cron_secret(
    authorization: Optional[str] = Header(None),
) -> None:
    """Dependency guarding cron-triggered batch endpoints"""
    if not settings.cron_secret:
        logger.warning("Cron endpoint called but CRON_SECRET is not configured")
    if not cron_secret_matches(authorization):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
