"""Core configuration and utilities"""

# Re-export commonly used modules
from sitewatch.core.config import settings
from sitewatch.core.database import get_db, engine, Base
from sitewatch.core.auth import get_current_user, require_admin, create_access_token, decode_access_token
from sitewatch.core.redis import redis_client

__all__ = [
    "settings",
    "get_db",
    "engine",
    "Base",
    "get_current_user",
    "require_admin",
    "create_access_token",
    "decode_access_token",
    "redis_client",
]
