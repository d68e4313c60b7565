"""Database connection and session management"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse
from typing import Any, Dict, Tuple
import ssl
import logging
from sitewatch.core.config import settings

logger = logging.getLogger(__name__)


def mask_url(url: str) -> str:
    """Mask sensitive parts of database URL for logging"""
    try:
        parsed = urlparse(url)
        if parsed.password:
            netloc = parsed.netloc.replace(f":{parsed.password}@", ":***@", 1)
            return urlunparse(parsed._replace(netloc=netloc))
        return url
    except ValueError:
        if len(url) > 20:
            return f"{url[:10]}...{url[-10:]}"
        return "***"


def _unverified_ssl_context() -> ssl.SSLContext:
    # Managed Postgres providers commonly serve certificates we cannot verify
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    return ssl_context


def prepare_database_url(url: str) -> Tuple[str, Dict[str, Any]]:
    """
    Normalize a Postgres URL for asyncpg.

    asyncpg does not understand ``sslmode`` in the URL, so it is stripped and
    translated into an ``ssl`` connect argument. Plain ``postgresql://`` URLs
    are rewritten to use the asyncpg driver. Other URLs (e.g. SQLite for
    tests) pass through untouched.

    Returns:
        Tuple of (url, connect_args)
    """
    connect_args: Dict[str, Any] = {}
    if not (url.startswith("postgresql://") or url.startswith("postgresql+asyncpg://")):
        return url, connect_args

    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)

    if "sslmode" in query_params:
        sslmode = query_params.pop("sslmode")[0]
        if sslmode in ("verify-ca", "verify-full"):
            connect_args["ssl"] = ssl.create_default_context()
        elif sslmode == "disable":
            connect_args["ssl"] = False
        else:
            connect_args["ssl"] = _unverified_ssl_context()

    url = urlunparse(parsed._replace(query=urlencode(query_params, doseq=True)))
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    if connect_args.get("ssl"):
        connect_args["timeout"] = 10

    return url, connect_args


database_url, connect_args = prepare_database_url(settings.database_url)
logger.info(f"DATABASE_URL (after processing): {mask_url(database_url)}")

engine_kwargs: Dict[str, Any] = {
    "echo": settings.environment == "development",
    "future": True,
    "connect_args": connect_args,
}
if not database_url.startswith("sqlite"):
    engine_kwargs.update(
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
    )

engine = create_async_engine(database_url, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncSession:
    """Dependency for getting database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
