"""Main FastAPI application"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.api.exception_handlers import register_exception_handlers
from sitewatch.api.routes import (
    admin_router,
    audits_router,
    cron_router,
    monitoring_router,
    notifications_router,
    schedules_router,
    webhooks_router,
    websites_router,
)
from sitewatch.core.config import settings
from sitewatch.core.database import get_db
from sitewatch.core.redis import redis_client
from sitewatch.queues.queue_manager import queue_manager
from sitewatch.scheduler import shutdown_scheduler, start_scheduler

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    if settings.queue_enabled:
        await redis_client.connect()
        await queue_manager.initialize()
    if settings.scheduler_enabled:
        start_scheduler()

    # Note: In production, use Alembic migrations instead of create_all

    yield

    # Shutdown
    shutdown_scheduler()
    if settings.queue_enabled:
        await queue_manager.close()
        await redis_client.disconnect()


app = FastAPI(
    title="Sitewatch - Website Audit & Monitoring",
    description="Scheduled website audits, continuous monitoring and score alerts",
    version=VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
for router in (
    websites_router,
    audits_router,
    schedules_router,
    monitoring_router,
    notifications_router,
    webhooks_router,
    cron_router,
    admin_router,
):
    app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Sitewatch",
        "version": VERSION,
        "description": "Website audit and monitoring service",
        "status": "operational",
    }


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint"""
    database = "connected"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        database = "unavailable"

    redis_status = "disabled"
    if settings.queue_enabled:
        try:
            client = await redis_client.get_client()
            await client.ping()
            redis_status = "connected"
        except Exception as e:
            logger.error(f"Health check redis error: {e}")
            redis_status = "unavailable"

    healthy = database == "connected" and redis_status != "unavailable"
    return {
        "status": "healthy" if healthy else "degraded",
        "database": database,
        "redis": redis_status,
    }
