"""API route modules"""
from sitewatch.api.routes.websites import router as websites_router
from sitewatch.api.routes.audits import router as audits_router
from sitewatch.api.routes.schedules import router as schedules_router
from sitewatch.api.routes.monitoring import router as monitoring_router
from sitewatch.api.routes.notifications import router as notifications_router
from sitewatch.api.routes.webhooks import router as webhooks_router
from sitewatch.api.routes.cron import router as cron_router
from sitewatch.api.routes.admin import router as admin_router

__all__ = [
    "websites_router", "audits_router", "schedules_router", "monitoring_router",
    "notifications_router", "webhooks_router", "cron_router", "admin_router",
]
