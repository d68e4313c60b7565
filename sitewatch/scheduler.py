"""In-process scheduler for single-node deployments without an external cron"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from sitewatch.core.config import settings
from sitewatch.core.database import AsyncSessionLocal
from sitewatch.services.monitoring_service import MonitoringService
from sitewatch.services.scheduled_audit_service import ScheduledAuditService

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone="UTC")


async def job_run_schedules():
    async with AsyncSessionLocal() as db:
        summary = await ScheduledAuditService().process_due_schedules(db)
    logger.info(f"Scheduler tick: {summary.processed} schedules processed")


async def job_run_monitoring():
    async with AsyncSessionLocal() as db:
        checked = await MonitoringService().run_scheduled_checks(db)
    logger.info(f"Scheduler tick: {checked} websites monitored")


def start_scheduler(interval_minutes: int = None):
    interval = interval_minutes or settings.scheduler_interval_minutes
    # One instance per job so a slow tick is skipped instead of piling up
    scheduler.add_job(job_run_schedules, "interval", minutes=interval, id="scheduled_audits",
                      replace_existing=True, max_instances=1, coalesce=True)
    scheduler.add_job(job_run_monitoring, "interval", minutes=interval, id="monitoring_checks",
                      replace_existing=True, max_instances=1, coalesce=True)
    scheduler.start()
    logger.info(f"In-process scheduler started (every {interval} minutes)")


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
