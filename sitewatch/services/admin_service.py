"""Admin dashboard queries"""
import logging
import os
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.db.enums import AuditCategory, AuditStatus, AuditTrigger
from sitewatch.db.models import Audit, SystemEvent, User, Website
from sitewatch.decision.event_logger import EventLogger
from sitewatch.utils.dates import start_of_day, utcnow

logger = logging.getLogger(__name__)


async def _count(db: AsyncSession, model, *conditions) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0


def _event_to_dict(event: SystemEvent) -> Dict[str, Any]:
    return {
        "id": event.id,
        "event_type": event.event_type,
        "entity_type": event.entity_type,
        "entity_id": str(event.entity_id) if event.entity_id else None,
        "payload": event.payload or {},
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


class AdminService:
    """Read-only aggregates for administrators"""

    async def get_system_health(self, db: AsyncSession, queue_depth: Optional[int] = None,
                                now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        one_day_ago = now - timedelta(days=1)
        started = time.perf_counter()

        database = {
            "user_count": await _count(db, User),
            "website_count": await _count(db, Website),
            "audit_count": await _count(db, Audit),
            "recent_audits_count": await _count(db, Audit, Audit.created_at >= one_day_ago),
            "recent_failed_audits_count": await _count(
                db, Audit, Audit.created_at >= one_day_ago, Audit.status == AuditStatus.FAILED.value
            ),
            "monitored_websites": await _count(db, Website, Website.monitoring_enabled == True),  # noqa: E712
        }

        result = await db.execute(
            select(Audit, Website, User)
            .join(Website, Audit.website_id == Website.id)
            .join(User, Website.user_id == User.id)
            .where(Audit.status == AuditStatus.FAILED.value, Audit.created_at >= one_day_ago)
            .order_by(Audit.created_at.desc())
            .limit(10)
        )
        database["recent_errors"] = [
            {
                "audit_id": str(audit.id),
                "message": audit.error_message,
                "created_at": audit.created_at.isoformat() if audit.created_at else None,
                "website_url": website.url,
                "client_name": user.name,
                "client_email": user.email,
            }
            for audit, website, user in result.all()
        ]
        db_query_ms = round((time.perf_counter() - started) * 1000, 2)

        system: Dict[str, Any] = {"pid": os.getpid()}
        if hasattr(os, "getloadavg"):
            load1, load5, load15 = os.getloadavg()
            system["load_avg"] = {"1m": load1, "5m": load5, "15m": load15}

        status = "healthy"
        if database["recent_audits_count"] and \
                database["recent_failed_audits_count"] / database["recent_audits_count"] > 0.5:
            status = "degraded"

        return {
            "status": status,
            "timestamp": now.isoformat(),
            "db_query_time_ms": db_query_ms,
            "system": system,
            "database": database,
            "queue": {"pending_jobs": queue_depth},
        }

    async def get_audit_metrics(self, db: AsyncSession, days: int = 30,
                                now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        since = start_of_day(now) - timedelta(days=days - 1)
        in_range = Audit.created_at >= since

        status_rows = await db.execute(
            select(Audit.status, func.count()).where(in_range).group_by(Audit.status)
        )
        status_counts = {status.value: 0 for status in AuditStatus}
        status_counts.update({status: count for status, count in status_rows.all()})

        trigger_rows = await db.execute(
            select(Audit.trigger, func.count()).where(in_range).group_by(Audit.trigger)
        )
        trigger_counts = {trigger.value: 0 for trigger in AuditTrigger}
        trigger_counts.update({trigger: count for trigger, count in trigger_rows.all()})

        completed = [in_range, Audit.status == AuditStatus.COMPLETED.value]
        averages_row = (await db.execute(
            select(
                func.avg(Audit.overall_score),
                *[func.avg(getattr(Audit, f"{category.value}_score")) for category in AuditCategory],
            ).where(*completed)
        )).one()
        averages = {"overall": _round(averages_row[0])}
        for index, category in enumerate(AuditCategory, start=1):
            averages[category.value] = _round(averages_row[index])

        day_column = func.date(Audit.created_at)
        day_rows = await db.execute(
            select(day_column, func.count()).where(in_range).group_by(day_column).order_by(day_column)
        )
        per_day_counts = {str(day): count for day, count in day_rows.all()}
        audits_per_day = []
        for offset in range(days):
            day = (since + timedelta(days=offset)).date().isoformat()
            audits_per_day.append({"date": day, "count": per_day_counts.get(day, 0)})

        return {
            "range_days": days,
            "total_audits": sum(status_counts.values()),
            "status_counts": status_counts,
            "trigger_counts": trigger_counts,
            "average_scores": averages,
            "audits_per_day": audits_per_day,
        }

    async def get_recent_activity(self, db: AsyncSession, limit: int = 50,
                                  event_type: Optional[str] = None) -> Dict[str, Any]:
        events = await EventLogger.get_recent_events(db, limit=limit, event_type=event_type)
        return {
            "events": [_event_to_dict(event) for event in events],
            "count": len(events),
        }

    async def get_clients(self, db: AsyncSession, search: Optional[str] = None,
                          page: int = 1, limit: int = 20):
        """Users with their website and audit counts"""
        website_counts = (
            select(Website.user_id, func.count(Website.id).label("websites"))
            .group_by(Website.user_id)
            .subquery()
        )
        audit_counts = (
            select(
                Audit.user_id,
                func.count(Audit.id).label("audits"),
                func.max(Audit.created_at).label("last_audit_at"),
            )
            .group_by(Audit.user_id)
            .subquery()
        )
        conditions = []
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))

        total = await _count(db, User, *conditions)
        result = await db.execute(
            select(
                User,
                func.coalesce(website_counts.c.websites, 0),
                func.coalesce(audit_counts.c.audits, 0),
                audit_counts.c.last_audit_at,
            )
            .outerjoin(website_counts, website_counts.c.user_id == User.id)
            .outerjoin(audit_counts, audit_counts.c.user_id == User.id)
            .where(*conditions)
            .order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        clients: List[Dict[str, Any]] = []
        for user, websites, audits, last_audit_at in result.all():
            clients.append({
                "id": str(user.id),
                "name": user.name or "Unnamed Client",
                "email": user.email,
                "role": user.role,
                "websites": websites,
                "audits": audits,
                "last_audit_at": _iso(last_audit_at),
                "created_at": _iso(user.created_at),
            })
        return clients, total


def _round(value) -> Optional[float]:
    return round(float(value), 1) if value is not None else None


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)
