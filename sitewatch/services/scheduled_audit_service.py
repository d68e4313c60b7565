"""
Scheduled Audit Service - recurring and one-time audits.

A schedule is due when ``next_run_at <= now``. Running it creates a
SCHEDULED audit, runs it, sends notifications and then advances
``next_run_at`` by the schedule's recurrence rule.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.core.auth import CurrentUser
from sitewatch.core.config import settings
from sitewatch.core.tenant_isolation import ensure_owned, scope_to_user
from sitewatch.db.enums import AuditStatus, AuditTrigger, ScheduleFrequency
from sitewatch.db.models import Audit, AuditSchedule, Website
from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.decision.event_logger import EventLogger
from sitewatch.exceptions import ScheduleValidationError, SitewatchError
from sitewatch.scheduling.recurrence import (
    ScheduleRule,
    advance_past,
    compute_initial_run,
    validate_rule,
)
from sitewatch.services.audit_service import AuditService, normalize_categories
from sitewatch.services.notification_service import NotificationService
from sitewatch.utils.dates import start_of_day, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = (
    "frequency", "categories", "time_of_day", "timezone",
    "day_of_week", "day_of_month", "scheduled_at", "is_active",
)


@dataclass
class ScheduleRunResult:
    schedule_id: UUID
    audit_id: Optional[UUID] = None
    success: bool = False
    error: Optional[str] = None
    next_run_at: Optional[datetime] = None


@dataclass
class ScheduleRunSummary:
    """Outcome of one batch of due schedules"""
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    next_scheduled: Optional[datetime] = None
    results: List[ScheduleRunResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "next_scheduled": self.next_scheduled.isoformat() if self.next_scheduled else None,
        }


class ScheduledAuditService:
    """Service for audit schedules and their execution"""

    def __init__(
        self,
        audit_service: Optional[AuditService] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        self.audit_service = audit_service or AuditService()
        self.notification_service = notification_service or NotificationService()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _prepare(self, values: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        """Normalize and validate schedule fields, returning the cleaned dict"""
        values = {key: value for key, value in values.items() if key in SCHEDULE_FIELDS}
        frequency = values.get("frequency")
        if frequency is None:
            raise ScheduleValidationError(ErrorCodeDictionary.SCHEDULE_006)
        values["frequency"] = ScheduleFrequency(frequency).value
        values["time_of_day"] = values.get("time_of_day") or settings.default_time_of_day
        values["timezone"] = values.get("timezone") or settings.default_timezone
        values["categories"] = normalize_categories(values.get("categories"))
        values["scheduled_at"] = to_naive_utc(values.get("scheduled_at"))

        if values["frequency"] == ScheduleFrequency.ONE_TIME.value:
            if values["scheduled_at"] is None:
                raise ScheduleValidationError(ErrorCodeDictionary.SCHEDULE_005)
        else:
            values["scheduled_at"] = None

        validate_rule(ScheduleRule(
            frequency=ScheduleFrequency(values["frequency"]),
            time_of_day=values["time_of_day"],
            timezone=values["timezone"],
            day_of_week=values.get("day_of_week"),
            day_of_month=values.get("day_of_month"),
            scheduled_at=values["scheduled_at"],
        ))
        return values

    def _initial_run(self, schedule: AuditSchedule, now: datetime) -> Optional[datetime]:
        next_run = compute_initial_run(ScheduleRule.from_schedule(schedule), now)
        if schedule.frequency == ScheduleFrequency.ONE_TIME.value and next_run is None:
            raise ScheduleValidationError(
                ErrorCodeDictionary.SCHEDULE_008,
                entity_id=schedule.id,
                context={"scheduled_at": schedule.scheduled_at.isoformat() if schedule.scheduled_at else None},
            )
        return next_run

    async def create_schedule(
        self,
        db: AsyncSession,
        website: Website,
        now: Optional[datetime] = None,
        **values,
    ) -> AuditSchedule:
        """
        Create a schedule for a website.

        Raises:
            ScheduleValidationError: invalid rule, or a one-time schedule in the past
        """
        now = now or utcnow()
        cleaned = self._prepare(values, now)
        schedule = AuditSchedule(
            website_id=website.id,
            user_id=website.user_id,
            is_active=cleaned.pop("is_active", True) is not False,
            run_count=0,
            failure_count=0,
            **cleaned,
        )
        schedule.next_run_at = self._initial_run(schedule, now) if schedule.is_active else None
        db.add(schedule)
        await db.commit()
        await db.refresh(schedule)
        logger.info(
            f"Created {schedule.frequency} schedule {schedule.id} for website {website.id}, "
            f"next run at {schedule.next_run_at}"
        )
        return schedule

    async def update_schedule(
        self,
        db: AsyncSession,
        schedule: AuditSchedule,
        now: Optional[datetime] = None,
        **changes,
    ) -> AuditSchedule:
        """Apply changes and recompute next_run_at"""
        now = now or utcnow()
        current = {name: getattr(schedule, name) for name in SCHEDULE_FIELDS}
        current.update({key: value for key, value in changes.items() if key in SCHEDULE_FIELDS and value is not None})

        cleaned = self._prepare(current, now)
        for name, value in cleaned.items():
            setattr(schedule, name, value)

        if schedule.is_active:
            if schedule.frequency == ScheduleFrequency.ONE_TIME.value and schedule.run_count:
                schedule.next_run_at = None
            else:
                schedule.next_run_at = self._initial_run(schedule, now)
        else:
            schedule.next_run_at = None

        await db.commit()
        await db.refresh(schedule)
        return schedule

    async def delete_schedule(self, db: AsyncSession, schedule: AuditSchedule) -> None:
        await db.delete(schedule)
        await db.commit()
        logger.info(f"Deleted schedule {schedule.id}")

    async def get_schedule(self, db: AsyncSession, schedule_id: UUID, user: CurrentUser) -> AuditSchedule:
        """Fetch a schedule the user may access (404 otherwise)"""
        return ensure_owned(await db.get(AuditSchedule, schedule_id), user, "Schedule")

    async def list_schedules(
        self,
        db: AsyncSession,
        user: CurrentUser,
        website_id: Optional[UUID] = None,
        active: Optional[bool] = None,
    ) -> List[AuditSchedule]:
        query = scope_to_user(select(AuditSchedule), AuditSchedule, user)
        if website_id:
            query = query.where(AuditSchedule.website_id == website_id)
        if active is not None:
            query = query.where(AuditSchedule.is_active == active)
        result = await db.execute(query.order_by(AuditSchedule.created_at.desc()))
        return list(result.scalars().all())

    async def get_website_schedule(self, db: AsyncSession, website_id: UUID) -> Optional[AuditSchedule]:
        """The website's recurring schedule (one-time schedules are ignored)"""
        result = await db.execute(
            select(AuditSchedule)
            .where(
                AuditSchedule.website_id == website_id,
                AuditSchedule.frequency != ScheduleFrequency.ONE_TIME.value,
            )
            .order_by(AuditSchedule.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def enable_website_schedule(
        self,
        db: AsyncSession,
        website: Website,
        frequency: ScheduleFrequency = ScheduleFrequency.WEEKLY,
        categories: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
        **values,
    ) -> AuditSchedule:
        """Create or re-enable the website's recurring schedule"""
        if ScheduleFrequency(frequency) == ScheduleFrequency.ONE_TIME:
            raise ScheduleValidationError(ErrorCodeDictionary.SCHEDULE_006, entity_id=website.id)

        existing = await self.get_website_schedule(db, website.id)
        if existing is None:
            return await self.create_schedule(
                db, website, now=now, frequency=frequency, categories=categories, **values
            )
        return await self.update_schedule(
            db, existing, now=now, frequency=frequency,
            categories=categories, is_active=True, **values,
        )

    async def disable_website_schedule(self, db: AsyncSession, website: Website) -> Optional[AuditSchedule]:
        existing = await self.get_website_schedule(db, website.id)
        if existing is None:
            return None
        existing.is_active = False
        existing.next_run_at = None
        await db.commit()
        await db.refresh(existing)
        logger.info(f"Disabled scheduled audits for website {website.id}")
        return existing

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def find_due_schedule_ids(self, db: AsyncSession, now: datetime) -> List[UUID]:
        """Ids of active schedules whose next run is at or before ``now``, oldest first"""
        result = await db.execute(
            select(AuditSchedule.id)
            .where(
                AuditSchedule.is_active == True,  # noqa: E712
                AuditSchedule.next_run_at.is_not(None),
                AuditSchedule.next_run_at <= to_naive_utc(now),
            )
            .order_by(AuditSchedule.next_run_at)
        )
        return list(result.scalars().all())

    async def run_schedule(self, db: AsyncSession, schedule_id: UUID,
                           now: Optional[datetime] = None) -> ScheduleRunResult:
        """
        Run one due schedule.

        The schedule is always advanced afterwards, even when the audit or
        its notifications failed. A failure rolls back the session, so
        only ids are carried across it and rows are fetched again.
        """
        now = to_naive_utc(now) or utcnow()
        outcome = ScheduleRunResult(schedule_id=schedule_id)

        try:
            schedule = await db.get(AuditSchedule, schedule_id)
            website = await db.get(Website, schedule.website_id)
            if website is None:
                raise SitewatchError(ErrorCodeDictionary.WEBSITE_001, entity_id=schedule.website_id)
            audit = await self.audit_service.create_audit(
                db, website,
                trigger=AuditTrigger.SCHEDULED,
                categories=schedule.categories or None,
                schedule_id=schedule_id,
            )
            outcome.audit_id = audit.id
            audit = await self.audit_service.run_audit(db, audit.id)
            outcome.success = audit.status == AuditStatus.COMPLETED.value
            outcome.error = audit.error_message

            previous = None
            if outcome.success:
                previous = await self.audit_service.get_previous_completed(db, audit)
            await self.notification_service.create_audit_notifications(db, audit, previous)
        except Exception as e:
            logger.exception(f"Scheduled run {schedule_id} failed: {e}")
            await db.rollback()
            outcome.success = False
            outcome.error = str(e) or e.__class__.__name__

        schedule = await db.get(AuditSchedule, schedule_id)
        if schedule is None:
            logger.warning(f"Schedule {schedule_id} disappeared during its run")
            return outcome

        rule = ScheduleRule.from_schedule(schedule)
        schedule.next_run_at = advance_past(rule, schedule.next_run_at, now)
        schedule.last_run_at = now
        schedule.run_count = (schedule.run_count or 0) + 1
        if outcome.audit_id:
            schedule.last_audit_id = outcome.audit_id
        if not outcome.success:
            schedule.failure_count = (schedule.failure_count or 0) + 1
        if schedule.frequency == ScheduleFrequency.ONE_TIME.value:
            schedule.is_active = False
            schedule.next_run_at = None
        next_run_at = schedule.next_run_at

        await EventLogger.log_schedule_run(db, schedule_id, outcome.audit_id, outcome.success, outcome.error)
        await db.commit()

        outcome.next_run_at = next_run_at
        logger.info(
            f"Schedule {schedule_id} ran audit {outcome.audit_id} "
            f"(success={outcome.success}), next run at {outcome.next_run_at}"
        )
        return outcome

    async def process_due_schedules(self, db: AsyncSession,
                                    now: Optional[datetime] = None) -> ScheduleRunSummary:
        """Run every due schedule; one failure never stops the batch"""
        now = to_naive_utc(now) or utcnow()
        schedule_ids = await self.find_due_schedule_ids(db, now)
        logger.info(f"Processing {len(schedule_ids)} due schedules")

        summary = ScheduleRunSummary()
        for schedule_id in schedule_ids:
            outcome = await self.run_schedule(db, schedule_id, now)
            summary.results.append(outcome)
            summary.processed += 1
            if outcome.success:
                summary.succeeded += 1
            else:
                summary.failed += 1

        summary.next_scheduled = await self.get_next_scheduled_at(db)
        logger.info(
            f"Scheduled audits processed: {summary.processed} total, "
            f"{summary.succeeded} succeeded, {summary.failed} failed"
        )
        return summary

    async def get_next_scheduled_at(self, db: AsyncSession) -> Optional[datetime]:
        return await db.scalar(
            select(func.min(AuditSchedule.next_run_at)).where(AuditSchedule.is_active == True)  # noqa: E712
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def get_history(self, db: AsyncSession, website_id: UUID, page: int = 1,
                          page_size: int = 10) -> Tuple[List[Audit], int]:
        """Scheduled audits of a website, newest first"""
        conditions = [Audit.website_id == website_id, Audit.trigger == AuditTrigger.SCHEDULED.value]
        total = await db.scalar(select(func.count()).select_from(Audit).where(*conditions))
        result = await db.execute(
            select(Audit)
            .where(*conditions)
            .order_by(Audit.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    async def get_stats(self, db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Counters describing the scheduled-audit system"""
        now = to_naive_utc(now) or utcnow()
        scheduled = Audit.trigger == AuditTrigger.SCHEDULED.value

        async def count(model, *conditions) -> int:
            return await db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0

        next_schedule = (await db.execute(
            select(AuditSchedule)
            .where(AuditSchedule.is_active == True, AuditSchedule.next_run_at.is_not(None))  # noqa: E712
            .order_by(AuditSchedule.next_run_at)
            .limit(1)
        )).scalar_one_or_none()

        return {
            "total_websites": await count(Website),
            "total_scheduled": await count(AuditSchedule, AuditSchedule.is_active == True),  # noqa: E712
            "processed_today": await count(Audit, scheduled, Audit.created_at >= start_of_day(now)),
            "pending_audits": await count(
                Audit, scheduled,
                Audit.status.in_([AuditStatus.PENDING.value, AuditStatus.RUNNING.value]),
            ),
            "scheduled_audits": await count(Audit, scheduled),
            "completed_audits": await count(Audit, scheduled, Audit.status == AuditStatus.COMPLETED.value),
            "failed_audits": await count(Audit, scheduled, Audit.status == AuditStatus.FAILED.value),
            "next_scheduled": {
                "schedule_id": str(next_schedule.id),
                "website_id": str(next_schedule.website_id),
                "frequency": next_schedule.frequency,
                "next_run_at": next_schedule.next_run_at.isoformat(),
            } if next_schedule else None,
            "system_time": now.isoformat(),
        }
