"""
Notification Service - turns audit results and monitoring alerts into
in-app notifications, alert emails and webhook events.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.core.auth import CurrentUser
from sitewatch.core.config import settings
from sitewatch.db.enums import (
    AuditCategory,
    AuditStatus,
    AuditTrigger,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from sitewatch.db.models import Alert, Audit, Notification, NotificationPreference, User, Website
from sitewatch.services.email import EmailSender, render_alert_email
from sitewatch.services.webhook_service import WebhookService
from sitewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)

# Number of completed audits compared when looking for degradation
DEGRADATION_WINDOW = 5
DEGRADATION_MIN_AUDITS = 3


@dataclass
class NotificationThresholds:
    """Effective per-user thresholds"""
    min_score_threshold: float
    min_score_drop: float
    email_enabled: bool = True
    realtime_alerts: bool = True


@dataclass
class PendingEmail:
    subject: str
    message: str
    priority: str


def _title_case(category: str) -> str:
    return category[:1].upper() + category[1:]


def _fmt(score: Optional[float]) -> str:
    if score is None:
        return "n/a"
    return f"{score:g}"


class NotificationService:
    """
    Service for user notifications.

    Email and webhook delivery problems are logged and never interrupt
    notification creation.
    """

    def __init__(
        self,
        email_sender: Optional[EmailSender] = None,
        webhook_service: Optional[WebhookService] = None,
    ):
        self.email_sender = email_sender or EmailSender()
        self.webhook_service = webhook_service or WebhookService()

    async def get_thresholds(self, db: AsyncSession, user_id: UUID) -> NotificationThresholds:
        result = await db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        preference = result.scalar_one_or_none()
        if not preference:
            return NotificationThresholds(
                min_score_threshold=settings.min_score_threshold,
                min_score_drop=settings.min_score_drop,
            )
        return NotificationThresholds(
            min_score_threshold=preference.min_score_threshold,
            min_score_drop=preference.min_score_drop,
            email_enabled=preference.email_enabled,
            realtime_alerts=preference.realtime_alerts,
        )

    async def update_preferences(self, db: AsyncSession, user: CurrentUser, **values) -> NotificationPreference:
        """Upsert the user's notification preferences"""
        result = await db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user.user_id)
        )
        preference = result.scalar_one_or_none()
        if not preference:
            preference = NotificationPreference(
                user_id=user.user_id,
                min_score_threshold=settings.min_score_threshold,
                min_score_drop=settings.min_score_drop,
            )
            db.add(preference)
        for key, value in values.items():
            if value is not None:
                setattr(preference, key, value)
        await db.commit()
        await db.refresh(preference)
        return preference

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_audit_notifications(
        self,
        db: AsyncSession,
        audit: Audit,
        previous: Optional[Audit] = None,
        send_realtime: bool = True,
    ) -> List[Notification]:
        """
        Create notifications for a finished audit.

        Compares against ``previous`` (the prior completed audit) when
        given. Returns the notifications created.
        """
        website = await db.get(Website, audit.website_id)
        user = await db.get(User, audit.user_id)
        if not website or not user:
            logger.warning(f"Skipping notifications for audit {audit.id}: website or user missing")
            return []

        thresholds = await self.get_thresholds(db, user.id)
        notifications: List[Notification] = []
        emails: List[PendingEmail] = []

        def add(type_: NotificationType, title: str, message: str,
                priority: NotificationPriority, data: Optional[Dict[str, Any]] = None):
            notifications.append(Notification(
                user_id=user.id,
                website_id=website.id,
                audit_id=audit.id,
                type=type_.value,
                title=title,
                message=message,
                priority=priority.value,
                channel=NotificationChannel.IN_APP.value,
                read=False,
                data=data or {},
            ))

        score = audit.overall_score
        low_score = False

        if audit.status == AuditStatus.FAILED.value:
            add(
                NotificationType.SYSTEM,
                f"Audit failed for {website.name}",
                f"The audit of {website.url} could not be completed: {audit.error_message or 'unknown error'}",
                NotificationPriority.MEDIUM,
            )
        elif score is not None:
            if score < thresholds.min_score_threshold:
                low_score = True
                add(
                    NotificationType.SCORE_ALERT,
                    f"Low overall score: {_fmt(score)}",
                    f"Your website's overall audit score is below the threshold of {_fmt(thresholds.min_score_threshold)}",
                    NotificationPriority.HIGH,
                    {"score": score, "threshold": thresholds.min_score_threshold},
                )
                emails.append(PendingEmail(
                    f"[ALERT] Low score detected for {website.name}",
                    f"Your website {website.name} ({website.url}) has a low overall audit score of "
                    f"{_fmt(score)}, which is below your threshold of {_fmt(thresholds.min_score_threshold)}.",
                    NotificationPriority.HIGH.value,
                ))

            if previous is not None and previous.overall_score is not None:
                drop = previous.overall_score - score
                if drop >= thresholds.min_score_drop:
                    add(
                        NotificationType.SCORE_DROP,
                        f"Score dropped by {drop:.1f} points",
                        f"Your website's overall score dropped from {_fmt(previous.overall_score)} to {_fmt(score)}",
                        NotificationPriority.HIGH,
                        {"previous": previous.overall_score, "current": score, "drop": round(drop, 1)},
                    )
                    if drop >= settings.significant_score_drop:
                        emails.append(PendingEmail(
                            f"[URGENT] Significant score drop for {website.name}",
                            f"Your website {website.name} ({website.url}) has experienced a significant drop "
                            f"in overall score from {_fmt(previous.overall_score)} to {_fmt(score)} ({drop:.1f} points).",
                            NotificationPriority.URGENT.value,
                        ))

                for category in AuditCategory:
                    field = f"{category.value}_score"
                    current_value = getattr(audit, field)
                    previous_value = getattr(previous, field)
                    if current_value is None or previous_value is None:
                        continue
                    category_drop = previous_value - current_value
                    if category_drop >= thresholds.min_score_drop:
                        name = _title_case(category.value)
                        add(
                            NotificationType.CATEGORY_DROP,
                            f"{name} score dropped by {category_drop:.1f} points",
                            f"Your website's {name} score dropped from {_fmt(previous_value)} to {_fmt(current_value)}",
                            NotificationPriority.MEDIUM,
                            {"category": category.value, "previous": previous_value, "current": current_value},
                        )

        critical_issues = list(audit.critical_issues or [])
        if critical_issues:
            suffix = "..." if len(critical_issues) > 3 else ""
            add(
                NotificationType.CRITICAL_ISSUE,
                f"{len(critical_issues)} critical issues detected",
                f"Critical issues found: {', '.join(critical_issues[:3])}{suffix}",
                NotificationPriority.URGENT,
                {"issues": critical_issues},
            )
            emails.append(PendingEmail(
                f"[CRITICAL] Critical issues detected on {website.name}",
                f"Your website {website.name} ({website.url}) has {len(critical_issues)} critical issues "
                f"that require immediate attention: " + "; ".join(critical_issues),
                NotificationPriority.CRITICAL.value,
            ))

        if audit.trigger in (AuditTrigger.SCHEDULED.value, AuditTrigger.MONITORING.value) \
                and audit.status == AuditStatus.COMPLETED.value:
            add(
                NotificationType.AUDIT_COMPLETED,
                f"{_title_case(audit.trigger)} audit completed for {website.name}",
                f"Overall score: {_fmt(score)}",
                NotificationPriority.LOW,
                {"score": score},
            )

        await self._store(db, user, notifications)

        if send_realtime:
            await self._deliver_emails(user, website, audit.id, thresholds, emails)
            if critical_issues:
                await self.webhook_service.send_critical_issues(db, user.id, website, audit.id, critical_issues)
            if low_score:
                await self.webhook_service.send_low_score(
                    db, user.id, website, audit.id, score, thresholds.min_score_threshold
                )
            await self.webhook_service.send_audit_finished(db, user.id, website, audit)

        logger.info(f"Created {len(notifications)} notifications for audit {audit.id}")
        return notifications

    async def create_monitoring_notifications(
        self,
        db: AsyncSession,
        website: Website,
        alerts: Sequence[Alert],
        send_email: bool = True,
    ) -> List[Notification]:
        """One MONITORING_ALERT notification per alert; emails for error/critical alerts"""
        if not alerts:
            return []
        user = await db.get(User, website.user_id)
        if not user:
            return []

        priority_by_severity = {
            "info": NotificationPriority.LOW,
            "warning": NotificationPriority.MEDIUM,
            "error": NotificationPriority.HIGH,
            "critical": NotificationPriority.CRITICAL,
        }
        notifications = []
        emails: List[PendingEmail] = []
        for alert in alerts:
            priority = priority_by_severity.get(alert.severity, NotificationPriority.MEDIUM)
            notifications.append(Notification(
                user_id=user.id,
                website_id=website.id,
                type=NotificationType.MONITORING_ALERT.value,
                title=alert.title,
                message=alert.message,
                priority=priority.value,
                channel=NotificationChannel.IN_APP.value,
                read=False,
                data={
                    "alert_id": str(alert.id),
                    "metric": alert.metric,
                    "value": alert.value,
                    "threshold": alert.threshold,
                },
            ))
            if priority in (NotificationPriority.HIGH, NotificationPriority.CRITICAL):
                emails.append(PendingEmail(
                    f"[{alert.severity.upper()}] {alert.title}",
                    alert.message,
                    priority.value,
                ))

        await self._store(db, user, notifications)

        if send_email:
            thresholds = await self.get_thresholds(db, user.id)
            await self._deliver_emails(user, website, None, thresholds, emails)
        await self.webhook_service.send_event(db, user.id, "monitoring.alert", {
            "website_id": str(website.id),
            "website_name": website.name,
            "website_url": website.url,
            "alerts": [
                {"title": alert.title, "severity": alert.severity, "metric": alert.metric, "value": alert.value}
                for alert in alerts
            ],
        })
        return notifications

    async def detect_performance_degradation(
        self,
        db: AsyncSession,
        website_id: UUID,
    ) -> Optional[Notification]:
        """
        Compare the latest performance score with the mean of up to four
        prior completed audits; notify when it fell by the degradation
        threshold or more.
        """
        result = await db.execute(
            select(Audit)
            .where(
                Audit.website_id == website_id,
                Audit.status == AuditStatus.COMPLETED.value,
                Audit.performance_score.is_not(None),
            )
            .order_by(Audit.completed_at.desc(), Audit.created_at.desc())
            .limit(DEGRADATION_WINDOW)
        )
        audits = list(result.scalars().all())
        if len(audits) < DEGRADATION_MIN_AUDITS:
            return None

        latest, previous = audits[0], audits[1:]
        average = sum(a.performance_score for a in previous) / len(previous)
        if average <= 0:
            return None
        latest_score = latest.performance_score
        degradation = (average - latest_score) / average
        if degradation < settings.degradation_threshold:
            return None

        website = await db.get(Website, website_id)
        user = await db.get(User, latest.user_id)
        percentage = round(degradation * 100, 1)
        notification = Notification(
            user_id=latest.user_id,
            website_id=website_id,
            audit_id=latest.id,
            type=NotificationType.PERFORMANCE_DEGRADATION.value,
            title="Performance degradation detected",
            message=f"Your website's performance score has dropped by {percentage}% "
                    f"compared to the average of previous audits.",
            priority=NotificationPriority.HIGH.value,
            channel=NotificationChannel.IN_APP.value,
            read=False,
            data={"current": latest_score, "average": round(average, 1), "degradation": percentage},
        )
        await self._store(db, user, [notification])
        logger.info(f"Performance degradation of {percentage}% detected for website {website_id}")

        if user and website:
            thresholds = await self.get_thresholds(db, user.id)
            await self._deliver_emails(user, website, latest.id, thresholds, [PendingEmail(
                f"[ALERT] Performance degradation detected for {website.name}",
                f"Your website's performance score has dropped by {percentage}% compared to the average "
                f"of previous audits (from {average:.1f} to {_fmt(latest_score)}).",
                NotificationPriority.HIGH.value,
            )])
            await self.webhook_service.send_performance_degradation(
                db, user.id, website, latest.id, latest_score, round(average, 1), percentage
            )
        return notification

    async def _store(self, db: AsyncSession, user: Optional[User], notifications: List[Notification]) -> None:
        if not notifications:
            return
        db.add_all(notifications)
        if user is not None:
            user.unread_notification_count = (user.unread_notification_count or 0) + len(notifications)
        await db.commit()

    async def _deliver_emails(self, user: User, website: Website, audit_id: Optional[UUID],
                              thresholds: NotificationThresholds, emails: List[PendingEmail]) -> None:
        if not emails or not user.email:
            return
        if not (thresholds.email_enabled and thresholds.realtime_alerts):
            return
        link = f"{settings.app_url}/audits/{audit_id}" if audit_id else f"{settings.app_url}/websites/{website.id}"
        for email in emails:
            await self.email_sender.send(
                user.email,
                email.subject,
                render_alert_email(email.subject, email.message, email.priority, link),
            )

    # ------------------------------------------------------------------
    # Reading and housekeeping
    # ------------------------------------------------------------------

    async def list_notifications(
        self,
        db: AsyncSession,
        user: CurrentUser,
        website_id: Optional[UUID] = None,
        read: Optional[bool] = None,
        type: Optional[NotificationType] = None,
        priority: Optional[NotificationPriority] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Notification], int, int]:
        """
        Returns:
            Tuple of (notifications, total matching, unread matching)
        """
        conditions = [Notification.user_id == user.user_id]
        if website_id:
            conditions.append(Notification.website_id == website_id)
        if type:
            conditions.append(Notification.type == NotificationType(type).value)
        if priority:
            conditions.append(Notification.priority == NotificationPriority(priority).value)

        filtered = list(conditions)
        if read is not None:
            filtered.append(Notification.read == read)

        total = await db.scalar(select(func.count()).select_from(Notification).where(*filtered))
        unread = await db.scalar(
            select(func.count()).select_from(Notification).where(*conditions, Notification.read == False)  # noqa: E712
        )
        result = await db.execute(
            select(Notification)
            .where(*filtered)
            .order_by(Notification.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0, unread or 0

    async def mark_read(self, db: AsyncSession, notification_ids: Sequence[UUID], user: CurrentUser) -> int:
        """Mark the user's notifications read; returns the new unread count"""
        if notification_ids:
            await db.execute(
                update(Notification)
                .where(
                    Notification.id.in_(list(notification_ids)),
                    Notification.user_id == user.user_id,
                    Notification.read == False,  # noqa: E712
                )
                .values(read=True, read_at=utcnow())
            )
        return await self.update_unread_count(db, user.user_id)

    async def mark_all_read(self, db: AsyncSession, user: CurrentUser) -> int:
        await db.execute(
            update(Notification)
            .where(Notification.user_id == user.user_id, Notification.read == False)  # noqa: E712
            .values(read=True, read_at=utcnow())
        )
        return await self.update_unread_count(db, user.user_id)

    async def delete(self, db: AsyncSession, notification_id: UUID, user: CurrentUser) -> bool:
        """Delete one of the user's notifications; False if it did not exist"""
        result = await db.execute(
            delete(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user.user_id,
            )
        )
        await self.update_unread_count(db, user.user_id)
        return (result.rowcount or 0) > 0

    async def delete_all(self, db: AsyncSession, user: CurrentUser) -> int:
        result = await db.execute(delete(Notification).where(Notification.user_id == user.user_id))
        await self.update_unread_count(db, user.user_id)
        return result.rowcount or 0

    async def update_unread_count(self, db: AsyncSession, user_id: UUID) -> int:
        """Recompute the cached unread counter from the notifications table"""
        unread = await db.scalar(
            select(func.count()).select_from(Notification).where(
                Notification.user_id == user_id,
                Notification.read == False,  # noqa: E712
            )
        ) or 0
        await db.execute(update(User).where(User.id == user_id).values(unread_notification_count=unread))
        await db.commit()
        return unread
