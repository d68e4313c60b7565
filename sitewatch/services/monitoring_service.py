"""
Monitoring Service - continuous score monitoring and alerting.

Monitoring runs at a lower cadence than on-demand audits: each enabled
website gets a MONITORING audit when its check is due, the fresh scores
are compared with the previous run and alerts are raised on drops or low
absolute scores.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.core.config import settings
from sitewatch.db.enums import AlertSeverity, AlertType, AuditStatus, AuditTrigger, MonitoringFrequency
from sitewatch.db.models import Alert, Audit, MonitoringConfig, Website
from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.decision.event_logger import EventLogger
from sitewatch.exceptions import MonitoringError, SitewatchError
from sitewatch.scheduling.recurrence import next_monitoring_check
from sitewatch.services.audit_service import SCORE_FIELDS, AuditService, normalize_categories
from sitewatch.services.notification_service import NotificationService
from sitewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)

DEFAULT_METRICS = ["overall_score", "seo_score", "performance_score"]


def severity_for_score_drop(percent_drop: float) -> AlertSeverity:
    """Severity of a percentage drop between two runs"""
    if percent_drop >= 30:
        return AlertSeverity.CRITICAL
    elif percent_drop >= 20:
        return AlertSeverity.ERROR
    elif percent_drop >= 10:
        return AlertSeverity.WARNING
    return AlertSeverity.INFO


def severity_for_low_score(score: float) -> AlertSeverity:
    """Severity of an absolute score below the low-score line"""
    if score < 30:
        return AlertSeverity.CRITICAL
    elif score < 40:
        return AlertSeverity.ERROR
    elif score < settings.low_score_alert_threshold:
        return AlertSeverity.WARNING
    return AlertSeverity.INFO


def _metric_label(metric: str) -> str:
    return metric.replace("_", " ")


@dataclass
class MonitoringCheckResult:
    website_id: UUID
    audit: Optional[Audit] = None
    alerts: List[Alert] = field(default_factory=list)
    next_check_at: Optional[datetime] = None
    error: Optional[str] = None


class MonitoringService:
    """Service for monitoring configuration, checks and alerts"""

    def __init__(
        self,
        audit_service: Optional[AuditService] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        self.audit_service = audit_service or AuditService()
        self.notification_service = notification_service or NotificationService()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def get_config(self, db: AsyncSession, website_id: UUID) -> Optional[MonitoringConfig]:
        result = await db.execute(
            select(MonitoringConfig).where(MonitoringConfig.website_id == website_id)
        )
        return result.scalar_one_or_none()

    def _validate(self, alert_threshold: Optional[float], metrics: Optional[Sequence[str]]) -> None:
        if alert_threshold is not None and not 0 <= alert_threshold <= 100:
            raise MonitoringError(
                ErrorCodeDictionary.MONITORING_002, context={"alert_threshold": alert_threshold}
            )
        for metric in metrics or []:
            if metric not in SCORE_FIELDS:
                raise MonitoringError(ErrorCodeDictionary.MONITORING_003, context={"metric": metric})

    def _new_config(self, website: Website) -> MonitoringConfig:
        return MonitoringConfig(
            website_id=website.id,
            enabled=True,
            frequency=MonitoringFrequency.WEEKLY.value,
            alert_threshold=settings.default_monitoring_alert_threshold,
            metrics=list(DEFAULT_METRICS),
            categories=list(settings.default_audit_categories),
            email_notifications=True,
        )

    async def update_config(
        self,
        db: AsyncSession,
        website: Website,
        enabled: Optional[bool] = None,
        frequency: Optional[MonitoringFrequency] = None,
        alert_threshold: Optional[float] = None,
        metrics: Optional[Sequence[str]] = None,
        categories: Optional[Sequence[str]] = None,
        email_notifications: Optional[bool] = None,
        slack_webhook: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> MonitoringConfig:
        """Create or update the website's monitoring configuration"""
        self._validate(alert_threshold, metrics)
        now = now or utcnow()

        config = await self.get_config(db, website.id)
        if config is None:
            config = self._new_config(website)
            db.add(config)

        frequency_changed = frequency is not None and MonitoringFrequency(frequency).value != config.frequency
        if frequency is not None:
            config.frequency = MonitoringFrequency(frequency).value
        if alert_threshold is not None:
            config.alert_threshold = alert_threshold
        if metrics is not None:
            config.metrics = list(metrics)
        if categories is not None:
            config.categories = normalize_categories(categories)
        if email_notifications is not None:
            config.email_notifications = email_notifications
        if slack_webhook is not None:
            config.slack_webhook = slack_webhook or None
        if enabled is not None:
            config.enabled = enabled

        if not config.enabled:
            config.next_check_at = None
        elif config.next_check_at is None or frequency_changed:
            config.next_check_at = next_monitoring_check(config.frequency, now)

        website.monitoring_enabled = bool(config.enabled)
        await db.commit()
        await db.refresh(config)
        logger.info(f"Monitoring config for website {website.id}: enabled={config.enabled}, frequency={config.frequency}")
        return config

    async def toggle_monitoring(self, db: AsyncSession, website: Website, enabled: bool,
                                now: Optional[datetime] = None) -> MonitoringConfig:
        """Enable or disable monitoring, creating default config when missing"""
        return await self.update_config(db, website, enabled=enabled, now=now)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def check_website_metrics(self, db: AsyncSession, website_id: UUID,
                                    notify: bool = True) -> List[Alert]:
        """
        Compare the latest completed audit with the previous one and
        persist alerts for score drops and low scores.
        """
        config = await self.get_config(db, website_id)
        if not config or not config.enabled:
            return []

        result = await db.execute(
            select(Audit)
            .where(Audit.website_id == website_id, Audit.status == AuditStatus.COMPLETED.value)
            .order_by(Audit.completed_at.desc(), Audit.created_at.desc())
            .limit(2)
        )
        audits = list(result.scalars().all())
        if not audits:
            return []
        latest = audits[0]
        previous = audits[1] if len(audits) > 1 else None

        alerts: List[Alert] = []
        for metric in config.metrics or []:
            current_value = getattr(latest, metric, None)
            if current_value is None:
                continue

            previous_value = getattr(previous, metric, None) if previous else None
            if previous_value:
                difference = current_value - previous_value
                percent_change = difference / previous_value * 100
                if difference < 0 and abs(percent_change) >= config.alert_threshold:
                    message = (
                        f"{metric} dropped by {abs(percent_change):.1f}% "
                        f"(from {previous_value:g} to {current_value:g})"
                    )
                    alerts.append(Alert(
                        website_id=website_id,
                        title=f"{_metric_label(metric).capitalize()} dropped {abs(percent_change):.1f}%",
                        message=message,
                        severity=severity_for_score_drop(abs(percent_change)).value,
                        category=AlertType.SCORE_DROP.value,
                        metric=metric,
                        value=round(percent_change, 1),
                        threshold=config.alert_threshold,
                        read=False,
                    ))

            if current_value < settings.low_score_alert_threshold:
                alerts.append(Alert(
                    website_id=website_id,
                    title=f"Low {_metric_label(metric)}: {current_value:g}",
                    message=f"{metric} is critically low at {current_value:g}",
                    severity=severity_for_low_score(current_value).value,
                    category=AlertType.LOW_SCORE.value,
                    metric=metric,
                    value=current_value,
                    threshold=settings.low_score_alert_threshold,
                    read=False,
                ))

        if not alerts:
            return []

        db.add_all(alerts)
        await db.commit()
        logger.info(f"Created {len(alerts)} monitoring alerts for website {website_id}")

        if notify:
            website = await db.get(Website, website_id)
            await self.notification_service.create_monitoring_notifications(
                db, website, alerts, send_email=bool(config.email_notifications)
            )
        return alerts

    async def run_monitoring_check(self, db: AsyncSession, config: MonitoringConfig,
                                   now: Optional[datetime] = None) -> MonitoringCheckResult:
        """
        Run one monitoring check: a MONITORING audit plus metric checks.

        The next check is scheduled whether or not the audit succeeded.
        A failure rolls back the session, so only ids are carried across it.
        """
        now = now or utcnow()
        config_id, website_id = config.id, config.website_id
        categories = list(config.categories or [])
        outcome = MonitoringCheckResult(website_id=website_id)
        audit_id = None
        alert_ids: List[UUID] = []

        try:
            website = await db.get(Website, website_id)
            if website is None:
                raise SitewatchError(ErrorCodeDictionary.WEBSITE_001, entity_id=website_id)
            audit = await self.audit_service.create_audit(
                db, website,
                trigger=AuditTrigger.MONITORING,
                categories=categories or None,
            )
            audit_id = audit.id
            audit = await self.audit_service.run_audit(db, audit_id)

            if audit.status == AuditStatus.COMPLETED.value:
                previous = await self.audit_service.get_previous_completed(db, audit)
                await self.notification_service.create_audit_notifications(db, audit, previous)
                alerts = await self.check_website_metrics(db, website_id)
                alert_ids = [alert.id for alert in alerts]
                await self.notification_service.detect_performance_degradation(db, website_id)
            else:
                outcome.error = audit.error_message
        except Exception as e:
            logger.exception(f"Monitoring check failed for website {website_id}: {e}")
            await db.rollback()
            outcome.error = str(e) or e.__class__.__name__

        config = await db.get(MonitoringConfig, config_id)
        website = await db.get(Website, website_id)
        if config is not None:
            config.last_checked_at = now
            config.next_check_at = next_monitoring_check(config.frequency, now)
            outcome.next_check_at = config.next_check_at
        if website is not None:
            website.last_monitored_at = now
        await EventLogger.log_monitoring_check(db, website_id, audit_id, len(alert_ids), outcome.error)
        await db.commit()

        if audit_id is not None:
            outcome.audit = await db.get(Audit, audit_id)
        for alert_id in alert_ids:
            alert = await db.get(Alert, alert_id)
            if alert is not None:
                outcome.alerts.append(alert)
        return outcome

    async def find_due_config_ids(self, db: AsyncSession, now: datetime) -> List[UUID]:
        result = await db.execute(
            select(MonitoringConfig.id)
            .where(
                MonitoringConfig.enabled == True,  # noqa: E712
                MonitoringConfig.next_check_at.is_not(None),
                MonitoringConfig.next_check_at <= now,
            )
            .order_by(MonitoringConfig.next_check_at)
        )
        return list(result.scalars().all())

    async def run_scheduled_checks(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """Run every due monitoring check; returns the number of websites checked"""
        now = now or utcnow()
        config_ids = await self.find_due_config_ids(db, now)
        logger.info(f"Found {len(config_ids)} websites due for monitoring")

        checked = 0
        for config_id in config_ids:
            config = await db.get(MonitoringConfig, config_id)
            if config is None:
                continue
            outcome = await self.run_monitoring_check(db, config, now)
            if outcome.error is None:
                checked += 1
            logger.info(
                f"Monitoring check for website {outcome.website_id}: "
                f"{len(outcome.alerts)} alerts, error={outcome.error}"
            )
        return checked

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def list_alerts(self, db: AsyncSession, website_id: UUID, page: int = 1, limit: int = 20,
                          unread_only: bool = False) -> Tuple[List[Alert], int]:
        conditions = [Alert.website_id == website_id]
        if unread_only:
            conditions.append(Alert.read == False)  # noqa: E712
        total = await db.scalar(select(func.count()).select_from(Alert).where(*conditions))
        result = await db.execute(
            select(Alert)
            .where(*conditions)
            .order_by(Alert.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def count_alerts(self, db: AsyncSession, website_id: UUID, unread_only: bool = True) -> int:
        conditions = [Alert.website_id == website_id]
        if unread_only:
            conditions.append(Alert.read == False)  # noqa: E712
        return await db.scalar(select(func.count()).select_from(Alert).where(*conditions)) or 0

    async def mark_alerts_read(self, db: AsyncSession, website_id: UUID, alert_ids: Sequence[UUID]) -> int:
        if not alert_ids:
            return 0
        result = await db.execute(
            update(Alert)
            .where(Alert.website_id == website_id, Alert.id.in_(list(alert_ids)))
            .values(read=True, updated_at=utcnow())
        )
        await db.commit()
        return result.rowcount or 0

    async def mark_all_alerts_read(self, db: AsyncSession, website_id: UUID) -> int:
        result = await db.execute(
            update(Alert)
            .where(Alert.website_id == website_id, Alert.read == False)  # noqa: E712
            .values(read=True, updated_at=utcnow())
        )
        await db.commit()
        return result.rowcount or 0

    async def delete_alerts(self, db: AsyncSession, website_id: UUID,
                            older_than: Optional[datetime] = None,
                            alert_ids: Optional[Sequence[UUID]] = None) -> int:
        """Delete a website's alerts, optionally only older ones or specific ids"""
        statement = delete(Alert).where(Alert.website_id == website_id)
        if older_than is not None:
            statement = statement.where(Alert.created_at < older_than)
        if alert_ids:
            statement = statement.where(Alert.id.in_(list(alert_ids)))
        result = await db.execute(statement)
        await db.commit()
        return result.rowcount or 0

    async def get_history(self, db: AsyncSession, website_id: UUID, page: int = 1,
                          limit: int = 20) -> Tuple[List[Audit], int]:
        """Monitoring audits for a website, newest first"""
        conditions = [Audit.website_id == website_id, Audit.trigger == AuditTrigger.MONITORING.value]
        total = await db.scalar(select(func.count()).select_from(Audit).where(*conditions))
        result = await db.execute(
            select(Audit)
            .where(*conditions)
            .order_by(Audit.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0
