"""Unit tests for notification creation and housekeeping"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from sitewatch.core.auth import CurrentUser
from sitewatch.db.enums import AlertSeverity, AuditStatus, AuditTrigger, NotificationType
from sitewatch.db.models import Alert, Audit, User
from sitewatch.services.notification_service import NotificationService
from sitewatch.utils.dates import utcnow


def _webhooks():
    webhooks = MagicMock()
    webhooks.send_critical_issues = AsyncMock(return_value=[])
    webhooks.send_low_score = AsyncMock(return_value=[])
    webhooks.send_audit_finished = AsyncMock(return_value=[])
    webhooks.send_performance_degradation = AsyncMock(return_value=[])
    webhooks.send_event = AsyncMock(return_value=[])
    return webhooks


@pytest.fixture
def webhooks():
    return _webhooks()


@pytest.fixture
def service(email_sender, webhooks):
    return NotificationService(email_sender=email_sender, webhook_service=webhooks)


@pytest.fixture
def make_audit(test_db_session):
    """Factory persisting a finished audit"""
    async def _make(website, status=AuditStatus.COMPLETED.value, trigger=AuditTrigger.MANUAL.value,
                    completed_at=None, critical_issues=(), **values):
        audit = Audit(
            website_id=website.id,
            user_id=website.user_id,
            url=website.url,
            status=status,
            trigger=trigger,
            categories=["seo", "performance"],
            issues={},
            critical_issues=list(critical_issues),
            state_history=[],
            completed_at=completed_at or utcnow(),
            **values,
        )
        test_db_session.add(audit)
        await test_db_session.commit()
        return audit
    return _make


def _types(notifications):
    return sorted(notification.type for notification in notifications)


class TestAuditNotifications:
    """Tests for notifications raised by finished audits"""

    @pytest.mark.asyncio
    async def test_healthy_manual_audit(self, test_db_session, make_user, make_website, make_audit,
                                        service, email_sender, webhooks):
        """Test a good manual audit creates nothing but still emits the finished event"""
        website = await make_website(await make_user())
        audit = await make_audit(website, overall_score=90.0)

        notifications = await service.create_audit_notifications(test_db_session, audit)

        assert notifications == []
        assert email_sender.sent == []
        webhooks.send_audit_finished.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_low_score(self, test_db_session, make_user, make_website, make_audit,
                             service, email_sender, webhooks):
        """Test score below threshold creates alert, email and webhook"""
        user = await make_user(email="owner@example.com")
        website = await make_website(user, name="Acme")
        audit = await make_audit(website, overall_score=55.0)

        notifications = await service.create_audit_notifications(test_db_session, audit)

        assert _types(notifications) == [NotificationType.SCORE_ALERT.value]
        assert notifications[0].priority == "high"
        assert email_sender.sent == [("owner@example.com", "[ALERT] Low score detected for Acme")]
        webhooks.send_low_score.assert_awaited_once()
        await test_db_session.refresh(user)
        assert user.unread_notification_count == 1

    @pytest.mark.asyncio
    async def test_score_and_category_drop(self, test_db_session, make_user, make_website, make_audit,
                                           service, email_sender):
        """Test drops against the previous audit"""
        website = await make_website(await make_user(), name="Acme")
        previous = await make_audit(website, overall_score=92.0, seo_score=95.0, performance_score=89.0)
        audit = await make_audit(website, overall_score=80.0, seo_score=80.0, performance_score=80.0)

        notifications = await service.create_audit_notifications(test_db_session, audit, previous)

        assert _types(notifications) == [
            NotificationType.CATEGORY_DROP.value,
            NotificationType.CATEGORY_DROP.value,
            NotificationType.SCORE_DROP.value,
        ]
        drop = next(n for n in notifications if n.type == NotificationType.SCORE_DROP.value)
        assert drop.title == "Score dropped by 12.0 points"
        assert [subject for _, subject in email_sender.sent] == ["[URGENT] Significant score drop for Acme"]

    @pytest.mark.asyncio
    async def test_small_drop_ignored(self, test_db_session, make_user, make_website, make_audit, service):
        website = await make_website(await make_user())
        previous = await make_audit(website, overall_score=84.0)
        audit = await make_audit(website, overall_score=80.0)

        assert await service.create_audit_notifications(test_db_session, audit, previous) == []

    @pytest.mark.asyncio
    async def test_critical_issues(self, test_db_session, make_user, make_website, make_audit,
                                   service, email_sender, webhooks):
        website = await make_website(await make_user())
        issues = ["Site is not served over HTTPS", "Missing viewport meta tag", "a", "b"]
        audit = await make_audit(website, overall_score=85.0, critical_issues=issues)

        notifications = await service.create_audit_notifications(test_db_session, audit)

        assert _types(notifications) == [NotificationType.CRITICAL_ISSUE.value]
        assert notifications[0].title == "4 critical issues detected"
        assert notifications[0].message.endswith("...")
        assert len(email_sender.sent) == 1
        webhooks.send_critical_issues.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_scheduled_audit_completed(self, test_db_session, make_user, make_website, make_audit, service):
        website = await make_website(await make_user())
        audit = await make_audit(website, overall_score=88.0, trigger=AuditTrigger.SCHEDULED.value)

        notifications = await service.create_audit_notifications(test_db_session, audit)

        assert _types(notifications) == [NotificationType.AUDIT_COMPLETED.value]
        assert notifications[0].title.startswith("Scheduled audit completed")

    @pytest.mark.asyncio
    async def test_failed_audit(self, test_db_session, make_user, make_website, make_audit, service):
        website = await make_website(await make_user())
        audit = await make_audit(website, status=AuditStatus.FAILED.value, error_message="DNS failure")

        notifications = await service.create_audit_notifications(test_db_session, audit)

        assert _types(notifications) == [NotificationType.SYSTEM.value]
        assert "DNS failure" in notifications[0].message

    @pytest.mark.asyncio
    async def test_preferences_override_defaults(self, test_db_session, make_user, make_website, make_audit,
                                                 service, email_sender):
        """Test per-user thresholds and disabled email"""
        user = await make_user()
        await service.update_preferences(
            test_db_session, CurrentUser(user_id=user.id), min_score_threshold=90.0, email_enabled=False,
        )
        website = await make_website(user)
        audit = await make_audit(website, overall_score=85.0)

        notifications = await service.create_audit_notifications(test_db_session, audit)

        assert _types(notifications) == [NotificationType.SCORE_ALERT.value]
        assert email_sender.sent == []

    @pytest.mark.asyncio
    async def test_no_realtime_delivery(self, test_db_session, make_user, make_website, make_audit,
                                        service, email_sender, webhooks):
        website = await make_website(await make_user())
        audit = await make_audit(website, overall_score=40.0)

        await service.create_audit_notifications(test_db_session, audit, send_realtime=False)

        assert email_sender.sent == []
        webhooks.send_low_score.assert_not_awaited()


class TestPerformanceDegradation:
    """Tests for degradation detection"""

    @pytest.mark.asyncio
    async def test_degradation_detected(self, test_db_session, make_user, make_website, make_audit,
                                        service, webhooks):
        website = await make_website(await make_user())
        start = datetime(2026, 1, 1)
        for day, score in enumerate([80.0, 80.0, 80.0, 60.0]):
            await make_audit(website, performance_score=score, completed_at=start + timedelta(days=day))

        notification = await service.detect_performance_degradation(test_db_session, website.id)

        assert notification.type == NotificationType.PERFORMANCE_DEGRADATION.value
        assert notification.data["degradation"] == 25.0
        webhooks.send_performance_degradation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_enough_history(self, test_db_session, make_user, make_website, make_audit, service):
        website = await make_website(await make_user())
        await make_audit(website, performance_score=80.0)
        await make_audit(website, performance_score=10.0)

        assert await service.detect_performance_degradation(test_db_session, website.id) is None

    @pytest.mark.asyncio
    async def test_small_change_ignored(self, test_db_session, make_user, make_website, make_audit, service):
        website = await make_website(await make_user())
        start = datetime(2026, 1, 1)
        for day, score in enumerate([80.0, 80.0, 75.0]):
            await make_audit(website, performance_score=score, completed_at=start + timedelta(days=day))

        assert await service.detect_performance_degradation(test_db_session, website.id) is None

    @pytest.mark.asyncio
    async def test_audit_without_performance_score_ignored(self, test_db_session, make_user, make_website,
                                                           make_audit, service, webhooks, email_sender):
        """Test an SEO-only audit is not read as a score of zero"""
        website = await make_website(await make_user())
        start = datetime(2026, 1, 1)
        for day in range(3):
            await make_audit(website, performance_score=80.0, seo_score=70.0,
                             completed_at=start + timedelta(days=day))
        await make_audit(website, seo_score=70.0, completed_at=start + timedelta(days=3))

        assert await service.detect_performance_degradation(test_db_session, website.id) is None
        webhooks.send_performance_degradation.assert_not_awaited()
        assert email_sender.sent == []

    @pytest.mark.asyncio
    async def test_history_skips_audits_without_performance_score(self, test_db_session, make_user, make_website,
                                                                  make_audit, service):
        website = await make_website(await make_user())
        start = datetime(2026, 1, 1)
        for day, score in enumerate([80.0, None, 80.0, None, 80.0, 60.0]):
            await make_audit(website, performance_score=score, completed_at=start + timedelta(days=day))

        notification = await service.detect_performance_degradation(test_db_session, website.id)

        assert notification.data["average"] == 80.0
        assert notification.data["degradation"] == 25.0


class TestMonitoringNotifications:
    """Tests for monitoring alert notifications"""

    @pytest.mark.asyncio
    async def test_one_notification_per_alert(self, test_db_session, make_user, make_website,
                                              service, email_sender, webhooks):
        website = await make_website(await make_user())
        alerts = [
            Alert(website_id=website.id, title="SEO score dropped 12.0%", message="m1",
                  severity=AlertSeverity.WARNING.value, metric="seo_score", value=-12.0),
            Alert(website_id=website.id, title="Low overall score: 25", message="m2",
                  severity=AlertSeverity.CRITICAL.value, metric="overall_score", value=25.0),
        ]
        test_db_session.add_all(alerts)
        await test_db_session.commit()

        notifications = await service.create_monitoring_notifications(test_db_session, website, alerts)

        assert _types(notifications) == [NotificationType.MONITORING_ALERT.value] * 2
        assert [n.priority for n in notifications] == ["medium", "critical"]
        assert [subject for _, subject in email_sender.sent] == ["[CRITICAL] Low overall score: 25"]
        assert webhooks.send_event.await_args.args[2] == "monitoring.alert"


class TestNotificationHousekeeping:
    """Tests for reading and deleting notifications"""

    @pytest.mark.asyncio
    async def test_mark_read_and_delete(self, test_db_session, make_user, make_website, make_audit, service):
        user = await make_user()
        current = CurrentUser(user_id=user.id)
        website = await make_website(user)
        audit = await make_audit(website, overall_score=30.0, critical_issues=["x"])
        created = await service.create_audit_notifications(test_db_session, audit)
        assert len(created) == 2

        notifications, total, unread = await service.list_notifications(test_db_session, current)
        assert (total, unread) == (2, 2)

        assert await service.mark_read(test_db_session, [created[0].id], current) == 1
        _, total, unread = await service.list_notifications(test_db_session, current, read=False)
        assert (total, unread) == (1, 1)

        assert await service.delete(test_db_session, created[1].id, current)
        assert not await service.delete(test_db_session, created[1].id, current)
        assert (await test_db_session.get(User, user.id)).unread_notification_count == 0

    @pytest.mark.asyncio
    async def test_other_users_untouched(self, test_db_session, make_user, make_website, make_audit, service):
        """Test bulk operations only affect the caller"""
        owner = await make_user()
        other = await make_user()
        await service.create_audit_notifications(test_db_session, await make_audit(await make_website(owner), overall_score=30.0))
        await service.create_audit_notifications(test_db_session, await make_audit(await make_website(other), overall_score=30.0))

        assert await service.mark_all_read(test_db_session, CurrentUser(user_id=owner.id)) == 0
        assert await service.delete_all(test_db_session, CurrentUser(user_id=owner.id)) == 1

        _, total, unread = await service.list_notifications(test_db_session, CurrentUser(user_id=other.id))
        assert (total, unread) == (1, 1)
