"""Unit tests for queued audit processing"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from sitewatch.db.enums import AuditStatus
from sitewatch.queues.job_processor import AuditJobProcessor
from sitewatch.services.audit_service import AuditService


class SessionFactory:
    """Hands out the shared test session as an async context manager"""

    def __init__(self, session):
        self.session = session

    def __call__(self):
        return self

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, *exc_info):
        return False


def _notifications():
    notifications = MagicMock()
    notifications.create_audit_notifications = AsyncMock(return_value=[])
    notifications.detect_performance_degradation = AsyncMock(return_value=None)
    return notifications


class TestAuditJobProcessor:
    """Tests for the queue job handler"""

    @pytest.mark.asyncio
    async def test_process_completed_audit(self, test_db_session, make_user, make_website, fake_engine):
        website = await make_website(await make_user())
        audit_service = AuditService(engine=fake_engine)
        audit = await audit_service.create_audit(test_db_session, website, categories=["seo"])
        notifications = _notifications()
        processor = AuditJobProcessor(audit_service, notifications, SessionFactory(test_db_session))

        result = await processor.process_audit_job({"job_id": "job-1", "audit_id": str(audit.id)})

        assert result == {
            "success": True,
            "audit_id": str(audit.id),
            "status": AuditStatus.COMPLETED.value,
            "overall_score": 80.0,
            "error": None,
        }
        notifications.create_audit_notifications.assert_awaited_once()
        notifications.detect_performance_degradation.assert_awaited_once_with(test_db_session, website.id)

    @pytest.mark.asyncio
    async def test_process_failed_audit(self, test_db_session, make_user, make_website, engine_factory):
        """Test failed audits still notify but skip degradation checks"""
        website = await make_website(await make_user())
        audit_service = AuditService(engine=engine_factory(error=RuntimeError("timeout")))
        audit = await audit_service.create_audit(test_db_session, website)
        notifications = _notifications()
        processor = AuditJobProcessor(audit_service, notifications, SessionFactory(test_db_session))

        result = await processor.process_audit_job({"audit_id": str(audit.id)})

        assert not result["success"]
        assert result["error"] == "timeout"
        notifications.create_audit_notifications.assert_awaited_once()
        notifications.detect_performance_degradation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_audit_id(self, test_db_session):
        processor = AuditJobProcessor(AuditService(engine=MagicMock()), _notifications(),
                                      SessionFactory(test_db_session))

        with pytest.raises(ValueError):
            await processor.process_audit_job({"job_id": "job-1"})
