"""Processes audit jobs pulled from the queue"""
import logging
import uuid
from typing import Any, Dict, Optional

from sitewatch.core.database import AsyncSessionLocal
from sitewatch.db.enums import AuditStatus
from sitewatch.services.audit_service import AuditService
from sitewatch.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class AuditJobProcessor:
    """
    Runs one queued audit in its own database session, then creates the
    notifications for its result.
    """

    def __init__(
        self,
        audit_service: Optional[AuditService] = None,
        notification_service: Optional[NotificationService] = None,
        session_factory=None,
    ):
        self.audit_service = audit_service or AuditService()
        self.notification_service = notification_service or NotificationService()
        self.session_factory = session_factory or AsyncSessionLocal

    async def process_audit_job(self, job_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Job data structure:
        {
            "job_id": str,
            "audit_id": str,
            "created_at": str
        }
        """
        audit_id = job_data.get("audit_id")
        if not audit_id:
            raise ValueError("audit_id is required")

        async with self.session_factory() as db:
            audit = await self.audit_service.run_audit(db, uuid.UUID(str(audit_id)))

            previous = None
            if audit.status == AuditStatus.COMPLETED.value:
                previous = await self.audit_service.get_previous_completed(db, audit)
            await self.notification_service.create_audit_notifications(db, audit, previous)
            if audit.status == AuditStatus.COMPLETED.value:
                await self.notification_service.detect_performance_degradation(db, audit.website_id)

            logger.info(f"Processed audit job {job_data.get('job_id')} -> {audit.status}")
            return {
                "success": audit.status == AuditStatus.COMPLETED.value,
                "audit_id": str(audit.id),
                "status": audit.status,
                "overall_score": audit.overall_score,
                "error": audit.error_message,
            }


async def process_job(job_data: Dict[str, Any]) -> Dict[str, Any]:
    """Entry point for job processing"""
    processor = AuditJobProcessor()
    return await processor.process_audit_job(job_data)
