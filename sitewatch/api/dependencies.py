"""FastAPI dependency injection for Sitewatch services"""
from sitewatch.queues.queue_manager import QueueManager, queue_manager
from sitewatch.services.admin_service import AdminService
from sitewatch.services.audit_service import AuditService
from sitewatch.services.monitoring_service import MonitoringService
from sitewatch.services.notification_service import NotificationService
from sitewatch.services.scheduled_audit_service import ScheduledAuditService
from sitewatch.services.webhook_service import WebhookService


def get_audit_service() -> AuditService:
    """Get audit service instance"""
    return AuditService()


def get_webhook_service() -> WebhookService:
    """Get webhook service instance"""
    return WebhookService()


def get_notification_service() -> NotificationService:
    """Get notification service instance"""
    return NotificationService()


def get_scheduled_audit_service() -> ScheduledAuditService:
    """Get scheduled audit service instance"""
    return ScheduledAuditService()


def get_monitoring_service() -> MonitoringService:
    """Get monitoring service instance"""
    return MonitoringService()


def get_admin_service() -> AdminService:
    return AdminService()


def get_queue_manager() -> QueueManager:
    """Get the process-wide audit queue"""
    return queue_manager
