"""Database models and enums"""
from sitewatch.db.enums import (
    AuditStatus, AuditTrigger, AuditCategory, ScheduleFrequency, MonitoringFrequency,
    AlertSeverity, NotificationType, NotificationPriority, WebhookEvent, UserRole,
)
from sitewatch.db.models import (
    User, Website, Audit, AuditSchedule, MonitoringConfig, Alert,
    Notification, NotificationPreference, WebhookConfiguration, WebhookDelivery, SystemEvent,
)

__all__ = [
    # Enums
    "AuditStatus", "AuditTrigger", "AuditCategory", "ScheduleFrequency", "MonitoringFrequency",
    "AlertSeverity", "NotificationType", "NotificationPriority", "WebhookEvent", "UserRole",
    # Models
    "User", "Website", "Audit", "AuditSchedule", "MonitoringConfig", "Alert",
    "Notification", "NotificationPreference", "WebhookConfiguration", "WebhookDelivery", "SystemEvent",
]
