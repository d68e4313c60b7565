"""Database model enumerations"""
import enum


class UserRole(str, enum.Enum):
    """User roles"""
    USER = "user"
    ADMIN = "admin"


class AuditStatus(str, enum.Enum):
    """Audit lifecycle status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AuditTrigger(str, enum.Enum):
    """What started an audit"""
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    MONITORING = "monitoring"


class AuditCategory(str, enum.Enum):
    """Audit categories evaluated by the engine"""
    SEO = "seo"
    PERFORMANCE = "performance"
    ACCESSIBILITY = "accessibility"
    SECURITY = "security"
    CONTENT = "content"
    MOBILE = "mobile"


class ScheduleFrequency(str, enum.Enum):
    """Recurrence rules for scheduled audits"""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ONE_TIME = "one_time"


class MonitoringFrequency(str, enum.Enum):
    """How often continuous monitoring checks run"""
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class AlertSeverity(str, enum.Enum):
    """Monitoring alert severity"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AlertType(str, enum.Enum):
    """Monitoring alert categories"""
    SCORE_DROP = "score_drop"
    LOW_SCORE = "low_score"


class NotificationType(str, enum.Enum):
    """Notification types"""
    AUDIT_COMPLETED = "audit_completed"
    SCORE_ALERT = "score_alert"
    SCORE_DROP = "score_drop"
    CATEGORY_DROP = "category_drop"
    CRITICAL_ISSUE = "critical_issue"
    MONITORING_ALERT = "monitoring_alert"
    PERFORMANCE_DEGRADATION = "performance_degradation"
    SYSTEM = "system"


class NotificationPriority(str, enum.Enum):
    """Notification priorities"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
    CRITICAL = "critical"


class NotificationChannel(str, enum.Enum):
    """Notification delivery channels"""
    IN_APP = "in_app"
    EMAIL = "email"
    WEBHOOK = "webhook"


class WebhookEvent(str, enum.Enum):
    """Events a webhook configuration can subscribe to"""
    AUDIT_COMPLETED = "audit.completed"
    AUDIT_FAILED = "audit.failed"
    CRITICAL_ISSUES = "audit.critical_issues"
    LOW_SCORE = "audit.low_score"
    PERFORMANCE_DEGRADATION = "audit.performance_degradation"
    MONITORING_ALERT = "monitoring.alert"


def enum_values(enum_cls) -> str:
    """Render enum values for a SQL ``IN (...)`` check constraint"""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
