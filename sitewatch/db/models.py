"""Database models for Sitewatch"""
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, Float,
    ForeignKey, JSON, CheckConstraint, UniqueConstraint, Index, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from sitewatch.core.database import Base
from sitewatch.db.enums import (
    AlertSeverity,
    AuditStatus,
    AuditTrigger,
    MonitoringFrequency,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    ScheduleFrequency,
    UserRole,
    enum_values,
)
from sitewatch.utils.dates import utcnow


class User(Base):
    """Tenant account owning websites"""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    hashed_password = Column(String, nullable=True)
    unread_notification_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    websites = relationship("Website", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(f"role IN ({enum_values(UserRole)})", name="chk_user_role_valid"),
        CheckConstraint("unread_notification_count >= 0", name="chk_unread_count_non_negative"),
    )


class Website(Base):
    """Website registered for auditing"""
    __tablename__ = "websites"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)

    # Monitoring flags (config lives in monitoring_configs)
    monitoring_enabled = Column(Boolean, nullable=False, default=False)
    last_monitored_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="websites")
    audits = relationship("Audit", back_populates="website", cascade="all, delete-orphan")
    schedules = relationship("AuditSchedule", back_populates="website", cascade="all, delete-orphan")
    monitoring_config = relationship(
        "MonitoringConfig", back_populates="website", uselist=False, cascade="all, delete-orphan"
    )
    alerts = relationship("Alert", back_populates="website", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="chk_website_name_not_empty"),
        CheckConstraint("length(trim(url)) > 0", name="chk_website_url_not_empty"),
        UniqueConstraint("user_id", "url", name="uniq_website_url_per_user"),
        Index("idx_websites_user_id", "user_id"),
    )


class Audit(Base):
    """A single evaluation run of a website"""
    __tablename__ = "audits"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    schedule_id = Column(Uuid, ForeignKey("audit_schedules.id", ondelete="SET NULL"), nullable=True)
    url = Column(String, nullable=False)

    trigger = Column(String(20), nullable=False, default=AuditTrigger.MANUAL.value)
    status = Column(String(20), nullable=False, default=AuditStatus.PENDING.value)
    categories = Column(JSON, default=lambda: [])

    # Scores (0-100)
    overall_score = Column(Float, nullable=True)
    seo_score = Column(Float, nullable=True)
    performance_score = Column(Float, nullable=True)
    accessibility_score = Column(Float, nullable=True)
    security_score = Column(Float, nullable=True)
    content_score = Column(Float, nullable=True)
    mobile_score = Column(Float, nullable=True)

    issues = Column(JSON, default=lambda: {})
    critical_issues = Column(JSON, default=lambda: [])
    error_message = Column(Text, nullable=True)
    queue_job_id = Column(String, nullable=True)

    # State transition tracking
    state_history = Column(JSON, default=lambda: [])

    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    website = relationship("Website", back_populates="audits")
    schedule = relationship("AuditSchedule", foreign_keys=[schedule_id])

    __table_args__ = (
        CheckConstraint(f"status IN ({enum_values(AuditStatus)})", name="chk_audit_status_valid"),
        CheckConstraint(f"trigger IN ({enum_values(AuditTrigger)})", name="chk_audit_trigger_valid"),
        CheckConstraint(
            "overall_score IS NULL OR (overall_score >= 0 AND overall_score <= 100)",
            name="chk_audit_overall_score_range",
        ),
        Index("idx_audits_website_id", "website_id"),
        Index("idx_audits_user_id", "user_id"),
        Index("idx_audits_status", "status"),
        Index("idx_audits_trigger", "trigger"),
        Index("idx_audits_created_at", "created_at"),
    )

    def category_scores(self) -> dict:
        """Per-category scores keyed by category name"""
        return {
            "seo": self.seo_score,
            "performance": self.performance_score,
            "accessibility": self.accessibility_score,
            "security": self.security_score,
            "content": self.content_score,
            "mobile": self.mobile_score,
        }


class AuditSchedule(Base):
    """Recurrence rule producing scheduled audits for a website"""
    __tablename__ = "audit_schedules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    frequency = Column(String(20), nullable=False, default=ScheduleFrequency.WEEKLY.value)
    categories = Column(JSON, default=lambda: [])
    time_of_day = Column(String(8), nullable=False, default="09:00")
    timezone = Column(String(64), nullable=False, default="UTC")
    day_of_week = Column(Integer, nullable=True)  # 0=Monday .. 6=Sunday
    day_of_month = Column(Integer, nullable=True)  # 1..31, clamped to month length
    scheduled_at = Column(DateTime, nullable=True)  # one-time schedules only

    is_active = Column(Boolean, nullable=False, default=True)
    last_run_at = Column(DateTime, nullable=True)
    next_run_at = Column(DateTime, nullable=True)
    last_audit_id = Column(Uuid, nullable=True)
    run_count = Column(Integer, nullable=False, default=0)
    failure_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    website = relationship("Website", back_populates="schedules")

    __table_args__ = (
        CheckConstraint(f"frequency IN ({enum_values(ScheduleFrequency)})", name="chk_schedule_frequency_valid"),
        CheckConstraint("day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)", name="chk_day_of_week_range"),
        CheckConstraint("day_of_month IS NULL OR (day_of_month >= 1 AND day_of_month <= 31)", name="chk_day_of_month_range"),
        CheckConstraint("run_count >= 0", name="chk_run_count_non_negative"),
        Index("idx_schedules_due", "is_active", "next_run_at"),
        Index("idx_schedules_website_id", "website_id"),
        Index("idx_schedules_user_id", "user_id"),
    )


class MonitoringConfig(Base):
    """Continuous monitoring configuration (one per website)"""
    __tablename__ = "monitoring_configs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False, unique=True)
    enabled = Column(Boolean, nullable=False, default=True)
    frequency = Column(String(20), nullable=False, default=MonitoringFrequency.WEEKLY.value)
    alert_threshold = Column(Float, nullable=False, default=10.0)  # percent drop
    metrics = Column(JSON, default=lambda: ["overall_score", "seo_score", "performance_score"])
    categories = Column(JSON, default=lambda: [])
    email_notifications = Column(Boolean, nullable=False, default=True)
    slack_webhook = Column(String, nullable=True)

    next_check_at = Column(DateTime, nullable=True)
    last_checked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    website = relationship("Website", back_populates="monitoring_config")

    __table_args__ = (
        CheckConstraint(f"frequency IN ({enum_values(MonitoringFrequency)})", name="chk_monitoring_frequency_valid"),
        CheckConstraint("alert_threshold >= 0 AND alert_threshold <= 100", name="chk_alert_threshold_range"),
        Index("idx_monitoring_due", "enabled", "next_check_at"),
    )


class Alert(Base):
    """Monitoring alert raised for a website"""
    __tablename__ = "alerts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    severity = Column(String(20), nullable=False, default=AlertSeverity.INFO.value)
    category = Column(String(50), nullable=False, default="general")
    metric = Column(String(50), nullable=True)
    value = Column(Float, nullable=True)
    threshold = Column(Float, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    website = relationship("Website", back_populates="alerts")

    __table_args__ = (
        CheckConstraint(f"severity IN ({enum_values(AlertSeverity)})", name="chk_alert_severity_valid"),
        Index("idx_alerts_website_read", "website_id", "read"),
        Index("idx_alerts_created_at", "created_at"),
    )


class Notification(Base):
    """In-app notification for a user"""
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=True)
    audit_id = Column(Uuid, ForeignKey("audits.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(40), nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default=NotificationPriority.MEDIUM.value)
    channel = Column(String(20), nullable=False, default=NotificationChannel.IN_APP.value)
    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    data = Column(JSON, default=lambda: {})
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(f"type IN ({enum_values(NotificationType)})", name="chk_notification_type_valid"),
        CheckConstraint(f"priority IN ({enum_values(NotificationPriority)})", name="chk_notification_priority_valid"),
        CheckConstraint(f"channel IN ({enum_values(NotificationChannel)})", name="chk_notification_channel_valid"),
        Index("idx_notifications_user_read", "user_id", "read"),
        Index("idx_notifications_created_at", "created_at"),
    )


class NotificationPreference(Base):
    """Per-user notification thresholds"""
    __tablename__ = "notification_preferences"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    min_score_threshold = Column(Float, nullable=False, default=70.0)
    min_score_drop = Column(Float, nullable=False, default=5.0)
    email_enabled = Column(Boolean, nullable=False, default=True)
    realtime_alerts = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class WebhookConfiguration(Base):
    """Outbound webhook endpoint registered by a user"""
    __tablename__ = "webhook_configurations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    url = Column(String, nullable=False)
    secret = Column(String, nullable=True)
    events = Column(JSON, default=lambda: [])
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    deliveries = relationship("WebhookDelivery", back_populates="webhook", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("length(trim(url)) > 0", name="chk_webhook_url_not_empty"),
        Index("idx_webhooks_user_active", "user_id", "active"),
    )


class WebhookDelivery(Base):
    """Record of a single webhook delivery attempt"""
    __tablename__ = "webhook_deliveries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    webhook_id = Column(Uuid, ForeignKey("webhook_configurations.id", ondelete="CASCADE"), nullable=False)
    event = Column(String(64), nullable=False)
    payload = Column(JSON, default=lambda: {})
    status_code = Column(Integer, nullable=False, default=0)
    success = Column(Boolean, nullable=False, default=False)
    response = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    webhook = relationship("WebhookConfiguration", back_populates="deliveries")

    __table_args__ = (
        Index("idx_webhook_deliveries_webhook_id", "webhook_id"),
    )


class SystemEvent(Base):
    """Activity log backing the admin dashboard"""
    __tablename__ = "system_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Uuid, nullable=True)
    payload = Column(JSON, default=lambda: {})
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint("length(trim(event_type)) > 0", name="chk_event_type_not_empty"),
        CheckConstraint("length(trim(entity_type)) > 0", name="chk_entity_type_not_empty"),
        Index("idx_system_events_entity", "entity_type", "entity_id"),
        Index("idx_system_events_created_at", "created_at"),
        Index("idx_system_events_type", "event_type"),
    )
