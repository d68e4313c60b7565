"""Application configuration"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Database
    database_url: str
    database_url_sync: str

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    cron_secret: Optional[str] = None

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    app_url: str = "http://localhost:8000"

    # Queue / worker settings
    queue_enabled: bool = True
    audit_worker_concurrency: int = 2

    # In-process scheduler (single-node deployments without external cron)
    scheduler_enabled: bool = False
    scheduler_interval_minutes: int = 15

    # Audit defaults
    default_audit_categories: List[str] = [
        "seo", "performance", "accessibility", "security", "content", "mobile",
    ]
    audit_timeout_seconds: int = 30

    # Schedule defaults
    default_time_of_day: str = "09:00"
    default_timezone: str = "UTC"

    # Notification thresholds
    min_score_threshold: float = 70.0
    min_score_drop: float = 5.0
    significant_score_drop: float = 10.0
    degradation_threshold: float = 0.10

    # Monitoring settings
    low_score_alert_threshold: float = 50.0
    default_monitoring_alert_threshold: float = 10.0

    # Webhooks
    webhook_timeout_seconds: int = 10

    # Email (no smtp_host means messages are only logged)
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    mail_from: str = "alerts@sitewatch.local"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
