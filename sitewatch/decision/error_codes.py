"""Error code catalog - standardized error responses with remediation steps."""
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional

from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    ERROR = "error"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorCode:
    """
    Standardized error code with remediation.

    Attributes:
        code: Unique error code identifier (e.g., SCHEDULE_001)
        message: Human-readable error message
        remediation_steps: List of steps to resolve the error
        severity: Error severity level
    """

    code: str
    message: str
    remediation_steps: List[str] = field(default_factory=list)
    severity: str = ErrorSeverity.ERROR.value

    def to_dict(self) -> Dict:
        """Convert error code to dictionary for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "remediation_steps": list(self.remediation_steps),
            "severity": self.severity,
        }


class ErrorCodeDictionary:
    """
    Catalog of every error code the service can return.

    Codes are grouped by prefix (WEBSITE, AUDIT, SCHEDULE, STATE,
    MONITORING, WEBHOOK, AUTH, SYSTEM) so callers can look up a whole
    category at once.
    """

    # Website errors (WEBSITE_*)
    WEBSITE_001: ClassVar[ErrorCode] = ErrorCode(
        code="WEBSITE_001",
        message="Website not found",
        remediation_steps=[
            "Verify website_id is correct",
            "Ensure the website belongs to your account",
        ],
    )

    WEBSITE_002: ClassVar[ErrorCode] = ErrorCode(
        code="WEBSITE_002",
        message="Website URL is invalid (must be http:// or https://)",
        remediation_steps=[
            "Include the scheme, e.g. https://example.com",
            "Remove whitespace around the URL",
        ],
    )

    # Audit errors (AUDIT_*)
    AUDIT_001: ClassVar[ErrorCode] = ErrorCode(
        code="AUDIT_001",
        message="Audit not found",
        remediation_steps=[
            "Verify audit_id is correct",
            "Ensure the audit belongs to one of your websites",
        ],
    )

    AUDIT_002: ClassVar[ErrorCode] = ErrorCode(
        code="AUDIT_002",
        message="Audit can only be run from the pending state",
        remediation_steps=[
            "Check the audit status before running it",
            "Retry failed audits via the retry endpoint",
        ],
    )

    AUDIT_003: ClassVar[ErrorCode] = ErrorCode(
        code="AUDIT_003",
        message="Unknown audit category",
        remediation_steps=[
            "Use one of: seo, performance, accessibility, security, content, mobile",
        ],
    )

    AUDIT_004: ClassVar[ErrorCode] = ErrorCode(
        code="AUDIT_004",
        message="Audit engine failed to evaluate the website",
        remediation_steps=[
            "Verify the website is reachable",
            "Retry the audit later",
        ],
    )

    AUDIT_005: ClassVar[ErrorCode] = ErrorCode(
        code="AUDIT_005",
        message="No previous completed audit to compare against",
        remediation_steps=[
            "Run at least two audits for this website",
        ],
        severity=ErrorSeverity.WARNING.value,
    )

    # Schedule errors (SCHEDULE_*)
    SCHEDULE_001: ClassVar[ErrorCode] = ErrorCode(
        code="SCHEDULE_001",
        message="Invalid time of day (expected HH:MM or HH:MM:SS)",
        remediation_steps=[
            "Use 24-hour format, e.g. 09:00 or 21:30:00",
        ],
    )

    SCHEDULE_002: ClassVar[ErrorCode] = ErrorCode(
        code="SCHEDULE_002",
        message="Unknown timezone",
        remediation_steps=[
            "Use an IANA timezone name, e.g. Europe/Berlin or UTC",
        ],
    )

    SCHEDULE_003: ClassVar[ErrorCode] = ErrorCode(
        code="SCHEDULE_003",
        message="Day of week must be between 0 (Monday) and 6 (Sunday)",
        remediation_steps=[
            "Provide day_of_week in range 0-6",
        ],
    )

    SCHEDULE_004: ClassVar[ErrorCode] = ErrorCode(
        code="SCHEDULE_004",
        message="Day of month must be between 1 and 31",
        remediation_steps=[
            "Provide day_of_month in range 1-31",
            "Days past the end of a month run on its last day",
        ],
    )

    SCHEDULE_005: ClassVar[ErrorCode] = ErrorCode(
        code="SCHEDULE_005",
        message="One-time schedules require scheduled_at",
        remediation_steps=[
            "Provide scheduled_at as an ISO 8601 datetime",
        ],
    )

    SCHEDULE_006: ClassVar[ErrorCode] = ErrorCode(
        code="SCHEDULE_006",
        message="Recurring schedules require a frequency",
        remediation_steps=[
            "Use one of: daily, weekly, biweekly, monthly, quarterly",
        ],
    )

    SCHEDULE_007: ClassVar[ErrorCode] = ErrorCode(
        code="SCHEDULE_007",
        message="Schedule not found",
        remediation_steps=[
            "Verify schedule_id is correct",
        ],
    )

    SCHEDULE_008: ClassVar[ErrorCode] = ErrorCode(
        code="SCHEDULE_008",
        message="One-time schedule must be in the future",
        remediation_steps=[
            "Set scheduled_at to a time after now",
        ],
    )

    # State machine errors (STATE_*)
    STATE_INVALID_TRANSITION: ClassVar[ErrorCode] = ErrorCode(
        code="STATE_INVALID_TRANSITION",
        message="Invalid audit state transition",
        remediation_steps=[
            "Audits move pending -> running -> completed or failed",
            "Failed audits may be returned to pending",
        ],
    )

    STATE_TERMINAL: ClassVar[ErrorCode] = ErrorCode(
        code="STATE_TERMINAL",
        message="Audit is in a terminal state",
        remediation_steps=[
            "Completed audits cannot change state",
            "Create a new audit instead",
        ],
    )

    # Monitoring errors (MONITORING_*)
    MONITORING_001: ClassVar[ErrorCode] = ErrorCode(
        code="MONITORING_001",
        message="Monitoring is not configured for this website",
        remediation_steps=[
            "Enable monitoring via the toggle endpoint",
        ],
    )

    MONITORING_002: ClassVar[ErrorCode] = ErrorCode(
        code="MONITORING_002",
        message="Alert threshold must be between 0 and 100 percent",
        remediation_steps=[
            "Provide alert_threshold in range 0-100",
        ],
    )

    MONITORING_003: ClassVar[ErrorCode] = ErrorCode(
        code="MONITORING_003",
        message="Unknown monitoring metric",
        remediation_steps=[
            "Use score names such as overall_score, seo_score, performance_score",
        ],
    )

    # Webhook errors (WEBHOOK_*)
    WEBHOOK_001: ClassVar[ErrorCode] = ErrorCode(
        code="WEBHOOK_001",
        message="Webhook URL is invalid",
        remediation_steps=[
            "Use an absolute http:// or https:// URL",
        ],
    )

    WEBHOOK_002: ClassVar[ErrorCode] = ErrorCode(
        code="WEBHOOK_002",
        message="Unknown webhook event",
        remediation_steps=[
            "Subscribe to events such as audit.completed or audit.critical_issues",
        ],
    )

    WEBHOOK_003: ClassVar[ErrorCode] = ErrorCode(
        code="WEBHOOK_003",
        message="Webhook delivery failed",
        remediation_steps=[
            "Check that the endpoint is reachable and returns 2xx",
        ],
        severity=ErrorSeverity.WARNING.value,
    )

    # Auth errors (AUTH_*)
    AUTH_001: ClassVar[ErrorCode] = ErrorCode(
        code="AUTH_001",
        message="Invalid or missing cron secret",
        remediation_steps=[
            "Send Authorization: Bearer <CRON_SECRET>",
            "Ensure CRON_SECRET is configured on the server",
        ],
    )

    AUTH_002: ClassVar[ErrorCode] = ErrorCode(
        code="AUTH_002",
        message="Admin role required",
        remediation_steps=[
            "Sign in with an administrator account",
        ],
    )

    # System errors (SYSTEM_*)
    SYSTEM_001: ClassVar[ErrorCode] = ErrorCode(
        code="SYSTEM_001",
        message="Entity not found in database",
        remediation_steps=[
            "Verify entity ID is correct",
            "Check if entity was deleted",
        ],
        severity=ErrorSeverity.CRITICAL.value,
    )

    SYSTEM_002: ClassVar[ErrorCode] = ErrorCode(
        code="SYSTEM_002",
        message="Job queue unavailable",
        remediation_steps=[
            "Verify Redis is running and REDIS_URL is correct",
        ],
        severity=ErrorSeverity.CRITICAL.value,
    )

    _ERROR_REGISTRY: ClassVar[Dict[str, ErrorCode]] = {}

    @classmethod
    def _build_registry(cls) -> Dict[str, ErrorCode]:
        """Build registry of all error codes."""
        if not cls._ERROR_REGISTRY:
            for attr_name in dir(cls):
                if not attr_name.startswith("_"):
                    attr = getattr(cls, attr_name)
                    if isinstance(attr, ErrorCode):
                        cls._ERROR_REGISTRY[attr.code] = attr
        return cls._ERROR_REGISTRY

    @classmethod
    def get_error(cls, code: str) -> Optional[ErrorCode]:
        """
        Get error code by code string.

        Args:
            code: Error code identifier (e.g., "SCHEDULE_001")

        Returns:
            ErrorCode if found, None otherwise
        """
        return cls._build_registry().get(code)

    @classmethod
    def get_all_errors(cls) -> List[ErrorCode]:
        """Get all error codes in the dictionary."""
        return list(cls._build_registry().values())

    @classmethod
    def get_errors_by_category(cls, category: str) -> List[ErrorCode]:
        """
        Get errors by category prefix.

        Args:
            category: Category prefix (e.g., 'SCHEDULE', 'STATE')

        Returns:
            List of ErrorCode instances matching the category
        """
        prefix = category.upper() + "_"
        return [
            error
            for error in cls.get_all_errors()
            if error.code.startswith(prefix)
        ]
