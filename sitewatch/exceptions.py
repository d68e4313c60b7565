"""Custom exceptions for Sitewatch"""
from typing import Optional, Dict, Any
from uuid import UUID

from sitewatch.decision.error_codes import ErrorCode


class SitewatchError(Exception):
    """Base exception for domain errors carrying an error code"""

    def __init__(
        self,
        error_code: ErrorCode,
        entity_id: Optional[UUID] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.entity_id = entity_id
        self.context = context or {}
        super().__init__(error_code.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        return {
            "code": self.error_code.code,
            "message": self.error_code.message,
            "remediation_steps": list(self.error_code.remediation_steps),
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "context": self.context,
        }


class AuditStateError(SitewatchError):
    """Exception raised when an audit cannot move to the requested state"""
    pass


class ScheduleValidationError(SitewatchError):
    """Exception raised when a schedule definition is invalid"""
    pass


class MonitoringError(SitewatchError):
    """Exception raised when a monitoring configuration is invalid"""
    pass


class WebhookError(SitewatchError):
    """Exception raised when a webhook configuration is invalid"""
    pass
