"""Pydantic schemas for audits"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitewatch.db.enums import AuditCategory


def _check_categories(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    allowed = {category.value for category in AuditCategory}
    cleaned = [item.strip().lower() for item in value]
    unknown = [item for item in cleaned if item not in allowed]
    if unknown:
        raise ValueError(f"Unknown audit categories: {', '.join(unknown)}")
    return cleaned


class AuditCreate(BaseModel):
    """Request to start a manual audit"""
    categories: Optional[List[str]] = Field(None, description="Categories to audit (defaults to all)")

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v):
        return _check_categories(v)


class AuditResponse(BaseModel):
    """Audit record"""
    id: UUID
    website_id: UUID
    schedule_id: Optional[UUID] = None
    url: str
    trigger: str
    status: str
    categories: List[str] = []
    overall_score: Optional[float] = None
    seo_score: Optional[float] = None
    performance_score: Optional[float] = None
    accessibility_score: Optional[float] = None
    security_score: Optional[float] = None
    content_score: Optional[float] = None
    mobile_score: Optional[float] = None
    issues: Dict[str, Any] = {}
    critical_issues: List[str] = []
    error_message: Optional[str] = None
    queue_job_id: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("categories", "critical_issues", mode="before")
    @classmethod
    def default_list(cls, v):
        return v or []

    @field_validator("issues", mode="before")
    @classmethod
    def default_dict(cls, v):
        return v or {}


class AuditEnqueueResponse(BaseModel):
    audit: AuditResponse
    job_id: Optional[str] = None
