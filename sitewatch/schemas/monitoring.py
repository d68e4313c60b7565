"""Pydantic schemas for monitoring"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitewatch.db.enums import MonitoringFrequency
from sitewatch.schemas.audits import _check_categories


class MonitoringConfigUpdate(BaseModel):
    """Partial update of a website's monitoring configuration"""
    website_id: UUID
    enabled: Optional[bool] = None
    frequency: Optional[MonitoringFrequency] = None
    alert_threshold: Optional[float] = Field(None, description="Percent score drop that raises an alert")
    metrics: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    email_notifications: Optional[bool] = None
    slack_webhook: Optional[str] = None

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v):
        return _check_categories(v)


class MonitoringToggle(BaseModel):
    website_id: UUID
    enabled: bool


class MonitoringConfigResponse(BaseModel):
    id: UUID
    website_id: UUID
    enabled: bool
    frequency: str
    alert_threshold: float
    metrics: List[str] = []
    categories: List[str] = []
    email_notifications: bool
    slack_webhook: Optional[str] = None
    next_check_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("metrics", "categories", mode="before")
    @classmethod
    def default_list(cls, v):
        return v or []


class AlertResponse(BaseModel):
    id: UUID
    website_id: UUID
    title: str
    message: str
    severity: str
    category: str
    metric: Optional[str] = None
    value: Optional[float] = None
    threshold: Optional[float] = None
    read: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AlertsMarkRead(BaseModel):
    """Mark alerts read; an empty ``alert_ids`` with ``all`` marks every alert"""
    website_id: UUID
    alert_ids: List[UUID] = []
    all: bool = False
