"""Pydantic schemas for notifications"""
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NotificationResponse(BaseModel):
    id: UUID
    website_id: Optional[UUID] = None
    audit_id: Optional[UUID] = None
    type: str
    title: str
    message: str
    priority: str
    channel: str
    read: bool
    read_at: Optional[datetime] = None
    data: Dict[str, Any] = {}
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("data", mode="before")
    @classmethod
    def default_dict(cls, v):
        return v or {}


class NotificationPreferenceUpdate(BaseModel):
    min_score_threshold: Optional[float] = Field(None, ge=0, le=100)
    min_score_drop: Optional[float] = Field(None, ge=0, le=100)
    email_enabled: Optional[bool] = None
    realtime_alerts: Optional[bool] = None


class NotificationPreferenceResponse(BaseModel):
    min_score_threshold: float
    min_score_drop: float
    email_enabled: bool
    realtime_alerts: bool

    model_config = ConfigDict(from_attributes=True)
