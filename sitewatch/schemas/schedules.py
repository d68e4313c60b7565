"""Pydantic schemas for audit schedules"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitewatch.db.enums import ScheduleFrequency
from sitewatch.schemas.audits import _check_categories


class ScheduleFields(BaseModel):
    categories: Optional[List[str]] = None
    time_of_day: Optional[str] = Field(None, description="Local time as HH:MM")
    timezone: Optional[str] = Field(None, description="IANA timezone name, e.g. Europe/Berlin")
    day_of_week: Optional[int] = Field(None, ge=0, le=6, description="0=Monday .. 6=Sunday")
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    scheduled_at: Optional[datetime] = Field(None, description="Run time for one_time schedules")

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v):
        return _check_categories(v)


class ScheduleCreate(ScheduleFields):
    """Request model for creating a schedule"""
    website_id: UUID
    frequency: ScheduleFrequency
    is_active: bool = True


class ScheduleUpdate(ScheduleFields):
    frequency: Optional[ScheduleFrequency] = None
    is_active: Optional[bool] = None


class WebsiteScheduleRequest(ScheduleFields):
    """Enable recurring audits for a website"""
    frequency: ScheduleFrequency = ScheduleFrequency.WEEKLY


class ScheduleResponse(BaseModel):
    id: UUID
    website_id: UUID
    frequency: str
    categories: List[str] = []
    time_of_day: str
    timezone: str
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    is_active: bool
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    last_audit_id: Optional[UUID] = None
    run_count: int = 0
    failure_count: int = 0
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("categories", mode="before")
    @classmethod
    def default_list(cls, v):
        return v or []
