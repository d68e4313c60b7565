"""Pydantic schemas for websites"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class WebsiteCreate(BaseModel):
    """Request model for registering a website"""
    url: HttpUrl = Field(..., description="Website URL to audit")
    name: Optional[str] = Field(None, max_length=200, description="Display name (defaults to the host)")


class WebsiteUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    url: Optional[HttpUrl] = None


class WebsiteResponse(BaseModel):
    """Response model for website data"""
    id: UUID
    user_id: UUID
    name: str
    url: str
    monitoring_enabled: bool
    last_monitored_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
