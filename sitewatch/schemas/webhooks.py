"""Pydantic schemas for webhook configurations"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WebhookCreate(BaseModel):
    """
    Register an outbound webhook.

    Example:
    {
      "url": "https://hooks.example.com/sitewatch",
      "events": ["audit.completed", "audit.critical_issues"],
      "secret": "shared-secret"
    }
    """
    url: str = Field(..., description="Endpoint receiving POSTed events")
    events: List[str] = Field(..., min_length=1)
    secret: Optional[str] = Field(None, description="Used to sign payloads with HMAC-SHA256")
    active: bool = True


class WebhookResponse(BaseModel):
    id: UUID
    url: str
    events: List[str] = []
    active: bool
    has_secret: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("events", mode="before")
    @classmethod
    def default_list(cls, v):
        return v or []

    @classmethod
    def from_config(cls, config) -> "WebhookResponse":
        response = cls.model_validate(config)
        response.has_secret = bool(config.secret)
        return response


class WebhookDeliveryResponse(BaseModel):
    id: UUID
    event: str
    status_code: int
    success: bool
    response: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
