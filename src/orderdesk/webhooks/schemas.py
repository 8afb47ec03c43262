"""Pydantic schemas for webhook API endpoints."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class WebhookSubscriptionCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    secret: str = Field(..., min_length=1, max_length=255)
    events: list[str] = Field(..., min_length=1)
    is_active: bool = True


class WebhookSubscriptionUpdate(BaseModel):
    url: Optional[str] = Field(None, min_length=1, max_length=2048)
    secret: Optional[str] = Field(None, min_length=1, max_length=255)
    events: Optional[list[str]] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class WebhookSubscriptionResponse(BaseModel):
    """Subscription as shown to clients. The secret is write-only."""

    id: int
    url: str
    events: list[str] = []
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class WebhookDeliveryResponse(BaseModel):
    id: int
    subscription_id: int
    order_id: int
    event: str
    payload: dict[str, Any] = {}
    status_code: Optional[int] = None
    response_body: Optional[str] = None
    success: bool
    attempt_number: int
    delivered_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}
