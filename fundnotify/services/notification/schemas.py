"""Notification records and delivery-surface request/response schemas."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class NotificationRecord(BaseModel):
    """One live notification shown to the founder; `id` is the event key."""

    id: str
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    project_id: int
    investor: str
    amount: int


class SessionStartRequest(BaseModel):
    """Identity handed over by the wallet layer once a wallet is connected."""

    recipient: str = Field(min_length=1)
    role: str = Field(min_length=1)


class RoleChangeRequest(BaseModel):
    role: str = Field(min_length=1)


class SessionResponse(BaseModel):
    state: str
    recipient: str | None
    subscription_connected: bool
    notification_count: int


class DismissResponse(BaseModel):
    dismissed: int
    durable: bool
