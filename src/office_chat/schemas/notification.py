"""Notification-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    """Schema for a notification returned by the API."""

    id: int
    title: str
    content: str
    sent_by_id: str | None
    sent_to_id: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationList(BaseModel):
    """Page of notifications with the caller's unread count."""

    data: list[NotificationResponse]
    unread_count: int


class NotificationUpdate(BaseModel):
    """Schema for updating a notification."""

    is_read: bool | None = None
