# src/office_chat/api/v1/endpoints/notifications.py
"""Notification inbox endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import func, select

from office_chat.models import Notification
from office_chat.schemas.notification import (
    NotificationList,
    NotificationResponse,
    NotificationUpdate,
)

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationList)
async def list_notifications(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(10, ge=1, le=20),
    unread_only: bool = Query(False),
) -> NotificationList:
    """Return the caller's newest notifications and their unread count."""
    query = select(Notification).where(Notification.sent_to_id == current_user.id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    notifications = db.scalars(query.order_by(Notification.id.desc()).limit(limit)).all()

    unread_count = db.scalar(
        select(func.count(Notification.id)).where(
            Notification.sent_to_id == current_user.id,
            Notification.is_read.is_(False),
        )
    )
    return NotificationList(
        data=[NotificationResponse.model_validate(item) for item in notifications],
        unread_count=int(unread_count or 0),
    )


@router.patch("/{notification_id}", response_model=NotificationResponse)
async def update_notification(
    notification_id: int,
    payload: NotificationUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> NotificationResponse:
    """Mark one of the caller's notifications read or unread."""
    notification = db.get(Notification, notification_id)
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
    if notification.sent_to_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have permission to update this notification",
        )

    if payload.is_read is not None:
        notification.is_read = payload.is_read
        db.commit()
        db.refresh(notification)
    return NotificationResponse.model_validate(notification)
