# src/office_chat/schemas/__init__.py
"""Pydantic schemas for the Office Chat API."""

from .chat import (
    Attachment,
    BroadcastEnvelope,
    ChatMessage,
    ChatMessageCreate,
    ChatMessageDelete,
    ChatMessageEdit,
    HeartbeatEnvelope,
    MessageDeleteEnvelope,
    MessageEditEnvelope,
    MessageEnvelope,
    StatusUpdate,
    TypingIndicatorEnvelope,
    TypingUpdate,
    UserPresence,
    UserStatusEnvelope,
    parse_envelope,
)
from .notification import NotificationList, NotificationResponse, NotificationUpdate

__all__ = [
    "Attachment",
    "BroadcastEnvelope",
    "ChatMessage",
    "ChatMessageCreate",
    "ChatMessageDelete",
    "ChatMessageEdit",
    "HeartbeatEnvelope",
    "MessageDeleteEnvelope",
    "MessageEditEnvelope",
    "MessageEnvelope",
    "NotificationList",
    "NotificationResponse",
    "NotificationUpdate",
    "StatusUpdate",
    "TypingIndicatorEnvelope",
    "TypingUpdate",
    "UserPresence",
    "UserStatusEnvelope",
    "parse_envelope",
]
