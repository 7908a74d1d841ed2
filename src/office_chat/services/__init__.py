# src/office_chat/services/__init__.py
"""Business logic services for the Office Chat application."""

from .broadcast import BroadcastChannel
from .chat_log import ChatLogService, Requester
from .media import MediaHost
from .notifications import NotificationBatch, NotificationService
from .presence import PresenceService
from .store import ChatStore
from .stream import ChatStream, StreamState

__all__ = [
    "BroadcastChannel",
    "ChatLogService",
    "ChatStore",
    "ChatStream",
    "MediaHost",
    "NotificationBatch",
    "NotificationService",
    "PresenceService",
    "Requester",
    "StreamState",
]
