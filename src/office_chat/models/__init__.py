# src/office_chat/models/__init__.py
"""SQLAlchemy models for the Office Chat application."""

from .notification import Notification
from .user import User, UserRole

__all__ = [
    "Notification",
    "User", "UserRole",
]
