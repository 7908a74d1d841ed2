# src/office_chat/models/user.py
"""SQLAlchemy models for office users."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from office_chat.db.session import Base
from office_chat.db.time import utcnow


class UserRole(str, enum.Enum):
    """Roles a member of the office can hold."""

    ADMIN = "ADMIN"
    PARTNER = "PARTNER"
    BUSINESS_EXECUTIVE = "BUSINESS_EXECUTIVE"
    BUSINESS_CONSULTANT = "BUSINESS_CONSULTANT"
    PERMANENT_CLIENT = "PERMANENT_CLIENT"
    GUEST_CLIENT = "GUEST_CLIENT"


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Office user; the active rows form the chat directory."""

    __tablename__ = "user_account"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_user_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.BUSINESS_CONSULTANT,
    )
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def role_name(self) -> str:
        """Return the role as its plain string value."""
        return self.role.value if isinstance(self.role, UserRole) else str(self.role)
