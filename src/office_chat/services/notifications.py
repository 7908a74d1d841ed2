"""In-app notifications for new team chat messages."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from office_chat.core.settings import settings
from office_chat.models import Notification, User

logger = logging.getLogger(__name__)

CHAT_NOTIFICATION_TITLE = "New Team Chat Message"


@dataclass
class NotificationBatch:
    """Outcome of a fan-out: how many were created and who was missed."""

    sent: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


def active_directory(db: Session) -> list[User]:
    """Return every active user, ordered by name."""
    return list(db.scalars(select(User).where(User.is_active.is_(True)).order_by(User.name)))


class NotificationService:
    """Creates notifications one recipient at a time, collecting failures."""

    def __init__(self, db: Session, *, max_per_user: int | None = None) -> None:
        self.db = db
        self.max_per_user = max_per_user or settings.max_notifications_per_user

    def notify_chat_message(self, sender: User, text: str) -> NotificationBatch:
        """Notify every other active user about a chat message from ``sender``."""
        recipients = [user for user in active_directory(self.db) if user.id != sender.id]
        content = f"{sender.name} sends a new message: {text}"
        batch = self.fan_out(CHAT_NOTIFICATION_TITLE, content, sender.id, recipients)
        if batch.failed:
            logger.warning(
                "Chat notification fan-out: %d sent, %d failed", batch.sent, batch.failed_count
            )
        return batch

    def fan_out(
        self,
        title: str,
        content: str,
        sent_by_id: str | None,
        recipients: Iterable[User],
    ) -> NotificationBatch:
        """Create one notification per recipient; a failure skips only that recipient."""
        batch = NotificationBatch()
        delivered: list[str] = []
        for recipient in recipients:
            try:
                with self.db.begin_nested():
                    self.db.add(
                        Notification(
                            title=title,
                            content=content,
                            sent_by_id=sent_by_id,
                            sent_to_id=recipient.id,
                        )
                    )
            except SQLAlchemyError as exc:
                logger.warning("Failed to notify user %s: %s", recipient.id, exc)
                batch.failed.append(recipient.id)
                continue
            batch.sent += 1
            delivered.append(recipient.id)

        for user_id in delivered:
            self.prune(user_id)
        self.db.commit()
        return batch

    def prune(self, user_id: str) -> int:
        """Delete all but the newest notifications of a user; return how many went."""
        stale_ids = list(
            self.db.scalars(
                select(Notification.id)
                .where(Notification.sent_to_id == user_id)
                .order_by(Notification.id.desc())
                .offset(self.max_per_user)
            )
        )
        if not stale_ids:
            return 0
        for notification in self.db.scalars(
            select(Notification).where(Notification.id.in_(stale_ids))
        ):
            self.db.delete(notification)
        logger.debug("Pruned %d old notifications for user %s", len(stale_ids), user_id)
        return len(stale_ids)
