"""Tests for chat notification fan-out and pruning."""

from types import SimpleNamespace

from sqlalchemy import select

from office_chat.models import Notification
from office_chat.services.notifications import (
    CHAT_NOTIFICATION_TITLE,
    NotificationService,
    active_directory,
)


def _inbox(db_session, user):
    return list(
        db_session.scalars(
            select(Notification)
            .where(Notification.sent_to_id == user.id)
            .order_by(Notification.id)
        )
    )


def test_active_directory_skips_inactive(db_session, test_user, other_user, inactive_user):
    names = [user.name for user in active_directory(db_session)]
    assert names == ["Alice Martin", "Bob Stone"]


def test_notify_chat_message_excludes_sender(db_session, test_user, other_user, inactive_user):
    batch = NotificationService(db_session).notify_chat_message(test_user, "lunch at noon?")

    assert batch.sent == 1
    assert batch.failed == []
    assert _inbox(db_session, test_user) == []
    assert _inbox(db_session, inactive_user) == []

    (notification,) = _inbox(db_session, other_user)
    assert notification.title == CHAT_NOTIFICATION_TITLE
    assert notification.content == "Alice Martin sends a new message: lunch at noon?"
    assert notification.sent_by_id == test_user.id
    assert notification.is_read is False


def test_one_failed_recipient_does_not_stop_the_rest(db_session, test_user, other_user):
    broken = SimpleNamespace(id=None)
    service = NotificationService(db_session)

    batch = service.fan_out("Title", "Body", test_user.id, [broken, other_user])

    assert batch.sent == 1
    assert batch.failed_count == 1
    assert len(_inbox(db_session, other_user)) == 1


def test_inbox_is_pruned_to_newest(db_session, test_user, other_user):
    service = NotificationService(db_session, max_per_user=3)
    for index in range(5):
        service.fan_out("Title", f"message {index}", test_user.id, [other_user])

    db_session.expire_all()
    inbox = _inbox(db_session, other_user)
    assert [item.content for item in inbox] == ["message 2", "message 3", "message 4"]


def test_prune_reports_removed_count(db_session, test_user, other_user):
    service = NotificationService(db_session, max_per_user=20)
    for index in range(3):
        db_session.add(
            Notification(title="t", content=str(index), sent_by_id=None, sent_to_id=other_user.id)
        )
    db_session.flush()

    assert service.prune(other_user.id) == 0
    service.max_per_user = 1
    assert service.prune(other_user.id) == 2
