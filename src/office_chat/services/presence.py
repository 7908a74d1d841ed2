"""Online-user tracking with lazy staleness.

Presence lives in one hash keyed by user id. Entries are never expired in the
background: a user counts as online only while their ``lastSeen`` is younger
than the presence window at the moment the directory is read.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from urllib.parse import quote

from redis.exceptions import RedisError

from office_chat.core.settings import settings
from office_chat.db.time import parse_iso, utcnow
from office_chat.models import User
from office_chat.schemas.chat import UserPresence, UserStatusEnvelope
from office_chat.services.broadcast import BroadcastChannel
from office_chat.services.errors import ChatStoreError
from office_chat.services.store import ChatStore

logger = logging.getLogger(__name__)

DEFAULT_AVATAR_URL = "https://api.dicebear.com/7.x/initials/svg?seed={seed}"


def default_avatar(name: str) -> str:
    """Return a generated initials avatar for users without a picture."""
    return DEFAULT_AVATAR_URL.format(seed=quote(name))


class PresenceService:
    """Marks users online/offline and joins presence with the user directory."""

    def __init__(
        self,
        store: ChatStore,
        channel: BroadcastChannel,
        *,
        key: str | None = None,
        window_seconds: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.channel = channel
        self.key = key or settings.online_users_key
        self.window = timedelta(seconds=window_seconds or settings.presence_window_seconds)
        self._clock = clock

    async def set_online(self, user_id: str, name: str, role: str) -> UserStatusEnvelope:
        """Record the user as seen now and broadcast the status change."""
        now = self._clock().isoformat()
        entry = json.dumps({"lastSeen": now, "name": name, "role": role})
        try:
            await self.store.client.hset(self.key, user_id, entry)
        except RedisError as exc:
            raise ChatStoreError("Failed to record presence") from exc
        return await self._announce(user_id, name, role, is_online=True)

    async def set_offline(self, user_id: str, name: str, role: str) -> UserStatusEnvelope:
        """Drop the user's presence entry and broadcast the status change."""
        try:
            await self.store.client.hdel(self.key, user_id)
        except RedisError as exc:
            raise ChatStoreError("Failed to clear presence") from exc
        return await self._announce(user_id, name, role, is_online=False)

    async def _announce(
        self, user_id: str, name: str, role: str, *, is_online: bool
    ) -> UserStatusEnvelope:
        envelope = UserStatusEnvelope(
            user_id=user_id,
            name=name,
            role=role,
            is_online=is_online,
            sent_at=self._clock().isoformat(),
        )
        await self.channel.publish(envelope)
        return envelope

    async def last_seen_by_user(self) -> dict[str, str]:
        """Return the raw ``lastSeen`` value for every readable presence entry."""
        try:
            entries = await self.store.client.hgetall(self.key)
        except RedisError as exc:
            raise ChatStoreError("Failed to read presence") from exc

        last_seen: dict[str, str] = {}
        for user_id, raw in entries.items():
            try:
                value = json.loads(raw).get("lastSeen")
            except (ValueError, AttributeError):
                logger.warning("Ignoring unreadable presence entry for %s", user_id)
                continue
            if isinstance(value, str):
                last_seen[user_id] = value
        return last_seen

    async def list_users(self, directory: Iterable[User]) -> list[UserPresence]:
        """Join directory users with their presence state."""
        last_seen = await self.last_seen_by_user()
        now = self._clock()

        users: list[UserPresence] = []
        for user in directory:
            seen_raw = last_seen.get(user.id)
            seen_at = parse_iso(seen_raw)
            users.append(
                UserPresence(
                    id=user.id,
                    name=user.name,
                    role=user.role_name,
                    avatar=user.avatar or default_avatar(user.name),
                    is_online=seen_at is not None and now - seen_at < self.window,
                    last_seen=seen_raw,
                )
            )
        return users
