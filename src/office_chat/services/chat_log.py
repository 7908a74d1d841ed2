"""Bounded chat history kept in a shared store list.

The list is newest-first: sends push at the head and trim the tail, watching
the key so a caller-supplied id can be checked against the live log. Edits
and deletes rewrite the whole list inside a WATCH/MULTI transaction, so an
append or another rewrite landing mid-way aborts the transaction and the
rewrite starts over from a fresh read.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import ValidationError
from redis.exceptions import RedisError, WatchError

from office_chat.core.settings import settings
from office_chat.db.time import utcnow_iso
from office_chat.schemas.chat import (
    ChatMessage,
    ChatMessageCreate,
    MessageDeleteEnvelope,
    MessageEditEnvelope,
    MessageEnvelope,
)
from office_chat.services.broadcast import BroadcastChannel
from office_chat.services.errors import (
    ChatStoreError,
    ChatValidationError,
    MediaHostError,
    MessageForbiddenError,
    MessageNotFoundError,
)
from office_chat.services.media import MediaHost
from office_chat.services.store import ChatStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Requester:
    """The authenticated user acting on a message."""

    user_id: str
    name: str


def _parse_entry(raw: str) -> ChatMessage | None:
    try:
        return ChatMessage.model_validate_json(raw)
    except ValidationError:
        logger.warning("Skipping unreadable chat log entry: %.80s", raw)
        return None


def _entry_id(raw: str) -> str | None:
    try:
        entry = json.loads(raw)
    except ValueError:
        return None
    return entry.get("id") if isinstance(entry, dict) else None


def _owns(entry: ChatMessage, requester: Requester) -> bool:
    # Entries written before userId was stored fall back to the display name.
    if entry.user_id:
        return entry.user_id == requester.user_id
    return entry.name == requester.name


class ChatLogService:
    """Append, list, edit and delete chat messages."""

    def __init__(
        self,
        store: ChatStore,
        channel: BroadcastChannel,
        media_host: MediaHost | None = None,
        *,
        key: str | None = None,
        max_length: int | None = None,
        max_retries: int | None = None,
        clock: Callable[[], str] = utcnow_iso,
    ) -> None:
        self.store = store
        self.channel = channel
        self.media_host = media_host
        self.key = key or settings.chat_history_key
        self.max_length = max_length or settings.chat_max_history
        self.max_retries = max_retries or settings.chat_rewrite_max_retries
        self._clock = clock

    async def append(self, data: ChatMessageCreate, sender_id: str | None = None) -> ChatMessage:
        """Store a new message at the head of the log and broadcast it.

        Raises:
            ChatValidationError: If name/role are missing, there is no content,
                or a caller-supplied id is already in the log.
            ChatStoreError: If the store write or publish fails.
        """
        if not data.name or not data.role:
            raise ChatValidationError("Name and role are required")
        if not data.message and not data.attachments:
            raise ChatValidationError("Message or attachments required")

        message = ChatMessage(
            id=data.id or str(uuid.uuid4()),
            user_id=sender_id,
            name=data.name,
            role=data.role,
            avatar=data.avatar,
            message=data.message or "",
            sent_at=self._clock(),
            attachments=data.attachments or [],
        )

        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.store.client.pipeline(transaction=True) as pipe:
                    await pipe.watch(self.key)
                    if data.id:
                        entries = await pipe.lrange(self.key, 0, -1)
                        if any(_entry_id(raw) == message.id for raw in entries):
                            raise ChatValidationError(f"Message ID {message.id!r} already exists")
                    pipe.multi()
                    pipe.lpush(self.key, message.to_wire_json())
                    pipe.ltrim(self.key, 0, self.max_length - 1)
                    await pipe.execute()
                    break
            except WatchError:
                logger.info("Chat log changed during append, retrying (attempt %d)", attempt)
                continue
            except RedisError as exc:
                raise ChatStoreError("Failed to store chat message") from exc
        else:
            raise ChatStoreError(f"Chat message append conflicted {self.max_retries} times")

        await self.channel.publish(MessageEnvelope.model_validate(message.model_dump()))
        return message

    async def list_messages(self) -> list[ChatMessage]:
        """Return the log newest-first, skipping entries that cannot be parsed."""
        try:
            raw_entries = await self.store.client.lrange(self.key, 0, -1)
        except RedisError as exc:
            raise ChatStoreError("Failed to read chat history") from exc
        messages: list[ChatMessage] = []
        for raw in raw_entries:
            entry = _parse_entry(raw)
            if entry is not None:
                messages.append(entry)
        return messages

    async def edit(self, message_id: str, new_text: str, requester: Requester) -> ChatMessage:
        """Replace a message's text in place and broadcast the edit.

        Raises:
            MessageNotFoundError: If no entry has ``message_id``.
            MessageForbiddenError: If ``requester`` does not own the entry.
            ChatStoreError: On store failure or repeated write conflicts.
        """

        def apply(entries: list[str]) -> tuple[list[str], ChatMessage]:
            rewritten: list[str] = []
            updated: ChatMessage | None = None
            for raw in entries:
                entry = _parse_entry(raw)
                if entry is None or entry.id != message_id or updated is not None:
                    rewritten.append(raw)
                    continue
                if not _owns(entry, requester):
                    raise MessageForbiddenError(message_id, "edit")
                updated = entry.model_copy(update={"message": new_text, "edited": True})
                rewritten.append(updated.to_wire_json())
            if updated is None:
                raise MessageNotFoundError(message_id)
            return rewritten, updated

        updated = await self._rewrite(apply)
        await self.channel.publish(MessageEditEnvelope.model_validate(updated.model_dump()))
        return updated

    async def delete(self, message_id: str, requester: Requester) -> ChatMessage:
        """Remove a message, purge its attachments and broadcast the deletion.

        Raises:
            MessageNotFoundError: If no entry has ``message_id``.
            MessageForbiddenError: If ``requester`` does not own the entry.
            ChatStoreError: On store failure or repeated write conflicts.
        """

        def apply(entries: list[str]) -> tuple[list[str], ChatMessage]:
            remaining: list[str] = []
            removed: ChatMessage | None = None
            for raw in entries:
                entry = _parse_entry(raw)
                if entry is None or entry.id != message_id or removed is not None:
                    remaining.append(raw)
                    continue
                if not _owns(entry, requester):
                    raise MessageForbiddenError(message_id, "delete")
                removed = entry
            if removed is None:
                raise MessageNotFoundError(message_id)
            return remaining, removed

        removed = await self._rewrite(apply)
        await self._purge_attachments(removed)
        await self.channel.publish(
            MessageDeleteEnvelope(id=message_id, deleted_by=requester.name)
        )
        return removed

    async def _rewrite(
        self, apply: Callable[[list[str]], tuple[list[str], ChatMessage]]
    ) -> ChatMessage:
        """Read the whole log, transform it and write it back atomically."""
        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.store.client.pipeline(transaction=True) as pipe:
                    await pipe.watch(self.key)
                    entries = await pipe.lrange(self.key, 0, -1)
                    rewritten, target = apply(entries)
                    pipe.multi()
                    pipe.delete(self.key)
                    if rewritten:
                        pipe.rpush(self.key, *rewritten)
                    await pipe.execute()
                    return target
            except WatchError:
                logger.info("Chat log changed during rewrite, retrying (attempt %d)", attempt)
                continue
            except RedisError as exc:
                raise ChatStoreError("Failed to rewrite chat history") from exc
        raise ChatStoreError(f"Chat history rewrite conflicted {self.max_retries} times")

    async def _purge_attachments(self, message: ChatMessage) -> None:
        if not message.attachments or self.media_host is None:
            return
        for attachment in message.attachments:
            if not attachment.public_id:
                continue
            resource_type = "image" if attachment.type == "image" else "raw"
            try:
                await self.media_host.destroy(attachment.public_id, resource_type=resource_type)
            except MediaHostError as exc:
                logger.warning(
                    "Failed to delete attachment %s of message %s: %s",
                    attachment.public_id,
                    message.id,
                    exc,
                )
