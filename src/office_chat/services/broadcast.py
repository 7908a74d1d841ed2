"""Broadcast channel carrying real-time chat events."""

from __future__ import annotations

import logging

from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from office_chat.core.settings import settings
from office_chat.schemas.chat import BroadcastEnvelope
from office_chat.services.errors import ChatStoreError
from office_chat.services.store import ChatStore

logger = logging.getLogger(__name__)


class BroadcastChannel:
    """Publishes typed envelopes on one pub/sub channel."""

    def __init__(self, store: ChatStore, channel: str | None = None) -> None:
        self.store = store
        self.channel = channel or settings.chat_channel

    async def publish(self, envelope: BroadcastEnvelope) -> int:
        """Publish an envelope and return the number of receiving subscribers."""
        payload = envelope.to_wire_json()
        try:
            receivers = await self.store.client.publish(self.channel, payload)
        except RedisError as exc:
            raise ChatStoreError(f"Failed to publish {envelope.type} event") from exc
        logger.debug("Published %s event to %d subscribers", envelope.type, receivers)
        return int(receivers)

    async def subscribe(self) -> PubSub:
        """Return a dedicated pub/sub connection subscribed to the channel."""
        pubsub = self.store.client.pubsub()
        try:
            await pubsub.subscribe(self.channel)
        except RedisError as exc:
            await pubsub.aclose()
            raise ChatStoreError(f"Failed to subscribe to {self.channel}") from exc
        return pubsub

    async def subscriber_count(self) -> int:
        """Return how many connections are subscribed to the channel."""
        try:
            counts = await self.store.client.pubsub_numsub(self.channel)
        except RedisError as exc:
            raise ChatStoreError("Failed to count subscribers") from exc
        for name, count in counts:
            if name == self.channel:
                return int(count)
        return 0
