"""Shared store handle for chat history, presence and pub/sub.

A single ``redis.asyncio`` client backs the chat log list, the presence hash
and publishing. Each streaming connection takes its own ``PubSub`` from the
client's pool, so subscriber connections stay 1:1 with open streams.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from office_chat.core.settings import settings
from office_chat.services.errors import ChatStoreError

# Configure logger for this module
logger = logging.getLogger(__name__)


class ChatStore:
    """Explicitly constructed store handle with a connect/close lifecycle."""

    def __init__(self, url: str | None = None, *, client: redis.Redis | None = None) -> None:
        """Initialize the handle.

        Args:
            url: Redis URL; defaults to ``settings.redis_url``.
            client: Pre-built client (tests pass an in-memory one).
        """
        self.url = url or settings.redis_url
        self._client = client

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> redis.Redis:
        """Return the live client."""
        if self._client is None:
            raise ChatStoreError("Chat store is not connected")
        return self._client

    async def connect(self) -> None:
        """Create the client if needed and check that the server answers.

        A failed ping is logged and tolerated: the client reconnects lazily on
        the next command.
        """
        if self._client is None:
            self._client = redis.from_url(
                self.url,
                decode_responses=True,
                health_check_interval=settings.redis_health_check_interval,
            )
        try:
            await self._client.ping()
        except RedisError as exc:
            logger.warning("Chat store at %s is not reachable yet: %s", self.url, exc)
        else:
            logger.info("Connected to chat store")

    async def close(self) -> None:
        """Release the client and its connection pool."""
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except RedisError as exc:  # pragma: no cover - shutdown path
            logger.warning("Error while closing chat store: %s", exc)
        finally:
            self._client = None
