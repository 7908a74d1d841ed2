"""Server-sent-event relay for one connected chat client.

Each connection owns one pub/sub subscription and one heartbeat timer. A relay
task and a heartbeat task feed a single outbound queue that the HTTP response
drains as ``data: <json>\\n\\n`` frames.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

import anyio
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from office_chat.core.settings import settings
from office_chat.schemas.chat import HeartbeatEnvelope
from office_chat.services.broadcast import BroadcastChannel

logger = logging.getLogger(__name__)


def format_frame(payload: str) -> str:
    """Wrap a JSON payload as one server-sent event."""
    return f"data: {payload}\n\n"


HEARTBEAT_FRAME = format_frame(HeartbeatEnvelope().to_wire_json())

RELAY_STOP_GRACE_SECONDS = 1.0


class StreamState(str, enum.Enum):
    """Lifecycle of a streaming connection."""

    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class ChatStream:
    """Relays broadcast events and heartbeats to one client."""

    def __init__(
        self,
        channel: BroadcastChannel,
        *,
        heartbeat_seconds: float | None = None,
        poll_seconds: float = 1.0,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self.channel = channel
        self.heartbeat_seconds = heartbeat_seconds or settings.chat_heartbeat_seconds
        self.poll_seconds = poll_seconds
        self.state = StreamState.SUBSCRIBING
        self._is_disconnected = is_disconnected
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._pubsub: PubSub | None = None
        self._relay_task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._heartbeat_task: asyncio.Task[None] | None = None

    async def open(self) -> None:
        """Subscribe and start relaying.

        Raises:
            ChatStoreError: If the subscription cannot be established; the
                stream is then CLOSED without ever becoming ACTIVE.
        """
        self.state = StreamState.SUBSCRIBING
        try:
            self._pubsub = await self.channel.subscribe()
        except Exception:
            self.state = StreamState.CLOSED
            raise
        self.state = StreamState.ACTIVE
        self._relay_task = asyncio.create_task(self._relay(self._pubsub))
        self._heartbeat_task = asyncio.create_task(self._heartbeat())
        logger.debug("Chat stream subscribed to %s", self.channel.channel)

    async def _relay(self, pubsub: PubSub) -> None:
        try:
            while not self._stopping.is_set():
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self.poll_seconds
                )
                if self._stopping.is_set():
                    break
                if message is not None and message.get("type") == "message":
                    data = message["data"]
                    if isinstance(data, bytes):
                        data = data.decode("utf-8")
                    self._queue.put_nowait(format_frame(data))
                await asyncio.sleep(0)
        except (RedisError, ConnectionError) as exc:
            logger.warning("Chat stream lost its subscription: %s", exc)
            self._queue.put_nowait(None)

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_seconds)
            self._queue.put_nowait(HEARTBEAT_FRAME)

    async def frames(self) -> AsyncIterator[str]:
        """Yield outbound frames until the client goes away or the stream closes."""
        try:
            while self.state is StreamState.ACTIVE:
                if self._is_disconnected is not None and await self._is_disconnected():
                    break
                try:
                    frame = await asyncio.wait_for(self._queue.get(), timeout=self.poll_seconds)
                except asyncio.TimeoutError:
                    continue
                if frame is None:
                    break
                yield frame
        finally:
            with anyio.CancelScope(shield=True):
                await self.close()

    async def close(self) -> None:
        """Tear the connection down; safe to call more than once.

        Order: stop the heartbeat, unsubscribe, stop the relay, close the
        pub/sub connection and the outbound queue. The relay exits on its own
        after its current poll; it is only cancelled if that takes longer
        than ``poll_seconds + RELAY_STOP_GRACE_SECONDS``.
        """
        if self.state in (StreamState.CLOSING, StreamState.CLOSED):
            return
        self.state = StreamState.CLOSING
        self._stopping.set()

        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            await asyncio.gather(self._heartbeat_task, return_exceptions=True)

        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self.channel.channel)
            except (RedisError, ConnectionError) as exc:
                logger.warning("Failed to unsubscribe chat stream: %s", exc)

        if self._relay_task is not None and not self._relay_task.done():
            _, pending = await asyncio.wait(
                {self._relay_task}, timeout=self.poll_seconds + RELAY_STOP_GRACE_SECONDS
            )
            if pending:
                logger.warning("Chat stream relay did not stop in time, cancelling it")
                self._relay_task.cancel()

        if self._pubsub is not None:
            try:
                await self._pubsub.aclose()
            except (RedisError, ConnectionError) as exc:
                logger.warning("Failed to close chat stream connection: %s", exc)

        self._queue.put_nowait(None)
        self.state = StreamState.CLOSED
        logger.debug("Chat stream closed")
