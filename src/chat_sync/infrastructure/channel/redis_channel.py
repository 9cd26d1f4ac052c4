"""Redis Pub/Sub push channel for in-cluster consumers of the chat fan-out."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator

import redis.asyncio as aioredis

from chat_sync.application.dto.events import ChannelEvent
from chat_sync.application.dto.principal import Identity
from chat_sync.application.exceptions import ProtocolAnomaly
from chat_sync.infrastructure.channel.serializer import decode_event

logger = logging.getLogger(__name__)


class RedisPubSubChannel:
    """Implements application.ports.channel.ConnectionChannel.

    The user's room and every joined conversation map to Redis channels
    ``{prefix}.user.{id}`` and ``{prefix}.conversation.{id}``.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        identity: Identity,
        *,
        prefix: str = "chat",
    ) -> None:
        self._redis = redis
        self._identity = identity
        self._prefix = prefix
        self._pubsub: Any = None
        self._task: asyncio.Task[None] | None = None
        self._queue: asyncio.Queue[ChannelEvent | None] = asyncio.Queue()
        self._topics: set[str] = set()
        self._listening = False

    @property
    def connected(self) -> bool:
        return self._task is not None and not self._task.done()

    def user_channel(self) -> str:
        return f"{self._prefix}.user.{self._identity.user_id}"

    def conversation_channel(self, conversation_id: str) -> str:
        return f"{self._prefix}.conversation.{conversation_id}"

    async def connect(self) -> None:
        if self._pubsub is not None:
            return
        self._pubsub = self._redis.pubsub()
        channels = [self.user_channel(), *(self.conversation_channel(t) for t in sorted(self._topics))]
        await self._pubsub.subscribe(*channels)
        self._listening = True
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-channel")
        logger.info("Redis Pub/Sub channel started on %s", self.user_channel())

    async def join(self, conversation_id: str) -> None:
        self._topics.add(conversation_id)
        if self._pubsub is not None:
            await self._pubsub.subscribe(self.conversation_channel(conversation_id))

    async def leave(self, conversation_id: str) -> None:
        self._topics.discard(conversation_id)
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.conversation_channel(conversation_id))

    async def events(self) -> AsyncIterator[ChannelEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    def remove_all_listeners(self) -> None:
        if self._listening:
            self._listening = False
            self._queue.put_nowait(None)

    async def disconnect(self) -> None:
        self.remove_all_listeners()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None
        self._topics.clear()
        logger.info("Redis Pub/Sub channel stopped")

    async def _listen(self) -> None:
        async for message in self._pubsub.listen():
            if message["type"] != "message":
                continue
            try:
                event = decode_event(message["data"])
            except ProtocolAnomaly as exc:
                logger.warning("Dropped frame on %s: %s", message.get("channel"), exc.detail)
                continue
            if self._listening:
                self._queue.put_nowait(event)
