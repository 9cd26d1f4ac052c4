"""Conversation topic subscriptions over the shared channel."""
from __future__ import annotations

import logging

from chat_sync.application.ports.channel import ConnectionChannel
from chat_sync.domain.value_objects.enums import SubscriptionState

logger = logging.getLogger(__name__)


class SubscriptionManager:
    """Keeps the channel subscribed to exactly the open conversation.

    ``select`` records the target first and then converges the channel on it,
    so overlapping selections settle on whichever was requested last.
    """

    def __init__(self, channel: ConnectionChannel) -> None:
        self._channel = channel
        self._active: str | None = None
        self._subscribed: set[str] = set()
        self._closed = False

    @property
    def active(self) -> str | None:
        return self._active

    def state(self, conversation_id: str) -> SubscriptionState:
        if conversation_id in self._subscribed:
            return SubscriptionState.SUBSCRIBED
        return SubscriptionState.UNSUBSCRIBED

    async def select(self, conversation_id: str) -> None:
        if self._closed:
            raise RuntimeError("subscription manager has been torn down")
        self._active = conversation_id
        await self._converge()

    async def deselect(self) -> None:
        self._active = None
        await self._converge()

    async def teardown(self) -> None:
        """Leave every topic and detach all channel listeners."""
        self._closed = True
        self._active = None
        await self._converge()
        self._channel.remove_all_listeners()
        logger.debug("Subscriptions torn down")

    async def _converge(self) -> None:
        for topic in sorted(self._subscribed):
            if topic != self._active:
                self._subscribed.discard(topic)
                logger.debug("Leaving conversation %s", topic)
                await self._channel.leave(topic)

        target = self._active
        if target is not None and target not in self._subscribed:
            self._subscribed.add(target)
            logger.debug("Joining conversation %s", target)
            await self._channel.join(target)
