"""Applies channel events to the store and the conversation index."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import AsyncIterator

from chat_sync.application.dto.events import ChannelEvent
from chat_sync.application.dto.principal import Identity
from chat_sync.application.exceptions import ProtocolAnomaly
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import ChannelEventType
from chat_sync.infrastructure.wire.protocol import parse_message_read, parse_new_message
from chat_sync.services.conversation_index import ConversationIndex
from chat_sync.services.message_store import MessageStore
from chat_sync.services.subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)


class RouteOutcome(StrEnum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    OWN_ECHO = "own_echo"
    READ_SYNCED = "read_synced"
    IGNORED = "ignored"
    DROPPED = "dropped"


@dataclass(frozen=True, slots=True)
class RouteResult:
    outcome: RouteOutcome
    conversation_id: str | None = None
    message: Message | None = None
    unknown_conversation: bool = False


class SocketEventRouter:
    """Handles one event at a time, in arrival order.

    The local user's own messages are never inserted from the channel: the
    optimistic path owns them. Everything else is checked against the store
    first because a reconnect may replay events already seen.
    """

    def __init__(
        self,
        identity: Identity,
        store: MessageStore,
        index: ConversationIndex,
        subscriptions: SubscriptionManager,
    ) -> None:
        self._identity = identity
        self._store = store
        self._index = index
        self._subscriptions = subscriptions

    async def run(self, events: AsyncIterator[ChannelEvent]) -> AsyncIterator[RouteResult]:
        async for event in events:
            try:
                result = self.handle(event)
            except Exception:
                logger.exception("Error processing channel event %s", event.type)
                result = RouteResult(RouteOutcome.DROPPED)
            yield result

    def handle(self, event: ChannelEvent) -> RouteResult:
        try:
            if event.type == ChannelEventType.NEW_MESSAGE:
                return self._on_new_message(event)
            if event.type == ChannelEventType.MESSAGE_READ:
                return self._on_message_read(event)
        except ProtocolAnomaly as exc:
            logger.warning("Dropped %s event: %s", event.type, exc.detail)
            return RouteResult(RouteOutcome.DROPPED)

        logger.debug("Ignoring channel event: %s", event.type)
        return RouteResult(RouteOutcome.IGNORED)

    def _on_new_message(self, event: ChannelEvent) -> RouteResult:
        conversation_id, message = parse_new_message(event.data)
        assert message.server_id is not None

        unread: bool | None = None
        if message.sender_id == self._identity.user_id:
            outcome = RouteOutcome.OWN_ECHO
        elif self._store.has(conversation_id, message.server_id):
            outcome = RouteOutcome.DUPLICATE
        else:
            self._store.append(conversation_id, message)
            outcome = RouteOutcome.INSERTED
            if self._subscriptions.active != conversation_id:
                unread = True

        summary = self._index.refresh(conversation_id, observed=message, unread=unread)
        if summary is None:
            logger.info("Message %s for unknown conversation %s", message.server_id, conversation_id)
        return RouteResult(
            outcome,
            conversation_id=conversation_id,
            message=message,
            unknown_conversation=summary is None,
        )

    def _on_message_read(self, event: ChannelEvent) -> RouteResult:
        conversation_id, user_id = parse_message_read(event.data)
        if user_id != self._identity.user_id:
            return RouteResult(RouteOutcome.IGNORED, conversation_id=conversation_id)
        self._index.mark_read(conversation_id)
        return RouteResult(RouteOutcome.READ_SYNCED, conversation_id=conversation_id)
