from __future__ import annotations

import logging

from chat_sync.application.dto.principal import Identity
from chat_sync.application.dto.result import Err
from chat_sync.application.ports.api import ChatApi
from chat_sync.domain.entities.message import Message

logger = logging.getLogger(__name__)


class UnreadCounter:
    """Total unread-message badge, kept in step with the server.

    Implements application.ports.notifications.NotificationAggregator.
    """

    def __init__(self, api: ChatApi, identity: Identity) -> None:
        self._api = api
        self._identity = identity
        self.count = 0

    async def reload(self) -> None:
        result = await self._api.unread_count()
        if isinstance(result, Err):
            logger.warning("Failed to load unread count: %s", result.reason)
            return
        self.count = result.value

    def note_incoming(self, message: Message) -> None:
        if message.sender_id != self._identity.user_id:
            self.count += 1

    async def mark_conversation_as_read(self, conversation_id: str) -> None:
        result = await self._api.mark_read(conversation_id)
        if isinstance(result, Err):
            logger.warning("Failed to mark %s as read: %s", conversation_id, result.reason)
            return
        await self.reload()
