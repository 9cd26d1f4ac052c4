from __future__ import annotations

import logging

from chat_sync.application.dto.result import Err, Ok, Result
from chat_sync.application.ports.api import ChatApi
from chat_sync.application.ports.notifications import NotificationAggregator
from chat_sync.domain.entities.message import Message
from chat_sync.services.conversation_index import ConversationIndex
from chat_sync.services.message_store import MessageStore

logger = logging.getLogger(__name__)


class ReadStateTracker:
    def __init__(
        self,
        api: ChatApi,
        store: MessageStore,
        index: ConversationIndex,
        aggregator: NotificationAggregator | None = None,
        *,
        page_limit: int = 50,
    ) -> None:
        self._api = api
        self._store = store
        self._index = index
        self._aggregator = aggregator
        self._page_limit = page_limit

    async def mark_read(self, conversation_id: str) -> Result[tuple[Message, ...]]:
        """Load the conversation's messages and clear its unread flag.

        The aggregator is told only on an actual unread -> read transition, so
        repeated calls never decrement twice. A failed load leaves the store
        and the flag untouched.
        """
        result = await self._api.list_messages(conversation_id, limit=self._page_limit)
        if isinstance(result, Err):
            logger.warning("Failed to load messages for %s: %s", conversation_id, result.reason)
            return result

        self._store.load(conversation_id, result.value)
        self._index.refresh(conversation_id)
        if self._index.mark_read(conversation_id):
            await self.signal_read(conversation_id)
        return Ok(self._store.messages(conversation_id))

    async def signal_read(self, conversation_id: str) -> None:
        """Tell the aggregator the conversation was seen. Errors are logged, not raised."""
        if self._aggregator is None:
            return
        try:
            await self._aggregator.mark_conversation_as_read(conversation_id)
        except Exception:
            logger.exception("mark_conversation_as_read failed for %s", conversation_id)
