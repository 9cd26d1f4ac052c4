from __future__ import annotations

from typing import Protocol

from chat_sync.domain.entities.message import Message


class NotificationAggregator(Protocol):
    """Unread-badge owner outside the sync core."""

    async def mark_conversation_as_read(self, conversation_id: str) -> None: ...

    async def reload(self) -> None: ...

    def note_incoming(self, message: Message) -> None: ...
