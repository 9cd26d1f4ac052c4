from __future__ import annotations

from typing import Protocol

from chat_sync.application.dto.result import Result
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message


class ChatApi(Protocol):
    """Request/response side of the messaging backend.

    Implementations never raise for network conditions; failures come back
    as ``Err``.
    """

    async def list_conversations(
        self, *, page: int = 1, limit: int = 20
    ) -> Result[list[Conversation]]: ...

    async def get_or_create_conversation(
        self, participant_id: str
    ) -> Result[Conversation]: ...

    async def list_messages(
        self, conversation_id: str, *, page: int = 1, limit: int = 50
    ) -> Result[list[Message]]: ...

    async def send_message(
        self, conversation_id: str, content: str
    ) -> Result[Message]: ...

    async def mark_read(self, conversation_id: str) -> Result[None]: ...

    async def unread_count(self) -> Result[int]: ...
