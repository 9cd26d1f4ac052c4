"""Shapes of the ``data`` member of ``{success, data, message}`` responses."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from chat_sync.infrastructure.wire.schemas.conversation import ConversationPayload
from chat_sync.infrastructure.wire.schemas.message import MessagePayload


class ConversationsPage(BaseModel):
    conversations: list[ConversationPayload] = []


class MessagesPage(BaseModel):
    messages: list[MessagePayload] = []


class UnreadCount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unread_count: int = Field(alias="unreadCount")
