"""Channel event payload models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from chat_sync.application.exceptions import ProtocolAnomaly
from chat_sync.domain.entities.message import Message
from chat_sync.infrastructure.wire.mappers import message as message_mapper
from chat_sync.infrastructure.wire.schemas.message import MessagePayload


class NewMessageEvent(BaseModel):
    """Server → Client: ``new_message``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    conversation_id: str = Field(alias="conversationId")
    message: MessagePayload


class MessageReadEvent(BaseModel):
    """Server → Client: ``messageRead``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    conversation_id: str = Field(alias="conversationId")
    user_id: str = Field(alias="userId")


def parse_new_message(data: dict[str, Any]) -> tuple[str, Message]:
    try:
        event = NewMessageEvent.model_validate(data)
    except PydanticValidationError as exc:
        raise ProtocolAnomaly(f"invalid new_message payload: {exc.error_count()} error(s)") from exc

    conversation_id = event.conversation_id
    if event.message.conversation and event.message.conversation != conversation_id:
        raise ProtocolAnomaly(
            f"message {event.message.id} belongs to {event.message.conversation}, "
            f"not {conversation_id}"
        )
    if not event.message.id:
        raise ProtocolAnomaly("new_message without a server id")
    return conversation_id, message_mapper.payload_to_entity(event.message, conversation_id)


def parse_message_read(data: dict[str, Any]) -> tuple[str, str]:
    try:
        event = MessageReadEvent.model_validate(data)
    except PydanticValidationError as exc:
        raise ProtocolAnomaly(f"invalid messageRead payload: {exc.error_count()} error(s)") from exc
    return event.conversation_id, event.user_id
