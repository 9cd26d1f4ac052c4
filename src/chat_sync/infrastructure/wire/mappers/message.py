from __future__ import annotations

from datetime import datetime, timezone

from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import DeliveryState
from chat_sync.infrastructure.wire.schemas.message import MessagePayload


def as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def payload_to_entity(
    payload: MessagePayload, conversation_id: str | None = None,
) -> Message:
    """Server copy of a message; always confirmed."""
    return Message(
        conversation_id=conversation_id or payload.conversation or "",
        sender_id=payload.sender.id,
        sender_name=payload.sender.name,
        content=payload.content,
        message_type=payload.message_type,
        created_at=as_utc(payload.created_at),
        delivery_state=DeliveryState.SENT,
        server_id=payload.id,
    )
