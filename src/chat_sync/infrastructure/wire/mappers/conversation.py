from __future__ import annotations

from datetime import datetime, timezone

from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.participant import Participant
from chat_sync.infrastructure.wire.mappers import message as message_mapper
from chat_sync.infrastructure.wire.schemas.conversation import ConversationPayload

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def payload_to_entity(payload: ConversationPayload) -> Conversation:
    last_message = None
    if payload.last_message is not None:
        last_message = message_mapper.payload_to_entity(payload.last_message, payload.id)

    activity = payload.last_activity or payload.updated_at or payload.created_at
    return Conversation(
        id=payload.id,
        participants=tuple(
            Participant(
                id=p.id,
                name=p.name,
                profile_pic=p.profile_pic,
                role=p.role,
            )
            for p in payload.participants
        ),
        last_message=last_message,
        last_activity_at=message_mapper.as_utc(activity) if activity is not None else _EPOCH,
        unread=payload.unread,
    )
