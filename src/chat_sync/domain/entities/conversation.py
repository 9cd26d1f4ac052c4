from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.participant import Participant


@dataclass(frozen=True, slots=True)
class Conversation:
    id: str
    participants: tuple[Participant, ...]
    last_message: Message | None
    last_activity_at: datetime
    unread: bool = False

    def other_participant(self, self_id: str) -> Participant | None:
        for participant in self.participants:
            if participant.id != self_id:
                return participant
        return None
