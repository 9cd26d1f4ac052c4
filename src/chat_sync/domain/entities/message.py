from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from chat_sync.domain.value_objects.enums import DeliveryState, MessageType


@dataclass(frozen=True, slots=True)
class Message:
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime
    delivery_state: DeliveryState
    server_id: str | None = None
    temp_id: str | None = None
    message_type: str = MessageType.TEXT
    sender_name: str | None = None

    @property
    def key(self) -> str:
        """Resolved identity: the server id once confirmed, else the temp id."""
        return self.server_id or self.temp_id or ""

    @property
    def is_pending(self) -> bool:
        return self.delivery_state == DeliveryState.PENDING

    def with_state(self, state: DeliveryState) -> Message:
        return replace(self, delivery_state=state)
