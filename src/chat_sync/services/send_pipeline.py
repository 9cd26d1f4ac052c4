"""Optimistic sends: local pending entry first, server confirmation later."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from chat_sync.application.dto.principal import Identity
from chat_sync.application.dto.result import Err, Ok, Result
from chat_sync.application.exceptions import AppError, TransientNetworkError, ValidationError
from chat_sync.application.ports.api import ChatApi
from chat_sync.application.ports.clock import Clock, SystemClock
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import DeliveryState, MessageType
from chat_sync.domain.value_objects.ids import new_temp_id
from chat_sync.services.conversation_index import ConversationIndex
from chat_sync.services.message_store import MessageStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SendOutcome:
    """Result of one compose action.

    On failure ``restored_content`` is exactly what the caller passed in, so
    the compose box can be refilled.
    """

    temp_id: str
    message: Message | None = None
    restored_content: str | None = None
    error: AppError | None = None

    @property
    def ok(self) -> bool:
        return self.message is not None


class OptimisticSendPipeline:
    def __init__(
        self,
        identity: Identity,
        store: MessageStore,
        index: ConversationIndex,
        api: ChatApi,
        *,
        clock: Clock | None = None,
        max_length: int = 2000,
    ) -> None:
        self._identity = identity
        self._store = store
        self._index = index
        self._api = api
        self._clock = clock or SystemClock()
        self._max_length = max_length

    def compose(self, conversation_id: str, content: str) -> Message:
        """Validate and append the pending message. No network I/O."""
        text = content.strip()
        if not text:
            raise ValidationError("Message content is required")
        if len(text) > self._max_length:
            raise ValidationError(f"Message cannot exceed {self._max_length} characters")

        pending = Message(
            conversation_id=conversation_id,
            sender_id=self._identity.user_id,
            sender_name=self._identity.name,
            content=text,
            message_type=MessageType.TEXT,
            created_at=self._clock.now(),
            delivery_state=DeliveryState.PENDING,
            temp_id=new_temp_id(),
        )
        self._store.append(conversation_id, pending)
        self._index.refresh(conversation_id)
        return pending

    async def send(self, conversation_id: str, content: str) -> SendOutcome:
        pending = self.compose(conversation_id, content)
        assert pending.temp_id is not None

        result: Result[Message]
        try:
            result = await self._api.send_message(conversation_id, pending.content)
        except Exception as exc:
            logger.exception("send_message raised for %s", pending.temp_id)
            result = Err(str(exc), TransientNetworkError(str(exc)))

        if isinstance(result, Ok):
            confirmed = self._store.reconcile(pending.temp_id, result.value)
            self._index.refresh(conversation_id)
            logger.debug("Send %s confirmed as %s", pending.temp_id, result.value.server_id)
            return SendOutcome(
                temp_id=pending.temp_id,
                message=confirmed or result.value.with_state(DeliveryState.SENT),
            )

        self._store.fail(pending.temp_id)
        self._index.rollback(conversation_id, pending.temp_id)
        logger.warning(
            "Send %s to %s failed: %s", pending.temp_id, conversation_id, result.reason,
        )
        return SendOutcome(
            temp_id=pending.temp_id,
            restored_content=content,
            error=result.error,
        )
