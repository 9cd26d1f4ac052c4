"""Session-scoped owner of the channel, the store and the conversation index."""
from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Callable, Self

from chat_sync.application.dto.principal import Identity
from chat_sync.application.dto.result import Err, Ok, Result
from chat_sync.application.exceptions import ValidationError
from chat_sync.application.ports.api import ChatApi
from chat_sync.application.ports.channel import ConnectionChannel
from chat_sync.application.ports.clock import Clock
from chat_sync.application.ports.notifications import NotificationAggregator
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.services.conversation_index import ConversationIndex
from chat_sync.services.event_router import RouteOutcome, RouteResult, SocketEventRouter
from chat_sync.services.message_store import MessageStore
from chat_sync.services.read_state_tracker import ReadStateTracker
from chat_sync.services.send_pipeline import OptimisticSendPipeline, SendOutcome
from chat_sync.services.subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)

OnUpdate = Callable[[RouteResult], None]


class ChatSession:
    """One authenticated user's messaging state.

    Usage::

        async with ChatSession(identity, api, channel) as session:
            await session.open_conversation(conversation_id)
            outcome = await session.send("Hello")
    """

    def __init__(
        self,
        identity: Identity,
        api: ChatApi,
        channel: ConnectionChannel,
        aggregator: NotificationAggregator | None = None,
        *,
        clock: Clock | None = None,
        on_update: OnUpdate | None = None,
        max_message_length: int = 2000,
        conversations_page_limit: int = 20,
        messages_page_limit: int = 50,
    ) -> None:
        self.identity = identity
        self._api = api
        self._channel = channel
        self._aggregator = aggregator
        self._on_update = on_update
        self._conversations_page_limit = conversations_page_limit

        self.store = MessageStore()
        self.index = ConversationIndex(self.store)
        self.subscriptions = SubscriptionManager(channel)
        self.router = SocketEventRouter(identity, self.store, self.index, self.subscriptions)
        self.sender = OptimisticSendPipeline(
            identity, self.store, self.index, api,
            clock=clock, max_length=max_message_length,
        )
        self.read_state = ReadStateTracker(
            api, self.store, self.index, aggregator, page_limit=messages_page_limit,
        )
        self._pump_task: asyncio.Task[None] | None = None

    @property
    def active_conversation_id(self) -> str | None:
        return self.subscriptions.active

    async def start(self) -> Result[list[Conversation]]:
        await self._channel.connect()
        self._pump_task = asyncio.create_task(
            self._pump(), name=f"chat-session-{self.identity.user_id}",
        )
        logger.info("Chat session started for user %s", self.identity.user_id)
        if self._aggregator is not None:
            await self._aggregator.reload()
        return await self.load_conversations()

    async def load_conversations(self) -> Result[list[Conversation]]:
        result = await self._api.list_conversations(limit=self._conversations_page_limit)
        if isinstance(result, Err):
            logger.warning("Failed to load conversations: %s", result.reason)
            return result
        self.index.load(result.value)
        return Ok(self.index.conversations())

    async def start_conversation(self, participant_id: str) -> Result[Conversation]:
        """Get or create the two-party conversation with ``participant_id`` and open it."""
        result = await self._api.get_or_create_conversation(participant_id)
        if isinstance(result, Err):
            logger.warning("Failed to open conversation with %s: %s", participant_id, result.reason)
            return result
        self.index.load([result.value])
        await self.open_conversation(result.value.id)
        return Ok(self.index.get(result.value.id) or result.value)

    async def open_conversation(self, conversation_id: str) -> Result[tuple[Message, ...]]:
        await self.subscriptions.select(conversation_id)
        return await self.read_state.mark_read(conversation_id)

    async def close_conversation(self) -> None:
        await self.subscriptions.deselect()

    def visible_messages(self) -> tuple[Message, ...]:
        """The sequence rendered for the open conversation."""
        if self.subscriptions.active is None:
            return ()
        return self.store.messages(self.subscriptions.active)

    async def send(self, content: str, conversation_id: str | None = None) -> SendOutcome:
        target = conversation_id or self.subscriptions.active
        if target is None:
            raise ValidationError("No conversation selected")
        return await self.sender.send(target, content)

    async def aclose(self) -> None:
        await self.subscriptions.teardown()
        if self._pump_task is not None:
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
            self._pump_task = None
        await self._channel.disconnect()
        logger.info("Chat session closed for user %s", self.identity.user_id)

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def _pump(self) -> None:
        async for result in self.router.run(self._channel.events()):
            try:
                await self._after_route(result)
            except Exception:
                logger.exception("Error handling routed %s event", result.outcome)

    async def _after_route(self, result: RouteResult) -> None:
        if result.unknown_conversation:
            await self.load_conversations()

        if self._aggregator is not None:
            if result.outcome == RouteOutcome.INSERTED and result.message is not None:
                if result.conversation_id == self.subscriptions.active:
                    # Seen as it arrived; the server still counts it until told.
                    await self.read_state.signal_read(result.conversation_id)
                else:
                    self._aggregator.note_incoming(result.message)
            elif result.outcome == RouteOutcome.READ_SYNCED:
                await self._aggregator.reload()

        if self._on_update is not None:
            self._on_update(result)
