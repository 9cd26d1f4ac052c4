"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator

import pytest

from chat_sync.application.dto.events import ChannelEvent
from chat_sync.application.dto.principal import Identity
from chat_sync.application.dto.result import Err, Ok, Result
from chat_sync.application.exceptions import TransientNetworkError
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.participant import Participant
from chat_sync.domain.value_objects.enums import DeliveryState

SELF_ID = "u-self"
OTHER_ID = "u-other"
T0 = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def identity() -> Identity:
    return Identity(user_id=SELF_ID, role="user", name="Sam Self")


def at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


def make_message(
    *,
    conversation_id: str = "c1",
    server_id: str | None = "m1",
    temp_id: str | None = None,
    sender_id: str = OTHER_ID,
    content: str = "hello",
    created_at: datetime | None = None,
    state: DeliveryState | None = None,
) -> Message:
    if state is None:
        state = DeliveryState.PENDING if server_id is None else DeliveryState.SENT
    return Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        created_at=created_at or T0,
        delivery_state=state,
        server_id=server_id,
        temp_id=temp_id,
    )


def make_conversation(
    conversation_id: str = "c1",
    *,
    activity: datetime | None = None,
    unread: bool = False,
    last_message: Message | None = None,
    other_id: str = OTHER_ID,
) -> Conversation:
    return Conversation(
        id=conversation_id,
        participants=(
            Participant(id=SELF_ID, name="Sam Self"),
            Participant(id=other_id, name="Olive Other", role="recruiter"),
        ),
        last_message=last_message,
        last_activity_at=activity or T0,
        unread=unread,
    )


def message_wire(message: Message) -> dict[str, Any]:
    return {
        "_id": message.server_id,
        "conversation": message.conversation_id,
        "sender": {"_id": message.sender_id, "name": message.sender_name},
        "content": message.content,
        "messageType": str(message.message_type),
        "createdAt": message.created_at.isoformat(),
    }


def new_message_event(message: Message) -> ChannelEvent:
    return ChannelEvent(
        type="new_message",
        data={"conversationId": message.conversation_id, "message": message_wire(message)},
    )


@dataclass
class FakeClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current

    def advance(self, minutes: float) -> None:
        self.current += timedelta(minutes=minutes)


@dataclass
class FakeChatApi:
    conversations: list[Conversation] = field(default_factory=list)
    messages: dict[str, list[Message]] = field(default_factory=dict)
    queued_sends: list[Result[Message]] = field(default_factory=list)
    fail_sends: bool = False
    fail_loads: bool = False
    unread: int = 0
    send_gate: asyncio.Event | None = None
    sent: list[tuple[str, str]] = field(default_factory=list)
    list_message_calls: list[str] = field(default_factory=list)
    read_calls: list[str] = field(default_factory=list)
    _ids: Any = field(default_factory=lambda: itertools.count(100))

    async def list_conversations(self, *, page: int = 1, limit: int = 20) -> Result[list[Conversation]]:
        if self.fail_loads:
            return Err("Failed to fetch conversations", TransientNetworkError("boom", 500))
        return Ok(list(self.conversations)[:limit])

    async def get_or_create_conversation(self, participant_id: str) -> Result[Conversation]:
        for c in self.conversations:
            if any(p.id == participant_id for p in c.participants):
                return Ok(c)
        created = make_conversation(f"c-{participant_id}", other_id=participant_id)
        self.conversations.append(created)
        return Ok(created)

    async def list_messages(self, conversation_id: str, *, page: int = 1, limit: int = 50) -> Result[list[Message]]:
        self.list_message_calls.append(conversation_id)
        if self.fail_loads:
            return Err("Failed to fetch messages", TransientNetworkError("boom", 500))
        return Ok(list(self.messages.get(conversation_id, []))[:limit])

    async def send_message(self, conversation_id: str, content: str) -> Result[Message]:
        self.sent.append((conversation_id, content))
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.queued_sends:
            return self.queued_sends.pop(0)
        if self.fail_sends:
            return Err("Failed to send message", TransientNetworkError("Failed to send message", 500))
        return Ok(
            make_message(
                conversation_id=conversation_id,
                server_id=f"m{next(self._ids)}",
                sender_id=SELF_ID,
                content=content,
                created_at=T0,
            )
        )

    async def mark_read(self, conversation_id: str) -> Result[None]:
        self.read_calls.append(conversation_id)
        return Ok(None)

    async def unread_count(self) -> Result[int]:
        return Ok(self.unread)


@dataclass
class FakeChannel:
    """In-memory ConnectionChannel; ``ops`` logs join/leave in call order."""

    ops: list[tuple[str, str]] = field(default_factory=list)
    joined: set[str] = field(default_factory=set)
    connected: bool = False
    listeners_removed: bool = False
    _queue: asyncio.Queue = field(default_factory=asyncio.Queue)

    async def connect(self) -> None:
        self.connected = True

    async def join(self, conversation_id: str) -> None:
        self.ops.append(("join", conversation_id))
        self.joined.add(conversation_id)

    async def leave(self, conversation_id: str) -> None:
        self.ops.append(("leave", conversation_id))
        self.joined.discard(conversation_id)

    def push(self, event: ChannelEvent) -> None:
        self._queue.put_nowait(event)

    async def events(self) -> AsyncIterator[ChannelEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    def remove_all_listeners(self) -> None:
        self.listeners_removed = True
        self._queue.put_nowait(None)

    async def disconnect(self) -> None:
        self.connected = False


@dataclass
class FakeAggregator:
    read_signals: list[str] = field(default_factory=list)
    incoming: list[Message] = field(default_factory=list)
    reloads: int = 0
    raise_on_read: bool = False

    async def mark_conversation_as_read(self, conversation_id: str) -> None:
        self.read_signals.append(conversation_id)
        if self.raise_on_read:
            raise RuntimeError("aggregator unavailable")

    async def reload(self) -> None:
        self.reloads += 1

    def note_incoming(self, message: Message) -> None:
        self.incoming.append(message)


async def drain(channel: FakeChannel) -> None:
    """Let the session pump consume everything queued on the channel."""
    for _ in range(50):
        if channel._queue.empty():
            break
        await asyncio.sleep(0)
    await asyncio.sleep(0)
    await asyncio.sleep(0)
