"""Socket.IO push channel."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Coroutine, Iterable

import socketio

from chat_sync.application.dto.events import ChannelEvent
from chat_sync.application.dto.principal import Identity
from chat_sync.domain.value_objects.enums import ChannelEventType

logger = logging.getLogger(__name__)

JOIN_USER_ROOM = "join_user_room"
JOIN_CONVERSATION = "join_conversation"
LEAVE_CONVERSATION = "leave_conversation"

_LIFECYCLE_EVENTS = ("connect", "disconnect", "connect_error")

Handler = Callable[..., Coroutine[Any, Any, None]]


class SocketIOChannel:
    """Implements application.ports.channel.ConnectionChannel.

    Joined topics are remembered and re-joined on every (re)connect together
    with the user's personal room; the server may replay events after that,
    which the router absorbs.
    """

    def __init__(
        self,
        url: str,
        identity: Identity,
        *,
        token: str = "",
        socketio_path: str = "/socket.io",
        transports: Iterable[str] = ("websocket", "polling"),
        reconnection_delay: float = 1.0,
        reconnection_delay_max: float = 5.0,
        connect_timeout: float = 10.0,
        client: socketio.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._identity = identity
        self._token = token
        self._socketio_path = socketio_path.strip().lstrip("/") or "socket.io"
        self._transports = list(transports)
        self._connect_timeout = connect_timeout
        self._client = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_delay=max(0.1, reconnection_delay),
            reconnection_delay_max=max(0.1, reconnection_delay_max),
            logger=False,
            engineio_logger=False,
        )
        self._queue: asyncio.Queue[ChannelEvent | None] = asyncio.Queue()
        self._topics: set[str] = set()
        self._listening = False

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    async def connect(self) -> None:
        if self._client.connected:
            return
        self._attach_listeners()
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        await self._client.connect(
            self._url,
            headers=headers,
            transports=self._transports,
            socketio_path=self._socketio_path,
            wait_timeout=max(1.0, self._connect_timeout),
        )

    async def join(self, conversation_id: str) -> None:
        self._topics.add(conversation_id)
        if self._client.connected:
            await self._client.emit(JOIN_CONVERSATION, conversation_id)

    async def leave(self, conversation_id: str) -> None:
        self._topics.discard(conversation_id)
        if self._client.connected:
            await self._client.emit(LEAVE_CONVERSATION, conversation_id)

    async def events(self) -> AsyncIterator[ChannelEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    def remove_all_listeners(self) -> None:
        handlers = self._client.handlers.get("/", {})
        for name in (*_LIFECYCLE_EVENTS, *(e.value for e in ChannelEventType)):
            handlers.pop(name, None)
        if self._listening:
            self._listening = False
            self._queue.put_nowait(None)

    async def disconnect(self) -> None:
        self.remove_all_listeners()
        self._topics.clear()
        if self._client.connected:
            await self._client.disconnect()
        logger.info("Socket.IO channel closed")

    def _attach_listeners(self) -> None:
        if self._listening:
            return
        self._listening = True
        self._client.on("connect", self._on_connect)
        self._client.on("disconnect", self._on_disconnect)
        self._client.on("connect_error", self._on_connect_error)
        for event_type in ChannelEventType:
            self._client.on(event_type.value, self._forwarder(event_type.value))

    async def _on_connect(self) -> None:
        logger.info("Socket.IO connected to %s", self._url)
        await self._client.emit(JOIN_USER_ROOM, self._identity.user_id)
        for topic in sorted(self._topics):
            await self._client.emit(JOIN_CONVERSATION, topic)

    async def _on_disconnect(self, *_args: Any) -> None:
        logger.warning("Socket.IO disconnected from %s", self._url)

    async def _on_connect_error(self, data: Any = None) -> None:
        logger.error("Socket.IO connection error: %s", data)

    def _forwarder(self, event_type: str) -> Handler:
        async def handler(data: Any = None) -> None:
            if not self._listening:
                return
            if not isinstance(data, dict):
                logger.warning("Non-object %s payload: %r", event_type, data)
                data = {}
            self._queue.put_nowait(ChannelEvent(type=event_type, data=data))

        return handler
