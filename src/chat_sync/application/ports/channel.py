from __future__ import annotations

from typing import AsyncIterator, Protocol

from chat_sync.application.dto.events import ChannelEvent


class ConnectionChannel(Protocol):
    """One persistent, user-scoped push channel with per-conversation topics."""

    @property
    def connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def join(self, conversation_id: str) -> None: ...

    async def leave(self, conversation_id: str) -> None: ...

    def events(self) -> AsyncIterator[ChannelEvent]:
        """Inbound events in arrival order; ends after remove_all_listeners()."""
        ...

    def remove_all_listeners(self) -> None: ...

    async def disconnect(self) -> None: ...
