"""Client-side message sequences, one per conversation."""
from __future__ import annotations

import bisect
import itertools
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable

from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import DeliveryState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    rank: int
    message: Message


def _sort_key(entry: _Entry) -> tuple[datetime, int]:
    return entry.message.created_at, entry.rank


class MessageStore:
    """Ordered message sequences keyed by conversation id.

    Each sequence is sorted by ``created_at`` with ties broken by insertion
    rank. A confirmed message inherits the rank of the pending entry it
    replaces, so reconciliation never reorders equal timestamps.
    """

    def __init__(self) -> None:
        self._sequences: dict[str, list[_Entry]] = {}
        self._keys: dict[str, set[str]] = {}
        self._pending: dict[str, str] = {}
        self._ranks = itertools.count()

    def append(self, conversation_id: str, message: Message) -> bool:
        """Insert keeping the sort order. Returns False if the identity is already present."""
        if not message.key:
            raise ValueError("message has neither a server id nor a temp id")
        if message.key in self._keys.get(conversation_id, ()):
            return False

        self._insert(conversation_id, _Entry(next(self._ranks), message))
        if message.is_pending and message.temp_id:
            self._pending[message.temp_id] = conversation_id
        return True

    def reconcile(self, temp_id: str, server_message: Message) -> Message | None:
        """Swap the pending entry for its confirmed copy. Missing temp_id is a no-op."""
        conversation_id = self._pending.pop(temp_id, None)
        if conversation_id is None:
            logger.debug("reconcile: no pending entry for %s", temp_id)
            return None

        entry = self._remove(conversation_id, temp_id)
        confirmed = replace(
            server_message,
            conversation_id=conversation_id,
            temp_id=None,
            delivery_state=DeliveryState.SENT,
        )

        if confirmed.key in self._keys.get(conversation_id, ()):
            # The server copy got here first (list reload or replay).
            logger.debug("reconcile: %s already present as %s", temp_id, confirmed.key)
            return self._get(conversation_id, confirmed.key)

        self._insert(conversation_id, _Entry(entry.rank if entry else next(self._ranks), confirmed))
        return confirmed

    def fail(self, temp_id: str) -> Message | None:
        """Roll back a pending send. Returns the removed message marked failed."""
        conversation_id = self._pending.pop(temp_id, None)
        if conversation_id is None:
            return None
        entry = self._remove(conversation_id, temp_id)
        if entry is None:
            return None
        return entry.message.with_state(DeliveryState.FAILED)

    def has(self, conversation_id: str, server_id: str) -> bool:
        return server_id in self._keys.get(conversation_id, ())

    def load(self, conversation_id: str, messages: Iterable[Message]) -> int:
        """Merge a fetched page of confirmed messages.

        Known messages are refreshed in place, unknown ones inserted, and
        pending entries are left alone. Returns the number of new messages.
        """
        added = 0
        for message in messages:
            existing = self._remove(conversation_id, message.key)
            if existing is not None:
                self._insert(conversation_id, _Entry(existing.rank, message))
            else:
                self._insert(conversation_id, _Entry(next(self._ranks), message))
                added += 1
        return added

    def messages(self, conversation_id: str) -> tuple[Message, ...]:
        return tuple(e.message for e in self._sequences.get(conversation_id, ()))

    def last_message(self, conversation_id: str) -> Message | None:
        seq = self._sequences.get(conversation_id)
        return seq[-1].message if seq else None

    def contains(self, conversation_id: str, key: str) -> bool:
        return key in self._keys.get(conversation_id, ())

    def _insert(self, conversation_id: str, entry: _Entry) -> None:
        seq = self._sequences.setdefault(conversation_id, [])
        bisect.insort(seq, entry, key=_sort_key)
        self._keys.setdefault(conversation_id, set()).add(entry.message.key)

    def _remove(self, conversation_id: str, key: str) -> _Entry | None:
        seq = self._sequences.get(conversation_id, [])
        for i, entry in enumerate(seq):
            if entry.message.key == key:
                del seq[i]
                self._keys[conversation_id].discard(key)
                return entry
        return None

    def _get(self, conversation_id: str, key: str) -> Message | None:
        for entry in self._sequences.get(conversation_id, ()):
            if entry.message.key == key:
                return entry.message
        return None
