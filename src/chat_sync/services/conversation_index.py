"""Conversation summaries ordered by most recent activity."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable

from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.services.message_store import MessageStore

logger = logging.getLogger(__name__)


class ConversationIndex:
    def __init__(self, store: MessageStore) -> None:
        self._store = store
        self._entries: dict[str, Conversation] = {}
        self._read_marks: dict[str, datetime] = {}
        # Summary as it was before an optimistic send took it over.
        self._before_pending: dict[str, tuple[Message | None, datetime]] = {}
        self._order: list[str] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._entries

    def get(self, conversation_id: str) -> Conversation | None:
        return self._entries.get(conversation_id)

    def conversations(self) -> list[Conversation]:
        return [self._entries[cid] for cid in self._order]

    def load(self, conversations: Iterable[Conversation]) -> None:
        """Merge a server listing into the index.

        Safe to run while channel events are being applied: locally fresher
        activity is kept, and a server ``unread=True`` does not override a
        local read mark that already covers the server's last activity.
        Conversations missing from the listing are kept.
        """
        for incoming in conversations:
            self._entries[incoming.id] = self._merge(self._entries.get(incoming.id), incoming)
        self._resort()

    def refresh(
        self,
        conversation_id: str,
        *,
        observed: Message | None = None,
        unread: bool | None = None,
    ) -> Conversation | None:
        """Recompute one summary from the store (and an observed message).

        Activity only moves forward. Returns None for an unknown conversation.
        """
        current = self._entries.get(conversation_id)
        if current is None:
            return None

        last = current.last_message
        activity = current.last_activity_at
        if (
            last is not None
            and last.temp_id
            and not self._store.contains(conversation_id, last.key)
        ):
            # Summary still points at a send that has since been reconciled or rolled back.
            last = self._store.last_message(conversation_id)

        for candidate in (self._store.last_message(conversation_id), observed):
            if candidate is not None and candidate.created_at >= activity:
                last, activity = candidate, candidate.created_at

        return self._store_summary(
            current,
            last,
            activity,
            current.unread if unread is None else unread,
        )

    def rollback(self, conversation_id: str, temp_id: str) -> Conversation | None:
        """Undo the summary bump of a send that failed.

        The summary returns to what it was before the pending message, or to
        the store's newest message if that is newer. Activity may move
        backwards here and nowhere else.
        """
        current = self._entries.get(conversation_id)
        if current is None:
            return None
        if current.last_message is None or current.last_message.temp_id != temp_id:
            return self.refresh(conversation_id)

        before = self._before_pending.pop(conversation_id, None)
        newest = self._store.last_message(conversation_id)
        if before is None:
            last = newest
            activity = newest.created_at if newest is not None else current.last_activity_at
        else:
            last, activity = before
            if newest is not None and (last is None or newest.created_at >= activity):
                last, activity = newest, max(activity, newest.created_at)
            if last is not None and last.is_pending:
                # Another send from the same conversation is still in flight.
                self._before_pending[conversation_id] = before
        logger.debug("Conversation %s summary rolled back past %s", conversation_id, temp_id)
        return self._store_summary(current, last, activity, current.unread)

    def mark_read(self, conversation_id: str) -> bool:
        """Clear the unread flag. True only on an actual unread -> read transition."""
        current = self._entries.get(conversation_id)
        if current is None:
            return False

        mark = self._read_marks.get(conversation_id)
        if mark is None or current.last_activity_at > mark:
            self._read_marks[conversation_id] = current.last_activity_at

        if not current.unread:
            return False
        self._entries[conversation_id] = replace(current, unread=False)
        logger.debug("Conversation %s marked read", conversation_id)
        return True

    def _store_summary(
        self,
        current: Conversation,
        last: Message | None,
        activity: datetime,
        unread: bool,
    ) -> Conversation:
        was_pending = current.last_message is not None and current.last_message.is_pending
        if last is not None and last.is_pending:
            if not was_pending:
                self._before_pending[current.id] = (current.last_message, current.last_activity_at)
        else:
            self._before_pending.pop(current.id, None)

        updated = replace(current, last_message=last, last_activity_at=activity, unread=unread)
        self._entries[current.id] = updated
        if activity != current.last_activity_at:
            self._resort()
        return updated

    def _merge(self, current: Conversation | None, incoming: Conversation) -> Conversation:
        before = self._before_pending.get(incoming.id)
        if current is not None and current.last_activity_at > incoming.last_activity_at:
            if before is not None and incoming.last_activity_at >= before[1]:
                self._before_pending[incoming.id] = (incoming.last_message, incoming.last_activity_at)
            return replace(
                incoming,
                last_message=current.last_message,
                last_activity_at=current.last_activity_at,
                unread=current.unread,
            )

        self._before_pending.pop(incoming.id, None)
        mark = self._read_marks.get(incoming.id)
        if incoming.unread and mark is not None and mark >= incoming.last_activity_at:
            return replace(incoming, unread=False)
        return incoming

    def _resort(self) -> None:
        self._order = [
            c.id
            for c in sorted(
                self._entries.values(),
                key=lambda c: (-c.last_activity_at.timestamp(), c.id),
            )
        ]
