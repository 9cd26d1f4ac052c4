from __future__ import annotations

from chat_sync.services.conversation_index import ConversationIndex
from chat_sync.services.message_store import MessageStore
from tests.conftest import SELF_ID, at, make_conversation, make_message


def _index() -> tuple[ConversationIndex, MessageStore]:
    store = MessageStore()
    return ConversationIndex(store), store


def test_load_orders_by_last_activity_descending():
    index, _ = _index()
    index.load([
        make_conversation("c-old", activity=at(0)),
        make_conversation("c-new", activity=at(5)),
    ])

    assert [c.id for c in index.conversations()] == ["c-new", "c-old"]


def test_refresh_from_store_moves_conversation_to_top():
    index, store = _index()
    index.load([
        make_conversation("c1", activity=at(0)),
        make_conversation("c2", activity=at(5)),
    ])
    store.append("c1", make_message(conversation_id="c1", server_id="m9", created_at=at(10)))

    updated = index.refresh("c1")

    assert updated.last_message.server_id == "m9"
    assert updated.last_activity_at == at(10)
    assert [c.id for c in index.conversations()] == ["c1", "c2"]


def test_refresh_with_observed_message_only():
    index, _ = _index()
    index.load([make_conversation("c1", activity=at(0))])
    echo = make_message(server_id="m7", sender_id=SELF_ID, created_at=at(3))

    updated = index.refresh("c1", observed=echo)

    assert updated.last_message == echo
    assert updated.last_activity_at == at(3)


def test_refresh_never_moves_activity_backwards():
    index, store = _index()
    index.load([make_conversation("c1", activity=at(10))])
    store.append("c1", make_message(server_id="stale", created_at=at(2)))

    updated = index.refresh("c1")

    assert updated.last_activity_at == at(10)
    assert updated.last_message is None


def test_refresh_unknown_conversation_returns_none():
    index, _ = _index()
    assert index.refresh("missing") is None
    assert "missing" not in index


def test_refresh_sets_unread_when_asked():
    index, _ = _index()
    index.load([make_conversation("c1")])

    assert index.refresh("c1", unread=True).unread is True
    assert index.refresh("c1").unread is True


def test_summary_drops_rolled_back_send():
    index, store = _index()
    index.load([make_conversation("c1", activity=at(0))])
    store.append("c1", make_message(server_id="m1", created_at=at(1)))
    store.append("c1", make_message(server_id=None, temp_id="t1", sender_id=SELF_ID, created_at=at(2)))
    assert index.refresh("c1").last_message.key == "t1"

    store.fail("t1")
    updated = index.refresh("c1")

    assert updated.last_message.key == "m1"


def test_mark_read_reports_transition_once():
    index, _ = _index()
    index.load([make_conversation("c1", unread=True)])

    assert index.mark_read("c1") is True
    assert index.mark_read("c1") is False
    assert index.get("c1").unread is False


def test_mark_read_unknown_conversation():
    index, _ = _index()
    assert index.mark_read("nope") is False


def test_reload_does_not_resurrect_unread_cleared_locally():
    index, _ = _index()
    index.load([make_conversation("c1", activity=at(5), unread=True)])
    index.mark_read("c1")

    # Stale listing fetched before the read reached the server.
    index.load([make_conversation("c1", activity=at(5), unread=True)])

    assert index.get("c1").unread is False


def test_reload_honors_unread_for_newer_activity():
    index, _ = _index()
    index.load([make_conversation("c1", activity=at(5), unread=True)])
    index.mark_read("c1")

    index.load([make_conversation("c1", activity=at(8), unread=True)])

    assert index.get("c1").unread is True


def test_reload_keeps_locally_fresher_activity():
    index, store = _index()
    index.load([make_conversation("c1", activity=at(0)), make_conversation("c2", activity=at(5))])
    store.append("c1", make_message(conversation_id="c1", server_id="m9", created_at=at(10)))
    index.refresh("c1", unread=True)

    index.load([make_conversation("c1", activity=at(0)), make_conversation("c2", activity=at(5))])

    c1 = index.get("c1")
    assert c1.last_activity_at == at(10)
    assert c1.last_message.server_id == "m9"
    assert c1.unread is True
    assert [c.id for c in index.conversations()] == ["c1", "c2"]


def test_reload_keeps_conversations_missing_from_listing():
    index, _ = _index()
    index.load([make_conversation("c1"), make_conversation("c2")])
    index.load([make_conversation("c1")])

    assert len(index) == 2


def test_push_bumps_older_conversation_to_first():
    index, store = _index()
    index.load([
        make_conversation("c-1000", activity=at(0)),
        make_conversation("c-1005", activity=at(5)),
    ])
    assert [c.id for c in index.conversations()] == ["c-1005", "c-1000"]

    store.append("c-1000", make_message(conversation_id="c-1000", server_id="m1", created_at=at(10)))
    index.refresh("c-1000")

    assert [c.id for c in index.conversations()] == ["c-1000", "c-1005"]


def _pending(temp_id: str, minutes: float):
    return make_message(server_id=None, temp_id=temp_id, sender_id=SELF_ID, created_at=at(minutes))


def test_rollback_restores_listing_summary_and_order():
    index, store = _index()
    server_last = make_message(server_id="m9", created_at=at(0))
    index.load([
        make_conversation("c1", activity=at(0), last_message=server_last),
        make_conversation("c2", activity=at(5)),
    ])
    store.append("c1", _pending("t1", 10))
    index.refresh("c1")
    assert [c.id for c in index.conversations()] == ["c1", "c2"]

    store.fail("t1")
    restored = index.rollback("c1", "t1")

    assert restored.last_message == server_last
    assert restored.last_activity_at == at(0)
    assert [c.id for c in index.conversations()] == ["c2", "c1"]


def test_rollback_keeps_other_send_in_flight():
    index, store = _index()
    index.load([make_conversation("c1", activity=at(0)), make_conversation("c2", activity=at(5))])
    store.append("c1", _pending("t1", 10))
    index.refresh("c1")
    store.append("c1", _pending("t2", 11))
    index.refresh("c1")

    store.fail("t2")
    assert index.rollback("c1", "t2").last_message.key == "t1"

    store.fail("t1")
    restored = index.rollback("c1", "t1")
    assert restored.last_message is None
    assert restored.last_activity_at == at(0)


def test_rollback_of_send_no_longer_summarized_is_a_refresh():
    index, store = _index()
    index.load([make_conversation("c1", activity=at(0))])
    store.append("c1", _pending("t1", 10))
    index.refresh("c1")
    echo = make_message(server_id="m11", sender_id=SELF_ID, created_at=at(11))
    index.refresh("c1", observed=echo)

    store.fail("t1")
    updated = index.rollback("c1", "t1")

    assert updated.last_message == echo
    assert updated.last_activity_at == at(11)


def test_rollback_uses_listing_loaded_while_send_was_pending():
    index, store = _index()
    index.load([make_conversation("c1", activity=at(0))])
    store.append("c1", _pending("t1", 10))
    index.refresh("c1")
    newer = make_message(server_id="m3", created_at=at(3))
    index.load([make_conversation("c1", activity=at(3), last_message=newer)])
    assert index.get("c1").last_message.key == "t1"

    store.fail("t1")
    restored = index.rollback("c1", "t1")

    assert restored.last_message == newer
    assert restored.last_activity_at == at(3)
