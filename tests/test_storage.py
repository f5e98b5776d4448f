"""Tests for the SQLite notebook store."""

from datetime import datetime, timezone

from hyper_notebook.a2ui import extract_components
from hyper_notebook.core import to_stamp
from hyper_notebook.storage import NotebookStore


def test_creates_parent_directory(tmp_path):
    store = NotebookStore(tmp_path / "nested" / "dir" / "notebook.db")
    assert store.db_path.exists()


def test_notebook_roundtrip(store):
    notebook = store.create_notebook("Research", "Papers on tides")
    loaded = store.get_notebook(notebook.id)
    assert loaded.name == "Research"
    assert loaded.description == "Papers on tides"
    assert loaded.created == notebook.created

    updated = store.update_notebook(notebook.id, {"name": "Tides", "id": "ignored"})
    assert updated.name == "Tides"
    assert updated.id == notebook.id
    assert updated.updated >= notebook.updated

    assert store.delete_notebook(notebook.id)
    assert store.get_notebook(notebook.id) is None
    assert not store.delete_notebook(notebook.id)


def test_sources_filtered_by_notebook(store):
    a = store.create_source("text", "A", "alpha", notebook_id="nb1", metadata={"pages": 3})
    store.create_source("url", "B", "beta", notebook_id="nb2")

    assert [s.id for s in store.list_sources("nb1")] == [a.id]
    assert len(store.list_sources()) == 2
    assert store.get_source(a.id).metadata == {"pages": 3}


def test_update_source_summary_and_metadata(store):
    source = store.create_source("text", "A", "alpha")
    store.update_source(source.id, {"summary": "Short.", "metadata": {"k": "v"}, "created": "nope"})
    loaded = store.get_source(source.id)
    assert loaded.summary == "Short."
    assert loaded.metadata == {"k": "v"}
    assert loaded.created == source.created


def test_notes(store):
    note = store.create_note("Idea", "Check the 1969 data", notebook_id="nb1")
    assert [n.title for n in store.list_notes("nb1")] == ["Idea"]
    assert store.list_notes("other") == []
    assert store.delete_note(note.id)


def test_messages_keep_components_and_order(store, a2ui_reply):
    conversation = store.create_conversation("Chat", notebook_id="nb1")
    when = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
    components = extract_components(a2ui_reply, stamp=to_stamp(when))

    store.create_message(conversation.id, "user", "Where am I?", timestamp=when)
    store.create_message(conversation.id, "assistant", a2ui_reply, components=components, timestamp=when)

    messages = store.list_messages(conversation.id)
    assert [m.role for m in messages] == ["user", "assistant"]
    assert messages[1].content == a2ui_reply
    assert messages[1].components == tuple(components)
    assert messages[1].timestamp == when


def test_stored_reply_reparses_to_same_components(store, a2ui_reply):
    conversation = store.create_conversation()
    when = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
    stamp = to_stamp(when)
    store.create_message(
        conversation.id, "assistant", a2ui_reply,
        components=extract_components(a2ui_reply, stamp=stamp), timestamp=when,
    )

    message = store.list_messages(conversation.id)[0]
    assert extract_components(message.content, stamp=message.stamp) == list(message.components)


def test_delete_conversation_removes_messages(store):
    conversation = store.create_conversation("Chat")
    store.create_message(conversation.id, "user", "hi")
    assert store.delete_conversation(conversation.id)
    assert store.list_messages(conversation.id) == []
    assert store.get_conversation(conversation.id) is None


def test_generated_content_roundtrip(store):
    item = store.create_generated(
        type="faq",
        title="Faq - 2025-01-15",
        content=[{"question": "Q", "answer": "A"}],
        source_ids=["s1", "s2"],
        notebook_id="nb1",
    )
    loaded = store.get_generated(item.id)
    assert loaded.content == [{"question": "Q", "answer": "A"}]
    assert loaded.source_ids == ["s1", "s2"]
    assert [g.id for g in store.list_generated("nb1")] == [item.id]
    assert store.delete_generated(item.id)
    assert store.list_generated() == []
