"""SQLite persistence for notebooks, sources, notes, conversations and studio output."""

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .core import (
    ChatMessage,
    Conversation,
    GeneratedContent,
    Note,
    Notebook,
    Source,
    UIComponentDescriptor,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS notebooks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    created TEXT NOT NULL,
    updated TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS sources (
    id TEXT PRIMARY KEY,
    notebook_id TEXT,
    type TEXT NOT NULL,
    name TEXT NOT NULL,
    content TEXT NOT NULL,
    summary TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    created TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    notebook_id TEXT,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    created TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    notebook_id TEXT,
    title TEXT NOT NULL,
    created TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    conversation_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    components TEXT NOT NULL DEFAULT '[]',
    created TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS generated_content (
    id TEXT PRIMARY KEY,
    notebook_id TEXT,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    source_ids TEXT NOT NULL DEFAULT '[]',
    created TEXT NOT NULL
);
"""

NOTEBOOK_FIELDS = ("name", "description")
SOURCE_FIELDS = ("name", "content", "summary", "metadata", "notebook_id", "type")


class NotebookStore:
    """All reads and writes go through one connection per operation."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(SCHEMA)
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        conn = self._connect()
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()

    def _execute(self, sql: str, params: tuple = ()) -> int:
        conn = self._connect()
        try:
            with conn:
                return conn.execute(sql, params).rowcount
        finally:
            conn.close()

    # ── Notebooks ────────────────────────────────────────────────

    def list_notebooks(self) -> list[Notebook]:
        rows = self._query("SELECT * FROM notebooks ORDER BY created")
        return [_row_to_notebook(r) for r in rows]

    def get_notebook(self, notebook_id: str) -> Notebook | None:
        rows = self._query("SELECT * FROM notebooks WHERE id = ?", (notebook_id,))
        return _row_to_notebook(rows[0]) if rows else None

    def create_notebook(self, name: str, description: str = "") -> Notebook:
        now = _now()
        notebook = Notebook(id=_new_id(), name=name, description=description, created=now, updated=now)
        self._execute(
            "INSERT INTO notebooks VALUES (?, ?, ?, ?, ?)",
            (notebook.id, name, description, now.isoformat(), now.isoformat()),
        )
        return notebook

    def update_notebook(self, notebook_id: str, changes: dict[str, Any]) -> Notebook | None:
        updates = {k: v for k, v in changes.items() if k in NOTEBOOK_FIELDS}
        updates["updated"] = _now().isoformat()
        assignments = ", ".join(f"{k} = ?" for k in updates)
        self._execute(
            f"UPDATE notebooks SET {assignments} WHERE id = ?",
            (*updates.values(), notebook_id),
        )
        return self.get_notebook(notebook_id)

    def delete_notebook(self, notebook_id: str) -> bool:
        return self._execute("DELETE FROM notebooks WHERE id = ?", (notebook_id,)) > 0

    # ── Sources ──────────────────────────────────────────────────

    def list_sources(self, notebook_id: Optional[str] = None) -> list[Source]:
        if notebook_id:
            rows = self._query(
                "SELECT * FROM sources WHERE notebook_id = ? ORDER BY created", (notebook_id,)
            )
        else:
            rows = self._query("SELECT * FROM sources ORDER BY created")
        return [_row_to_source(r) for r in rows]

    def get_source(self, source_id: str) -> Source | None:
        rows = self._query("SELECT * FROM sources WHERE id = ?", (source_id,))
        return _row_to_source(rows[0]) if rows else None

    def create_source(
        self,
        type: str,
        name: str,
        content: str,
        notebook_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Source:
        source = Source(
            id=_new_id(),
            type=type,
            name=name,
            content=content,
            notebook_id=notebook_id,
            metadata=metadata or {},
            created=_now(),
        )
        self._execute(
            "INSERT INTO sources (id, notebook_id, type, name, content, summary, metadata, created) "
            "VALUES (?, ?, ?, ?, ?, NULL, ?, ?)",
            (source.id, notebook_id, type, name, content, json.dumps(source.metadata), source.created.isoformat()),
        )
        return source

    def update_source(self, source_id: str, changes: dict[str, Any]) -> Source | None:
        updates = {k: v for k, v in changes.items() if k in SOURCE_FIELDS}
        if "metadata" in updates:
            updates["metadata"] = json.dumps(updates["metadata"] or {})
        if updates:
            assignments = ", ".join(f"{k} = ?" for k in updates)
            self._execute(
                f"UPDATE sources SET {assignments} WHERE id = ?",
                (*updates.values(), source_id),
            )
        return self.get_source(source_id)

    def delete_source(self, source_id: str) -> bool:
        return self._execute("DELETE FROM sources WHERE id = ?", (source_id,)) > 0

    # ── Notes ────────────────────────────────────────────────────

    def list_notes(self, notebook_id: Optional[str] = None) -> list[Note]:
        if notebook_id:
            rows = self._query("SELECT * FROM notes WHERE notebook_id = ? ORDER BY created", (notebook_id,))
        else:
            rows = self._query("SELECT * FROM notes ORDER BY created")
        return [
            Note(
                id=r["id"],
                title=r["title"],
                content=r["content"],
                notebook_id=r["notebook_id"],
                created=_parse_ts(r["created"]),
            )
            for r in rows
        ]

    def create_note(self, title: str, content: str, notebook_id: Optional[str] = None) -> Note:
        note = Note(id=_new_id(), title=title, content=content, notebook_id=notebook_id, created=_now())
        self._execute(
            "INSERT INTO notes VALUES (?, ?, ?, ?, ?)",
            (note.id, notebook_id, title, content, note.created.isoformat()),
        )
        return note

    def delete_note(self, note_id: str) -> bool:
        return self._execute("DELETE FROM notes WHERE id = ?", (note_id,)) > 0

    # ── Conversations & messages ─────────────────────────────────

    def list_conversations(self, notebook_id: Optional[str] = None) -> list[Conversation]:
        if notebook_id:
            rows = self._query(
                "SELECT * FROM conversations WHERE notebook_id = ? ORDER BY created", (notebook_id,)
            )
        else:
            rows = self._query("SELECT * FROM conversations ORDER BY created")
        return [_row_to_conversation(r) for r in rows]

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        rows = self._query("SELECT * FROM conversations WHERE id = ?", (conversation_id,))
        return _row_to_conversation(rows[0]) if rows else None

    def create_conversation(self, title: str = "New conversation", notebook_id: Optional[str] = None) -> Conversation:
        conversation = Conversation(id=_new_id(), title=title, notebook_id=notebook_id, created=_now())
        self._execute(
            "INSERT INTO conversations VALUES (?, ?, ?, ?)",
            (conversation.id, notebook_id, title, conversation.created.isoformat()),
        )
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM messages WHERE conversation_id = ?", (conversation_id,))
                deleted = conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,)).rowcount
        finally:
            conn.close()
        return deleted > 0

    def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        rows = self._query(
            "SELECT * FROM messages WHERE conversation_id = ? ORDER BY created, rowid",
            (conversation_id,),
        )
        return [_row_to_message(r) for r in rows]

    def create_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        components: tuple[UIComponentDescriptor, ...] | list[UIComponentDescriptor] = (),
        timestamp: Optional[datetime] = None,
    ) -> ChatMessage:
        message = ChatMessage(
            id=_new_id(),
            role=role,
            content=content,
            components=tuple(components),
            timestamp=timestamp or _now(),
        )
        self._execute(
            "INSERT INTO messages VALUES (?, ?, ?, ?, ?, ?)",
            (
                message.id,
                conversation_id,
                role,
                content,
                json.dumps([c.to_dict() for c in message.components]),
                message.timestamp.isoformat(),
            ),
        )
        return message

    # ── Generated content ────────────────────────────────────────

    def list_generated(self, notebook_id: Optional[str] = None) -> list[GeneratedContent]:
        if notebook_id:
            rows = self._query(
                "SELECT * FROM generated_content WHERE notebook_id = ? ORDER BY created", (notebook_id,)
            )
        else:
            rows = self._query("SELECT * FROM generated_content ORDER BY created")
        return [_row_to_generated(r) for r in rows]

    def get_generated(self, content_id: str) -> GeneratedContent | None:
        rows = self._query("SELECT * FROM generated_content WHERE id = ?", (content_id,))
        return _row_to_generated(rows[0]) if rows else None

    def create_generated(
        self,
        type: str,
        title: str,
        content: Any,
        source_ids: list[str],
        notebook_id: Optional[str] = None,
    ) -> GeneratedContent:
        generated = GeneratedContent(
            id=_new_id(),
            type=type,
            title=title,
            content=content,
            source_ids=list(source_ids),
            notebook_id=notebook_id,
            created=_now(),
        )
        self._execute(
            "INSERT INTO generated_content VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                generated.id,
                notebook_id,
                type,
                title,
                json.dumps(content),
                json.dumps(generated.source_ids),
                generated.created.isoformat(),
            ),
        )
        return generated

    def delete_generated(self, content_id: str) -> bool:
        return self._execute("DELETE FROM generated_content WHERE id = ?", (content_id,)) > 0


# ── Row conversion ───────────────────────────────────────────────


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Bad timestamp in database: %r", value)
        return None


def _load_json(value: str | None, default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        logger.warning("Bad JSON column value: %.80r", value)
        return default


def _row_to_notebook(row: sqlite3.Row) -> Notebook:
    return Notebook(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        created=_parse_ts(row["created"]),
        updated=_parse_ts(row["updated"]),
    )


def _row_to_source(row: sqlite3.Row) -> Source:
    return Source(
        id=row["id"],
        type=row["type"],
        name=row["name"],
        content=row["content"],
        notebook_id=row["notebook_id"],
        summary=row["summary"],
        metadata=_load_json(row["metadata"], {}),
        created=_parse_ts(row["created"]),
    )


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        title=row["title"],
        notebook_id=row["notebook_id"],
        created=_parse_ts(row["created"]),
    )


def _row_to_message(row: sqlite3.Row) -> ChatMessage:
    components = tuple(
        UIComponentDescriptor.from_dict(c)
        for c in _load_json(row["components"], [])
        if isinstance(c, dict) and "id" in c and "type" in c
    )
    return ChatMessage(
        id=row["id"],
        role=row["role"],
        content=row["content"],
        components=components,
        timestamp=_parse_ts(row["created"]),
    )


def _row_to_generated(row: sqlite3.Row) -> GeneratedContent:
    return GeneratedContent(
        id=row["id"],
        type=row["type"],
        title=row["title"],
        content=_load_json(row["content"], None),
        source_ids=_load_json(row["source_ids"], []),
        notebook_id=row["notebook_id"],
        created=_parse_ts(row["created"]),
    )
