"""Core data models for hyper-notebook."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class UIComponentDescriptor:
    """One A2UI component requested by the assistant.

    Produced once by the extractor and never mutated afterwards.
    """

    id: str
    type: str  # "card" | "progress" | "list" | "table" | ... (open vocabulary)
    parent_id: Optional[str] = None  # advisory only, no nesting is built from it
    properties: dict = field(default_factory=dict)
    data: Any = None

    def to_dict(self) -> dict:
        """Return the A2UI wire shape of this descriptor."""
        out: dict[str, Any] = {"id": self.id, "type": self.type, "properties": self.properties}
        if self.parent_id is not None:
            out["parentId"] = self.parent_id
        if self.data is not None:
            out["data"] = self.data
        return out

    @classmethod
    def from_dict(cls, raw: dict) -> "UIComponentDescriptor":
        return cls(
            id=raw["id"],
            type=raw["type"],
            parent_id=raw.get("parentId"),
            properties=raw.get("properties") or {},
            data=raw.get("data"),
        )


@dataclass(frozen=True)
class ChatMessage:
    """A single chat turn shown in the chat panel."""

    id: str
    role: str  # "user" | "assistant"
    content: str
    components: tuple[UIComponentDescriptor, ...] = ()
    timestamp: Optional[datetime] = None

    @property
    def stamp(self) -> int:
        """Timestamp in ms; the seed for generated component ids."""
        return to_stamp(self.timestamp)


def to_stamp(ts: Optional[datetime]) -> int:
    """Return ``ts`` as integer milliseconds since the epoch (0 for None)."""
    if ts is None:
        return 0
    return round(ts.timestamp() * 1000)


class ChunkKind(str, Enum):
    TOKEN = "token"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class StreamChunk:
    """A decoded SSE frame from the chat stream."""

    kind: ChunkKind
    text: str = ""


@dataclass
class Notebook:
    """A collection of sources, notes and generated content."""

    id: str
    name: str
    description: str = ""
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


@dataclass
class Source:
    """A document added to a notebook."""

    id: str
    type: str  # "url" | "pdf" | "text"
    name: str
    content: str
    notebook_id: Optional[str] = None
    summary: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    created: Optional[datetime] = None


@dataclass
class Note:
    id: str
    title: str
    content: str
    notebook_id: Optional[str] = None
    created: Optional[datetime] = None


@dataclass
class Conversation:
    id: str
    title: str
    notebook_id: Optional[str] = None
    created: Optional[datetime] = None


@dataclass
class GeneratedContent:
    """Studio output (study guide, FAQ, slides, ...) built from sources."""

    id: str
    type: str
    title: str
    content: Any
    source_ids: list[str] = field(default_factory=list)
    notebook_id: Optional[str] = None
    created: Optional[datetime] = None
