"""Export conversations to Markdown and JSON formats."""

import json

from .a2ui import strip_component_blocks
from .core import ChatMessage, Conversation


def conversation_to_markdown(conversation: Conversation, messages: list[ChatMessage]) -> str:
    """Export a conversation and its messages as clean Markdown.

    A2UI blocks are dropped from the prose and listed under each reply instead.
    """
    lines = [f"# {conversation.title}", ""]

    if conversation.notebook_id:
        lines.append(f"**Notebook:** {conversation.notebook_id}")
    if conversation.created:
        lines.append(f"**Created:** {conversation.created.isoformat()}")
    lines.append(f"**Messages:** {len(messages)}")
    lines.extend(["", "---", ""])

    for msg in messages:
        role_label = msg.role.capitalize()
        ts = ""
        if msg.timestamp:
            ts = f" ({msg.timestamp.strftime('%Y-%m-%d %H:%M')})"
        lines.append(f"## {role_label}{ts}")
        lines.append("")
        lines.append(strip_component_blocks(msg.content) if msg.components else msg.content)
        if msg.components:
            lines.append("")
            lines.append("**Components:**")
            for component in msg.components:
                title = component.properties.get("title") or component.properties.get("label") or ""
                suffix = f": {title}" if title else ""
                lines.append(f"- `{component.type}` {component.id}{suffix}")
        lines.extend(["", "---", ""])

    return "\n".join(lines)


def conversation_to_json(conversation: Conversation, messages: list[ChatMessage]) -> str:
    """Export a conversation and its messages as structured JSON."""
    data = {
        "conversation": {
            "id": conversation.id,
            "title": conversation.title,
            "notebook_id": conversation.notebook_id,
            "message_count": len(messages),
            "created": conversation.created.isoformat() if conversation.created else None,
        },
        "messages": [
            {
                "id": msg.id,
                "role": msg.role,
                "content": msg.content,
                "timestamp": msg.timestamp.isoformat() if msg.timestamp else None,
                "components": [c.to_dict() for c in msg.components],
            }
            for msg in messages
        ],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)
