"""Prompt templates and helpers for studio content, summaries and chat."""

import json
import logging
import re
from typing import Any, Optional

from .models import fast_model
from .provider import CompletionProvider

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = """You are a helpful research assistant. Answer from the user's sources when they are relevant.

When structured output helps (progress, comparisons, steps, key facts), add UI components as JSON inside a ```json fenced block. A block holds either one component object, an array of them, or {"components": [...]}. Each component is {"id"?, "type", "properties", "data"?}.

Available types and their properties:
- card: title, description, content, actions [{label, variant, action}]
- progress: value (0-100), label
- list: title, items [string], ordered
- accordion: items [{title, content}]
- timeline: title, events [{date, title, description}]
- badge: label, variant
- table: title, headers [string], rows [[string]]
- tabs: tabs [{label, content}]"""

CONTENT_TYPES = (
    "study_guide",
    "briefing_doc",
    "faq",
    "timeline",
    "mindmap",
    "slides",
    "audio_overview",
    "audio_lecture",
    "email",
)

CONTENT_PROMPTS: dict[str, str] = {
    "study_guide": """Create a comprehensive study guide based on the provided sources. Include:
- Key concepts and definitions
- Important facts and dates
- Study questions with answers
- Summary of main themes
Format as structured JSON with sections: concepts, facts, questions, summary.""",
    "briefing_doc": """Create an executive briefing document based on the provided sources. Include:
- Executive summary (2-3 paragraphs)
- Key findings and insights
- Recommendations
- Action items
Format as structured JSON with sections: summary, findings, recommendations, actions.""",
    "faq": """Generate a comprehensive FAQ based on the provided sources. Include:
- 10-15 frequently asked questions
- Clear, concise answers
- Category groupings if applicable
Format as JSON array of objects with question, answer, and category fields.""",
    "timeline": """Create a chronological timeline based on the provided sources. Include:
- Key events with dates
- Brief descriptions
- Significance of each event
Format as JSON array with date, title, description, and significance fields.""",
    "mindmap": """Create a mind map structure based on the provided sources. Include:
- Central topic
- Main branches (3-5 key themes)
- Sub-branches with details
- Connections between concepts
Format as JSON with nodes (id, label, type) and edges (source, target).""",
    "slides": """Create a professional slide deck based on the provided sources.
- Create 6-10 slides total
- Each slide MUST have a "title" (string) and "bullets" (array of 2-4 strings)
- Be concise and use action-oriented language

Return ONLY valid JSON matching this structure:
{"slides": [{"title": "Slide Title", "bullets": ["Point 1", "Point 2"]}]}""",
    "audio_overview": """Create a podcast script for two hosts discussing the provided sources. Include:
- Introduction and hook
- Main discussion points
- Back-and-forth dialogue
- Conclusion and takeaways
Format as JSON with segments array, each with speaker, text, and timing.""",
    "audio_lecture": """Create an educational lecture script for a single instructor teaching about the provided sources. Include:
- An engaging introduction
- Clear explanation of key concepts with examples
- Practical applications
- A summary of key takeaways
The speaker is always "Instructor".
Format as JSON with segments array, each with speaker, text, and timing.""",
    "email": """Draft a professional email based on the provided sources and context. Include:
- Subject line
- Greeting
- Body paragraphs
- Call to action
- Signature placeholder
Format as JSON with subject, greeting, body, cta, and signature fields.""",
}

SUMMARY_CHAR_LIMIT = 8000
TITLE_CHAR_LIMIT = 2000

_JSON_SPAN_RE = re.compile(r"\{[\s\S]*\}|\[[\s\S]*\]")


def content_title(content_type: str, when: str) -> str:
    """Return e.g. "Study Guide - 2025-01-15"."""
    return f"{content_type.replace('_', ' ').title()} - {when}"


def parse_json_reply(reply: str) -> Any:
    """Parse the outermost JSON value in a model reply, or wrap it as ``{"raw": ...}``."""
    match = _JSON_SPAN_RE.search(reply)
    try:
        return json.loads(match.group(0) if match else reply)
    except ValueError:
        logger.warning("Model reply was not valid JSON (%d chars)", len(reply))
        return {"raw": reply}


async def generate_content(
    provider: CompletionProvider,
    content_type: str,
    sources: list[str],
    model: Optional[str] = None,
    custom_prompt: Optional[str] = None,
) -> Any:
    """Generate one studio artifact from ``sources``."""
    if content_type not in CONTENT_PROMPTS:
        raise ValueError(f"Unknown content type: {content_type}")

    sources_text = "\n\n---\n\n".join(sources)
    if custom_prompt:
        user_prompt = f"{custom_prompt}\n\nSources:\n{sources_text}"
    else:
        user_prompt = f"Generate the requested content based on these sources:\n\n{sources_text}"

    reply = await provider.chat(
        [{"role": "user", "content": user_prompt}],
        model=model,
        system_prompt=f"{CONTENT_PROMPTS[content_type]}\n\nRespond with valid JSON only, no markdown code blocks.",
    )
    return parse_json_reply(reply)


def describe_spreadsheet(content: str) -> str | None:
    """Return a short description of a serialized spreadsheet source, if it is one."""
    try:
        parsed = json.loads(content)
    except ValueError:
        return None
    if not isinstance(parsed, dict) or parsed.get("type") != "spreadsheet":
        return None
    headers = parsed.get("headers")
    rows = parsed.get("rows")
    if not isinstance(headers, list) or not isinstance(rows, list):
        return None

    row_count = parsed.get("rowCount") or len(rows)
    sample = "\n".join(
        " | ".join(str(v) for v in row.values())
        for row in rows[:3]
        if isinstance(row, dict)
    )
    return (
        f"This is a spreadsheet/CSV with {row_count} rows and the following columns: "
        f"{', '.join(str(h) for h in headers)}\n\nSample data:\n{sample}"
    )


def clean_markup(content: str) -> str:
    """Drop style/script blocks, code fences and CSS-like fragments."""
    content = re.sub(r"<style[^>]*>[\s\S]*?</style>", "", content, flags=re.IGNORECASE)
    content = re.sub(r"<script[^>]*>[\s\S]*?</script>", "", content, flags=re.IGNORECASE)
    content = re.sub(r"```[\s\S]*?```", "", content)
    content = re.sub(r"\{[^}]*:[^}]*\}", "", content)
    return re.sub(r"\s+", " ", content).strip()


async def summarize_source(
    provider: CompletionProvider,
    content: str,
    model: Optional[str] = None,
) -> str:
    """Return a 2-3 sentence description of what a source is and what it is for."""
    model = model or fast_model()

    spreadsheet = describe_spreadsheet(content)
    if spreadsheet is not None:
        prompt = (
            "Based on this spreadsheet data, write a brief 2-3 sentence description that explains:\n"
            "1. What kind of data this spreadsheet contains\n"
            "2. What it could be used for (e.g., contact list, sales data, research results)\n\n"
            f"{spreadsheet}"
        )
        system_prompt = (
            "You are a helpful assistant that describes data sources. "
            "Focus on the type of data and its potential uses. Be concise and practical."
        )
    else:
        prompt = (
            "Based on the following content, write a brief 2-3 sentence description that explains:\n"
            "1. What this source is about (the main topic/subject)\n"
            "2. What it would be useful for (how someone might use this information)\n\n"
            "Ignore any code, CSS, or technical markup.\n\n"
            f"Content:\n{clean_markup(content)[:SUMMARY_CHAR_LIMIT]}"
        )
        system_prompt = (
            "You are a helpful assistant that describes sources in plain language. "
            "Focus on what the content is about and why it would be useful."
        )

    return await provider.chat(
        [{"role": "user", "content": prompt}],
        model=model,
        system_prompt=system_prompt,
        max_tokens=200,
    )


async def generate_title(provider: CompletionProvider, content: str, fallback: str) -> str:
    """Ask for a short title for ``content``; return ``fallback`` on any unusable reply."""
    reply = await provider.chat(
        [{
            "role": "user",
            "content": (
                "Based on the following content, generate a short, descriptive title "
                "(max 60 characters). Just respond with the title, no quotes or explanation:\n\n"
                f"{content[:TITLE_CHAR_LIMIT]}"
            ),
        }],
        max_tokens=50,
        temperature=0.3,
    )
    title = reply.strip().strip("\"'")
    if not title or len(title) > 80:
        return fallback
    return title
