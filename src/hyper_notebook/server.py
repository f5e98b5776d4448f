"""FastAPI web server for hyper-notebook."""

import json
import logging
import re
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from .a2ui import extract_components, render_components
from .backends import get_available_providers
from .config import get_db_path, get_default_model
from .core import ChatMessage, GeneratedContent, Notebook, Source, UIComponentDescriptor, to_stamp
from .export import conversation_to_json, conversation_to_markdown
from .models import AVAILABLE_MODELS, get_model_info, models_by_provider
from .provider import CompletionProvider, ProviderUnavailableError
from .storage import NotebookStore
from .studio import (
    CHAT_SYSTEM_PROMPT,
    CONTENT_TYPES,
    content_title,
    generate_content,
    generate_title,
    summarize_source,
)

logger = logging.getLogger(__name__)

# Lazily initialized on first request
_providers: list[CompletionProvider] | None = None
_store: NotebookStore | None = None

URL_FETCH_TIMEOUT = 5.0
USER_AGENT = "Mozilla/5.0 (compatible; NotebookBot/1.0)"


def _get_providers() -> list[CompletionProvider]:
    """Lazily initialize and cache providers."""
    global _providers
    if _providers is None:
        _providers = get_available_providers()
        logger.info("Detected providers: %s", [p.name for p in _providers])
    return _providers


def _require_provider() -> CompletionProvider:
    """Return the preferred provider."""
    providers = _get_providers()
    if not providers:
        raise ProviderUnavailableError("No model provider configured")
    return providers[0]


def _get_store() -> NotebookStore:
    global _store
    if _store is None:
        _store = NotebookStore(get_db_path())
        logger.info("Using database %s", _store.db_path)
    return _store


async def _close_providers() -> None:
    """Close and forget the cached providers."""
    global _providers
    providers, _providers = _providers or [], None
    for provider in providers:
        try:
            await provider.close()
        except Exception as e:
            logger.warning("Failed to close provider %s: %s", provider.name, e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await _close_providers()


app = FastAPI(title="hyper-notebook", version="0.1.0", lifespan=lifespan)


@app.exception_handler(ProviderUnavailableError)
async def _provider_unavailable(request: Request, exc: ProviderUnavailableError):
    logger.warning("%s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(sqlite3.Error)
async def _database_error(request: Request, exc: sqlite3.Error):
    logger.error("Database error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


# ── Request bodies ───────────────────────────────────────────────


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NotebookIn(_Body):
    name: str
    description: str = ""


class NotebookPatch(_Body):
    name: Optional[str] = None
    description: Optional[str] = None


class SourceIn(_Body):
    type: str = Field(pattern="^(url|pdf|text)$")
    content: str
    name: Optional[str] = None
    notebook_id: Optional[str] = Field(None, alias="notebookId")
    metadata: dict = Field(default_factory=dict)


class SummarizeIn(_Body):
    model: Optional[str] = None


class UrlIn(_Body):
    url: Optional[str] = None


class NoteIn(_Body):
    title: str
    content: str
    notebook_id: Optional[str] = Field(None, alias="notebookId")


class ConversationIn(_Body):
    title: str = "New conversation"
    notebook_id: Optional[str] = Field(None, alias="notebookId")


class ChatTurn(_Body):
    role: str = Field(pattern="^(user|assistant|system)$")
    content: str


class ChatIn(_Body):
    messages: list[ChatTurn]
    model: Optional[str] = None
    conversation_id: Optional[str] = Field(None, alias="conversationId")
    system_prompt: Optional[str] = Field(None, alias="systemPrompt")


class GenerateIn(_Body):
    type: str
    source_ids: list[str] = Field(default_factory=list, alias="sourceIds")
    model: Optional[str] = None
    custom_prompt: Optional[str] = Field(None, alias="customPrompt")
    notebook_id: Optional[str] = Field(None, alias="notebookId")


class TextIn(_Body):
    text: str


# ── Serialization ────────────────────────────────────────────────


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts else None


def _notebook_to_dict(notebook: Notebook) -> dict:
    return {
        "id": notebook.id,
        "name": notebook.name,
        "description": notebook.description,
        "created": _iso(notebook.created),
        "updated": _iso(notebook.updated),
    }


def _source_to_dict(source: Source) -> dict:
    return {
        "id": source.id,
        "type": source.type,
        "name": source.name,
        "content": source.content,
        "notebook_id": source.notebook_id,
        "summary": source.summary,
        "metadata": source.metadata,
        "created": _iso(source.created),
    }


def _message_to_dict(msg: ChatMessage) -> dict:
    return {
        "id": msg.id,
        "role": msg.role,
        "content": msg.content,
        "components": [c.to_dict() for c in msg.components],
        "timestamp": _iso(msg.timestamp),
    }


def _generated_to_dict(item: GeneratedContent) -> dict:
    return {
        "id": item.id,
        "type": item.type,
        "title": item.title,
        "content": item.content,
        "source_ids": item.source_ids,
        "notebook_id": item.notebook_id,
        "created": _iso(item.created),
    }


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


# ── Routes: models & notebooks ───────────────────────────────────


@app.get("/api/models")
async def get_models():
    """Return the model catalogue grouped by vendor."""
    return {
        "models": [m.to_dict() for m in AVAILABLE_MODELS],
        "byProvider": {
            vendor: [m.to_dict() for m in models]
            for vendor, models in models_by_provider().items()
        },
        "defaultModel": get_default_model(),
    }


@app.get("/api/notebooks")
async def list_notebooks():
    return [_notebook_to_dict(n) for n in _get_store().list_notebooks()]


@app.post("/api/notebooks", status_code=201)
async def create_notebook(body: NotebookIn):
    return _notebook_to_dict(_get_store().create_notebook(body.name, body.description))


@app.get("/api/notebooks/{notebook_id}")
async def get_notebook(notebook_id: str):
    notebook = _get_store().get_notebook(notebook_id)
    if not notebook:
        raise HTTPException(status_code=404, detail="Notebook not found")
    return _notebook_to_dict(notebook)


@app.patch("/api/notebooks/{notebook_id}")
async def update_notebook(notebook_id: str, body: NotebookPatch):
    notebook = _get_store().update_notebook(notebook_id, body.model_dump(exclude_none=True))
    if not notebook:
        raise HTTPException(status_code=404, detail="Notebook not found")
    return _notebook_to_dict(notebook)


@app.delete("/api/notebooks/{notebook_id}", status_code=204)
async def delete_notebook(notebook_id: str):
    _get_store().delete_notebook(notebook_id)
    return Response(status_code=204)


@app.get("/api/notebooks/{notebook_id}/sources")
async def list_notebook_sources(notebook_id: str):
    return [_source_to_dict(s) for s in _get_store().list_sources(notebook_id)]


@app.get("/api/notebooks/{notebook_id}/generated")
async def list_notebook_generated(notebook_id: str):
    return [_generated_to_dict(g) for g in _get_store().list_generated(notebook_id)]


# ── Routes: sources ──────────────────────────────────────────────


@app.get("/api/sources")
async def list_sources():
    return [_source_to_dict(s) for s in _get_store().list_sources()]


@app.get("/api/sources/{source_id}")
async def get_source(source_id: str):
    source = _get_store().get_source(source_id)
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")
    return _source_to_dict(source)


@app.post("/api/sources", status_code=201)
async def create_source(body: SourceIn):
    """Add a source; a missing name is generated from the content when possible."""
    name = body.name
    if not name:
        name = "Untitled source"
        providers = _get_providers()
        if providers:
            try:
                name = await generate_title(providers[0], body.content, fallback=name)
            except Exception as e:
                logger.warning("Could not generate source title: %s", e)

    source = _get_store().create_source(
        type=body.type,
        name=name,
        content=body.content,
        notebook_id=body.notebook_id,
        metadata=body.metadata,
    )
    return _source_to_dict(source)


@app.post("/api/sources/{source_id}/summarize")
async def summarize(source_id: str, body: SummarizeIn | None = None):
    store = _get_store()
    source = store.get_source(source_id)
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")

    provider = _require_provider()
    try:
        summary = await summarize_source(provider, source.content, model=body.model if body else None)
    except Exception as e:
        logger.error("Failed to summarize source %s: %s", source_id, e)
        raise HTTPException(status_code=500, detail="Failed to summarize source")

    store.update_source(source_id, {"summary": summary})
    return {"summary": summary}


@app.delete("/api/sources/{source_id}", status_code=204)
async def delete_source(source_id: str):
    _get_store().delete_source(source_id)
    return Response(status_code=204)


@app.post("/api/url/metadata")
async def url_metadata(body: UrlIn):
    """Fetch a page and return its title and description for naming a source."""
    if not body.url:
        raise HTTPException(status_code=400, detail="URL is required")

    parsed = urlparse(body.url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise HTTPException(status_code=400, detail="Invalid URL")

    try:
        async with httpx.AsyncClient(timeout=URL_FETCH_TIMEOUT, follow_redirects=True) as client:
            resp = await client.get(body.url, headers={"User-Agent": USER_AGENT})
            resp.raise_for_status()
            html = resp.text
    except httpx.HTTPError as e:
        logger.warning("Metadata fetch failed for %s: %s", body.url, e)
        return {"title": parsed.hostname, "description": "", "url": body.url}

    return {**extract_page_metadata(html, parsed.hostname), "url": body.url}


def extract_page_metadata(html: str, fallback_title: str) -> dict:
    """Pull ``<title>``/og:title and the meta description out of a page."""
    title = fallback_title
    match = re.search(r"<title[^>]*>([^<]+)</title>", html, re.IGNORECASE)
    if match:
        title = match.group(1).strip()

    description = ""
    match = (
        re.search(r"<meta[^>]*name=[\"']description[\"'][^>]*content=[\"']([^\"']+)[\"']", html, re.IGNORECASE)
        or re.search(r"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*name=[\"']description[\"']", html, re.IGNORECASE)
    )
    if match:
        description = match.group(1).strip()

    if title == fallback_title:
        match = re.search(r"<meta[^>]*property=[\"']og:title[\"'][^>]*content=[\"']([^\"']+)[\"']", html, re.IGNORECASE)
        if match:
            title = match.group(1).strip()

    return {"title": title, "description": description}


# ── Routes: notes & conversations ────────────────────────────────


@app.get("/api/notes")
async def list_notes(notebook_id: str | None = Query(None, alias="notebookId")):
    return [
        {
            "id": n.id,
            "title": n.title,
            "content": n.content,
            "notebook_id": n.notebook_id,
            "created": _iso(n.created),
        }
        for n in _get_store().list_notes(notebook_id)
    ]


@app.post("/api/notes", status_code=201)
async def create_note(body: NoteIn):
    note = _get_store().create_note(body.title, body.content, body.notebook_id)
    return {
        "id": note.id,
        "title": note.title,
        "content": note.content,
        "notebook_id": note.notebook_id,
        "created": _iso(note.created),
    }


@app.delete("/api/notes/{note_id}", status_code=204)
async def delete_note(note_id: str):
    _get_store().delete_note(note_id)
    return Response(status_code=204)


@app.get("/api/conversations")
async def list_conversations(notebook_id: str | None = Query(None, alias="notebookId")):
    return [
        {"id": c.id, "title": c.title, "notebook_id": c.notebook_id, "created": _iso(c.created)}
        for c in _get_store().list_conversations(notebook_id)
    ]


@app.post("/api/conversations", status_code=201)
async def create_conversation(body: ConversationIn | None = None):
    body = body or ConversationIn()
    c = _get_store().create_conversation(body.title, body.notebook_id)
    return {"id": c.id, "title": c.title, "notebook_id": c.notebook_id, "created": _iso(c.created)}


@app.get("/api/conversations/{conversation_id}/messages")
async def list_messages(conversation_id: str):
    return [_message_to_dict(m) for m in _get_store().list_messages(conversation_id)]


@app.delete("/api/conversations/{conversation_id}", status_code=204)
async def delete_conversation(conversation_id: str):
    _get_store().delete_conversation(conversation_id)
    return Response(status_code=204)


# ── Routes: chat ─────────────────────────────────────────────────


@app.post("/api/chat")
async def chat_stream(body: ChatIn):
    """Relay a streamed completion as SSE token frames followed by a done frame."""
    if not body.messages:
        raise HTTPException(status_code=400, detail="At least one message is required")

    provider = _require_provider()
    history = [{"role": m.role, "content": m.content} for m in body.messages]
    if body.model and get_model_info(body.model) is None:
        logger.info("Model %s is not in the catalogue; passing it through", body.model)

    async def events():
        full_response = ""
        try:
            async for token in provider.stream_chat(
                history,
                model=body.model,
                system_prompt=body.system_prompt or CHAT_SYSTEM_PROMPT,
            ):
                full_response += token
                yield _sse({"type": "token", "token": token})
        except Exception as e:
            logger.error("Upstream chat stream failed: %s", e)
            yield _sse({"type": "error", "error": "Failed to process chat"})
            return

        if body.conversation_id:
            _save_turn(body.conversation_id, history[-1]["content"], full_response)

        yield _sse({"type": "done", "content": full_response})

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


def _save_turn(conversation_id: str, user_text: str, reply: str) -> None:
    """Persist one turn; the reply keeps its A2UI blocks and its components."""
    store = _get_store()
    now = datetime.now(timezone.utc)
    try:
        store.create_message(conversation_id, "user", user_text, timestamp=now)
        store.create_message(
            conversation_id,
            "assistant",
            reply,
            components=extract_components(reply, stamp=to_stamp(now)),
            timestamp=now,
        )
    except sqlite3.Error as e:
        logger.error("Failed to save messages for %s: %s", conversation_id, e)


@app.post("/api/chat/simple")
async def chat_simple(body: ChatIn):
    provider = _require_provider()
    try:
        content = await provider.chat(
            [{"role": m.role, "content": m.content} for m in body.messages],
            model=body.model,
            system_prompt=body.system_prompt,
        )
    except Exception as e:
        logger.error("Chat request failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process chat")
    return {"content": content}


# ── Routes: studio ───────────────────────────────────────────────


@app.post("/api/generate")
async def generate(body: GenerateIn):
    """Generate a studio artifact from the selected sources."""
    if body.type not in CONTENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown content type: {body.type}")

    store = _get_store()
    sources = [s for s in (store.get_source(i) for i in body.source_ids) if s]
    if not sources and not body.custom_prompt:
        raise HTTPException(status_code=400, detail="No sources or custom prompt provided")

    provider = _require_provider()
    try:
        content = await generate_content(
            provider,
            body.type,
            [s.content for s in sources],
            model=body.model,
            custom_prompt=body.custom_prompt,
        )
    except Exception as e:
        logger.error("Failed to generate %s: %s", body.type, e)
        raise HTTPException(status_code=500, detail="Failed to generate content")

    generated = store.create_generated(
        type=body.type,
        title=content_title(body.type, datetime.now(timezone.utc).date().isoformat()),
        content=content,
        source_ids=body.source_ids,
        notebook_id=body.notebook_id,
    )
    return _generated_to_dict(generated)


@app.get("/api/generated")
async def list_generated():
    return [_generated_to_dict(g) for g in _get_store().list_generated()]


@app.get("/api/generated/{content_id}")
async def get_generated(content_id: str):
    item = _get_store().get_generated(content_id)
    if not item:
        raise HTTPException(status_code=404, detail="Content not found")
    return _generated_to_dict(item)


@app.delete("/api/generated/{content_id}", status_code=204)
async def delete_generated(content_id: str):
    _get_store().delete_generated(content_id)
    return Response(status_code=204)


# ── Routes: A2UI & export ────────────────────────────────────────


@app.post("/api/a2ui/extract")
async def a2ui_extract(body: TextIn):
    """Return the components encoded in a piece of assistant text."""
    skipped: list[int] = []
    components = extract_components(body.text, on_skip=lambda index, reason: skipped.append(index))
    return {"components": [c.to_dict() for c in components], "skipped_blocks": skipped}


@app.post("/api/a2ui/render")
async def a2ui_render(body: dict[str, Any]):
    """Render descriptors (``{"components": [...]}``) or raw text (``{"text": ...}``) to HTML."""
    if isinstance(body.get("text"), str):
        components = extract_components(body["text"])
    else:
        raw = body.get("components")
        if not isinstance(raw, list):
            raise HTTPException(status_code=400, detail="Expected 'text' or 'components'")
        try:
            components = [UIComponentDescriptor.from_dict(c) for c in raw]
        except (KeyError, TypeError, AttributeError):
            raise HTTPException(status_code=400, detail="Each component needs an id and a type")
    return HTMLResponse(render_components(components))


@app.get("/api/export/{conversation_id}")
async def export_conversation(
    conversation_id: str,
    format: str = Query("md", description="Export format: md or json"),
):
    """Export a conversation as Markdown or JSON."""
    store = _get_store()
    conversation = store.get_conversation(conversation_id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")

    messages = store.list_messages(conversation_id)
    safe_title = "".join(c if c.isalnum() or c in "-_ " else "" for c in conversation.title)[:50]

    if format == "json":
        content = conversation_to_json(conversation, messages)
        return Response(
            content=content,
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{safe_title}.json"'},
        )
    else:
        content = conversation_to_markdown(conversation, messages)
        return Response(
            content=content,
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{safe_title}.md"'},
        )
