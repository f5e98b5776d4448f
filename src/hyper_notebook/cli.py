"""CLI entry point for hyper-notebook."""

import asyncio
import json
import logging
import sys

import click
import uvicorn

from .a2ui import extract_components, render_components, strip_component_blocks
from .chat import ChatSession
from .config import get_server_url
from .relay import ChatStreamClient, RelayStatus


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging.")
def main(debug: bool):
    """Notebook-style research assistant with streaming chat and A2UI components."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the API server."""
    click.echo(f"Starting hyper-notebook on http://{host}:{port}")
    uvicorn.run("hyper_notebook.server:app", host=host, port=port, reload=False)


@main.command()
@click.argument("message")
@click.option("--url", default=None, help="Server base URL (default: $HYPER_NOTEBOOK_URL).")
@click.option("--model", default=None, help="Model id, e.g. google/gemini-3-flash-preview.")
@click.option("--conversation", "conversation_id", default=None, help="Conversation to save the turn in.")
def chat(message: str, url: str | None, model: str | None, conversation_id: str | None):
    """Send one message and stream the reply."""
    outcome = asyncio.run(_chat_once(message, url or get_server_url(), model, conversation_id))
    if outcome.status is RelayStatus.FAILED:
        sys.exit(1)


async def _chat_once(message: str, url: str, model: str | None, conversation_id: str | None):
    printed = 0

    def on_update(buffer: str) -> None:
        nonlocal printed
        click.echo(buffer[printed:], nl=False)
        printed = len(buffer)

    async with ChatStreamClient(url) as client:
        session = ChatSession(client, model=model, conversation_id=conversation_id)
        outcome = await session.send(message, on_update=on_update)

    click.echo()
    if outcome.status is RelayStatus.FAILED:
        click.echo(outcome.content, err=True)
    elif outcome.components:
        click.echo(f"\n[{len(outcome.components)} component(s)]")
        click.echo(render_components(outcome.components))
    return outcome


@main.command()
@click.argument("path", type=click.File("r", encoding="utf-8"))
@click.option("--html", "as_html", is_flag=True, help="Print rendered HTML instead of JSON.")
@click.option("--strip", is_flag=True, help="Print the text with component blocks removed.")
def extract(path, as_html: bool, strip: bool):
    """Extract A2UI components from a text or Markdown file."""
    text = path.read()
    if strip:
        click.echo(strip_component_blocks(text))
        return

    components = extract_components(text)
    if as_html:
        click.echo(render_components(components))
    else:
        click.echo(json.dumps([c.to_dict() for c in components], indent=2, ensure_ascii=False))
