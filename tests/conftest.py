"""Shared test fixtures for hyper-notebook."""

import json

import pytest

from hyper_notebook.provider import CompletionProvider
from hyper_notebook.storage import NotebookStore


class FakeProvider(CompletionProvider):
    """In-memory completion provider that replays canned tokens."""

    name = "fake"

    def __init__(self, tokens=None, reply="", fail_after=None):
        self.tokens = list(tokens or [])
        self.reply = reply
        self.fail_after = fail_after
        self.calls = []
        self.closed = False

    def is_available(self) -> bool:
        return True

    async def chat(self, messages, model=None, system_prompt=None, max_tokens=8192, temperature=None):
        self.calls.append({"messages": messages, "model": model, "system_prompt": system_prompt})
        return self.reply

    async def stream_chat(self, messages, model=None, system_prompt=None, max_tokens=8192, temperature=None):
        self.calls.append({"messages": messages, "model": model, "system_prompt": system_prompt})
        for i, token in enumerate(self.tokens):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("upstream connection reset")
            yield token

    async def close(self):
        self.closed = True


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def fake_provider():
    return FakeProvider(tokens=["Here ", "is ", "your ", "plan."], reply="A reply")


@pytest.fixture
def store(tmp_path):
    return NotebookStore(tmp_path / "notebook.db")


@pytest.fixture
def server_state(tmp_path, monkeypatch):
    """Point the server at a fresh database and clear its cached providers."""
    import hyper_notebook.server as srv

    monkeypatch.setenv("HYPER_NOTEBOOK_DB_PATH", str(tmp_path / "server.db"))
    monkeypatch.delenv("DEFAULT_MODEL", raising=False)
    srv._providers = None
    srv._store = None
    yield srv
    srv._providers = None
    srv._store = None


@pytest.fixture
def a2ui_reply():
    """Assistant text mixing prose, a code sample and two component blocks."""
    return (
        "Here is where you stand.\n\n"
        "```json\n"
        '[{"id": "p1", "type": "progress", "properties": {"value": 50, "label": "Step 1"}},\n'
        ' {"type": "card", "properties": {"title": "Next step", "description": "Pick a role"}}]\n'
        "```\n\n"
        "For reference, the config looks like:\n\n"
        "```python\n"
        "settings = {'debug': True}\n"
        "```\n\n"
        "```json\n"
        '{"components": [{"type": "table", "properties": {"headers": ["Name", "Score"], "rows": [["Ada", "9"]]}}]}\n'
        "```\n"
    )


@pytest.fixture
def sse_frames():
    """Build SSE bytes from payload dicts."""
    def _build(*payloads) -> bytes:
        return b"".join(f"data: {json.dumps(p)}\n\n".encode("utf-8") for p in payloads)
    return _build
