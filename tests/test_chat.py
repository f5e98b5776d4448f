"""Tests for ChatSession turn handling."""

import asyncio
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from hyper_notebook.chat import ChatBusyError, ChatSession
from hyper_notebook.core import UIComponentDescriptor
from hyper_notebook.relay import FAILURE_MESSAGE, ChatStreamClient, RelayOutcome, RelayStatus
from hyper_notebook.server import app


class ScriptedClient:
    """Stands in for ChatStreamClient and returns a fixed outcome."""

    def __init__(self, outcome, gate=None):
        self.outcome = outcome
        self.gate = gate
        self.requests = []

    async def stream_turn(self, messages, session, model=None, conversation_id=None,
                          system_prompt=None, on_update=None, on_complete=None, on_failure=None):
        self.requests.append(messages)
        if self.gate is not None:
            await self.gate.wait()
        if session.cancelled:
            return session.finish(RelayOutcome(RelayStatus.CANCELLED, session.buffer))
        return session.finish(self.outcome)


@pytest.mark.asyncio
async def test_completed_turn_appends_user_and_assistant():
    component = UIComponentDescriptor(id="parsed-1-0-0", type="badge", properties={"label": "Done"})
    client = ScriptedClient(RelayOutcome(RelayStatus.COMPLETED, "All set", (component,)))
    chat = ChatSession(client)

    outcome = await chat.send("Am I done?")

    assert outcome.status is RelayStatus.COMPLETED
    assert [m.role for m in chat.messages] == ["user", "assistant"]
    assert chat.messages[0].content == "Am I done?"
    assert chat.messages[1].content == "All set"
    assert chat.messages[1].components == (component,)
    assert not chat.is_streaming

    chat.clear()
    assert chat.messages == []


@pytest.mark.asyncio
async def test_history_is_sent_with_each_turn():
    client = ScriptedClient(RelayOutcome(RelayStatus.COMPLETED, "ok"))
    chat = ChatSession(client)

    await chat.send("first")
    await chat.send("second")

    assert client.requests[1] == [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "ok"},
        {"role": "user", "content": "second"},
    ]


@pytest.mark.asyncio
async def test_failed_turn_appends_single_fallback_reply():
    client = ScriptedClient(RelayOutcome(RelayStatus.FAILED, FAILURE_MESSAGE))
    chat = ChatSession(client)

    await chat.send("hello")

    assistant = [m for m in chat.messages if m.role == "assistant"]
    assert len(assistant) == 1
    assert assistant[0].content == FAILURE_MESSAGE
    assert assistant[0].components == ()


@pytest.mark.asyncio
async def test_cancelled_turn_appends_nothing():
    gate = asyncio.Event()
    client = ScriptedClient(RelayOutcome(RelayStatus.COMPLETED, "late"), gate=gate)
    chat = ChatSession(client)

    task = asyncio.create_task(chat.send("hello"))
    await asyncio.sleep(0)
    assert chat.is_streaming
    chat.cancel()
    gate.set()
    outcome = await task

    assert outcome.status is RelayStatus.CANCELLED
    assert chat.messages == []


@pytest.mark.asyncio
async def test_second_send_while_streaming_is_rejected():
    gate = asyncio.Event()
    chat = ChatSession(ScriptedClient(RelayOutcome(RelayStatus.COMPLETED, "ok"), gate=gate))

    task = asyncio.create_task(chat.send("one"))
    await asyncio.sleep(0)
    with pytest.raises(ChatBusyError):
        await chat.send("two")
    gate.set()
    await task

    assert len(chat.messages) == 2


@pytest.mark.asyncio
async def test_turn_against_server(server_state, provider_factory):
    reply_tokens = [
        "Halfway there.\n",
        '```json\n[{"type": "progress", ',
        '"properties": {"value": 50, "label": "Step 1"}}]\n```',
    ]
    provider = provider_factory(tokens=reply_tokens)
    updates = []

    with patch("hyper_notebook.server.get_available_providers", return_value=[provider]):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
            chat = ChatSession(ChatStreamClient("http://test", client=http))
            outcome = await chat.send("How far along am I?", on_update=updates.append)

    assert outcome.status is RelayStatus.COMPLETED
    assert outcome.content == "".join(reply_tokens)
    assert updates[-1] == outcome.content
    assistant = chat.messages[-1]
    assert [c.type for c in assistant.components] == ["progress"]
    assert assistant.components[0].id == f"parsed-{assistant.stamp}-0-0"


@pytest.mark.asyncio
async def test_upstream_failure_against_server(server_state, provider_factory):
    provider = provider_factory(tokens=["a", "b", "c"], fail_after=1)

    with patch("hyper_notebook.server.get_available_providers", return_value=[provider]):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
            chat = ChatSession(ChatStreamClient("http://test", client=http))
            outcome = await chat.send("hi")

    assert outcome.status is RelayStatus.FAILED
    assert chat.messages[-1].content == FAILURE_MESSAGE
