"""Relay Server-Sent-Event token streams from the chat endpoint.

The chat endpoint answers with frames of the form ``data: <json>\\n\\n``:

- ``{"type": "token", "token": "..."}`` zero or more times
- ``{"type": "done", "content": "..."}`` once on success
- ``{"type": "error", "error": "..."}`` if the upstream model failed

``relay_stream`` folds token frames into a growing buffer, publishes every new
buffer value, and ends in exactly one outcome per request: completed (text plus
extracted A2UI components), cancelled (no callback at all) or failed (the fixed
``FAILURE_MESSAGE`` and no components). Nothing is retried here.
"""

import asyncio
import codecs
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import AsyncIterator, Callable, Optional

import httpx

from .a2ui import extract_components, loads_strict
from .core import ChunkKind, StreamChunk, UIComponentDescriptor

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
FAILURE_MESSAGE = "Sorry, an error occurred while processing your request."

TRANSPORT_ERRORS = (httpx.HTTPError, httpx.StreamError, OSError)

UpdateCallback = Callable[[str], None]
CompleteCallback = Callable[[str, list[UIComponentDescriptor]], None]
FailureCallback = Callable[[str], None]


class RelayStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class RelayOutcome:
    status: RelayStatus
    content: str = ""
    components: tuple[UIComponentDescriptor, ...] = ()


class SSEDecoder:
    """Incremental decoder from raw bytes to ``StreamChunk`` values.

    Bytes are decoded as UTF-8 across chunk boundaries and a line cut off at
    the end of one chunk is completed by the next. Lines that carry the data
    prefix but not valid JSON are skipped and counted in ``skipped_lines``.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self.skipped_lines = 0

    def feed(self, data: bytes) -> list[StreamChunk]:
        text = self._pending + self._decoder.decode(data)
        lines = text.split("\n")
        self._pending = lines.pop()
        return self._parse_lines(lines)

    def flush(self) -> list[StreamChunk]:
        """Parse whatever is left once the byte stream has ended."""
        text = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return self._parse_lines([text]) if text else []

    def _parse_lines(self, lines: list[str]) -> list[StreamChunk]:
        chunks = []
        for line in lines:
            chunk = self._parse_line(line.rstrip("\r"))
            if chunk is not None:
                chunks.append(chunk)
        return chunks

    def _parse_line(self, line: str) -> StreamChunk | None:
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX):]
        if payload.startswith(" "):
            payload = payload[1:]

        try:
            data = loads_strict(payload)
        except ValueError:
            self.skipped_lines += 1
            logger.debug("Skipping malformed SSE line: %r", line[:200])
            return None

        if not isinstance(data, dict):
            return None

        kind = data.get("type")
        if kind == "token" and isinstance(data.get("token"), str):
            return StreamChunk(ChunkKind.TOKEN, data["token"])
        if kind == "done":
            return StreamChunk(ChunkKind.DONE)
        if kind == "error":
            return StreamChunk(ChunkKind.ERROR, str(data.get("error") or ""))
        return None


@dataclass
class RelaySession:
    """State of one chat turn: the text buffer, the cancel flag and the outcome.

    Created per request and dropped once the turn has an outcome. ``stamp`` (ms
    since epoch) seeds the ids of components extracted from the reply.
    """

    stamp: int = field(default_factory=lambda: int(time.time() * 1000))
    buffer: str = ""
    outcome: Optional[RelayOutcome] = None
    _cancelled: bool = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.stamp / 1000, tz=timezone.utc)

    def cancel(self) -> None:
        """Abandon the turn; no further updates and no terminal callback."""
        self._cancelled = True

    def finish(self, outcome: RelayOutcome) -> RelayOutcome:
        if self.outcome is not None:
            raise RuntimeError("relay session already finished")
        self.outcome = outcome
        return outcome


def fail_turn(
    session: RelaySession,
    reason: str,
    on_failure: Optional[FailureCallback] = None,
) -> RelayOutcome:
    """End ``session`` with the fallback message, or quietly if it was cancelled."""
    if session.cancelled:
        return session.finish(RelayOutcome(RelayStatus.CANCELLED, session.buffer))

    logger.error("Chat stream failed: %s", reason)
    outcome = session.finish(RelayOutcome(RelayStatus.FAILED, FAILURE_MESSAGE))
    if on_failure is not None:
        on_failure(FAILURE_MESSAGE)
    return outcome


async def relay_stream(
    chunks: AsyncIterator[bytes],
    session: RelaySession,
    on_update: Optional[UpdateCallback] = None,
    on_complete: Optional[CompleteCallback] = None,
    on_failure: Optional[FailureCallback] = None,
) -> RelayOutcome:
    """Consume an SSE byte stream until it reaches an outcome.

    Chunks are applied strictly in arrival order. If the surrounding task is
    cancelled the session is marked cancelled and ``CancelledError`` propagates.
    """
    decoder = SSEDecoder()

    try:
        async for raw in chunks:
            if session.cancelled:
                break
            outcome = _apply(decoder.feed(raw), session, on_update, on_complete, on_failure)
            if outcome is not None:
                return outcome
        else:
            outcome = _apply(decoder.flush(), session, on_update, on_complete, on_failure)
            if outcome is not None:
                return outcome
    except asyncio.CancelledError:
        session.cancel()
        raise
    except TRANSPORT_ERRORS as e:
        return fail_turn(session, f"{type(e).__name__}: {e}", on_failure)
    finally:
        if decoder.skipped_lines:
            logger.debug("Skipped %d malformed SSE lines", decoder.skipped_lines)

    if session.cancelled:
        logger.info("Chat stream cancelled")
        return session.finish(RelayOutcome(RelayStatus.CANCELLED, session.buffer))

    return fail_turn(session, "stream closed without a done frame", on_failure)


def _apply(
    chunks: list[StreamChunk],
    session: RelaySession,
    on_update: Optional[UpdateCallback],
    on_complete: Optional[CompleteCallback],
    on_failure: Optional[FailureCallback],
) -> RelayOutcome | None:
    for chunk in chunks:
        if session.cancelled:
            return session.finish(RelayOutcome(RelayStatus.CANCELLED, session.buffer))

        if chunk.kind is ChunkKind.TOKEN:
            session.buffer += chunk.text
            if on_update is not None:
                on_update(session.buffer)
        elif chunk.kind is ChunkKind.DONE:
            components = extract_components(session.buffer, stamp=session.stamp)
            outcome = session.finish(
                RelayOutcome(RelayStatus.COMPLETED, session.buffer, tuple(components))
            )
            if on_complete is not None:
                on_complete(session.buffer, components)
            return outcome
        elif chunk.kind is ChunkKind.ERROR:
            return fail_turn(session, chunk.text or "upstream error frame", on_failure)

    return None


class ChatStreamClient:
    """POST one chat turn to ``/api/chat`` and relay the streamed reply."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
    ):
        # No timeout at this layer: a long generation keeps the stream open.
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=None)
        self._owns_client = client is None

    async def stream_turn(
        self,
        messages: list[dict],
        session: RelaySession,
        model: Optional[str] = None,
        conversation_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
        on_update: Optional[UpdateCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_failure: Optional[FailureCallback] = None,
    ) -> RelayOutcome:
        payload: dict = {"messages": messages}
        if model:
            payload["model"] = model
        if conversation_id:
            payload["conversationId"] = conversation_id
        if system_prompt:
            payload["systemPrompt"] = system_prompt

        try:
            async with self._client.stream("POST", "/api/chat", json=payload) as response:
                if not response.is_success:
                    return fail_turn(session, f"HTTP {response.status_code}", on_failure)
                return await relay_stream(
                    response.aiter_bytes(), session, on_update, on_complete, on_failure
                )
        except TRANSPORT_ERRORS as e:
            return fail_turn(session, f"{type(e).__name__}: {e}", on_failure)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ChatStreamClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
