"""Conversation state for one chat panel."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from .core import ChatMessage
from .relay import (
    ChatStreamClient,
    RelayOutcome,
    RelaySession,
    RelayStatus,
    UpdateCallback,
)

logger = logging.getLogger(__name__)


class ChatBusyError(RuntimeError):
    """Raised when a turn is started while another is still streaming."""


class ChatSession:
    """Drives chat turns and keeps the resulting message history.

    A turn appends its user message and the assistant reply together once the
    stream reaches an outcome. A cancelled turn appends nothing.
    """

    def __init__(
        self,
        client: ChatStreamClient,
        model: Optional[str] = None,
        conversation_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ):
        self.client = client
        self.model = model
        self.conversation_id = conversation_id
        self.system_prompt = system_prompt
        self.messages: list[ChatMessage] = []
        self._active: Optional[RelaySession] = None

    @property
    def is_streaming(self) -> bool:
        return self._active is not None

    async def send(self, text: str, on_update: Optional[UpdateCallback] = None) -> RelayOutcome:
        """Send ``text`` with the full history and wait for the reply."""
        if self._active is not None:
            raise ChatBusyError("a reply is still streaming")

        history = [{"role": m.role, "content": m.content} for m in self.messages]
        history.append({"role": "user", "content": text})

        relay = RelaySession()
        self._active = relay
        sent_at = datetime.now(timezone.utc)
        try:
            outcome = await self.client.stream_turn(
                history,
                relay,
                model=self.model,
                conversation_id=self.conversation_id,
                system_prompt=self.system_prompt,
                on_update=on_update,
            )
        finally:
            self._active = None

        if outcome.status is RelayStatus.CANCELLED:
            logger.info("Turn cancelled; nothing appended")
            return outcome

        self.messages.append(ChatMessage(
            id=uuid.uuid4().hex,
            role="user",
            content=text,
            timestamp=sent_at,
        ))
        self.messages.append(ChatMessage(
            id=uuid.uuid4().hex,
            role="assistant",
            content=outcome.content,
            components=outcome.components,
            timestamp=relay.timestamp,
        ))
        return outcome

    def cancel(self) -> None:
        """Abandon the turn in flight, if any."""
        if self._active is not None:
            self._active.cancel()

    def clear(self) -> None:
        self.messages.clear()
