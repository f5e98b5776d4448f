"""Shared implementation for OpenAI-compatible chat completion APIs.

OpenRouter, OpenAI and Gemini all expose ``/chat/completions`` in the OpenAI
wire format, so one client class serves all three; subclasses only choose the
base URL, the API key and how model ids are spelled.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any, Optional

from openai import AsyncOpenAI

from ..config import get_default_model
from ..provider import CompletionProvider

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(CompletionProvider):
    """Chat completions through ``openai.AsyncOpenAI`` against ``base_url``."""

    name = "openai_compatible"
    base_url: Optional[str] = None

    def __init__(self, api_key: Optional[str] = None, **client_kwargs: Any):
        self._api_key = api_key if api_key is not None else self.get_api_key()
        self._client_kwargs = client_kwargs
        self._client: Optional[AsyncOpenAI] = None

    def get_api_key(self) -> Optional[str]:
        return None

    def default_headers(self) -> dict[str, str]:
        return {}

    def resolve_model(self, model: Optional[str]) -> str:
        """Map a catalogue model id to the id this API expects."""
        return model or get_default_model()

    def is_available(self) -> bool:
        return bool(self._api_key)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self.base_url,
                default_headers=self.default_headers() or None,
                **self._client_kwargs,
            )
        return self._client

    def _build_request(
        self,
        messages: list[dict],
        model: Optional[str],
        system_prompt: Optional[str],
        max_tokens: int,
        temperature: Optional[float],
    ) -> dict[str, Any]:
        chat_messages = [{"role": m["role"], "content": m["content"]} for m in messages]
        if system_prompt:
            chat_messages.insert(0, {"role": "system", "content": system_prompt})

        request: dict[str, Any] = {
            "model": self.resolve_model(model),
            "messages": chat_messages,
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            request["temperature"] = temperature
        return request

    async def chat(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: int = 8192,
        temperature: Optional[float] = None,
    ) -> str:
        request = self._build_request(messages, model, system_prompt, max_tokens, temperature)
        completion = await self.client.chat.completions.create(**request)
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def stream_chat(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: int = 8192,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        request = self._build_request(messages, model, system_prompt, max_tokens, temperature)
        logger.debug("Streaming %s via %s", request["model"], self.name)
        stream = await self.client.chat.completions.create(stream=True, **request)

        async for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
