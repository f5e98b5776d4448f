"""Abstract base class for upstream completion providers."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Optional


class ProviderUnavailableError(RuntimeError):
    """Raised when no completion provider is configured."""


class CompletionProvider(ABC):
    """Base class for LLM completion backends.

    Each backend (OpenRouter, OpenAI, Gemini) implements this interface so the
    server can send chat turns and studio prompts without knowing which API
    answers them.
    """

    name: str  # "openrouter", "openai", "gemini"

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if this backend has credentials configured."""
        ...

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: int = 8192,
        temperature: Optional[float] = None,
    ) -> str:
        """Return the full completion for ``messages``."""
        ...

    @abstractmethod
    def stream_chat(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: int = 8192,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Yield completion text fragments as they arrive."""
        ...

    async def close(self) -> None:
        """Release any open connections."""
