"""Auto-detect configured completion backends and provide a unified registry."""

from ..provider import CompletionProvider
from .gemini import GeminiProvider
from .openai import OpenAIProvider
from .openrouter import OpenRouterProvider


def get_available_providers() -> list[CompletionProvider]:
    """Return providers that have credentials, in order of preference."""
    providers = []
    for ProviderClass in [OpenRouterProvider, OpenAIProvider, GeminiProvider]:
        provider = ProviderClass()
        if provider.is_available():
            providers.append(provider)
    return providers
