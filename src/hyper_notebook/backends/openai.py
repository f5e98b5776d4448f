"""OpenAI backend for ``openai/*`` catalogue models."""

from typing import Optional

from ..config import get_openai_api_key
from .openai_compat import OpenAICompatibleProvider

FALLBACK_MODEL = "gpt-5.2-chat-latest"


class OpenAIProvider(OpenAICompatibleProvider):
    """Provider for the OpenAI API.

    Catalogue ids carry an ``openai/`` vendor prefix that the API itself does
    not accept; ids from other vendors fall back to ``FALLBACK_MODEL``.
    """

    name = "openai"
    base_url = None  # SDK default

    def get_api_key(self) -> Optional[str]:
        return get_openai_api_key()

    def resolve_model(self, model: Optional[str]) -> str:
        model = super().resolve_model(model)
        vendor, _, bare = model.partition("/")
        if not bare:
            return model
        return bare if vendor == "openai" else FALLBACK_MODEL
