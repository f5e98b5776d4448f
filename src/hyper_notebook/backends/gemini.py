"""Gemini backend through Google's OpenAI-compatible endpoint."""

from typing import Optional

from ..config import get_gemini_api_key
from .openai_compat import OpenAICompatibleProvider

FALLBACK_MODEL = "gemini-3-flash-preview"


class GeminiProvider(OpenAICompatibleProvider):
    """Provider for the Gemini API.

    ``google/*`` catalogue ids are sent without the vendor prefix; ids from
    other vendors fall back to ``FALLBACK_MODEL``.
    """

    name = "gemini"
    base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"

    def get_api_key(self) -> Optional[str]:
        return get_gemini_api_key()

    def resolve_model(self, model: Optional[str]) -> str:
        model = super().resolve_model(model)
        vendor, _, bare = model.partition("/")
        if not bare:
            return model
        return bare if vendor == "google" else FALLBACK_MODEL
