"""OpenRouter backend: every catalogue model, addressed as ``vendor/model``."""

from typing import Optional

from ..config import get_openrouter_api_key, get_site_name, get_site_url
from .openai_compat import OpenAICompatibleProvider


class OpenRouterProvider(OpenAICompatibleProvider):
    """Provider for the OpenRouter API."""

    name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"

    def get_api_key(self) -> Optional[str]:
        return get_openrouter_api_key()

    def default_headers(self) -> dict[str, str]:
        # OpenRouter attributes traffic by these two headers.
        return {"HTTP-Referer": get_site_url(), "X-Title": get_site_name()}
