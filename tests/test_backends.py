"""Tests for provider detection and model id mapping."""

import pytest

from hyper_notebook.backends import get_available_providers
from hyper_notebook.backends.gemini import GeminiProvider
from hyper_notebook.backends.openai import OpenAIProvider
from hyper_notebook.backends.openrouter import OpenRouterProvider
from hyper_notebook.models import fast_model, get_model_info, models_by_provider


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("OPENROUTER_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY", "DEFAULT_MODEL"):
        monkeypatch.delenv(var, raising=False)


class TestAvailability:
    def test_nothing_configured(self):
        assert get_available_providers() == []

    def test_order_of_preference(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "g")
        monkeypatch.setenv("OPENROUTER_API_KEY", "r")
        assert [p.name for p in get_available_providers()] == ["openrouter", "gemini"]

    def test_google_api_key_alias(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "g")
        assert GeminiProvider().is_available()

    def test_explicit_key_wins(self):
        assert OpenAIProvider(api_key="sk-test").is_available()


class TestResolveModel:
    def test_openrouter_keeps_catalogue_ids(self):
        assert OpenRouterProvider(api_key="k").resolve_model("anthropic/claude-haiku-4.5") == "anthropic/claude-haiku-4.5"

    def test_default_model(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MODEL", "x-ai/grok-4.1-fast")
        assert OpenRouterProvider(api_key="k").resolve_model(None) == "x-ai/grok-4.1-fast"

    def test_openai_strips_prefix(self):
        provider = OpenAIProvider(api_key="k")
        assert provider.resolve_model("openai/gpt-5.2") == "gpt-5.2"
        assert provider.resolve_model("anthropic/claude-opus-4.5") == "gpt-5.2-chat-latest"
        assert provider.resolve_model("gpt-4o") == "gpt-4o"

    def test_gemini_strips_prefix(self):
        provider = GeminiProvider(api_key="k")
        assert provider.resolve_model(None) == "gemini-3-flash-preview"
        assert provider.resolve_model("google/gemini-3-pro-preview") == "gemini-3-pro-preview"
        assert provider.resolve_model("openai/gpt-5.2") == "gemini-3-flash-preview"


class TestBuildRequest:
    def test_system_prompt_is_prepended(self):
        request = OpenRouterProvider(api_key="k")._build_request(
            [{"role": "user", "content": "hi"}], "openai/gpt-5.2", "Be brief.", 100, None
        )
        assert request["messages"][0] == {"role": "system", "content": "Be brief."}
        assert request["max_tokens"] == 100
        assert "temperature" not in request

    def test_openrouter_attribution_headers(self, monkeypatch):
        monkeypatch.setenv("SITE_NAME", "Notebook Test")
        headers = OpenRouterProvider(api_key="k").default_headers()
        assert headers["X-Title"] == "Notebook Test"
        assert "HTTP-Referer" in headers


class TestModels:
    def test_lookup(self):
        assert get_model_info("google/gemini-3-pro-preview").provider == "Google"
        assert get_model_info("nope") is None

    def test_grouping_and_fast_model(self):
        grouped = models_by_provider()
        assert {"Anthropic", "OpenAI", "Google", "xAI"} <= set(grouped)
        assert fast_model() == "anthropic/claude-haiku-4.5"


@pytest.mark.asyncio
async def test_close_releases_client():
    provider = OpenRouterProvider(api_key="k")
    assert provider.client is provider.client
    await provider.close()
    assert provider._client is None
    await provider.close()
