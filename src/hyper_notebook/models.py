"""Catalogue of chat models offered in the model picker."""

from dataclasses import asdict, dataclass

from .config import get_default_model


@dataclass(frozen=True)
class ModelInfo:
    id: str  # "vendor/model", as OpenRouter names it
    name: str
    provider: str
    context_length: int
    description: str
    supports_images: bool = True
    supports_streaming: bool = True
    supports_image_generation: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "id": data["id"],
            "name": data["name"],
            "provider": data["provider"],
            "contextLength": data["context_length"],
            "description": data["description"],
            "supportsImages": data["supports_images"],
            "supportsStreaming": data["supports_streaming"],
            "supportsImageGeneration": data["supports_image_generation"],
        }


AVAILABLE_MODELS: list[ModelInfo] = [
    ModelInfo(
        id="anthropic/claude-opus-4.5",
        name="Claude Opus 4.5",
        provider="Anthropic",
        context_length=200_000,
        description="Frontier reasoning model for complex software engineering and agentic workflows",
    ),
    ModelInfo(
        id="anthropic/claude-sonnet-4.5",
        name="Claude Sonnet 4.5",
        provider="Anthropic",
        context_length=1_000_000,
        description="Sonnet tuned for real-world agents and coding workflows",
    ),
    ModelInfo(
        id="anthropic/claude-haiku-4.5",
        name="Claude Haiku 4.5",
        provider="Anthropic",
        context_length=200_000,
        description="Fast, low-cost model with near-frontier quality",
    ),
    ModelInfo(
        id="openai/gpt-5.2",
        name="GPT-5.2",
        provider="OpenAI",
        context_length=400_000,
        description="Frontier-grade model with adaptive reasoning",
    ),
    ModelInfo(
        id="openai/gpt-5.2-chat",
        name="GPT-5.2 Chat",
        provider="OpenAI",
        context_length=128_000,
        description="Lightweight GPT-5.2 for low-latency chat",
    ),
    ModelInfo(
        id="google/gemini-3-flash-preview",
        name="Gemini 3 Flash",
        provider="Google",
        context_length=1_000_000,
        description="Fast frontier model with a 1M context window",
    ),
    ModelInfo(
        id="google/gemini-3-pro-preview",
        name="Gemini 3 Pro",
        provider="Google",
        context_length=1_050_000,
        description="Flagship multimodal reasoning model",
    ),
    ModelInfo(
        id="x-ai/grok-4.1-fast",
        name="Grok 4.1 Fast",
        provider="xAI",
        context_length=2_000_000,
        description="Agentic model with a 2M context window for deep research",
    ),
]


def get_model_info(model_id: str) -> ModelInfo | None:
    return next((m for m in AVAILABLE_MODELS if m.id == model_id), None)


def models_by_provider() -> dict[str, list[ModelInfo]]:
    grouped: dict[str, list[ModelInfo]] = {}
    for model in AVAILABLE_MODELS:
        grouped.setdefault(model.provider, []).append(model)
    return grouped


def fast_model() -> str:
    """Return a cheap model for summaries and titles."""
    for model in AVAILABLE_MODELS:
        if any(tag in model.id for tag in ("haiku", "chat", "flash")):
            return model.id
    return get_default_model()
