"""Provider and model registry for the DeskPilot CLI.

Pure data module defining the LLM providers the advisor and the screen
sensor can use, consumed by the onboarding and status commands.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ModelOption:
    """A single model offered by a provider."""

    id: str
    label: str
    description: str
    vision: bool = False


@dataclass(frozen=True, slots=True)
class ProviderOption:
    """An LLM provider with its API-key hint and available models."""

    key: str
    label: str
    key_url_hint: str
    needs_key: bool = True
    models: list[ModelOption] = field(default_factory=list)


PROVIDERS: list[ProviderOption] = [
    ProviderOption(
        key="ollama",
        label="Ollama (local)",
        key_url_hint="https://ollama.com/download",
        needs_key=False,
        models=[
            ModelOption("llama3.2-vision", "Llama 3.2 Vision", "Local vision model", vision=True),
            ModelOption("llava", "LLaVA", "Small local vision model", vision=True),
            ModelOption("qwen2.5", "Qwen 2.5", "Local text model for decisions"),
        ],
    ),
    ProviderOption(
        key="openai",
        label="OpenAI",
        key_url_hint="https://platform.openai.com/api-keys",
        models=[
            ModelOption("gpt-4.1", "GPT-4.1", "Smartest non-reasoning model", vision=True),
            ModelOption("gpt-4.1-mini", "GPT-4.1 Mini", "Fast and affordable", vision=True),
            ModelOption("gpt-4o", "GPT-4o", "Multimodal all-rounder", vision=True),
        ],
    ),
    ProviderOption(
        key="anthropic",
        label="Anthropic",
        key_url_hint="https://console.anthropic.com/settings/keys",
        models=[
            ModelOption(
                "claude-sonnet-4-6", "Claude Sonnet 4.6", "Best speed and intelligence balance", vision=True
            ),
            ModelOption(
                "claude-haiku-4-5", "Claude Haiku 4.5", "Fastest, near-frontier intelligence", vision=True
            ),
        ],
    ),
    ProviderOption(
        key="openrouter",
        label="OpenRouter",
        key_url_hint="https://openrouter.ai/keys",
        models=[
            ModelOption(
                "anthropic/claude-sonnet-4", "Claude Sonnet 4 (via OpenRouter)", "Strong vision", vision=True
            ),
            ModelOption("openai/gpt-4o", "GPT-4o (via OpenRouter)", "Multimodal", vision=True),
            ModelOption("google/gemini-2.5-flash", "Gemini 2.5 Flash (via OpenRouter)", "Cheap vision", vision=True),
        ],
    ),
]

RESEARCH_PROVIDER = ProviderOption(
    key="perplexity",
    label="Perplexity",
    key_url_hint="https://www.perplexity.ai/settings/api",
    models=[ModelOption("sonar", "Sonar", "Web-grounded answers")],
)


def get_provider(key: str) -> ProviderOption | None:
    """Look up a provider by its unique key.

    Args:
        key: The provider key (e.g. ``"ollama"``, ``"openai"``, ``"perplexity"``).

    Returns:
        The matching ``ProviderOption``, or ``None`` if no provider has that key.
    """
    for provider in [*PROVIDERS, RESEARCH_PROVIDER]:
        if provider.key == key:
            return provider
    return None
