"""LLM provider implementations."""

from deskpilot.providers.base import LLMProvider, LLMResponse
from deskpilot.providers.openai_compat import OpenAICompatibleProvider

__all__ = ["LLMProvider", "LLMResponse", "OpenAICompatibleProvider"]

# Lazy imports to avoid hard dependencies on optional SDKs.
def __getattr__(name: str):  # noqa: N807
    if name == "AnthropicProvider":
        from deskpilot.providers.anthropic import AnthropicProvider
        return AnthropicProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
