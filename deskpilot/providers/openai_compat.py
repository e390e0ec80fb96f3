"""OpenAI-compatible LLM provider using httpx."""

from typing import Any

import httpx

from deskpilot.providers.base import LLMProvider, LLMResponse


class OpenAICompatibleProvider(LLMProvider):
    """
    LLM provider for OpenAI-compatible APIs.

    Works with OpenAI, OpenRouter, Perplexity, Ollama's ``/v1`` endpoint and
    other compatible servers.
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4o",
        timeout: float = 120.0,
        extra_headers: dict[str, str] | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = (api_base or self.DEFAULT_BASE_URL).rstrip("/")
        self.extra_headers = extra_headers or {}

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Send a chat completion request."""
        model = model or self.default_model

        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        headers = {
            "Content-Type": "application/json",
            **self.extra_headers,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                data = response.json()
                return self._parse_response(data)
            except httpx.HTTPStatusError as e:
                error_body = e.response.text
                return LLMResponse(
                    content=f"API error ({e.response.status_code}): {error_body[:500]}",
                    finish_reason="error",
                )
            except Exception as e:
                return LLMResponse(
                    content=f"Request failed: {str(e)}",
                    finish_reason="error",
                )

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        """Parse the API response into our format."""
        choice = data["choices"][0]
        message = choice["message"]

        usage = {}
        if "usage" in data:
            usage = {
                "prompt_tokens": data["usage"].get("prompt_tokens", 0),
                "completion_tokens": data["usage"].get("completion_tokens", 0),
                "total_tokens": data["usage"].get("total_tokens", 0),
            }

        return LLMResponse(
            content=message.get("content"),
            finish_reason=choice.get("finish_reason") or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model
