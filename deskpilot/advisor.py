"""Advisor - the decision service consulted for next actions and plans.

Advisors answer single-action prompts in a tagged text form::

    ACTION: click_at
    VALUE: 120, 340
    REASONING: The Save button is in the toolbar

``parse_tagged_reply`` is the best-effort decoder for that form. Fields are
matched case-insensitively and the first occurrence of each wins.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from deskpilot.errors import AdvisorError
from deskpilot.providers.base import LLMProvider

_ACTION_RE = re.compile(r"ACTION:\s*([\w-]+)", re.IGNORECASE)
_VALUE_RE = re.compile(r"VALUE:[ \t]*(.*?)[ \t]*(?:\n|$)", re.IGNORECASE)
_REASONING_RE = re.compile(r"REASONING:[ \t]*(.*?)[ \t]*(?:\n|$)", re.IGNORECASE)

NO_REASONING = "No reasoning provided"


class Advisor(ABC):
    """Answers free-text prompts with free-text replies."""

    @abstractmethod
    async def decide(self, prompt: str, system: str | None = None) -> str:
        """Return the advisor's reply to ``prompt``.

        Raises:
            AdvisorError: when no reply could be obtained.
        """
        pass


class ProviderAdvisor(Advisor):
    """Advisor backed by an LLM provider."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.2,
    ):
        self.provider = provider
        self.model = model or provider.get_default_model()
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def decide(self, prompt: str, system: str | None = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await self.provider.chat(
            messages=messages,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        if response.is_error:
            raise AdvisorError(response.content or "advisor request failed")
        return response.content or ""


@dataclass
class TaggedReply:
    """The fields found in an advisor reply."""

    action: str
    value: str = ""
    reasoning: str = NO_REASONING


def parse_tagged_reply(text: str) -> TaggedReply | None:
    """Extract ACTION / VALUE / REASONING fields.

    Returns None when the reply has no ACTION field.
    """
    action_match = _ACTION_RE.search(text or "")
    if not action_match:
        return None

    value_match = _VALUE_RE.search(text)
    reasoning_match = _REASONING_RE.search(text)
    return TaggedReply(
        action=action_match.group(1).lower(),
        value=value_match.group(1).strip() if value_match else "",
        reasoning=(reasoning_match.group(1).strip() if reasoning_match else "") or NO_REASONING,
    )
