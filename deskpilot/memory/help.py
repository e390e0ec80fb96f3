"""Help-seeking channels consulted when the autonomous loop is stuck.

Every channel answers the same question in free text. ``seek_help`` asks
all of them concurrently, isolates failures, and decodes each reply's
ACTION / VALUE / REASONING fields into a :class:`Suggestion`.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from deskpilot.advisor import Advisor, parse_tagged_reply
from deskpilot.errors import AdvisorError
from deskpilot.memory.models import Suggestion
from deskpilot.memory.prompts import HELP_PROMPT, RESEARCH_SYSTEM_PROMPT, WEB_DISTILL_PROMPT
from deskpilot.providers.base import LLMProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HelpRequest:
    """Immutable snapshot handed to every channel."""

    goal: str
    situation: str
    tried_actions: tuple[str, ...] = ()

    def to_prompt(self) -> str:
        tried = "\n".join(self.tried_actions[-5:]) if self.tried_actions else "None yet"
        return HELP_PROMPT.format(
            goal=self.goal,
            situation=self.situation[:500],
            tried_actions=tried,
        )


class HelpChannel(ABC):
    """A source of advice. ``name`` becomes the learned action's source tag."""

    name: str = "channel"
    confidence: float = 0.5

    @abstractmethod
    async def ask(self, request: HelpRequest) -> str | None:
        """Return a free-text reply, or None when the channel has nothing."""
        pass


class AdvisorHelpChannel(HelpChannel):
    """Asks the loop's own advisor."""

    def __init__(self, advisor: Advisor, name: str = "own_ai", confidence: float = 0.8):
        self.advisor = advisor
        self.name = name
        self.confidence = confidence

    async def ask(self, request: HelpRequest) -> str | None:
        return await self.advisor.decide(request.to_prompt())


class ResearchHelpChannel(HelpChannel):
    """Asks a second, research-oriented model such as Perplexity."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        name: str = "perplexity",
        confidence: float = 0.7,
    ):
        self.provider = provider
        self.model = model or provider.get_default_model()
        self.name = name
        self.confidence = confidence

    async def ask(self, request: HelpRequest) -> str | None:
        response = await self.provider.chat(
            messages=[
                {"role": "system", "content": RESEARCH_SYSTEM_PROMPT},
                {"role": "user", "content": request.to_prompt()},
            ],
            model=self.model,
            max_tokens=500,
            temperature=0.2,
        )
        if response.is_error:
            raise AdvisorError(response.content or f"{self.name} request failed")
        return response.content


class WebSearchHelpChannel(HelpChannel):
    """Searches the web with Brave Search and has the advisor distill the results."""

    BRAVE_API_URL = "https://api.search.brave.com/res/v1/web/search"

    def __init__(
        self,
        advisor: Advisor,
        api_key: str | None,
        name: str = "web_search",
        confidence: float = 0.5,
        count: int = 5,
        timeout: float = 30.0,
    ):
        self.advisor = advisor
        self.api_key = api_key
        self.name = name
        self.confidence = confidence
        self.count = max(1, min(10, count))
        self.timeout = timeout

    async def search(self, query: str) -> list[str]:
        """Return formatted ``title / url / description`` results."""
        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": self.api_key or "",
        }
        params = {"q": query, "count": self.count}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.BRAVE_API_URL, headers=headers, params=params)
            response.raise_for_status()
            data = response.json()

        results = []
        for i, result in enumerate(data.get("web", {}).get("results", [])[: self.count], 1):
            title = result.get("title", "No title")
            url = result.get("url", "")
            description = result.get("description", "")
            results.append(f"{i}. {title}\n   {url}\n   {description}")
        return results

    async def ask(self, request: HelpRequest) -> str | None:
        if not self.api_key:
            logger.debug("Web search help skipped: no API key configured")
            return None

        results = await self.search(f"how to {request.goal} step by step")
        if not results:
            return None

        prompt = WEB_DISTILL_PROMPT.format(
            goal=request.goal,
            situation=request.situation[:300],
            results="\n".join(results),
        )
        return await self.advisor.decide(prompt)


async def _ask_channel(channel: HelpChannel, request: HelpRequest) -> Suggestion | None:
    reply = await channel.ask(request)
    if not reply:
        return None

    tagged = parse_tagged_reply(reply)
    if tagged is None:
        logger.debug("Help channel %s replied without an ACTION field", channel.name)
        return None

    return Suggestion(
        action=tagged.action,
        value=tagged.value,
        reasoning=tagged.reasoning,
        source=channel.name,
        confidence=channel.confidence,
    )


async def seek_help(
    channels: list[HelpChannel],
    goal: str,
    situation: str,
    tried_actions: list[str],
) -> list[Suggestion]:
    """Ask every channel at once and return their suggestions, best first.

    A channel that raises or replies without an ACTION field contributes
    nothing; the aggregate call itself never fails because of one channel.
    """
    if not channels:
        return []

    request = HelpRequest(goal=goal, situation=situation, tried_actions=tuple(tried_actions))
    results = await asyncio.gather(
        *(_ask_channel(channel, request) for channel in channels),
        return_exceptions=True,
    )

    suggestions: list[Suggestion] = []
    for channel, result in zip(channels, results):
        if isinstance(result, BaseException):
            logger.warning("Help channel %s failed: %s", channel.name, result)
            continue
        if result is not None:
            suggestions.append(result)

    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    logger.info("Collected %d suggestion(s) from %d channel(s)", len(suggestions), len(channels))
    return suggestions
