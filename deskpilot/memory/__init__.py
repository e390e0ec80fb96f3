"""Learned-action memory, help-seeking channels and task patterns."""

from deskpilot.memory.help import (
    AdvisorHelpChannel,
    HelpChannel,
    HelpRequest,
    ResearchHelpChannel,
    WebSearchHelpChannel,
    seek_help,
)
from deskpilot.memory.models import LearnedAction, MemoryStats, Suggestion, TaskPattern
from deskpilot.memory.patterns import TaskPatternStore
from deskpilot.memory.similarity import normalize_input, similarity
from deskpilot.memory.store import LearnedMemoryStore

__all__ = [
    "AdvisorHelpChannel",
    "HelpChannel",
    "HelpRequest",
    "LearnedAction",
    "LearnedMemoryStore",
    "MemoryStats",
    "ResearchHelpChannel",
    "Suggestion",
    "TaskPattern",
    "TaskPatternStore",
    "WebSearchHelpChannel",
    "normalize_input",
    "seek_help",
    "similarity",
]
