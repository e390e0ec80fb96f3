"""Data models for learned-action and task-pattern memory."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class LearnedAction:
    """A (situation, goal) -> action association with its track record.

    Timestamps are ISO 8601 strings, as stored on disk.
    """

    id: str
    situation: str
    goal: str
    solution: str
    action_type: str
    action_value: str
    source: str
    success_count: int = 1
    fail_count: int = 0
    last_used: str = ""
    created: str = ""

    @property
    def net_score(self) -> int:
        """Successes minus failures; the pruning rank."""
        return self.success_count - self.fail_count

    @property
    def recall_score(self) -> float:
        """Ranking used when several entries match a recall query."""
        return self.net_score + 0.1 * self.success_count


@dataclass
class MemoryStats:
    """Aggregate counters kept alongside the learned actions."""

    total_attempts: int = 0
    total_successes: int = 0
    total_learned: int = 0
    source_counts: dict[str, int] = field(default_factory=dict)


@dataclass
class Suggestion:
    """A next-action proposal from one help channel."""

    action: str
    value: str
    reasoning: str
    source: str
    confidence: float


@dataclass
class TaskPattern:
    """A previously successful instruction and the steps that carried it out.

    ``steps`` holds ``{"description": ..., "action": {...}}`` dicts with the
    action in its JSON form.
    """

    input: str
    normalized_input: str
    steps: list[dict[str, Any]] = field(default_factory=list)
    success_count: int = 1
    last_used: str = ""
