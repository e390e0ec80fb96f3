"""State and result types for the autonomous loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from deskpilot.actions import Action
from deskpilot.advisor import NO_REASONING


class LoopStatus(str, Enum):
    """Where the loop is in its lifecycle."""

    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED_MAX_ATTEMPTS = "failed_max_attempts"
    STOPPED = "stopped"
    ERRORED = "errored"


class RecordResult(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"


@dataclass
class ActionRecord:
    """One executed action, appended to the history in tick order."""

    action_type: str
    value: str
    result: RecordResult = RecordResult.PENDING
    situation_before: str = ""
    situation_after: str | None = None
    reasoning: str = ""
    error: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def describe(self) -> str:
        return f"{self.action_type}: {self.value}"


@dataclass
class LoopState:
    """Mutable run state, replaced on every ``start()``."""

    goal: str = ""
    is_active: bool = False
    is_paused: bool = False
    current_action: str | None = None
    action_history: list[ActionRecord] = field(default_factory=list)
    stuck_count: int = 0
    attempt_count: int = 0
    last_screen_hash: str = ""
    start_time: datetime = field(default_factory=datetime.now)
    confidence: int = 100
    status: LoopStatus = LoopStatus.IDLE


@dataclass
class Decision:
    """What the advisor wants to do next.

    ``kind`` is ``done``, ``stuck`` or an action kind (with ``action`` set).
    ``malformed`` marks replies that could not be decoded, or advisor calls
    that failed; those are handled like ``stuck``.
    """

    kind: str
    value: str = ""
    reasoning: str = NO_REASONING
    action: Action | None = None
    malformed: bool = False

    @property
    def is_done(self) -> bool:
        return self.kind == "done" and not self.malformed

    @property
    def is_stuck(self) -> bool:
        return self.malformed or self.kind == "stuck"


@dataclass
class LoopResult:
    """How a ``start()`` call ended."""

    success: bool
    message: str
    status: LoopStatus
    attempts: int = 0
