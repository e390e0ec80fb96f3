"""Data models for multi-step tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from deskpilot.actions import Action, action_to_dict


class StepStatus(str, Enum):
    """Lifecycle of a task step. Status only moves forward."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TaskStatus(str, Enum):
    """Lifecycle of a task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TaskStep:
    """One planned action with its outcome."""

    id: str
    description: str
    action: Action
    status: StepStatus = StepStatus.PENDING
    result: str | None = None
    error: str | None = None

    def to_pattern_step(self) -> dict[str, Any]:
        return {"description": self.description, "action": action_to_dict(self.action)}


@dataclass
class Task:
    """A natural-language instruction broken into ordered steps."""

    id: str
    description: str
    steps: list[TaskStep] = field(default_factory=list)
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def failed_step(self) -> TaskStep | None:
        for step in self.steps:
            if step.status == StepStatus.FAILED:
                return step
        return None
