"""Interfaces for the environment the autonomous loop works against."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from deskpilot.actions import Action


@dataclass
class Observation:
    """A textual description of the environment plus a cheap identity hash."""

    description: str
    identity_hash: str


@dataclass
class ActionResult:
    """Outcome of performing one action."""

    success: bool
    output: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, output: str = "") -> "ActionResult":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str) -> "ActionResult":
        return cls(success=False, error=error)


class SituationSensor(ABC):
    """Observes the environment."""

    @abstractmethod
    async def capture(self) -> Observation:
        """Describe the current environment.

        Raises:
            SensorError: when nothing could be captured.
        """
        pass

    async def identity(self) -> str:
        """Re-read only the identity hash; used to verify an action had an effect."""
        return (await self.capture()).identity_hash


class ActionExecutor(ABC):
    """Performs typed actions against the environment."""

    @abstractmethod
    async def execute(self, action: Action) -> ActionResult:
        """Perform ``action`` and report what happened.

        Failures are reported through the result rather than raised.
        """
        pass
