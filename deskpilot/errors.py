"""Exception types shared across DeskPilot."""


class DeskPilotError(Exception):
    """Base class for DeskPilot errors."""


class AdvisorError(DeskPilotError):
    """The advisor could not produce a reply."""


class SensorError(DeskPilotError):
    """The situation sensor failed to capture the environment."""


class ActionParseError(DeskPilotError, ValueError):
    """An action value could not be decoded into a typed action."""


class UnknownActionError(DeskPilotError):
    """No executor capability exists for an action kind."""

    def __init__(self, kind: str):
        super().__init__(f"Unknown action: {kind}")
        self.kind = kind


class CommandError(DeskPilotError):
    """A platform automation command failed or is unavailable."""
