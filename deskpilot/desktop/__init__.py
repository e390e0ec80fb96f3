"""Desktop sensing and control."""

from deskpilot.desktop.base import ActionExecutor, ActionResult, Observation, SituationSensor
from deskpilot.desktop.executor import DesktopExecutor
from deskpilot.desktop.input import InputController
from deskpilot.desktop.screen import ScreenSensor

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "DesktopExecutor",
    "InputController",
    "Observation",
    "ScreenSensor",
    "SituationSensor",
]
