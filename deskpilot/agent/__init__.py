"""The autonomous goal-pursuit loop."""

from deskpilot.agent.events import LoopEvent, LoopEventType
from deskpilot.agent.loop import AutonomousLoop, parse_decision
from deskpilot.agent.models import ActionRecord, Decision, LoopResult, LoopState, LoopStatus

__all__ = [
    "ActionRecord",
    "AutonomousLoop",
    "Decision",
    "LoopEvent",
    "LoopEventType",
    "LoopResult",
    "LoopState",
    "LoopStatus",
    "parse_decision",
]
