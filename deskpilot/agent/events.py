"""Events reported by the autonomous loop to an optional observer."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable


class LoopEventType(str, Enum):
    STARTED = "started"
    ATTEMPT = "attempt"
    OBSERVING = "observing"
    OBSERVED = "observed"
    OBSERVE_ERROR = "observe_error"
    RECALLED = "recalled"
    THINKING = "thinking"
    DECIDED = "decided"
    ASKING_HELP = "asking_help"
    TRYING_SUGGESTION = "trying_suggestion"
    EXECUTING = "executing"
    EXECUTED = "executed"
    VERIFIED = "verified"
    PAUSED = "paused"
    RESUMED = "resumed"
    COMPLETED = "completed"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class LoopEvent:
    """A single observation of loop progress."""

    type: LoopEventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


EventCallback = Callable[[LoopEvent], None]
