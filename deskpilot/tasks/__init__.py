"""Multi-step task planning and execution."""

from deskpilot.tasks.executor import TaskExecutor, TaskRunner, format_task
from deskpilot.tasks.models import StepStatus, Task, TaskStatus, TaskStep
from deskpilot.tasks.planner import TaskPlanner

__all__ = [
    "StepStatus",
    "Task",
    "TaskExecutor",
    "TaskPlanner",
    "TaskRunner",
    "TaskStatus",
    "TaskStep",
    "format_task",
]
