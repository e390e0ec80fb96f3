"""Task executor - runs planned steps in order and remembers what worked."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from deskpilot.actions import RawAction, describe_action
from deskpilot.desktop.base import ActionExecutor, ActionResult
from deskpilot.errors import DeskPilotError, UnknownActionError
from deskpilot.memory.patterns import TaskPatternStore
from deskpilot.tasks.models import StepStatus, Task, TaskStatus, TaskStep
from deskpilot.tasks.planner import TaskPlanner

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Task, TaskStep], None]

_TASK_SYMBOLS = {
    TaskStatus.PENDING: "⏳",
    TaskStatus.RUNNING: "🔄",
    TaskStatus.COMPLETED: "✅",
    TaskStatus.FAILED: "❌",
}
_STEP_SYMBOLS = {
    StepStatus.PENDING: "○",
    StepStatus.RUNNING: "◐",
    StepStatus.COMPLETED: "●",
    StepStatus.FAILED: "✗",
    StepStatus.SKIPPED: "◌",
}


class TaskExecutor:
    """Executes a task's steps through an :class:`ActionExecutor`.

    The first failed step fails the task; every later step is skipped without
    being attempted. A fully successful run is recorded as a task pattern.
    """

    def __init__(self, executor: ActionExecutor, pattern_store: TaskPatternStore | None = None):
        self.executor = executor
        self.pattern_store = pattern_store

    async def _run_step(self, step: TaskStep) -> ActionResult:
        if isinstance(step.action, RawAction):
            raise UnknownActionError(step.action.kind)
        return await self.executor.execute(step.action)

    async def execute_task(self, task: Task, on_progress: ProgressCallback | None = None) -> Task:
        task.status = TaskStatus.RUNNING

        for step in task.steps:
            if task.status == TaskStatus.FAILED:
                step.status = StepStatus.SKIPPED
                continue

            step.status = StepStatus.RUNNING
            if on_progress:
                on_progress(task, step)

            try:
                result = await self._run_step(step)
            except DeskPilotError as e:
                result = ActionResult.fail(str(e))
            except Exception as e:
                logger.exception("Step %s raised", step.id)
                result = ActionResult.fail(str(e) or type(e).__name__)

            if result.success:
                step.status = StepStatus.COMPLETED
                step.result = result.output
            else:
                step.status = StepStatus.FAILED
                step.error = result.error or "Unknown error"
                task.status = TaskStatus.FAILED
                logger.warning("Step %s (%s) failed: %s", step.id, describe_action(step.action), step.error)

            if on_progress:
                on_progress(task, step)

        if task.status != TaskStatus.FAILED:
            task.status = TaskStatus.COMPLETED
        if task.completed_at is None:
            task.completed_at = datetime.now()

        if task.status == TaskStatus.COMPLETED and self.pattern_store is not None:
            self.pattern_store.record_success(
                task.description, [step.to_pattern_step() for step in task.steps]
            )

        return task


class TaskRunner:
    """Plans and executes an instruction in one call."""

    def __init__(self, planner: TaskPlanner, executor: TaskExecutor):
        self.planner = planner
        self.executor = executor

    async def run(self, instruction: str, on_progress: ProgressCallback | None = None) -> Task:
        task = await self.planner.parse_task(instruction)
        return await self.executor.execute_task(task, on_progress)


def format_task(task: Task) -> str:
    """Render a task and its steps as a status listing."""
    lines = [f"{_TASK_SYMBOLS[task.status]} Task: {task.description}", ""]
    for step in task.steps:
        line = f"  {_STEP_SYMBOLS[step.status]} {step.description}"
        if step.result:
            line += f" → {step.result}"
        if step.error:
            line += f" (Error: {step.error})"
        lines.append(line)
    return "\n".join(lines)
