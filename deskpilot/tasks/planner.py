"""Task planner - turns an instruction into ordered, typed steps."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from deskpilot.actions import Action, Note, action_from_dict, parse_step_action
from deskpilot.advisor import Advisor
from deskpilot.errors import ActionParseError
from deskpilot.memory.patterns import TaskPatternStore
from deskpilot.tasks.models import Task, TaskStep
from deskpilot.tasks.prompts import PATTERN_ENTRY, PATTERNS_SECTION, PLANNER_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def extract_json_array(text: str) -> list[Any]:
    """Decode the first JSON array embedded in ``text``.

    Raises:
        ValueError: when no position in the text starts a valid array.
    """
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("[", start + 1)
            continue
        if isinstance(value, list):
            return value
        start = text.find("[", start + 1)
    raise ValueError("No JSON array found in planner reply")


def _decode_step_action(raw: Any) -> Action:
    if isinstance(raw, dict):
        return action_from_dict(raw)
    if isinstance(raw, str):
        return parse_step_action(raw)
    raise ActionParseError(f"Unsupported step action: {raw!r}")


class TaskPlanner:
    """Asks the advisor for a plan, primed with similar past successes."""

    def __init__(self, advisor: Advisor, pattern_store: TaskPatternStore | None = None):
        self.advisor = advisor
        self.pattern_store = pattern_store

    def build_system_prompt(self, text: str) -> str:
        patterns = self.pattern_store.find_similar(text, limit=3) if self.pattern_store else []
        if not patterns:
            return PLANNER_SYSTEM_PROMPT.format(patterns="")

        entries = "\n".join(
            PATTERN_ENTRY.format(
                input=p.input,
                count=p.success_count,
                steps=json.dumps(p.steps),
            )
            for p in patterns
        )
        return PLANNER_SYSTEM_PROMPT.format(patterns=PATTERNS_SECTION.format(patterns=entries))

    @staticmethod
    def parse_steps(reply: str) -> list[TaskStep]:
        """Decode a planner reply into steps.

        Raises:
            ValueError: when the reply holds no usable plan.
        """
        items = extract_json_array(reply)
        steps = []
        for index, item in enumerate(items, 1):
            if isinstance(item, str):
                action = parse_step_action(item)
                description = item
            elif isinstance(item, dict):
                action = _decode_step_action(item.get("action", ""))
                description = str(item.get("description") or action.kind)
            else:
                raise ActionParseError(f"Unsupported step: {item!r}")
            steps.append(TaskStep(id=f"step-{index}", description=description, action=action))

        if not steps:
            raise ValueError("Planner returned an empty plan")
        return steps

    async def parse_task(self, text: str) -> Task:
        """Plan ``text``. Never raises: any failure yields a single note step."""
        task_id = f"task-{uuid.uuid4().hex[:8]}"
        try:
            reply = await self.advisor.decide(text, system=self.build_system_prompt(text))
            steps = self.parse_steps(reply)
        except Exception as e:
            logger.warning("Task planning failed for %r: %s", text, e)
            steps = [TaskStep(id="step-1", description=text, action=Note(text=text))]

        logger.info("Planned %d step(s) for %r", len(steps), text)
        return Task(id=task_id, description=text, steps=steps)
