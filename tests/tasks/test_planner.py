"""Tests for the task planner."""

import json

import pytest

from deskpilot.actions import KeyCombo, Note, OpenApp, TypeText, Wait
from deskpilot.advisor import Advisor
from deskpilot.errors import ActionParseError, AdvisorError
from deskpilot.memory.patterns import TaskPatternStore
from deskpilot.tasks.planner import TaskPlanner, extract_json_array

EDITOR_PLAN = json.dumps([
    {"description": "Open the text editor", "action": {"type": "open_app", "name": "gedit"}},
    {"description": "Wait for it to load", "action": {"type": "wait", "seconds": 2}},
    {"description": "Type hello", "action": {"type": "type_text", "text": "hello"}},
])


class PlanAdvisor(Advisor):
    def __init__(self, reply: str = EDITOR_PLAN, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.systems: list[str | None] = []

    async def decide(self, prompt, system=None):
        self.systems.append(system)
        if self.error:
            raise self.error
        return self.reply


class TestExtractJsonArray:
    def test_with_surrounding_prose(self):
        assert extract_json_array('Here is the plan:\n["open_app:notepad"]\nGood luck!') == ["open_app:notepad"]

    def test_skips_bracketed_prose(self):
        assert extract_json_array('[note] then ["wait:1"]') == ["wait:1"]

    def test_none_found(self):
        with pytest.raises(ValueError):
            extract_json_array("no plan here")


class TestParseSteps:
    def test_json_actions(self):
        steps = TaskPlanner.parse_steps(EDITOR_PLAN)

        assert [s.id for s in steps] == ["step-1", "step-2", "step-3"]
        assert steps[0].action == OpenApp(name="gedit")
        assert steps[1].action == Wait(seconds=2)
        assert steps[2].action == TypeText(text="hello")
        assert steps[0].description == "Open the text editor"

    def test_legacy_string_actions(self):
        reply = json.dumps([
            {"description": "Save", "action": "key_combo:control+s"},
            "type_text:done",
        ])
        steps = TaskPlanner.parse_steps(reply)

        assert steps[0].action == KeyCombo(keys=("control", "s"))
        assert steps[1].action == TypeText(text="done")
        assert steps[1].description == "type_text:done"

    def test_missing_description_uses_kind(self):
        steps = TaskPlanner.parse_steps('[{"action": {"type": "screenshot"}}]')
        assert steps[0].description == "screenshot"

    def test_empty_plan(self):
        with pytest.raises(ValueError):
            TaskPlanner.parse_steps("[]")

    def test_bad_action(self):
        with pytest.raises(ActionParseError):
            TaskPlanner.parse_steps('[{"description": "x", "action": {"type": "click_at", "x": "left"}}]')


class TestParseTask:
    @pytest.mark.asyncio
    async def test_editor_instruction(self):
        planner = TaskPlanner(PlanAdvisor())

        task = await planner.parse_task("open text editor and type hello")

        assert task.id.startswith("task-")
        assert task.description == "open text editor and type hello"
        assert [s.action.kind for s in task.steps] == ["open_app", "wait", "type_text"]

    @pytest.mark.asyncio
    async def test_unparsable_reply_falls_back_to_note(self):
        planner = TaskPlanner(PlanAdvisor(reply="Sorry, I cannot help with that."))

        task = await planner.parse_task("do the thing")

        assert len(task.steps) == 1
        assert task.steps[0].action == Note(text="do the thing")
        assert task.steps[0].description == "do the thing"

    @pytest.mark.asyncio
    async def test_advisor_failure_falls_back_to_note(self):
        planner = TaskPlanner(PlanAdvisor(error=AdvisorError("offline")))

        task = await planner.parse_task("do the thing")

        assert task.steps[0].action == Note(text="do the thing")

    @pytest.mark.asyncio
    async def test_mistyped_step_falls_back_to_note(self):
        planner = TaskPlanner(PlanAdvisor(reply='[{"description": "wait", "action": {"type": "wait", "seconds": "a while"}}]'))

        task = await planner.parse_task("wait a bit")

        assert task.steps[0].action == Note(text="wait a bit")


class TestSystemPrompt:
    def test_without_patterns(self):
        prompt = TaskPlanner(PlanAdvisor()).build_system_prompt("open text editor")
        assert "worked before" not in prompt
        assert '{"type": "open_app", "name": "notepad"}' in prompt

    @pytest.mark.asyncio
    async def test_similar_patterns_included(self, temp_dir):
        store = TaskPatternStore(storage_path=temp_dir / "p.json")
        store.record_success(
            "open the text editor",
            [{"description": "Open editor", "action": {"type": "open_app", "name": "gedit"}}],
        )
        advisor = PlanAdvisor()
        planner = TaskPlanner(advisor, pattern_store=store)

        await planner.parse_task("open text editor and type hello")

        system = advisor.systems[0]
        assert "worked before" in system
        assert 'Request: "open the text editor" (succeeded 1x)' in system
        assert "gedit" in system
