"""Tests for task execution."""

import pytest

from deskpilot.actions import Note, OpenApp, RawAction, TypeText, Wait
from deskpilot.advisor import Advisor
from deskpilot.desktop.base import ActionExecutor, ActionResult
from deskpilot.memory.patterns import TaskPatternStore
from deskpilot.tasks.executor import TaskExecutor, TaskRunner, format_task
from deskpilot.tasks.models import StepStatus, Task, TaskStatus, TaskStep
from deskpilot.tasks.planner import TaskPlanner


class ScriptedExecutor(ActionExecutor):
    """Returns queued results in order and records what it was asked to do."""

    def __init__(self, results: list[ActionResult] | None = None):
        self.results = list(results or [])
        self.executed = []

    async def execute(self, action):
        self.executed.append(action)
        if self.results:
            return self.results.pop(0)
        return ActionResult.ok("done")


class CrashingExecutor(ActionExecutor):
    async def execute(self, action):
        raise RuntimeError("device lost")


class NoteAdvisor(Advisor):
    async def decide(self, prompt, system=None):
        return '[{"description": "Open notes", "action": {"type": "open_app", "name": "notes"}}]'


def make_task(*actions, description="open notepad and type hello") -> Task:
    steps = [TaskStep(id=f"step-{i}", description=a.kind, action=a) for i, a in enumerate(actions, 1)]
    return Task(id="task-test", description=description, steps=steps)


class TestExecuteTask:
    @pytest.mark.asyncio
    async def test_all_succeed(self):
        executor = ScriptedExecutor()
        task = make_task(OpenApp(name="notepad"), Wait(seconds=1), TypeText(text="hello"))

        result = await TaskExecutor(executor).execute_task(task)

        assert result.status == TaskStatus.COMPLETED
        assert result.succeeded
        assert all(s.status == StepStatus.COMPLETED for s in result.steps)
        assert result.steps[0].result == "done"
        assert result.completed_at is not None

    @pytest.mark.asyncio
    async def test_failure_skips_rest(self):
        executor = ScriptedExecutor([
            ActionResult.ok("opened"),
            ActionResult.fail("window not found"),
            ActionResult.ok("typed"),
        ])
        task = make_task(OpenApp(name="notepad"), Wait(seconds=1), TypeText(text="hello"))

        result = await TaskExecutor(executor).execute_task(task)

        assert [s.status for s in result.steps] == [
            StepStatus.COMPLETED,
            StepStatus.FAILED,
            StepStatus.SKIPPED,
        ]
        assert result.status == TaskStatus.FAILED
        assert result.failed_step is result.steps[1]
        assert result.steps[1].error == "window not found"
        assert len(executor.executed) == 2
        assert result.completed_at is not None

    @pytest.mark.asyncio
    async def test_unknown_action_fails_step(self):
        executor = ScriptedExecutor()
        task = make_task(RawAction(kind="teleport", value="mars"), Note(text="after"))

        result = await TaskExecutor(executor).execute_task(task)

        assert result.steps[0].status == StepStatus.FAILED
        assert result.steps[0].error == "Unknown action: teleport"
        assert result.steps[1].status == StepStatus.SKIPPED
        assert executor.executed == []

    @pytest.mark.asyncio
    async def test_executor_crash_fails_step(self, temp_dir):
        patterns = TaskPatternStore(storage_path=temp_dir / "patterns.json")
        task = make_task(OpenApp(name="notepad"), TypeText(text="hello"))

        result = await TaskExecutor(CrashingExecutor(), patterns).execute_task(task)

        assert result.status == TaskStatus.FAILED
        assert [s.status for s in result.steps] == [StepStatus.FAILED, StepStatus.SKIPPED]
        assert result.steps[0].error == "device lost"
        assert result.completed_at is not None
        assert patterns.get_all() == []

    @pytest.mark.asyncio
    async def test_failure_without_message(self):
        executor = ScriptedExecutor([ActionResult(success=False)])
        result = await TaskExecutor(executor).execute_task(make_task(Note(text="x")))
        assert result.steps[0].error == "Unknown error"

    @pytest.mark.asyncio
    async def test_progress_callbacks(self):
        events = []
        task = make_task(Note(text="a"), Note(text="b"))

        await TaskExecutor(ScriptedExecutor()).execute_task(
            task, on_progress=lambda t, s: events.append((s.id, s.status))
        )

        assert events == [
            ("step-1", StepStatus.RUNNING),
            ("step-1", StepStatus.COMPLETED),
            ("step-2", StepStatus.RUNNING),
            ("step-2", StepStatus.COMPLETED),
        ]

    @pytest.mark.asyncio
    async def test_success_records_pattern(self, temp_dir):
        store = TaskPatternStore(storage_path=temp_dir / "p.json")
        task = make_task(OpenApp(name="notepad"), TypeText(text="hello"), description="Open Notepad, type hello!")

        await TaskExecutor(ScriptedExecutor(), pattern_store=store).execute_task(task)

        patterns = store.get_all()
        assert len(patterns) == 1
        assert patterns[0].normalized_input == "open notepad type hello"
        assert patterns[0].steps[0] == {
            "description": "open_app",
            "action": {"type": "open_app", "name": "notepad"},
        }

    @pytest.mark.asyncio
    async def test_failure_records_nothing(self, temp_dir):
        store = TaskPatternStore(storage_path=temp_dir / "p.json")
        executor = ScriptedExecutor([ActionResult.fail("nope")])

        await TaskExecutor(executor, pattern_store=store).execute_task(make_task(Note(text="x")))

        assert store.get_all() == []


class TestTaskRunner:
    @pytest.mark.asyncio
    async def test_plan_and_run(self):
        executor = ScriptedExecutor()
        runner = TaskRunner(TaskPlanner(NoteAdvisor()), TaskExecutor(executor))

        task = await runner.run("open my notes")

        assert task.succeeded
        assert executor.executed == [OpenApp(name="notes")]


class TestFormatTask:
    def test_listing(self):
        task = make_task(OpenApp(name="notepad"), TypeText(text="hi"))
        task.status = TaskStatus.FAILED
        task.steps[0].status = StepStatus.COMPLETED
        task.steps[0].result = "Opened notepad"
        task.steps[1].status = StepStatus.FAILED
        task.steps[1].error = "no window"

        text = format_task(task)

        assert text.splitlines()[0] == "❌ Task: open notepad and type hello"
        assert "● open_app → Opened notepad" in text
        assert "✗ type_text (Error: no window)" in text
