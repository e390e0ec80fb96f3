"""Autonomous loop - observe, recall, think, act and verify until the goal is met."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import random
from typing import Any, Awaitable, TypeVar

from deskpilot.actions import Action, RunTask, describe_action, parse_action
from deskpilot.advisor import Advisor, parse_tagged_reply
from deskpilot.agent.events import EventCallback, LoopEvent, LoopEventType
from deskpilot.agent.models import (
    ActionRecord,
    Decision,
    LoopResult,
    LoopState,
    LoopStatus,
    RecordResult,
)
from deskpilot.agent.prompts import THINKING_PROMPT, THINKING_SYSTEM_PROMPT
from deskpilot.config.schema import AutonomousConfig
from deskpilot.desktop.base import ActionExecutor, ActionResult, Observation, SituationSensor
from deskpilot.errors import ActionParseError
from deskpilot.memory.models import LearnedAction
from deskpilot.memory.store import LearnedMemoryStore
from deskpilot.tasks.executor import TaskRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTROL_KINDS = ("done", "stuck")
PAUSE_POLL_SECONDS = 0.5
HISTORY_WINDOW = 5


class _Stopped(Exception):
    """Raised inside a tick when ``stop()`` interrupts a suspension point."""


def parse_decision(reply: str) -> Decision:
    """Decode an advisor reply into a :class:`Decision`.

    Replies without an ACTION field, or with a value the action cannot use,
    come back ``malformed``.
    """
    tagged = parse_tagged_reply(reply)
    if tagged is None:
        return Decision(kind="stuck", reasoning="Advisor reply had no ACTION field", malformed=True)

    if tagged.action in CONTROL_KINDS:
        return Decision(kind=tagged.action, value=tagged.value, reasoning=tagged.reasoning)

    try:
        action = parse_action(tagged.action, tagged.value)
    except ActionParseError as e:
        return Decision(kind="stuck", value=tagged.value, reasoning=str(e), malformed=True)

    return Decision(kind=action.kind, value=action.value, reasoning=tagged.reasoning, action=action)


class AutonomousLoop:
    """Pursues a goal through repeated observe-decide-act ticks.

    States: idle -> active -> (paused <-> active) -> completed, failed after
    max attempts, stopped or errored. Every suspension point (sensor,
    advisor, executor, help channels, delays) returns early when ``stop()``
    is called.
    """

    def __init__(
        self,
        advisor: Advisor,
        sensor: SituationSensor,
        executor: ActionExecutor,
        memory: LearnedMemoryStore,
        config: AutonomousConfig | None = None,
        task_runner: TaskRunner | None = None,
        on_event: EventCallback | None = None,
    ):
        self.advisor = advisor
        self.sensor = sensor
        self.executor = executor
        self.memory = memory
        self.config = config or AutonomousConfig()
        self.task_runner = task_runner
        self.on_event = on_event

        self._state = LoopState()
        self._stop_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._state.is_active

    async def start(self, goal: str) -> LoopResult:
        """Run until the goal is done, attempts run out, or ``stop()`` is called."""
        if self._state.is_active:
            return LoopResult(
                success=False,
                message="Loop is already running",
                status=self._state.status,
                attempts=self._state.attempt_count,
            )

        self._state = LoopState(goal=goal, is_active=True, status=LoopStatus.ACTIVE)
        self._stop_event = asyncio.Event()
        self._emit(LoopEventType.STARTED, goal=goal)
        logger.info("Pursuing goal: %s", goal)

        try:
            self.memory.load()

            while self._state.attempt_count < self.config.max_attempts:
                if self._stop_event.is_set():
                    raise _Stopped()

                if self._state.is_paused:
                    await self._sleep(PAUSE_POLL_SECONDS)
                    continue

                result = await self._tick()
                if result is not None:
                    return result

            return self._finish(
                LoopStatus.FAILED_MAX_ATTEMPTS,
                success=False,
                message=(
                    f"Reached max attempts ({self.config.max_attempts}). "
                    "Goal may be partially complete."
                ),
            )

        except _Stopped:
            return self._finish(
                LoopStatus.STOPPED,
                success=False,
                message=f"Stopped after {self._state.attempt_count} attempt(s)",
            )
        except Exception as e:
            logger.exception("Autonomous loop failed")
            self._emit(LoopEventType.ERROR, error=str(e))
            return self._finish(LoopStatus.ERRORED, success=False, message=str(e) or type(e).__name__)
        finally:
            self._state.is_active = False
            self._state.is_paused = False
            self._state.current_action = None

    def stop(self) -> None:
        """Ask the running loop to stop at its next suspension point.

        An action already handed to the executor runs to completion and is
        recorded; no further tick starts.
        """
        if self._state.is_active:
            logger.info("Stop requested")
        self._stop_event.set()

    def pause(self) -> None:
        if not self._state.is_active:
            return
        self._state.is_paused = True
        self._state.status = LoopStatus.PAUSED
        self._emit(LoopEventType.PAUSED)

    def resume(self) -> None:
        if not self._state.is_active:
            return
        self._state.is_paused = False
        self._state.status = LoopStatus.ACTIVE
        self._emit(LoopEventType.RESUMED)

    def get_state(self) -> LoopState:
        """Snapshot of the current state; mutating it does not affect the loop."""
        return dataclasses.replace(self._state, action_history=list(self._state.action_history))

    def get_history(self) -> list[ActionRecord]:
        return list(self._state.action_history)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def _tick(self) -> LoopResult | None:
        state = self._state
        state.attempt_count += 1
        self._emit(LoopEventType.ATTEMPT, count=state.attempt_count, max=self.config.max_attempts)

        observation = await self._observe()
        if observation is None:
            return None

        remembered = self.memory.recall(state.goal, observation.description)
        if remembered is not None:
            await self._replay(remembered, observation)
            return None

        decision = await self._think(observation.description)

        if decision.is_done:
            logger.info("Goal accomplished after %d attempt(s)", state.attempt_count)
            return self._finish(LoopStatus.COMPLETED, success=True, message="Goal accomplished!")

        if decision.is_stuck:
            state.stuck_count += 1
            if (
                state.stuck_count >= self.config.stuck_threshold
                and self.config.ask_for_help_when_stuck
            ):
                await self._seek_help(observation)
            return None

        result, record = await self._perform(decision.action, decision.reasoning)

        if self.config.verify_actions:
            await self._verify(observation, decision.action, result, record)

        await self._sleep(self._delay_seconds())
        return None

    async def _observe(self) -> Observation | None:
        self._emit(LoopEventType.OBSERVING)
        try:
            observation = await self._until_stopped(self.sensor.capture())
        except _Stopped:
            raise
        except Exception as e:
            logger.warning("Observation failed: %s", e)
            self._emit(LoopEventType.OBSERVE_ERROR, error=str(e))
            return None

        self._state.last_screen_hash = observation.identity_hash
        self._emit(LoopEventType.OBSERVED, description=observation.description[:200])
        return observation

    async def _replay(self, remembered: LearnedAction, observation: Observation) -> None:
        """Execute a recalled action and reinforce or penalize it."""
        self._emit(
            LoopEventType.RECALLED,
            action=remembered.action_type,
            value=remembered.action_value,
            source=remembered.source,
        )
        goal = self._state.goal
        try:
            action = parse_action(remembered.action_type, remembered.action_value)
        except ActionParseError as e:
            logger.warning("Recalled action %s is unusable: %s", remembered.solution, e)
            self.memory.record_failure(goal, remembered.action_type, remembered.action_value)
            return

        result, _ = await self._perform(action, f"Recalled from memory ({remembered.source})")
        if result.success:
            self.memory.learn(
                observation.description, goal, remembered.action_type, remembered.action_value, "memory"
            )
        else:
            self.memory.record_failure(goal, remembered.action_type, remembered.action_value)

    async def _think(self, situation: str) -> Decision:
        self._emit(LoopEventType.THINKING)
        state = self._state
        recent = "\n".join(
            f"- {r.describe()} ({r.result.value})" for r in state.action_history[-HISTORY_WINDOW:]
        )
        prompt = THINKING_PROMPT.format(
            goal=state.goal,
            situation=situation,
            recent_actions=recent or "None yet",
            attempt=state.attempt_count,
            max_attempts=self.config.max_attempts,
            stuck_count=state.stuck_count,
        )

        try:
            reply = await self._until_stopped(self.advisor.decide(prompt, system=THINKING_SYSTEM_PROMPT))
        except _Stopped:
            raise
        except Exception as e:
            logger.warning("Advisor failed: %s", e)
            decision = Decision(
                kind="stuck", reasoning=f"Failed to get advisor decision: {e}", malformed=True
            )
        else:
            decision = parse_decision(reply)

        self._emit(
            LoopEventType.DECIDED,
            action=decision.kind,
            value=decision.value,
            reasoning=decision.reasoning,
            malformed=decision.malformed,
        )
        return decision

    async def _seek_help(self, observation: Observation) -> None:
        state = self._state
        self._emit(LoopEventType.ASKING_HELP, stuck_count=state.stuck_count)
        tried = [r.describe() for r in state.action_history[-HISTORY_WINDOW:]]
        suggestions = await self._until_stopped(
            self.memory.get_help(state.goal, observation.description, tried)
        )
        if not suggestions:
            logger.info("No help available")
            return

        suggestion = suggestions[0]
        self._emit(
            LoopEventType.TRYING_SUGGESTION,
            action=suggestion.action,
            value=suggestion.value,
            source=suggestion.source,
        )
        if suggestion.action in CONTROL_KINDS:
            logger.info("Best suggestion from %s was %r; nothing to execute", suggestion.source, suggestion.action)
            return
        try:
            action = parse_action(suggestion.action, suggestion.value)
        except ActionParseError as e:
            logger.warning("Suggestion from %s is unusable: %s", suggestion.source, e)
            return

        result, _ = await self._perform(action, suggestion.reasoning)
        if result.success and self.config.learn_from_success:
            self.memory.learn(
                observation.description, state.goal, action.kind, action.value, suggestion.source
            )
            state.stuck_count = 0

    async def _verify(
        self,
        observation: Observation,
        action: Action,
        result: ActionResult,
        record: ActionRecord,
    ) -> None:
        """Compare the situation identity before and after an action."""
        state = self._state
        try:
            after = await self._until_stopped(self.sensor.identity())
        except _Stopped:
            raise
        except Exception as e:
            logger.warning("Verification read failed: %s", e)
            after = None

        record.situation_after = after
        changed = after is not None and after != observation.identity_hash
        if changed:
            state.stuck_count = 0
            state.confidence = min(100, state.confidence + 5)
            state.last_screen_hash = after
            if result.success and self.config.learn_from_success:
                self.memory.learn(
                    observation.description, state.goal, action.kind, action.value, "self"
                )
        else:
            state.stuck_count += 1
            state.confidence = max(0, state.confidence - 10)

        self._emit(LoopEventType.VERIFIED, changed=changed, confidence=state.confidence)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _perform(self, action: Action, reasoning: str) -> tuple[ActionResult, ActionRecord]:
        state = self._state
        record = ActionRecord(
            action_type=action.kind,
            value=action.value,
            situation_before=state.last_screen_hash,
            reasoning=reasoning,
        )
        state.current_action = describe_action(action)
        self._emit(LoopEventType.EXECUTING, action=action.kind, value=action.value)

        try:
            if isinstance(action, RunTask):
                result = await self._run_task(action)
            else:
                result = await self.executor.execute(action)
        except Exception as e:
            logger.warning("Executing %s raised: %s", action.kind, e)
            result = ActionResult.fail(str(e))
        finally:
            state.current_action = None

        record.result = RecordResult.SUCCESS if result.success else RecordResult.FAILURE
        record.error = result.error
        state.action_history.append(record)
        self._emit(
            LoopEventType.EXECUTED,
            action=action.kind,
            value=action.value,
            success=result.success,
            error=result.error,
        )
        return result, record

    async def _run_task(self, action: RunTask) -> ActionResult:
        if self.task_runner is None:
            return ActionResult.fail("No task planner attached")
        task = await self.task_runner.run(action.instruction)
        if task.succeeded:
            return ActionResult.ok(f"Task completed in {len(task.steps)} step(s)")
        failed = task.failed_step
        return ActionResult.fail(
            f"Task failed at {failed.id}: {failed.error}" if failed else "Task failed"
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _delay_seconds(self) -> float:
        delay_ms = self.config.action_delay_ms
        if self.config.human_like_timing:
            delay_ms += random.random() * 500
        return delay_ms / 1000

    async def _sleep(self, seconds: float) -> None:
        """Sleep that ends early, raising ``_Stopped``, when the loop is stopped."""
        if seconds <= 0:
            if self._stop_event.is_set():
                raise _Stopped()
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise _Stopped()

    async def _until_stopped(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless ``stop()`` fires first, in which case cancel it."""
        if self._stop_event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise _Stopped()

        work = asyncio.ensure_future(awaitable)
        stopper = asyncio.ensure_future(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait({work, stopper}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            stopper.cancel()
            raise

        if work in done:
            stopper.cancel()
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug("Interrupted work ended with: %s", e)
        raise _Stopped()

    def _finish(self, status: LoopStatus, success: bool, message: str) -> LoopResult:
        state = self._state
        state.is_active = False
        state.is_paused = False
        state.status = status
        if status == LoopStatus.STOPPED:
            self._emit(LoopEventType.STOPPED, attempts=state.attempt_count)
        elif status != LoopStatus.ERRORED:
            self._emit(
                LoopEventType.COMPLETED,
                success=success,
                status=status.value,
                attempts=state.attempt_count,
            )
        return LoopResult(
            success=success, message=message, status=status, attempts=state.attempt_count
        )

    def _emit(self, event_type: LoopEventType, **data: Any) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(LoopEvent(type=event_type, data=data))
        except Exception:
            logger.exception("Event observer failed on %s", event_type.value)
