"""Learned memory store - JSON persistence, similarity recall and reinforcement."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from deskpilot.memory.help import HelpChannel, seek_help
from deskpilot.memory.models import LearnedAction, MemoryStats, Suggestion
from deskpilot.memory.similarity import similarity

logger = logging.getLogger(__name__)

MEMORY_VERSION = 1
GOAL_SIMILARITY_THRESHOLD = 0.5
SITUATION_SIMILARITY_THRESHOLD = 0.3


class LearnedMemoryStore:
    """Persistent store of actions that worked before.

    The whole memory is one JSON document, loaded lazily on first access and
    rewritten after every mutation. Load problems start an empty memory;
    save problems are logged and otherwise ignored so the automation keeps
    running when the disk does not cooperate.

    Assumes a single writer: concurrent processes sharing one file will lose
    updates.
    """

    def __init__(
        self,
        storage_path: Path | None = None,
        max_entries: int = 500,
        situation_max_chars: int = 500,
        help_channels: list[HelpChannel] | None = None,
    ):
        self.storage_path = storage_path or (Path.home() / ".deskpilot" / "agent-memory.json")
        self.max_entries = max_entries
        self.situation_max_chars = situation_max_chars
        self.help_channels: list[HelpChannel] = list(help_channels or [])
        self._learned: list[LearnedAction] = []
        self._stats = MemoryStats()
        self._loaded = False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Read the memory document once; later calls are no-ops."""
        if self._loaded:
            return
        self._loaded = True
        self._learned = []
        self._stats = MemoryStats()

        if not self.storage_path.exists():
            return

        try:
            data = json.loads(self.storage_path.read_text(encoding="utf-8"))
            learned = [self._dict_to_action(item) for item in data.get("learned", [])]
            stats = self._dict_to_stats(data.get("stats", {}))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Failed to load agent memory from %s: %s", self.storage_path, e)
            return

        self._learned = learned
        self._stats = stats
        logger.debug("Loaded %d learned action(s)", len(self._learned))

    def save(self) -> None:
        """Prune to capacity and write the memory document."""
        self.load()
        self._prune()

        document = {
            "version": MEMORY_VERSION,
            "learned": [asdict(entry) for entry in self._learned],
            "stats": asdict(self._stats),
        }
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            self.storage_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to save agent memory to %s: %s", self.storage_path, e)

    def _prune(self) -> None:
        """Keep the ``max_entries`` best performers by successes minus failures."""
        if len(self._learned) <= self.max_entries:
            return
        self._learned.sort(key=lambda entry: entry.net_score, reverse=True)
        dropped = len(self._learned) - self.max_entries
        del self._learned[self.max_entries:]
        logger.info("Pruned %d learned action(s)", dropped)

    @staticmethod
    def _dict_to_action(data: dict) -> LearnedAction:
        return LearnedAction(
            id=data["id"],
            situation=data.get("situation", ""),
            goal=data["goal"],
            solution=data.get("solution", ""),
            action_type=data["action_type"],
            action_value=data.get("action_value", ""),
            source=data.get("source", "self"),
            success_count=int(data.get("success_count", 0)),
            fail_count=int(data.get("fail_count", 0)),
            last_used=data.get("last_used", ""),
            created=data.get("created", ""),
        )

    @staticmethod
    def _dict_to_stats(data: dict) -> MemoryStats:
        return MemoryStats(
            total_attempts=int(data.get("total_attempts", 0)),
            total_successes=int(data.get("total_successes", 0)),
            total_learned=int(data.get("total_learned", 0)),
            source_counts=dict(data.get("source_counts", {})),
        )

    # ------------------------------------------------------------------
    # Recall / learn
    # ------------------------------------------------------------------

    def recall(self, goal: str, situation: str) -> LearnedAction | None:
        """Find an action that worked for a similar goal in a similar situation.

        Candidates need goal similarity above 0.5 and situation similarity
        above 0.3. The best by ``recall_score`` is returned only when it has
        more successes than failures. Ties keep stored order.
        """
        self.load()

        candidates = [
            entry
            for entry in self._learned
            if similarity(goal, entry.goal) > GOAL_SIMILARITY_THRESHOLD
            and similarity(situation, entry.situation) > SITUATION_SIMILARITY_THRESHOLD
        ]
        if not candidates:
            return None

        best = max(candidates, key=lambda entry: entry.recall_score)
        if best.success_count > best.fail_count:
            logger.debug("Recalled %s for goal %r", best.solution, goal)
            return best
        return None

    def _find(self, goal: str, action_type: str, action_value: str) -> LearnedAction | None:
        goal_key = goal.lower()
        type_key = action_type.lower()
        value_key = action_value.lower()
        for entry in self._learned:
            if (
                entry.goal.lower() == goal_key
                and entry.action_type.lower() == type_key
                and entry.action_value.lower() == value_key
            ):
                return entry
        return None

    def learn(
        self,
        situation: str,
        goal: str,
        action_type: str,
        action_value: str,
        source: str,
    ) -> LearnedAction:
        """Record a successful action, reinforcing an existing entry if any."""
        self.load()
        now = datetime.now().isoformat()

        self._stats.total_attempts += 1
        self._stats.total_successes += 1

        entry = self._find(goal, action_type, action_value)
        if entry is not None:
            entry.success_count += 1
            entry.last_used = now
            logger.debug("Reinforced %s (%d successes)", entry.solution, entry.success_count)
        else:
            entry = LearnedAction(
                id=uuid.uuid4().hex[:12],
                situation=situation[: self.situation_max_chars],
                goal=goal,
                solution=f"{action_type}: {action_value}",
                action_type=action_type,
                action_value=action_value,
                source=source,
                success_count=1,
                fail_count=0,
                last_used=now,
                created=now,
            )
            self._learned.append(entry)
            self._stats.total_learned += 1
            self._stats.source_counts[source] = self._stats.source_counts.get(source, 0) + 1
            logger.info("Learned %s from %s", entry.solution, source)

        self.save()
        return entry

    def record_failure(self, goal: str, action_type: str, action_value: str) -> bool:
        """Count a failure against a learned action.

        Returns False (and persists nothing) when the action was never learned.
        """
        self.load()
        entry = self._find(goal, action_type, action_value)
        if entry is None:
            return False

        entry.fail_count += 1
        self._stats.total_attempts += 1
        self.save()
        return True

    async def get_help(
        self, goal: str, situation: str, tried_actions: list[str]
    ) -> list[Suggestion]:
        """Consult every help channel concurrently; best suggestion first."""
        logger.info("Seeking help for %r (%d tried action(s))", goal, len(tried_actions))
        return await seek_help(self.help_channels, goal, situation, tried_actions)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Aggregate counters plus the current memory size."""
        self.load()
        return {**asdict(self._stats), "memory_size": len(self._learned)}

    def get_all(self) -> list[LearnedAction]:
        """Get all learned actions."""
        self.load()
        return list(self._learned)

    def clear(self) -> None:
        """Forget everything and persist the empty memory."""
        self.load()
        self._learned = []
        self._stats = MemoryStats()
        self.save()
