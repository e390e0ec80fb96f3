"""Task pattern store - remembers instructions whose plans ran to completion."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from deskpilot.memory.models import TaskPattern
from deskpilot.memory.similarity import normalize_input, significant_words

logger = logging.getLogger(__name__)

PATTERNS_VERSION = 1


class TaskPatternStore:
    """Persistent store of successful task plans.

    Same discipline as the learned memory store: one JSON document, lazy
    load, whole-file rewrite after each mutation, capped at ``max_patterns``
    entries ranked by success count.
    """

    def __init__(self, storage_path: Path | None = None, max_patterns: int = 100):
        self.storage_path = storage_path or (Path.home() / ".deskpilot" / "task-patterns.json")
        self.max_patterns = max_patterns
        self._patterns: list[TaskPattern] | None = None

    def _ensure_loaded(self) -> list[TaskPattern]:
        """Lazy-load patterns from disk."""
        if self._patterns is not None:
            return self._patterns

        self._patterns = []
        if not self.storage_path.exists():
            return self._patterns

        try:
            data = json.loads(self.storage_path.read_text(encoding="utf-8"))
            for item in data.get("patterns", []):
                try:
                    self._patterns.append(self._dict_to_pattern(item))
                except (KeyError, TypeError):
                    continue
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Failed to load task patterns from %s: %s", self.storage_path, e)
            self._patterns = []

        return self._patterns

    def _save(self) -> None:
        patterns = self._ensure_loaded()
        if len(patterns) > self.max_patterns:
            patterns.sort(key=lambda p: p.success_count, reverse=True)
            del patterns[self.max_patterns:]

        document = {
            "version": PATTERNS_VERSION,
            "patterns": [asdict(p) for p in patterns],
        }
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            self.storage_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to save task patterns to %s: %s", self.storage_path, e)

    @staticmethod
    def _dict_to_pattern(data: dict) -> TaskPattern:
        return TaskPattern(
            input=data["input"],
            normalized_input=data.get("normalized_input") or normalize_input(data["input"]),
            steps=list(data.get("steps", [])),
            success_count=int(data.get("success_count", 1)),
            last_used=data.get("last_used", ""),
        )

    def find_similar(self, text: str, limit: int = 3) -> list[TaskPattern]:
        """Patterns sharing enough significant words with ``text``.

        A pattern qualifies when it shares at least
        ``min(2, significant_words // 2)`` words with the query. Results are
        ordered by overlap, then success count.
        """
        query_words = significant_words(normalize_input(text))
        if not query_words:
            return []
        required = min(2, len(query_words) // 2)

        scored: list[tuple[int, TaskPattern]] = []
        for pattern in self._ensure_loaded():
            shared = len(query_words & significant_words(pattern.normalized_input))
            if shared > 0 and shared >= required:
                scored.append((shared, pattern))

        scored.sort(key=lambda item: (item[0], item[1].success_count), reverse=True)
        return [pattern for _, pattern in scored[:limit]]

    def record_success(self, text: str, steps: list[dict[str, Any]]) -> TaskPattern:
        """Remember ``steps`` for ``text``; an exact normalized match is reinforced."""
        patterns = self._ensure_loaded()
        normalized = normalize_input(text)
        now = datetime.now().isoformat()

        for pattern in patterns:
            if pattern.normalized_input == normalized:
                pattern.success_count += 1
                pattern.steps = steps
                pattern.last_used = now
                break
        else:
            pattern = TaskPattern(
                input=text,
                normalized_input=normalized,
                steps=steps,
                success_count=1,
                last_used=now,
            )
            patterns.append(pattern)
            logger.info("Stored task pattern for %r", normalized)

        self._save()
        return pattern

    def get_all(self) -> list[TaskPattern]:
        """Get all stored patterns."""
        return list(self._ensure_loaded())

    def clear(self) -> None:
        """Forget all patterns."""
        self._patterns = []
        self._save()
