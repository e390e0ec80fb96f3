"""Tests for the learned memory store."""

import json

import pytest

from deskpilot.memory.help import HelpChannel, HelpRequest
from deskpilot.memory.store import LearnedMemoryStore

GOAL = "open the web browser"
SITUATION = "Desktop with a browser icon visible in the taskbar"


@pytest.fixture
def store(temp_dir):
    return LearnedMemoryStore(storage_path=temp_dir / "agent-memory.json")


class StaticChannel(HelpChannel):
    def __init__(self, name, confidence, reply):
        self.name = name
        self.confidence = confidence
        self.reply = reply

    async def ask(self, request: HelpRequest) -> str | None:
        return self.reply


class TestLearn:
    def test_learn_creates_entry(self, store):
        entry = store.learn(SITUATION, GOAL, "click", "browser icon", "self")

        assert entry.success_count == 1
        assert entry.fail_count == 0
        assert entry.solution == "click: browser icon"
        assert entry.source == "self"
        assert entry.created == entry.last_used

    def test_learn_twice_reinforces(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")
        entry = store.learn("something else entirely", GOAL.upper(), "CLICK", "Browser Icon", "own_ai")

        assert len(store.get_all()) == 1
        assert entry.success_count == 2
        assert entry.source == "self"

    def test_situation_truncated(self, temp_dir):
        store = LearnedMemoryStore(storage_path=temp_dir / "m.json", situation_max_chars=10)
        entry = store.learn("x" * 50, GOAL, "click", "icon", "self")
        assert len(entry.situation) == 10

    def test_stats(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")
        store.learn(SITUATION, "save the document", "key_combo", "ctrl+s", "own_ai")
        store.learn(SITUATION, GOAL, "click", "browser icon", "perplexity")

        stats = store.get_stats()
        assert stats["total_attempts"] == 3
        assert stats["total_successes"] == 3
        assert stats["total_learned"] == 2
        assert stats["source_counts"] == {"self": 1, "own_ai": 1}
        assert stats["memory_size"] == 2


class TestRecall:
    def test_recall_self_similar(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")

        recalled = store.recall(GOAL, SITUATION)

        assert recalled is not None
        assert recalled.action_type == "click"
        assert recalled.action_value == "browser icon"

    def test_recall_dissimilar_goal(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")
        assert store.recall("write a letter to grandma", SITUATION) is None

    def test_recall_dissimilar_situation(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")
        assert store.recall(GOAL, "Spreadsheet application showing quarterly numbers") is None

    def test_recall_empty_store(self, store):
        assert store.recall(GOAL, SITUATION) is None

    def test_recall_skips_unreliable_entry(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")
        store.record_failure(GOAL, "click", "browser icon")

        # one success, one failure: not more successes than failures
        assert store.recall(GOAL, SITUATION) is None

    def test_recall_prefers_higher_score(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")
        store.learn(SITUATION, GOAL, "press_key", "super", "self")
        store.learn(SITUATION, GOAL, "press_key", "super", "self")

        recalled = store.recall(GOAL, SITUATION)
        assert recalled.action_type == "press_key"

    def test_recall_tie_keeps_stored_order(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")
        store.learn(SITUATION, GOAL, "press_key", "super", "self")

        assert store.recall(GOAL, SITUATION).action_type == "click"


class TestRecordFailure:
    def test_unknown_action(self, store):
        assert store.record_failure(GOAL, "click", "nothing") is False
        assert not store.storage_path.exists()

    def test_known_action(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")

        assert store.record_failure(GOAL, "click", "browser icon") is True
        entry = store.get_all()[0]
        assert entry.fail_count == 1
        assert store.get_stats()["total_attempts"] == 2


class TestPersistence:
    def test_round_trip(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")

        reloaded = LearnedMemoryStore(storage_path=store.storage_path)
        entries = reloaded.get_all()

        assert len(entries) == 1
        assert entries[0].goal == GOAL
        assert reloaded.get_stats()["total_learned"] == 1

    def test_document_shape(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")

        data = json.loads(store.storage_path.read_text())
        assert data["version"] == 1
        assert len(data["learned"]) == 1
        assert data["stats"]["total_learned"] == 1

    def test_corrupt_file_starts_empty(self, temp_dir):
        path = temp_dir / "agent-memory.json"
        path.write_text("{ this is not json")

        store = LearnedMemoryStore(storage_path=path)

        assert store.get_all() == []
        assert store.get_stats()["memory_size"] == 0

    def test_prune_keeps_best(self, temp_dir):
        store = LearnedMemoryStore(storage_path=temp_dir / "m.json", max_entries=2)
        store.learn(SITUATION, "goal one here", "click", "a", "self")
        store.learn(SITUATION, "goal one here", "click", "a", "self")
        store.learn(SITUATION, "goal two here", "click", "b", "self")
        store.learn(SITUATION, "goal two here", "click", "b", "self")
        store.learn(SITUATION, "goal three here", "click", "c", "self")

        values = {entry.action_value for entry in store.get_all()}
        assert values == {"a", "b"}

    def test_clear(self, store):
        store.learn(SITUATION, GOAL, "click", "browser icon", "self")
        store.clear()

        assert store.get_all() == []
        reloaded = LearnedMemoryStore(storage_path=store.storage_path)
        assert reloaded.get_all() == []
        assert reloaded.get_stats()["total_learned"] == 0


class TestGetHelp:
    @pytest.mark.asyncio
    async def test_no_channels(self, store):
        assert await store.get_help(GOAL, SITUATION, []) == []

    @pytest.mark.asyncio
    async def test_best_first(self, temp_dir):
        store = LearnedMemoryStore(
            storage_path=temp_dir / "m.json",
            help_channels=[
                StaticChannel("web_search", 0.5, "ACTION: navigate\nVALUE: example.com"),
                StaticChannel("own_ai", 0.8, "ACTION: click\nVALUE: Start"),
            ],
        )

        suggestions = await store.get_help(GOAL, SITUATION, ["click: nothing"])

        assert [s.source for s in suggestions] == ["own_ai", "web_search"]
        assert suggestions[0].action == "click"
        assert suggestions[0].value == "Start"
