"""Tests for the CLI commands and factories."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from deskpilot import __version__
from deskpilot.cli.main import (
    app,
    create_help_channels,
    create_memory_store,
    create_pattern_store,
    create_provider,
)
from deskpilot.config.schema import Config
from deskpilot.memory import (
    AdvisorHelpChannel,
    LearnedMemoryStore,
    ResearchHelpChannel,
    WebSearchHelpChannel,
)
from deskpilot.providers.anthropic import AnthropicProvider
from deskpilot.providers.openai_compat import OpenAICompatibleProvider

runner = CliRunner()


@pytest.fixture
def config_file(temp_dir):
    """Point the CLI at a config whose memory lives in ``temp_dir``."""
    path = temp_dir / "config.json"
    path.write_text(json.dumps({"memory": {"storage_dir": str(temp_dir)}}))
    with patch("deskpilot.config.schema.get_config_path", return_value=path):
        yield path


@pytest.fixture
def seeded_memory(temp_dir, config_file):
    store = LearnedMemoryStore(storage_path=temp_dir / "agent-memory.json")
    store.learn("Desktop", "open the browser", "click", "browser icon", "self")
    store.learn("Desktop", "save the document", "key_combo", "ctrl+s", "own_ai")
    return store


class TestFactories:
    def test_default_provider_is_ollama(self):
        provider = create_provider(Config())
        assert isinstance(provider, OpenAICompatibleProvider)
        assert provider.base_url == "http://localhost:11434/v1"

    def test_anthropic(self):
        config = Config()
        config.agent.provider = "anthropic"
        config.providers.anthropic.api_key = "sk-ant"
        config.agent.model = "claude-haiku-4-5"

        provider = create_provider(config)

        assert isinstance(provider, AnthropicProvider)
        assert provider.default_model == "claude-haiku-4-5"

    def test_openrouter_title_header(self):
        config = Config()
        config.agent.provider = "openrouter"
        provider = create_provider(config)
        assert provider.extra_headers == {"X-Title": "DeskPilot"}

    def test_help_channels_follow_credentials(self):
        config = Config()
        advisor = object()
        assert [type(c) for c in create_help_channels(config, advisor)] == [AdvisorHelpChannel]

        config.providers.perplexity.api_key = "pplx"
        config.tools.web_search.api_key = "brave"
        channels = create_help_channels(config, advisor)

        assert [type(c) for c in channels] == [
            AdvisorHelpChannel,
            ResearchHelpChannel,
            WebSearchHelpChannel,
        ]
        assert channels[1].model == "sonar"

    def test_stores_use_storage_dir(self, temp_dir):
        config = Config()
        config.memory.storage_dir = str(temp_dir)
        config.memory.max_learned = 7

        memory = create_memory_store(config)
        patterns = create_pattern_store(config)

        assert memory.storage_path == temp_dir / "agent-memory.json"
        assert memory.max_entries == 7
        assert patterns.storage_path == temp_dir / "task-patterns.json"


class TestCommands:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_memory_stats(self, seeded_memory):
        result = runner.invoke(app, ["memory", "stats"])

        assert result.exit_code == 0
        assert "Entries:   2" in result.output
        assert "own_ai" in result.output

    def test_memory_list(self, seeded_memory):
        result = runner.invoke(app, ["memory", "list"])

        assert result.exit_code == 0
        assert "open the browser" in result.output

    def test_memory_list_empty(self, config_file):
        result = runner.invoke(app, ["memory", "list"])
        assert "No learned actions yet" in result.output

    def test_memory_clear(self, seeded_memory):
        result = runner.invoke(app, ["memory", "clear", "--yes"])

        assert result.exit_code == 0
        assert LearnedMemoryStore(storage_path=seeded_memory.storage_path).get_all() == []

    def test_memory_clear_declined(self, seeded_memory):
        result = runner.invoke(app, ["memory", "clear"], input="n\n")

        assert result.exit_code == 0
        assert len(LearnedMemoryStore(storage_path=seeded_memory.storage_path).get_all()) == 2

    def test_status(self, seeded_memory):
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Ollama (local)" in result.output
        assert "2 learned action(s)" in result.output

    def test_run_requires_key(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"agent": {"provider": "openai"}}))
        with patch("deskpilot.config.schema.get_config_path", return_value=path):
            result = runner.invoke(app, ["run", "open notepad"])

        assert result.exit_code == 1
        assert "No API key configured" in result.output
