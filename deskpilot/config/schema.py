"""Configuration schema using Pydantic."""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    """LLM provider configuration."""

    api_key: str = ""
    api_base: str | None = None
    model: str = ""  # Per-provider model override (used by help channels)


class ProvidersConfig(BaseModel):
    """LLM providers configuration."""

    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    ollama: ProviderConfig = Field(default_factory=ProviderConfig)
    perplexity: ProviderConfig = Field(default_factory=ProviderConfig)


class AgentConfig(BaseModel):
    """Advisor selection."""

    provider: str = "ollama"
    model: str = ""
    vision_model: str = ""  # Falls back to ``model`` when empty


class AutonomousConfig(BaseModel):
    """Autonomous loop tuning."""

    max_attempts: int = Field(default=25, ge=1)
    action_delay_ms: int = Field(default=1500, ge=0)
    stuck_threshold: int = Field(default=3, ge=1)
    verify_actions: bool = True
    human_like_timing: bool = True
    learn_from_success: bool = True
    ask_for_help_when_stuck: bool = True


class MemoryConfig(BaseModel):
    """Learned-action and task-pattern memory configuration."""

    storage_dir: str = "~/.deskpilot"
    max_learned: int = Field(default=500, ge=1)
    max_patterns: int = Field(default=100, ge=1)
    situation_max_chars: int = Field(default=500, ge=1)

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_dir).expanduser()


class WebSearchConfig(BaseModel):
    """Web search configuration."""

    api_key: str = ""  # Brave Search API key


class ToolsConfig(BaseModel):
    """Tools configuration."""

    web_search: WebSearchConfig = Field(default_factory=WebSearchConfig)
    shell_timeout: int = 60
    workspace: str = "~/.deskpilot/workspace"


class Config(BaseModel):
    """Root configuration."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    autonomous: AutonomousConfig = Field(default_factory=AutonomousConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    @property
    def workspace_path(self) -> Path:
        """Get expanded workspace path."""
        return Path(self.tools.workspace).expanduser()

    def get_provider_config(self, name: str | None = None) -> ProviderConfig | None:
        """Get the ProviderConfig for ``name`` (defaults to the active provider)."""
        return getattr(self.providers, name or self.agent.provider, None)

    def get_api_key(self, name: str | None = None) -> str | None:
        """Get the API key of ``name`` (defaults to the active provider)."""
        provider_config = self.get_provider_config(name)
        if provider_config is None:
            return None
        return provider_config.api_key or None

    def get_api_base(self, name: str | None = None) -> str | None:
        """Get the API base URL of ``name`` (defaults to the active provider)."""
        p = name or self.agent.provider
        provider_config = self.get_provider_config(p)
        if provider_config is None:
            return None
        if p == "openrouter":
            return provider_config.api_base or "https://openrouter.ai/api/v1"
        elif p == "ollama":
            return provider_config.api_base or "http://localhost:11434/v1"
        elif p == "perplexity":
            return provider_config.api_base or "https://api.perplexity.ai"
        elif p == "anthropic":
            return provider_config.api_base or "https://api.anthropic.com"
        return provider_config.api_base

    def requires_api_key(self) -> bool:
        """Local Ollama is the only provider that runs without a key."""
        return self.agent.provider != "ollama"


def get_config_path() -> Path:
    """Get the config file path."""
    return Path.home() / ".deskpilot" / "config.json"


def load_config() -> Config:
    """Load configuration from file."""
    config_path = get_config_path()

    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
            return Config(**data)
        except Exception as e:
            logger.warning("Ignoring unreadable config %s: %s", config_path, e)

    return Config()


def save_config(config: Config) -> None:
    """Save configuration to file."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(config.model_dump_json(indent=2))
