"""Configuration module."""

from deskpilot.config.schema import (
    AutonomousConfig,
    Config,
    MemoryConfig,
    load_config,
    save_config,
    get_config_path,
)

__all__ = [
    "AutonomousConfig",
    "Config",
    "MemoryConfig",
    "load_config",
    "save_config",
    "get_config_path",
]
