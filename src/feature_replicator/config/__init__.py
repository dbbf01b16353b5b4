"""Configuration management for Feature Replicator."""
from .settings import Settings
from .tool_config import (
    LanguageConfig,
    LegacyDomainConfig,
    ToolConfig,
    load_tool_config,
)

__all__ = [
    "Settings",
    "LanguageConfig",
    "LegacyDomainConfig",
    "ToolConfig",
    "load_tool_config",
]
