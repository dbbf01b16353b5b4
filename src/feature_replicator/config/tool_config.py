"""Tool configuration loading and validation.

Loads the YAML file that enumerates supported languages, their file
extensions, and the optional legacy-domain lookup tables used when
enriching PHP features.
"""
from __future__ import annotations
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).with_name("tool_config.yaml")


class LanguageConfig(BaseModel):
    """File extensions and known frameworks for one source language."""
    model_config = ConfigDict(frozen=True)

    extensions: list[str] = Field(..., description="File extensions, with leading dot")
    frameworks: list[str] = Field(default_factory=list, description="Frameworks this language is scanned for")

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lower-case extensions and make sure each one starts with a dot."""
        if not v:
            raise ValueError("extensions must not be empty")
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


class LegacyDomainConfig(BaseModel):
    """Lookup tables describing a legacy application's domain vocabulary."""
    model_config = ConfigDict(frozen=True)

    param_meanings: dict[str, str] = Field(
        default_factory=dict, description="HTTP/session parameter name -> meaning"
    )
    table_blocks: dict[str, str] = Field(
        default_factory=dict, description="Table name -> business block description"
    )
    feature_purposes: dict[str, str] = Field(
        default_factory=dict, description="Feature id -> business purpose"
    )


class ToolConfig(BaseModel):
    """Complete tool configuration."""
    model_config = ConfigDict(frozen=True)

    supported_languages: dict[str, LanguageConfig] = Field(default_factory=dict)
    legacy_domain: LegacyDomainConfig = Field(default_factory=LegacyDomainConfig)

    def language(self, name: str) -> LanguageConfig | None:
        """Return the configuration for a language, or None if unsupported."""
        return self.supported_languages.get(name)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ToolConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated ToolConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not data:
            raise ValueError(f"Empty configuration file: {config_path}")

        try:
            return cls.model_validate(data)
        except Exception as e:
            raise ValueError(f"Invalid configuration in {config_path}: {e}") from e


def load_tool_config(config_path: str | Path | None = None) -> ToolConfig:
    """Load tool configuration from an explicit path, the environment, or the packaged default.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Validated ToolConfig instance
    """
    if config_path is None:
        config_path = Settings().tool_config_path or DEFAULT_CONFIG_PATH

    config = ToolConfig.from_yaml(config_path)
    logger.info(
        f"Tool config loaded from {config_path}: "
        f"{len(config.supported_languages)} languages"
    )
    return config
