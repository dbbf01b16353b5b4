"""Tests for tool configuration loading and runtime settings."""
import pytest

from feature_replicator.config import Settings, ToolConfig, load_tool_config


# =============================================================================
# ToolConfig
# =============================================================================

class TestToolConfig:
    """Test YAML loading and validation."""

    def test_default_config_lists_all_languages(self, tool_config):
        """Should ship every scanned language in the packaged config."""
        assert set(tool_config.supported_languages) == {
            "csharp", "java", "php", "python", "javascript", "typescript"
        }
        assert ".cs" in tool_config.language("csharp").extensions

    def test_default_legacy_domain_is_empty(self, tool_config):
        """Should load empty lookup tables by default."""
        assert tool_config.legacy_domain.param_meanings == {}
        assert tool_config.legacy_domain.table_blocks == {}

    def test_extensions_are_normalized(self, legacy_config):
        """Should lower-case extensions and add the leading dot."""
        assert legacy_config.language("php").extensions == [".php", ".inc"]

    def test_missing_frameworks_default_to_empty(self, legacy_config):
        """Should default frameworks to an empty list."""
        assert legacy_config.language("csharp").frameworks == []

    def test_unknown_language_returns_none(self, legacy_config):
        """Should return None for a language the config does not list."""
        assert legacy_config.language("java") is None

    def test_legacy_lookups_loaded(self, legacy_config):
        """Should load the legacy-domain lookup tables."""
        assert legacy_config.legacy_domain.param_meanings["mes"] == "Report month (1-12)"
        assert legacy_config.legacy_domain.table_blocks == {"ventas": "Load sales for the period"}

    def test_missing_file(self, tmp_path):
        """Should raise FileNotFoundError for a missing file."""
        with pytest.raises(FileNotFoundError):
            ToolConfig.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, fixtures_dir):
        """Should raise ValueError for malformed YAML."""
        with pytest.raises(ValueError, match="Invalid YAML"):
            ToolConfig.from_yaml(fixtures_dir / "config" / "invalid.yaml")

    def test_empty_file(self, fixtures_dir):
        """Should raise ValueError for an empty file."""
        with pytest.raises(ValueError, match="Empty configuration"):
            ToolConfig.from_yaml(fixtures_dir / "config" / "empty.yaml")

    def test_schema_violation(self, fixtures_dir):
        """Should raise ValueError when a language has no extensions."""
        with pytest.raises(ValueError, match="Invalid configuration"):
            ToolConfig.from_yaml(fixtures_dir / "config" / "bad_schema.yaml")

    def test_config_path_from_environment(self, fixtures_dir, monkeypatch):
        """Should load the file named by FEATURE_REPLICATOR_CONFIG."""
        monkeypatch.setenv("FEATURE_REPLICATOR_CONFIG", str(fixtures_dir / "config" / "legacy_domain.yaml"))
        config = load_tool_config()
        assert set(config.supported_languages) == {"php", "csharp"}


# =============================================================================
# Settings
# =============================================================================

class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Should fall back to defaults when variables are unset."""
        for name in ("FEATURE_REPLICATOR_CONFIG", "LOG_LEVEL", "LOG_FILE", "MAX_CONTENT_CHARS", "RESPECT_GITIGNORE"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()
        assert settings.tool_config_path == ""
        assert settings.log_level == "INFO"
        assert settings.max_content_chars == 2000000
        assert settings.respect_gitignore is False

    def test_overrides(self, monkeypatch):
        """Should read values from the environment."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("MAX_CONTENT_CHARS", "5000")
        monkeypatch.setenv("RESPECT_GITIGNORE", "TRUE")

        settings = Settings()
        assert settings.log_level == "DEBUG"
        assert settings.max_content_chars == 5000
        assert settings.respect_gitignore is True
