"""Shared pytest fixtures for all tests."""
from pathlib import Path

import pytest

from feature_replicator.config import ToolConfig, load_tool_config
from feature_replicator.config.tool_config import DEFAULT_CONFIG_PATH

FIXTURES_DIR = Path(__file__).parent / "fixtures"
REPOS_DIR = FIXTURES_DIR / "repos"


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture(scope="session")
def csharp_repo() -> Path:
    return REPOS_DIR / "csharp_app"


@pytest.fixture(scope="session")
def java_repo() -> Path:
    return REPOS_DIR / "java_app"


@pytest.fixture(scope="session")
def php_repo() -> Path:
    return REPOS_DIR / "php_app"


@pytest.fixture(scope="session")
def python_repo() -> Path:
    return REPOS_DIR / "python_app"


@pytest.fixture(scope="session")
def js_repo() -> Path:
    return REPOS_DIR / "js_app"


@pytest.fixture(scope="session")
def tool_config() -> ToolConfig:
    """The packaged default configuration."""
    return load_tool_config(DEFAULT_CONFIG_PATH)


@pytest.fixture(scope="session")
def legacy_config() -> ToolConfig:
    """Configuration carrying legacy-domain lookups for the PHP fixture."""
    return load_tool_config(FIXTURES_DIR / "config" / "legacy_domain.yaml")
