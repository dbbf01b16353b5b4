# Tool registry for MCP server
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Awaitable, Callable

from feature_replicator.config import Settings, ToolConfig, load_tool_config
from feature_replicator.features.analyzer import (
    DEFAULT_MAX_DEPTH,
    analyze_feature,
    resolve_entry_files,
)
from feature_replicator.features.models import TechStack
from feature_replicator.features.registry import (
    DEFAULT_MAX_FILES,
    LANGUAGE_ALIASES,
    detect_features,
    normalize_language,
)
from feature_replicator.mcp.validation import InputValidationError, validate_input
from feature_replicator.reports.markdown import export_feature_markdown as _export_feature_markdown
from feature_replicator.scanner import load_ignore_spec, load_tech_stack
from feature_replicator.treesitter.php_analyzer import analyze_code as _analyze_code

logger = logging.getLogger(__name__)

TOOL_REGISTRY: dict[str, Callable[..., Awaitable[Any]]] = {}

def tool(name: str):
    def deco(fn):
        TOOL_REGISTRY[name] = fn
        return fn
    return deco


@lru_cache(maxsize=1)
def get_tool_config() -> ToolConfig:
    """Tool configuration, loaded once per process."""
    return load_tool_config()


def _scan_root(path: str) -> Path:
    root = Path(path)
    if not root.exists():
        raise ValueError(f"Path does not exist: {path}")
    if not root.is_dir():
        raise ValueError(f"Path is not a directory: {path}")
    return root


def _tech_stack(root: Path, tech_stack: dict[str, Any] | None) -> TechStack:
    """Caller-supplied tech stack, else the repository's descriptor file."""
    if tech_stack is None:
        tech_stack = load_tech_stack(root)
    return TechStack.from_dict(tech_stack)


@tool("ping")
async def ping() -> dict[str, str]:
    return {"ok": "true"}


@tool("list_languages")
async def list_languages() -> dict[str, Any]:
    """List the languages the loaded tool configuration supports."""
    config = get_tool_config()
    return {
        "languages": {
            name: {"extensions": lang.extensions, "frameworks": lang.frameworks}
            for name, lang in config.supported_languages.items()
        },
        "aliases": dict(LANGUAGE_ALIASES),
    }


@tool("list_features")
async def list_features(
    path: str = ".",
    tech_stack: dict[str, Any] | None = None,
    max_files: int = DEFAULT_MAX_FILES,
) -> dict[str, Any]:
    """Scan a legacy repository and list the features it contains.

    Args:
        path: Repository root to scan
        tech_stack: Optional {language, framework, databases}; read from
            docs/TECH_STACK_STATUS.json when not provided
        max_files: Maximum number of files to scan (1-5000)

    Returns:
        Dictionary with features, tech_stack, scanned_path and total_files_scanned
    """
    path = validate_input("path", path, "string", required=False, default=".")
    tech_stack = validate_input("tech_stack", tech_stack, "object", required=False)
    max_files = validate_input(
        "max_files", max_files, "number", required=False,
        default=DEFAULT_MAX_FILES, minimum=1, maximum=5000,
    )

    logger.info(f"list_features called: path={path}, max_files={max_files}")

    settings = Settings()
    root = _scan_root(path)
    stack = _tech_stack(root, tech_stack)
    ignore_spec = load_ignore_spec(root) if settings.respect_gitignore else None

    candidates, files = detect_features(
        root,
        stack,
        get_tool_config(),
        max_files=int(max_files),
        max_chars=settings.max_content_chars,
        ignore_spec=ignore_spec,
    )

    return {
        "features": [candidate.to_dict() for candidate in candidates],
        "tech_stack": stack.to_dict(),
        "scanned_path": path,
        "total_files_scanned": len(files),
    }


@tool("scan_feature")
async def scan_feature(
    feature_id: str,
    entry_files: list[str],
    path: str = ".",
    tech_stack: dict[str, Any] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, Any]:
    """Analyze one feature in depth and return its specification.

    Args:
        feature_id: Feature id (as returned by list_features)
        entry_files: Entry files of the feature, relative to path
        path: Repository root
        tech_stack: Optional tech stack; read from the descriptor file when not provided
        max_depth: Call-graph depth (1-10), accepted but only entry files are analyzed

    Returns:
        The feature specification
    """
    feature_id = validate_input("feature_id", feature_id, "string")
    entry_files = validate_input("entry_files", entry_files, "array")
    path = validate_input("path", path, "string", required=False, default=".")
    tech_stack = validate_input("tech_stack", tech_stack, "object", required=False)
    max_depth = validate_input(
        "max_depth", max_depth, "number", required=False,
        default=DEFAULT_MAX_DEPTH, minimum=1, maximum=10,
    )
    for entry in entry_files:
        if not isinstance(entry, str):
            raise InputValidationError(f"Invalid entry in entry_files: expected string, got {type(entry).__name__}")

    logger.info(f"scan_feature called: feature_id={feature_id}, entry_files={len(entry_files)}")

    settings = Settings()
    root = _scan_root(path)
    stack = _tech_stack(root, tech_stack)
    files = resolve_entry_files(root, entry_files)

    spec = analyze_feature(
        feature_id,
        files,
        stack,
        get_tool_config(),
        max_depth=int(max_depth),
        max_chars=settings.max_content_chars,
    )
    return spec.to_dict()


@tool("export_feature_markdown")
async def export_feature_markdown(feature_spec: dict[str, Any], output_path: str) -> dict[str, Any]:
    """Write a feature specification to a Markdown file.

    Args:
        feature_spec: Specification returned by scan_feature
        output_path: Directory to write into (created if missing)

    Returns:
        Dictionary with file_path, file_name and success
    """
    feature_spec = validate_input("feature_spec", feature_spec, "object")
    output_path = validate_input("output_path", output_path, "string")

    logger.info(f"export_feature_markdown called: output_path={output_path}")
    return _export_feature_markdown(feature_spec, output_path)


@tool("analyze_code")
async def analyze_code(code: str, language: str = "php") -> dict[str, Any]:
    """Classify validations, calculations and error handling in source code.

    Args:
        code: Source code to analyze
        language: Source language (only php has a tree analyzer)

    Returns:
        Classification lists, plus parse_error when the code does not parse
    """
    code = validate_input("code", code, "string")
    language = validate_input("language", language, "string", required=False, default="php")

    return _analyze_code(code, normalize_language(language))
