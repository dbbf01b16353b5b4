"""Language registry.

Maps a language identifier to the detector, extractors and defaults used
for that language, so callers do one lookup instead of branching on the
language name.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pathspec

from ..config.tool_config import ToolConfig
from ..extraction import (
    extract_csharp_queries,
    extract_file_paths,
    extract_java_queries,
    extract_javascript_queries,
    extract_php_queries,
    extract_python_queries,
)
from ..scanner.walker import DEFAULT_MAX_DEPTH, find_files
from .detectors import (
    detect_csharp_features,
    detect_java_features,
    detect_javascript_features,
    detect_php_features,
    detect_python_features,
    split_camel_case,
)
from .inputs import (
    extract_csharp_inputs,
    extract_java_inputs,
    extract_javascript_inputs,
    extract_python_inputs,
)
from .models import FeatureCandidate, FileRef, QueryInfo, TechStack
from .php_context import enrich_php_feature, infer_role

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 300

LANGUAGE_ALIASES = {
    "c#": "csharp",
    "cs": "csharp",
    "node": "javascript",
    "nodejs": "javascript",
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
}


@dataclass(frozen=True)
class LanguageSupport:
    """Everything the scanner needs to handle one language."""
    name: str
    display_name: str
    detect_features: Callable[[list[FileRef], int | None], list[FeatureCandidate]]
    extract_queries: Callable[[str], list[str]]
    default_engine: str
    default_schema: str
    default_output: tuple[str, str]
    extract_inputs: Callable[[str], list[dict[str, Any]]] | None = None
    split_schema: bool = False
    name_suffixes: tuple[str, ...] = ("Controller",)
    name_style: str = "plain"  # plain, camel, snake
    infer_role: Callable[[QueryInfo], str] | None = None
    enrich: Callable[..., None] | None = None

    def extract_file_paths(self, content: str):
        return extract_file_paths(content, self.name)

    def feature_name(self, stem: str) -> str:
        """Human-readable feature name from the primary entry file's stem."""
        name = stem
        for suffix in self.name_suffixes:
            if suffix in name:
                name = name.replace(suffix, "", 1)
                break

        if self.name_style == "camel":
            name = split_camel_case(name)
        elif self.name_style == "snake":
            name = name.replace("_", " ").title()

        return name.strip() or stem


_JS_DEFAULTS = dict(
    detect_features=detect_javascript_features,
    extract_queries=extract_javascript_queries,
    extract_inputs=extract_javascript_inputs,
    default_engine="postgresql",
    default_schema="public",
    default_output=("Response", "HTTP response"),
    name_suffixes=("Controller", "Route"),
)

LANGUAGES: dict[str, LanguageSupport] = {
    "csharp": LanguageSupport(
        name="csharp",
        display_name="C#",
        detect_features=detect_csharp_features,
        extract_queries=extract_csharp_queries,
        extract_inputs=extract_csharp_inputs,
        default_engine="sql_server",
        default_schema="dbo",
        default_output=("ActionResult", "Controller response"),
        split_schema=True,
        name_style="camel",
    ),
    "java": LanguageSupport(
        name="java",
        display_name="Java",
        detect_features=detect_java_features,
        extract_queries=extract_java_queries,
        extract_inputs=extract_java_inputs,
        default_engine="postgresql",
        default_schema="public",
        default_output=("ResponseEntity", "REST response"),
        split_schema=True,
    ),
    "php": LanguageSupport(
        name="php",
        display_name="PHP",
        detect_features=detect_php_features,
        extract_queries=extract_php_queries,
        default_engine="mysql",
        default_schema="",
        default_output=("HTML", "HTML page rendered by the script"),
        infer_role=infer_role,
        enrich=enrich_php_feature,
    ),
    "python": LanguageSupport(
        name="python",
        display_name="Python",
        detect_features=detect_python_features,
        extract_queries=extract_python_queries,
        extract_inputs=extract_python_inputs,
        default_engine="postgresql",
        default_schema="public",
        default_output=("JsonResponse", "JSON response"),
        name_suffixes=(),
        name_style="snake",
    ),
    "javascript": LanguageSupport(name="javascript", display_name="JavaScript", **_JS_DEFAULTS),
    "typescript": LanguageSupport(name="typescript", display_name="TypeScript", **_JS_DEFAULTS),
}


def normalize_language(language: str | None) -> str:
    """Lower-case a language name and resolve aliases ("c#" -> "csharp")."""
    if not language:
        return ""
    name = language.strip().lower()
    return LANGUAGE_ALIASES.get(name, name)


def get_language_support(language: str | None) -> LanguageSupport | None:
    return LANGUAGES.get(normalize_language(language))


def detect_features(
    root: Path,
    tech_stack: TechStack,
    config: ToolConfig,
    max_files: int = DEFAULT_MAX_FILES,
    max_chars: int | None = None,
    ignore_spec: pathspec.PathSpec | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> tuple[list[FeatureCandidate], list[FileRef]]:
    """Walk a repository and run the detector for its language.

    Returns:
        (candidates, scanned files). Both are empty with a warning when the
        language is not supported.
    """
    language = normalize_language(tech_stack.language) or "unknown"
    support = LANGUAGES.get(language)
    language_config = config.language(language)

    if support is None or language_config is None:
        logger.warning(f"Feature detection not supported for language '{language}'")
        return [], []

    files = find_files(
        root,
        language_config.extensions,
        max_files,
        max_depth=max_depth,
        ignore_spec=ignore_spec,
    )
    candidates = support.detect_features(files, max_chars)
    logger.info(f"Detected {len(candidates)} {language} features in {len(files)} files under {root}")
    return candidates, files
