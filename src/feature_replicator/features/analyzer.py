"""Feature analysis: build a FeatureSpec from a feature's entry files.

The entry files are read and concatenated, then every extractor runs over
the concatenation. Only the given entry files are analyzed; ``max_depth``
is accepted for call-graph following that is not implemented.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from ..config.tool_config import ToolConfig
from ..extraction import (
    analyze_query,
    extract_business_rules,
    extract_external_apis,
)
from ..scanner.walker import read_source
from .models import DataSource, FeatureSpec, FileRef, QueryInfo, SourceFile, TechStack
from .registry import LanguageSupport, get_language_support, normalize_language

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "csharp"
DEFAULT_MAX_DEPTH = 4
DEFAULT_DATABASE_NAME = "DATABASE_NAME"
MAX_SNIPPET_CHARS = 600

BASIC_SPEC_NAME = "Feature (basic analysis)"
BASIC_SPEC_PURPOSE = "Detailed analysis not available for this language"


class FeatureScanError(ValueError):
    """A feature could not be analyzed at all."""


def resolve_entry_files(root: Path | str, entry_files: list[str]) -> list[FileRef]:
    """Resolve entry file paths relative to the repository root.

    Paths that do not exist, or that resolve outside the root, are logged
    and dropped.

    Raises:
        FeatureScanError: If none of the entry files exists under root
    """
    root = Path(root).resolve()
    resolved = []
    for entry in entry_files:
        full_path = (root / entry).resolve()
        if not full_path.is_relative_to(root):
            logger.warning(f"Entry file {entry} is outside {root}, skipping")
            continue
        if not full_path.exists():
            logger.warning(f"Entry file {entry} not found under {root}")
            continue
        resolved.append(FileRef(full_path=full_path, relative_path=full_path.relative_to(root).as_posix()))

    if not resolved:
        raise FeatureScanError(f"None of the entry files exist under {root}: {', '.join(entry_files)}")
    return resolved


def read_entry_files(entry_files: list[FileRef], max_chars: int | None = None) -> list[SourceFile]:
    """Read entry files, skipping the ones that cannot be read."""
    sources = []
    for file in entry_files:
        content = read_source(file.full_path, max_chars)
        if content is None:
            continue
        sources.append(SourceFile(relative_path=file.relative_path, content=content))
    return sources


def build_data_sources(
    queries: list[tuple[str, QueryInfo]],
    support: LanguageSupport,
    tech_stack: TechStack,
) -> list[DataSource]:
    """One DataSource per (query, table) pair."""
    database = tech_stack.primary_database()
    engine = database.engine if database else support.default_engine
    database_name = database.name if database and database.name else DEFAULT_DATABASE_NAME

    data_sources = []
    for query, info in queries:
        for table in info.tables:
            schema, table_name = support.default_schema, table
            if support.split_schema and "." in table:
                parts = table.split(".")
                schema, table_name = parts[-2] or support.default_schema, parts[-1]
            if not table_name:
                continue

            data_sources.append(DataSource(
                engine=engine,
                database=database_name,
                schema=schema,
                table=table_name,
                columns=list(info.columns) or ["*"],
                filters=info.filters,
                joins=info.joins,
                source_code_snippet=query[:MAX_SNIPPET_CHARS],
                role=support.infer_role(info) if support.infer_role else None,
            ))
    return data_sources


def build_basic_spec(feature_id: str, entry_files: list[FileRef], tech_stack: TechStack) -> FeatureSpec:
    """Placeholder spec for languages without an analyzer."""
    return FeatureSpec(
        feature_id=feature_id,
        name=BASIC_SPEC_NAME,
        domain_purpose=BASIC_SPEC_PURPOSE,
        tech_stack=tech_stack,
        files_involved=[file.relative_path for file in entry_files],
    )


def analyze_feature(
    feature_id: str,
    entry_files: list[FileRef],
    tech_stack: TechStack,
    config: ToolConfig,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_chars: int | None = None,
) -> FeatureSpec:
    """Analyze one feature.

    Args:
        feature_id: Id of the feature being analyzed
        entry_files: The feature's entry files
        tech_stack: Tech stack of the repository; an empty language means C#
        config: Tool configuration (legacy domain lookups for PHP)
        max_depth: Accepted for call-graph following, currently unused
        max_chars: Per-file content cap

    Returns:
        The assembled FeatureSpec

    Raises:
        FeatureScanError: If none of the entry files can be read
    """
    language = normalize_language(tech_stack.language) or DEFAULT_LANGUAGE
    tech_stack = replace(tech_stack, language=language)
    support = get_language_support(language)
    if support is None:
        logger.warning(f"No analyzer for language '{language}', returning basic spec for {feature_id}")
        return build_basic_spec(feature_id, entry_files, tech_stack)

    logger.debug(f"max_depth={max_depth} for {feature_id}; analyzing entry files only")

    sources = read_entry_files(entry_files, max_chars)
    if not sources:
        raise FeatureScanError(f"None of the {len(entry_files)} entry files of {feature_id} could be read")

    combined = "\n\n".join(source.content for source in sources)

    queries = list(dict.fromkeys(support.extract_queries(combined)))
    analyzed = [(query, analyze_query(query)) for query in queries]

    name = support.feature_name(Path(sources[0].relative_path).stem)
    inputs = support.extract_inputs(combined) if support.extract_inputs else []
    output_type, output_description = support.default_output

    spec = FeatureSpec(
        feature_id=feature_id,
        name=name,
        domain_purpose=(
            f"Functionality of {name}. "
            f"Analyzed from {len(sources)} {support.display_name} file(s)."
        ),
        tech_stack=tech_stack,
        inputs=inputs,
        outputs=[{"type": output_type, "description": output_description}],
        data_sources=build_data_sources(analyzed, support, tech_stack),
        file_system=support.extract_file_paths(combined),
        external_services=extract_external_apis(combined),
        business_rules=extract_business_rules(combined, language),
        files_involved=[file.relative_path for file in entry_files],
    )

    if support.enrich is not None:
        support.enrich(spec, sources, [info for _, info in analyzed], config.legacy_domain)

    logger.info(
        f"Analyzed {feature_id}: {len(sources)} files, {len(queries)} queries, "
        f"{len(spec.data_sources)} data sources, {len(spec.file_system)} paths, "
        f"{len(spec.external_services)} external APIs"
    )
    return spec
