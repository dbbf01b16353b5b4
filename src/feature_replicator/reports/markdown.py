"""Markdown rendering and export of feature specifications."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9_]")
_UNSAFE_ID_CHARS = re.compile(r"[^\w.-]|\.{2,}")


def feature_file_name(feature_spec: dict[str, Any]) -> str:
    """``{feature_id}_{name}.md`` with the name reduced to [A-Za-z0-9_].

    Path separators and dot runs are dropped from the id so the file stays
    inside the export directory.
    """
    feature_id = _UNSAFE_ID_CHARS.sub("", str(feature_spec.get("feature_id") or "")) or "feature"
    name = _WHITESPACE.sub("_", feature_spec.get("name") or "spec")
    return f"{feature_id}_{_UNSAFE_FILENAME_CHARS.sub('', name)}.md"


def _render_inputs(inputs: Any, lines: list[str]) -> None:
    if isinstance(inputs, dict):
        params = inputs.get("http_params") or []
        fields = inputs.get("form_fields") or []
        others = inputs.get("other_sources") or []
        if not (params or fields or others):
            lines.append("No inputs defined\n")
            return
        if params:
            lines.append("### HTTP Parameters\n")
            for param in params:
                description = f": {param['description']}" if param.get("description") else ""
                lines.append(f"- **{param['name']}** ({param.get('source', 'N/A')}){description}\n")
            lines.append("\n")
        if fields:
            lines.append("### Form Fields\n")
            for name in fields:
                lines.append(f"- `{name}`\n")
            lines.append("\n")
        if others:
            lines.append("### Other Sources\n")
            for source in others:
                lines.append(f"- {source}\n")
        return

    if not inputs:
        lines.append("No inputs defined\n")
        return
    for item in inputs:
        lines.append(
            f"- **{item.get('name', 'N/A')}** ({item.get('type', 'N/A')}): "
            f"{item.get('description') or 'No description'}\n"
        )


def _render_outputs(outputs: list[dict[str, Any]], lines: list[str]) -> None:
    if not outputs:
        lines.append("No outputs defined\n")
        return
    for output in outputs:
        lines.append(f"- **Type:** {output.get('type', 'N/A')}\n")
        lines.append(f"  - {output.get('description') or 'No description'}\n")
        if output.get("structure"):
            lines.append(f"  - Structure: {', '.join(output['structure'])}\n")


def _render_data_sources(data_sources: list[dict[str, Any]], lines: list[str]) -> None:
    if not data_sources:
        lines.append("No data sources defined\n")
        return
    for index, ds in enumerate(data_sources):
        if index:
            lines.append("\n---\n\n")
        lines.append(
            f"### {ds.get('engine')} - {ds.get('database') or 'N/A'}."
            f"{ds.get('schema') or 'N/A'}.{ds.get('table')}\n\n"
        )
        if ds.get("role"):
            lines.append(f"**Role:** {ds['role']}\n\n")
        columns = ds.get("columns")
        lines.append(f"**Columns:** {', '.join(columns) if columns else 'N/A'}\n\n")
        if ds.get("filters"):
            lines.append(f"**Filters:** `{ds['filters']}`\n\n")
        if ds.get("joins"):
            lines.append(f"**Joins:** `{ds['joins']}`\n\n")
        if ds.get("source_code_snippet"):
            lines.append(f"**Query:**\n```sql\n{ds['source_code_snippet']}\n```\n")


def render_feature_markdown(feature_spec: dict[str, Any]) -> str:
    """Render a feature specification (as returned by scan_feature) to Markdown."""
    lines = []

    lines.append(f"# {feature_spec.get('name') or 'Feature'}\n\n")
    lines.append(f"**ID:** {feature_spec.get('feature_id') or 'N/A'}\n\n---\n\n")

    lines.append("## Business Purpose\n\n")
    lines.append(f"{feature_spec.get('domain_purpose') or 'No description available'}\n\n")

    context = feature_spec.get("business_context")
    if context:
        if context.get("actors"):
            lines.append(f"**Actors:** {', '.join(context['actors'])}\n\n")
        for entry in context.get("entry_points", []):
            methods = ", ".join(entry.get("methods") or []) or "script body"
            lines.append(f"- Entry point `{entry['file']}`: {methods}\n")
        lines.append("\n")

    lines.append("---\n\n## Inputs\n\n")
    _render_inputs(feature_spec.get("inputs"), lines)

    lines.append("\n---\n\n## Outputs\n\n")
    _render_outputs(feature_spec.get("outputs") or [], lines)

    if feature_spec.get("process_flow"):
        lines.append("\n---\n\n## Process Flow\n\n")
        for step in feature_spec["process_flow"]:
            lines.append(f"{step}\n")

    lines.append("\n---\n\n## Data Sources\n\n")
    _render_data_sources(feature_spec.get("data_sources") or [], lines)

    if feature_spec.get("catalog_structure"):
        lines.append("\n---\n\n## Table Catalog\n\n")
        lines.append("| Table | Operations | Columns |\n|---|---|---|\n")
        for table, entry in feature_spec["catalog_structure"].items():
            columns = ", ".join(entry.get("columns") or []) or "*"
            lines.append(f"| {table} | {', '.join(entry.get('operations') or [])} | {columns} |\n")

    lines.append("\n---\n\n## File System\n\n")
    file_system = feature_spec.get("file_system") or []
    if file_system:
        for touch in file_system:
            lines.append(f"- **Kind:** {touch['kind']}\n")
            lines.append(f"- **Pattern:** `{touch['path_pattern']}`\n")
            lines.append(f"- **Operation:** {touch['operation']}\n\n")
    else:
        lines.append("No file system operations\n")

    lines.append("\n---\n\n## External Services\n\n")
    services = feature_spec.get("external_services") or []
    if services:
        for service in services:
            lines.append(f"### {service.get('kind', 'api_call')}\n\n")
            lines.append(f"- **URL/Host:** `{service['url_or_host']}`\n")
            lines.append(f"- **Method:** {service.get('method', 'unknown')}\n\n")
    else:
        lines.append("No external services\n")

    lines.append("\n---\n\n## Business Rules\n\n")
    rules = feature_spec.get("business_rules") or []
    if rules:
        for rule in rules:
            lines.append(f"- {rule}\n")
    else:
        lines.append("No documented business rules\n")

    if feature_spec.get("example_scenarios"):
        lines.append("\n---\n\n## Example Scenarios\n\n")
        for scenario in feature_spec["example_scenarios"]:
            lines.append(f"- {scenario}\n")

    analysis = feature_spec.get("code_analysis")
    if analysis and analysis.get("counts"):
        lines.append("\n---\n\n## Code Analysis\n\n")
        for key, count in analysis["counts"].items():
            lines.append(f"- {key.replace('_', ' ').capitalize()}: {count}\n")

    lines.append("\n---\n\n## Files Involved\n\n")
    files = feature_spec.get("files_involved") or []
    if files:
        for file in files:
            lines.append(f"- `{file}`\n")
    else:
        lines.append("No files documented\n")

    lines.append("\n---\n\n## Tech Stack\n\n")
    stack = feature_spec.get("tech_stack")
    if stack:
        databases = stack.get("databases") or []
        db_text = ", ".join(
            f"{db['engine']} ({db.get('name') or 'N/A'})" if isinstance(db, dict) else str(db)
            for db in databases
        )
        lines.append(f"- **Language:** {stack.get('language') or 'N/A'}\n")
        lines.append(f"- **Framework:** {stack.get('framework') or 'N/A'}\n")
        lines.append(f"- **Databases:** {db_text or 'N/A'}\n")
    else:
        lines.append("No tech stack information\n")

    lines.append("\n---\n\n*Generated by feature-replicator*\n")
    return "".join(lines)


def export_feature_markdown(feature_spec: dict[str, Any], output_path: str | Path) -> dict[str, Any]:
    """Write the rendered specification into ``output_path``.

    The directory is created if it does not exist.

    Returns:
        Dict with file_path, file_name and success
    """
    output_dir = Path(output_path)
    if not output_dir.exists():
        output_dir.mkdir(parents=True)
        logger.info(f"Created output directory: {output_dir}")

    file_name = feature_file_name(feature_spec)
    file_path = output_dir / file_name
    file_path.write_text(render_feature_markdown(feature_spec), encoding="utf-8")

    logger.info(f"Markdown exported: {file_path}")
    return {
        "file_path": str(file_path),
        "file_name": file_name,
        "success": True,
    }
