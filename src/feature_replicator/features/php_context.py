"""Business-context enrichment for PHP features.

Legacy PHP scripts mix request handling, SQL and presentation in one file,
so the generic analysis is extended with request parameters, output-type
classification, a process-flow outline, purpose and actor inference, and
the tree-based code analysis of each entry file.
"""
from __future__ import annotations

import logging
import re
from typing import Any

from ..config.tool_config import LegacyDomainConfig
from ..extraction.side_effects import count_validations
from ..treesitter.php_analyzer import analyze_code
from .models import FeatureSpec, QueryInfo, SourceFile

logger = logging.getLogger(__name__)

MAX_STRUCTURE_ITEMS = 20
MAX_ANALYSIS_ITEMS = 20
MAX_ENTRY_METHODS = 10
MAX_RULES_PER_KIND = 5
MIN_PURPOSE_CHARS = 20

OTHER_BLOCK = "Other data operations"

_REQUEST_PARAM = re.compile(r"\$_(GET|POST|REQUEST|SESSION)\s*\[\s*['\"]([^'\"]+)['\"]\s*\]")
_FILTER_INPUT = re.compile(r"\bfilter_input\s*\(\s*INPUT_(GET|POST)\s*,\s*['\"]([^'\"]+)['\"]")
_FORM_FIELD = re.compile(
    r"<(?:input|select|textarea)\b[^>]*?\bname\s*=\s*['\"]([^'\"\[\]]+)(?:\[\])?['\"]",
    re.IGNORECASE,
)
_OTHER_SOURCES = (
    (re.compile(r"\$_FILES\b"), "$_FILES (file uploads)"),
    (re.compile(r"\$_COOKIE\b"), "$_COOKIE (cookies)"),
    (re.compile(r"php://input"), "php://input (raw request body)"),
    (re.compile(r"\$argv\b"), "$argv (command line arguments)"),
)

# Checked in this order so ties favour the earlier type
_OUTPUT_SIGNALS = (
    ("PDF", re.compile(r"\b(?:FPDF|TCPDF|mPDF|Dompdf)\b|application/pdf|->Output\s*\(", re.IGNORECASE)),
    ("Excel", re.compile(
        r"\bPHPExcel\b|PhpSpreadsheet|application/vnd\.ms-excel|spreadsheetml|\.xlsx?\b", re.IGNORECASE
    )),
    ("JSON", re.compile(r"\bjson_encode\s*\(|application/json", re.IGNORECASE)),
)
_OUTPUT_DESCRIPTIONS = {
    "PDF": "PDF document generated on the server",
    "Excel": "Excel spreadsheet download",
    "JSON": "JSON response",
    "HTML": "HTML page rendered by the script",
}
_STRUCTURE_PATTERNS = {
    "PDF": re.compile(r"->(?:Cell|MultiCell|Write)\s*\([^,;]*,[^,;]*,\s*['\"]([^'\"]+)['\"]"),
    "Excel": re.compile(r"->setCellValue(?:ByColumnAndRow)?\s*\([^,;]+,\s*['\"]([^'\"]+)['\"]"),
    "JSON": re.compile(r"['\"](\w+)['\"]\s*=>"),
    "HTML": re.compile(r"<th\b[^>]*>\s*([^<]+?)\s*</th>", re.IGNORECASE),
}

_NUMBERED_COMMENT = re.compile(
    r"(?://|#|\*)[ \t]*(?:(?:Step|Paso)[ \t]*)?(\d+)[.):][ \t]+([^\n]+)", re.IGNORECASE
)
_SIDE_EFFECT_STEPS = (
    (re.compile(r"\bmail\s*\(|\bPHPMailer\b", re.IGNORECASE), "Send email notification"),
    (re.compile(r"\bheader\s*\(\s*['\"]Location\s*:", re.IGNORECASE), "Redirect to the next page"),
)

_DOC_COMMENT = re.compile(r"/\*\*(.*?)\*/", re.DOTALL)

ACTOR_VOCABULARY = (
    ("Administrator", re.compile(r"(?<![a-z])(?:administrator|administrador|admin)", re.IGNORECASE)),
    ("User", re.compile(r"(?<![a-z])(?:user|usuario|cliente|customer)", re.IGNORECASE)),
    ("Salesperson", re.compile(r"(?<![a-z])(?:salesperson|seller|vendedor|sales_rep)", re.IGNORECASE)),
)

_FUNCTION = re.compile(r"\bfunction\s+(\w+)\s*\(", re.IGNORECASE)


# ----------------------------------------------------------------------
# Inputs and outputs
# ----------------------------------------------------------------------

def extract_http_params(content: str, param_meanings: dict[str, str] | None = None) -> dict[str, Any]:
    """Request parameters, HTML form fields and other input channels."""
    meanings = param_meanings or {}
    lowered = {key.lower(): value for key, value in meanings.items()}

    http_params = []
    seen = set()
    found = [(m.start(), m.group(1), m.group(2)) for m in _REQUEST_PARAM.finditer(content)]
    found += [(m.start(), m.group(1), m.group(2)) for m in _FILTER_INPUT.finditer(content)]
    for _, source, name in sorted(found):
        source = "GET/POST" if source == "REQUEST" else source
        if (source, name) in seen:
            continue
        seen.add((source, name))

        param = {"name": name, "source": source}
        description = meanings.get(name) or lowered.get(name.lower())
        if description:
            param["description"] = description
        http_params.append(param)

    form_fields = list(dict.fromkeys(_FORM_FIELD.findall(content)))
    other_sources = [label for pattern, label in _OTHER_SOURCES if pattern.search(content)]

    return {
        "http_params": http_params,
        "form_fields": form_fields,
        "other_sources": other_sources,
    }


def classify_output(content: str) -> dict[str, Any]:
    """Classify the dominant output type from content signals."""
    output_type = "HTML"
    best = 0
    for candidate, pattern in _OUTPUT_SIGNALS:
        count = len(pattern.findall(content))
        if count > best:
            output_type, best = candidate, count

    structure = list(dict.fromkeys(_STRUCTURE_PATTERNS[output_type].findall(content)))
    return {
        "type": output_type,
        "description": _OUTPUT_DESCRIPTIONS[output_type],
        "structure": structure[:MAX_STRUCTURE_ITEMS],
    }


# ----------------------------------------------------------------------
# Process flow
# ----------------------------------------------------------------------

def _block_for(table: str, table_blocks: dict[str, str]) -> str | None:
    if table in table_blocks:
        return table_blocks[table]
    short = table.split(".")[-1].lower()
    for name, block in table_blocks.items():
        if name.lower() in (table.lower(), short):
            return block
    return None


def build_process_flow(
    content: str,
    query_infos: list[QueryInfo],
    table_blocks: dict[str, str] | None = None,
    output_type: str = "HTML",
) -> list[str]:
    """Ordered, numbered process steps.

    Explicit numbered comments come first, then one step per business block
    of queries, then steps for detected side effects.
    """
    table_blocks = table_blocks or {}
    steps = [text.strip() for _, text in _NUMBERED_COMMENT.findall(content)]

    blocks: dict[str, dict[str, list[str]]] = {}
    other: dict[str, list[str]] = {"operations": [], "tables": []}
    for info in query_infos:
        block = None
        for table in info.tables:
            block = _block_for(table, table_blocks)
            if block:
                break

        target = blocks.setdefault(block, {"operations": [], "tables": []}) if block else other
        if info.type not in target["operations"]:
            target["operations"].append(info.type)
        for table in info.tables:
            if table not in target["tables"]:
                target["tables"].append(table)

    if other["tables"] or other["operations"]:
        blocks[OTHER_BLOCK] = other

    for block, summary in blocks.items():
        operations = ", ".join(summary["operations"])
        tables = ", ".join(summary["tables"])
        steps.append(f"{block} ({operations} on {tables})" if tables else f"{block} ({operations})")

    if output_type == "PDF":
        steps.append("Generate PDF document")
    elif output_type == "Excel":
        steps.append("Generate Excel spreadsheet")
    for pattern, step in _SIDE_EFFECT_STEPS:
        if pattern.search(content):
            steps.append(step)
    if output_type == "JSON":
        steps.append("Return JSON response")

    return [f"{index}. {step}" for index, step in enumerate(steps, 1)]


# ----------------------------------------------------------------------
# Purpose, actors and roles
# ----------------------------------------------------------------------

def _clean_doc_comment(body: str) -> str:
    lines = []
    for line in body.splitlines():
        line = line.strip().lstrip("*").strip()
        if not line or line.startswith("@"):
            continue
        lines.append(line)
    return " ".join(lines)


def infer_purpose(feature_id: str, content: str, feature_purposes: dict[str, str] | None = None) -> str | None:
    """Business purpose from the configured lookup, else the first doc comment."""
    purposes = feature_purposes or {}
    if feature_id in purposes:
        return purposes[feature_id]
    for key, purpose in purposes.items():
        if key.lower() == feature_id.lower():
            return purpose

    for match in _DOC_COMMENT.finditer(content):
        text = _clean_doc_comment(match.group(1))
        if len(text) >= MIN_PURPOSE_CHARS:
            return text
    return None


def infer_actors(content: str) -> list[str]:
    return [actor for actor, pattern in ACTOR_VOCABULARY if pattern.search(content)]


def infer_role(info: QueryInfo) -> str:
    """Role of a query against its tables, from the verb and filters."""
    filtered = bool(info.filters)
    if info.type == "SELECT":
        return "filtered read" if filtered else "full read"
    if info.type == "INSERT":
        return "record creation"
    if info.type == "UPDATE":
        return "record update" if filtered else "bulk update"
    if info.type == "DELETE":
        return "record deletion" if filtered else "bulk deletion"
    if info.type == "STORED_PROC":
        return "stored procedure call"
    return "unknown"


# ----------------------------------------------------------------------
# Catalog and scenarios
# ----------------------------------------------------------------------

def catalog_structure(query_infos: list[QueryInfo]) -> dict[str, dict[str, list[str]]]:
    """Columns and operations seen per table."""
    catalog: dict[str, dict[str, list[str]]] = {}
    for info in query_infos:
        for table in info.tables:
            entry = catalog.setdefault(table, {"columns": [], "operations": []})
            for column in info.columns:
                if column != "*" and column not in entry["columns"]:
                    entry["columns"].append(column)
            if info.type not in entry["operations"]:
                entry["operations"].append(info.type)
    return catalog


def example_scenarios(inputs: dict[str, Any], output: dict[str, Any], validation_count: int) -> list[str]:
    names = [param["name"] for param in inputs.get("http_params", [])]
    names += inputs.get("form_fields", [])
    names = list(dict.fromkeys(names))

    if names:
        scenarios = [
            f"A request supplies {', '.join(names[:3])} and receives a {output['type']} response."
        ]
    else:
        scenarios = [f"The script is opened without parameters and returns a {output['type']} response."]

    if validation_count:
        scenarios.append(
            f"Input that fails one of the {validation_count} validation checks is rejected before any data is changed."
        )
    if output.get("structure"):
        scenarios.append(f"The response contains {', '.join(output['structure'][:5])}.")
    return scenarios


# ----------------------------------------------------------------------
# Tree analysis
# ----------------------------------------------------------------------

def analyze_sources(sources: list[SourceFile]) -> dict[str, Any]:
    """Run the tree analyzer on each entry file and merge the results."""
    merged: dict[str, list] = {
        "validations": [],
        "calculations": [],
        "error_handling": [],
        "state_transitions": [],
        "function_calls": [],
        "variable_assignments": [],
    }
    parse_errors = []

    for source in sources:
        result = analyze_code(source.content, "php")
        if "parse_error" in result:
            logger.warning(f"Could not parse {source.relative_path}: {result['parse_error']}")
            parse_errors.append({"file": source.relative_path, "error": result["parse_error"]})
            continue
        for key in merged:
            merged[key].extend({**record, "file": source.relative_path} for record in result[key])

    analysis: dict[str, Any] = {
        "counts": {key: len(records) for key, records in merged.items()},
    }
    for key, records in merged.items():
        analysis[key] = records[:MAX_ANALYSIS_ITEMS]
    if parse_errors:
        analysis["parse_errors"] = parse_errors
    return analysis


def analysis_rules(analysis: dict[str, Any]) -> list[str]:
    rules = []
    for calc in analysis.get("calculations", [])[:MAX_RULES_PER_KIND]:
        rules.append(f"Calculation: {calc['variable']} = {calc['formula']}")
    for transition in analysis.get("state_transitions", [])[:MAX_RULES_PER_KIND]:
        rules.append(f"State change: {transition['field']} -> {transition['new_value']}")
    return rules


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------

def enrich_php_feature(
    spec: FeatureSpec,
    sources: list[SourceFile],
    query_infos: list[QueryInfo],
    domain: LegacyDomainConfig,
) -> None:
    """Add PHP business context to a spec built by the generic analyzer."""
    combined = "\n\n".join(source.content for source in sources)

    inputs = extract_http_params(combined, domain.param_meanings)
    output = classify_output(combined)
    spec.inputs = inputs
    spec.outputs = [output]

    purpose = infer_purpose(spec.feature_id, combined, domain.feature_purposes)
    if purpose:
        spec.domain_purpose = purpose

    spec.business_context = {
        "purpose": purpose or spec.domain_purpose,
        "actors": infer_actors(combined),
        "entry_points": [
            {
                "file": source.relative_path,
                "methods": list(dict.fromkeys(_FUNCTION.findall(source.content)))[:MAX_ENTRY_METHODS],
            }
            for source in sources
        ],
    }
    spec.process_flow = build_process_flow(combined, query_infos, domain.table_blocks, output["type"])
    spec.catalog_structure = catalog_structure(query_infos)
    spec.example_scenarios = example_scenarios(inputs, output, count_validations(combined, "php"))

    spec.code_analysis = analyze_sources(sources)
    spec.business_rules.extend(analysis_rules(spec.code_analysis))

    logger.info(
        f"PHP enrichment for {spec.feature_id}: {len(inputs['http_params'])} params, "
        f"output {output['type']}, {len(spec.process_flow)} steps"
    )

