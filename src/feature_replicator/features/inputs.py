"""Input and output descriptions for analyzed features.

Inputs are read from method signatures or route declarations in the
feature's entry files; outputs are a fixed per-language default.
"""
from __future__ import annotations

import re
from typing import Any

MAX_SIGNATURES = 5
MAX_ROUTES = 20

_CS_PUBLIC_METHOD = re.compile(
    r"\bpublic\s+(?:(?:static|async|virtual|override|sealed)\s+)*"
    r"(?:Task<\s*)?([\w.]+)(?:<[^>\n]*>)?>?\s+(\w+)\s*\(([^)]*)\)"
)

_JAVA_MAPPING = re.compile(r"@(Get|Post|Put|Delete|Patch|Request)Mapping\b(?:\s*\(([^)]*)\))?")
_JAVA_REQUEST_METHOD = re.compile(r"RequestMethod\.(\w+)")
_QUOTED = re.compile(r"[\"']([^\"']*)[\"']")

_PY_ROUTE = re.compile(
    r"^\s*@\w+\.(get|post|put|delete|patch|route)\s*\(\s*[rf]?[\"']([^\"']*)[\"']([^\n]*)",
    re.MULTILINE,
)
_PY_METHODS = re.compile(r"methods\s*=\s*[\[(]([^\])]*)[\])]")

_JS_ROUTE = re.compile(
    r"\b(?:app|router|server|api)\.(get|post|put|delete|patch|all)\s*\(\s*[\"'`]([^\"'`]+)[\"'`]"
)
_JS_DECORATOR_ROUTE = re.compile(r"@(Get|Post|Put|Delete|Patch)\s*\(\s*(?:[\"'`]([^\"'`]*)[\"'`])?\s*\)")


def extract_csharp_inputs(content: str) -> list[dict[str, Any]]:
    """First public method signatures of the feature."""
    inputs = []
    for return_type, name, params in _CS_PUBLIC_METHOD.findall(content):
        params = " ".join(params.split())
        inputs.append({
            "name": name,
            "type": return_type,
            "description": params or "no parameters",
        })
        if len(inputs) >= MAX_SIGNATURES:
            break
    return inputs


def extract_java_inputs(content: str) -> list[dict[str, Any]]:
    """Spring request mappings as ``{name: path, type: verb}``."""
    inputs = []
    for match in _JAVA_MAPPING.finditer(content):
        verb, args = match.group(1), match.group(2) or ""
        if verb == "Request":
            method = _JAVA_REQUEST_METHOD.search(args)
            verb = method.group(1) if method else "ANY"

        path = _QUOTED.search(args)
        inputs.append({
            "name": path.group(1) if path else "/",
            "type": verb.upper(),
            "description": f"{verb.upper()} request mapping",
        })
        if len(inputs) >= MAX_ROUTES:
            break
    return inputs


def extract_python_inputs(content: str) -> list[dict[str, Any]]:
    """Flask/FastAPI route decorators as ``{name: path, type: verb}``."""
    inputs = []
    for verb, path, rest in _PY_ROUTE.findall(content):
        if verb == "route":
            methods = _PY_METHODS.search(rest)
            verbs = _QUOTED.findall(methods.group(1)) if methods else []
            verb_label = ",".join(v.upper() for v in verbs) or "GET"
        else:
            verb_label = verb.upper()

        inputs.append({"name": path, "type": verb_label, "description": f"{verb_label} route"})
        if len(inputs) >= MAX_ROUTES:
            break
    return inputs


def extract_javascript_inputs(content: str) -> list[dict[str, Any]]:
    """Express routes and NestJS route decorators."""
    found = []
    for match in _JS_ROUTE.finditer(content):
        found.append((match.start(), match.group(1).upper(), match.group(2)))
    for match in _JS_DECORATOR_ROUTE.finditer(content):
        found.append((match.start(), match.group(1).upper(), match.group(2) or "/"))
    found.sort()

    return [
        {"name": path, "type": verb, "description": f"{verb} route"}
        for _, verb, path in found[:MAX_ROUTES]
    ]
