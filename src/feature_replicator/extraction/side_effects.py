"""Side-effect extraction: filesystem paths, outbound HTTP calls and business rules.

All extractors are pure functions over source text.
"""
from __future__ import annotations

import re
from typing import Callable
from urllib.parse import urlsplit

from ..features.models import ExternalServiceCall, FileSystemTouch

MAX_COMMENT_RULES = 10

# ============================================================================
# File paths
# ============================================================================

_UNC_PATH = re.compile(r"(\\\\(?:\\\\)?)([A-Za-z0-9_.-]+)((?:\\\\?[\w$.-]+)+)")

_WRITE_WORDS = re.compile(r"write|append|output|save|put", re.IGNORECASE)
_READ_WORDS = re.compile(r"read|open|get|load|input|scan", re.IGNORECASE)


def _read_else_write(name: str) -> str:
    if _WRITE_WORDS.search(name):
        return "write"
    return "read" if _READ_WORDS.search(name) else "write"


def _from_constructor(name: str) -> str:
    if _WRITE_WORDS.search(name):
        return "write"
    if _READ_WORDS.search(name):
        return "read"
    return "unknown"


def _unknown(name: str) -> str:
    return "unknown"


def _from_open_mode(mode: str) -> str:
    if not mode:
        return "read"
    return "write" if re.search(r"[wax+]", mode) else "read"


# Each entry: (pattern, group holding the path, resolver, group fed to resolver)
_PathRule = tuple[re.Pattern[str], int, Callable[[str], str], int]

_FILE_PATH_RULES: dict[str, list[_PathRule]] = {
    "csharp": [
        (re.compile(r'\b(?:File|Directory)\.(\w+)\s*\(\s*@?"([^"]+)"'), 2, _read_else_write, 1),
        (re.compile(
            r'\bnew\s+(StreamReader|StreamWriter|FileStream|FileInfo|DirectoryInfo)\s*\(\s*@?"([^"]+)"'
        ), 2, _from_constructor, 1),
    ],
    "java": [
        (re.compile(
            r'\bFiles\.(\w+)\s*\(\s*(?:(?:Paths\.get|Path\.of)\s*\(\s*)?"([^"]+)"'
        ), 2, _read_else_write, 1),
        (re.compile(
            r'\bnew\s+(File(?:Input|Output)Stream|File(?:Reader|Writer)|RandomAccessFile|PrintWriter|File)'
            r'\s*\(\s*"([^"]+)"'
        ), 2, _from_constructor, 1),
        (re.compile(r'\b(Paths\.get|Path\.of)\s*\(\s*"([^"]+)"'), 2, _unknown, 0),
    ],
    "php": [
        (re.compile(
            r"\b(fopen|file_get_contents|file_put_contents|readfile|unlink|copy|rename|mkdir|opendir|scandir)"
            r"\s*\(\s*['\"]([^'\"]+)['\"]"
        ), 2, _read_else_write, 1),
        (re.compile(r"\bStorage::(\w+)\s*\(\s*['\"]([^'\"]+)['\"]"), 2, _read_else_write, 1),
    ],
    "python": [
        (re.compile(
            r"\bopen\s*\(\s*[rRbBfFuU]?(['\"])(.+?)\1(?:\s*,\s*(?:mode\s*=\s*)?['\"](\w*\+?)['\"])?"
        ), 2, _from_open_mode, 3),
        (re.compile(r"\b(?:pd|pandas)\.(read_\w+)\s*\(\s*[rRfF]?['\"]([^'\"]+)['\"]"), 2, _read_else_write, 1),
        (re.compile(r"\.(to_(?:csv|excel|json|parquet))\s*\(\s*[rRfF]?['\"]([^'\"]+)['\"]"), 2, _read_else_write, 1),
        (re.compile(r"\b(Path)\s*\(\s*[rRfF]?['\"]([^'\"]+)['\"]"), 2, _unknown, 0),
    ],
    "javascript": [
        (re.compile(
            r"\b(?:fs|fsp|fs\.promises)\."
            r"(readFile(?:Sync)?|writeFile(?:Sync)?|appendFile(?:Sync)?|createReadStream|createWriteStream"
            r"|open(?:Sync)?|unlink(?:Sync)?|readdir(?:Sync)?|mkdir(?:Sync)?)"
            r"\s*\(\s*['\"`]([^'\"`]+)['\"`]"
        ), 2, _read_else_write, 1),
    ],
}
_FILE_PATH_RULES["typescript"] = _FILE_PATH_RULES["javascript"]


def extract_file_paths(content: str, language: str) -> list[FileSystemTouch]:
    """Find literal filesystem paths, deduplicated by (kind, path).

    UNC paths are recognized for every language; local paths come from the
    language's common file I/O call shapes.
    """
    touches: list[FileSystemTouch] = []
    seen: set[tuple[str, str]] = set()

    def add(kind: str, path: str, operation: str) -> None:
        key = (kind, path)
        if path and key not in seen:
            seen.add(key)
            touches.append(FileSystemTouch(kind=kind, path_pattern=path, operation=operation))

    for match in _UNC_PATH.finditer(content):
        share = match.group(3).replace("\\\\", "\\")
        add("network_share", f"\\\\{match.group(2)}{share}", "unknown")

    for pattern, path_group, resolve, name_group in _FILE_PATH_RULES.get(language, []):
        for match in pattern.finditer(content):
            path = match.group(path_group)
            if path.startswith("\\\\"):
                # Already reported as a network share
                continue
            add("local", path, resolve(match.group(name_group) or ""))

    return touches


# ============================================================================
# External APIs
# ============================================================================

_URL = re.compile(r"https?://[^\s\"'`<>)]+")
_HTTP_VERB = re.compile(r"(?<![A-Za-z])((?i:get|post|put|delete|patch))(?![a-z])")

URL_DENYLIST = frozenset({
    "microsoft.com",
    "w3.org",
    "xmlsoap.org",
    "apache.org",
    "php.net",
    "python.org",
    "mozilla.org",
    "oracle.com",
    "example.com",
    "example.org",
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
})


def is_denied_host(host: str) -> bool:
    host = host.lower().rstrip(".")
    return any(host == domain or host.endswith("." + domain) for domain in URL_DENYLIST)


def extract_external_apis(content: str) -> list[ExternalServiceCall]:
    """Find outbound HTTP(S) URLs, skipping documentation and local hosts.

    The HTTP method is the verb token closest to the URL on its own line or
    the line before it.
    """
    calls: list[ExternalServiceCall] = []
    seen: set[str] = set()

    for match in _URL.finditer(content):
        url = match.group(0).rstrip(".,;:")
        if url in seen:
            continue

        try:
            host = urlsplit(url).hostname or ""
        except ValueError:
            continue
        if not host or is_denied_host(host):
            continue

        seen.add(url)
        start = match.start()
        calls.append(ExternalServiceCall(
            url_or_host=url,
            method=_nearest_http_verb(content, start, start + len(url)),
        ))

    return calls


def _nearest_http_verb(content: str, url_start: int, url_end: int) -> str:
    line_start = content.rfind("\n", 0, url_start)
    window_start = content.rfind("\n", 0, line_start) + 1 if line_start > 0 else 0
    window_end = content.find("\n", url_end)
    if window_end == -1:
        window_end = len(content)

    best: tuple[int, str] | None = None
    for verb in _HTTP_VERB.finditer(content, window_start, window_end):
        if verb.end() <= url_start:
            distance = url_start - verb.end()
        elif verb.start() >= url_end:
            distance = verb.start() - url_end
        else:
            continue
        if best is None or distance < best[0]:
            best = (distance, verb.group(1).upper())

    return best[1] if best else "unknown"


# ============================================================================
# Business rules
# ============================================================================

_C_VALIDATION = re.compile(
    r"\bif\s*\((?:[^()]|\((?:[^()]|\([^()]*\))*\))*\)\s*\{?\s*(?:throw|return)\b"
)
_PY_VALIDATION = re.compile(r"^[ \t]*(?:el)?if\b[^\n]*:[ \t]*(?:\n[ \t]*)?(?:raise|return)\b", re.MULTILINE)

_RULE_TAG = r"(BUSINESS(?:\s+RULE)?|RULE|VALIDATION|TODO|NOTE)\s*:\s*([^\n]+)"
_COMMENT_RULES = {
    "csharp": re.compile(rf"//\s*{_RULE_TAG}", re.IGNORECASE),
    "java": re.compile(rf"//\s*{_RULE_TAG}", re.IGNORECASE),
    "php": re.compile(rf"(?://|\#)\s*{_RULE_TAG}", re.IGNORECASE),
    "python": re.compile(rf"\#\s*{_RULE_TAG}", re.IGNORECASE),
    "javascript": re.compile(rf"//\s*{_RULE_TAG}", re.IGNORECASE),
    "typescript": re.compile(rf"//\s*{_RULE_TAG}", re.IGNORECASE),
}


def count_validations(content: str, language: str) -> int:
    pattern = _PY_VALIDATION if language == "python" else _C_VALIDATION
    return len(pattern.findall(content))


def extract_business_rules(content: str, language: str) -> list[str]:
    """Summarize guard clauses and collect tagged comments.

    Returns:
        An optional "Contains N validations in code" summary followed by up
        to ten tagged comment rules
    """
    rules = []

    validations = count_validations(content, language)
    if validations:
        rules.append(f"Contains {validations} validations in code")

    pattern = _COMMENT_RULES.get(language)
    if pattern:
        comment_rules = 0
        for match in pattern.finditer(content):
            tag = re.sub(r"\s+", " ", match.group(1).upper())
            text = match.group(2).strip().removesuffix("*/").strip()
            if not text:
                continue
            rules.append(f"{tag}: {text}")
            comment_rules += 1
            if comment_rules >= MAX_COMMENT_RULES:
                break

    return rules
