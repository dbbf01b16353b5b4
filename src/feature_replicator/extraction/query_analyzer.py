"""Heuristic SQL statement analysis.

Derives statement kind, tables, columns, WHERE fragment and JOIN fragments
from one query string with a fixed sequence of regex passes. This is not a
SQL parser: subqueries, comments and dialect-specific syntax can yield
spurious or missing names.
"""
from __future__ import annotations

import re

from ..features.models import QueryInfo

MAX_COLUMNS = 30
MAX_FILTERS_CHARS = 300
MAX_JOINS_CHARS = 400

_FLAGS = re.IGNORECASE | re.DOTALL

_TYPE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("SELECT", re.compile(r"^\s*SELECT\b", _FLAGS)),
    ("INSERT", re.compile(r"^\s*INSERT\b", _FLAGS)),
    ("UPDATE", re.compile(r"^\s*UPDATE\b", _FLAGS)),
    ("DELETE", re.compile(r"^\s*DELETE\b", _FLAGS)),
    ("STORED_PROC", re.compile(r"^\s*EXEC(?:UTE)?\b", _FLAGS)),
]

_IDENT = r"([\w.\[\]`\"]+)"
_TABLE_PATTERNS = [
    re.compile(rf"\bFROM\s+{_IDENT}", _FLAGS),
    re.compile(rf"\bJOIN\s+{_IDENT}", _FLAGS),
    re.compile(rf"(?<!KEY )\bUPDATE\s+{_IDENT}", _FLAGS),
    re.compile(rf"\bINSERT\s+INTO\s+{_IDENT}", _FLAGS),
]
_QUOTING = re.compile(r"[\[\]`\"]")

_SELECT_LIST = re.compile(r"\bSELECT\s+(.*?)\s+FROM\b", _FLAGS)
_SELECT_MODIFIERS = re.compile(r"^(?:DISTINCT\s+|ALL\s+|TOP\s*\(?\s*\d+\s*\)?\s+)+", _FLAGS)
_ALIAS = re.compile(r"\s+AS\s+", _FLAGS)

_WHERE = re.compile(
    r"\bWHERE\s+(.*?)(?=\bORDER\s+BY\b|\bGROUP\s+BY\b|\bLIMIT\b|$)", _FLAGS
)

_JOIN_KIND = r"(?:INNER|CROSS|(?:LEFT|RIGHT|FULL)(?:\s+OUTER)?)"
_JOIN = re.compile(
    rf"(\b(?:{_JOIN_KIND}\s+)?JOIN\s+.+?\s+ON\s+.+?)"
    rf"(?=\b(?:{_JOIN_KIND}\s+)?JOIN\b|\bWHERE\b|\bORDER\b|\bGROUP\b|$)",
    _FLAGS,
)


def analyze_query(query: str) -> QueryInfo:
    """Break one SQL string into type, tables, columns, filters and joins.

    Args:
        query: Raw query text as produced by the extractors

    Returns:
        QueryInfo; columns stay empty for ``SELECT *``
    """
    info = QueryInfo()
    info.type = detect_query_type(query)
    info.tables = extract_tables(query)

    if info.type == "SELECT":
        info.columns = extract_columns(query)

    info.filters = extract_filters(query)
    info.joins = extract_joins(query)
    return info


def detect_query_type(query: str) -> str:
    for query_type, pattern in _TYPE_PATTERNS:
        if pattern.match(query):
            return query_type
    return "unknown"


def extract_tables(query: str) -> list[str]:
    """Collect table identifiers in pattern order, without duplicates."""
    tables: list[str] = []
    for pattern in _TABLE_PATTERNS:
        for match in pattern.finditer(query):
            table = _QUOTING.sub("", match.group(1)).strip(".")
            if table and table not in tables:
                tables.append(table)
    return tables


def extract_columns(query: str) -> list[str]:
    match = _SELECT_LIST.search(query)
    if not match:
        return []

    select_list = _SELECT_MODIFIERS.sub("", match.group(1).strip())
    if select_list == "*":
        return []

    columns = []
    for piece in _split_top_level(select_list):
        name = _QUOTING.sub("", _ALIAS.split(piece.strip())[-1]).strip()
        if name:
            columns.append(name)
        if len(columns) >= MAX_COLUMNS:
            break
    return columns


def extract_filters(query: str) -> str:
    match = _WHERE.search(query)
    if not match:
        return ""
    return f"WHERE {match.group(1).strip()}"[:MAX_FILTERS_CHARS]


def extract_joins(query: str) -> str:
    joins = [m.group(1).strip() for m in _JOIN.finditer(query)]
    return " ".join(joins)[:MAX_JOINS_CHARS]


def _split_top_level(text: str) -> list[str]:
    """Split on commas that are not inside parentheses."""
    parts = []
    depth = 0
    current = []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")" and depth > 0:
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts
