"""Regex-driven extraction of SQL, file paths, HTTP calls and business rules."""
from .queries import (
    extract_csharp_queries,
    extract_java_queries,
    extract_php_queries,
    extract_python_queries,
    extract_javascript_queries,
)
from .query_analyzer import analyze_query
from .side_effects import (
    URL_DENYLIST,
    count_validations,
    extract_business_rules,
    extract_external_apis,
    extract_file_paths,
)

__all__ = [
    "extract_csharp_queries",
    "extract_java_queries",
    "extract_php_queries",
    "extract_python_queries",
    "extract_javascript_queries",
    "analyze_query",
    "URL_DENYLIST",
    "count_validations",
    "extract_business_rules",
    "extract_external_apis",
    "extract_file_paths",
]
