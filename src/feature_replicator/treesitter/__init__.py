"""Tree-sitter based structural analysis."""
from .parsers import get_parser
from .php_analyzer import (
    AnalysisResult,
    PHPASTAnalyzer,
    analyze_code,
    create_ast_analyzer,
)

__all__ = [
    "get_parser",
    "AnalysisResult",
    "PHPASTAnalyzer",
    "analyze_code",
    "create_ast_analyzer",
]
