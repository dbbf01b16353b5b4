"""Tree-sitter parser setup.

Grammars come from the per-language ``tree-sitter-<lang>`` wheels.
"""
from __future__ import annotations
import logging
from typing import Callable

from tree_sitter import Language, Parser
import tree_sitter_php

logger = logging.getLogger(__name__)

# Grammar loaders for each supported language
_GRAMMARS: dict[str, Callable[[], object]] = {
    "php": tree_sitter_php.language_php,
}

# Cached parsers for each language
_PARSERS: dict[str, Parser] = {}


def get_parser(language: str) -> Parser | None:
    """Get or create a tree-sitter parser for the given language.

    Args:
        language: Language identifier (currently only php)

    Returns:
        Parser instance or None if language not supported
    """
    if language in _PARSERS:
        return _PARSERS[language]

    grammar = _GRAMMARS.get(language)
    if grammar is None:
        return None

    parser = Parser(Language(grammar()))
    _PARSERS[language] = parser
    logger.debug(f"Loaded tree-sitter grammar for {language}")
    return parser
