"""Repository walker with extension filtering.

Walks the directory tree depth-first and returns matching source files,
skipping dependency, build and version-control directories.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterable

import pathspec

from ..features.models import FileRef

logger = logging.getLogger(__name__)

IGNORE_DIRS = frozenset({
    "node_modules",
    "bin",
    "obj",
    ".git",
    ".svn",
    ".hg",
    ".vs",
    ".idea",
    "packages",
    "vendor",
    "__pycache__",
    ".venv",
})

DEFAULT_MAX_DEPTH = 10


def load_ignore_spec(root: Path | str, ignore_file: str = ".gitignore") -> pathspec.PathSpec | None:
    """Load ignore patterns from the scan root, if the file exists."""
    ignore_path = Path(root) / ignore_file
    if not ignore_path.is_file():
        return None

    try:
        with open(ignore_path, "r", encoding="utf-8", errors="replace") as f:
            return pathspec.PathSpec.from_lines("gitwildmatch", f.read().splitlines())
    except OSError as e:
        logger.warning(f"Could not read {ignore_path}: {e}")
        return None


def find_files(
    root: Path | str,
    extensions: Iterable[str],
    max_files: int,
    max_depth: int = DEFAULT_MAX_DEPTH,
    ignore_spec: pathspec.PathSpec | None = None,
) -> list[FileRef]:
    """Find source files under root whose extension is in the allow-list.

    Args:
        root: Directory to scan
        extensions: Allowed extensions (".cs", ".php", ...), case-insensitive
        max_files: Stop once this many files have been collected
        max_depth: Do not descend more than this many levels below root
        ignore_spec: Optional .gitignore-style patterns to skip

    Returns:
        Matching files in depth-first, name-sorted order
    """
    root = Path(root)
    allowed = {ext.lower() for ext in extensions}
    results: list[FileRef] = []

    if max_files <= 0 or not allowed:
        return results

    _walk_directory(root, root, 0, allowed, max_files, max_depth, ignore_spec, results)
    return results


def _walk_directory(
    directory: Path,
    root: Path,
    depth: int,
    allowed: set[str],
    max_files: int,
    max_depth: int,
    ignore_spec: pathspec.PathSpec | None,
    results: list[FileRef],
) -> None:
    """Recursively collect matching files into ``results``."""
    if len(results) >= max_files or depth > max_depth:
        return

    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        # Skip directories we can't read
        logger.warning(f"Error scanning directory {directory}: {e}")
        return

    for entry in entries:
        if len(results) >= max_files:
            return

        rel_path = entry.relative_to(root).as_posix()

        try:
            is_dir = entry.is_dir()
            is_file = not is_dir and entry.is_file()
        except OSError as e:
            logger.warning(f"Could not stat {entry}: {e}")
            continue

        if is_dir:
            if entry.name in IGNORE_DIRS:
                continue
            if ignore_spec and ignore_spec.match_file(rel_path + "/"):
                continue
            _walk_directory(entry, root, depth + 1, allowed, max_files, max_depth, ignore_spec, results)

        elif is_file:
            if entry.suffix.lower() not in allowed:
                continue
            if ignore_spec and ignore_spec.match_file(rel_path):
                continue
            results.append(FileRef(full_path=entry, relative_path=rel_path))


def read_source(path: Path | str, max_chars: int | None = None) -> str | None:
    """Read a source file as text.

    Undecodable bytes are replaced rather than raising. Content longer than
    ``max_chars`` is truncated so the regex passes stay bounded.

    Returns:
        File content, or None if the file could not be read
    """
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            content = f.read()
    except OSError as e:
        logger.warning(f"Error reading file {path}: {e}")
        return None

    if max_chars is not None and len(content) > max_chars:
        logger.warning(f"Truncating {path} from {len(content)} to {max_chars} characters")
        content = content[:max_chars]

    return content
