"""Tech-stack descriptor loading.

A previous audit step may leave ``docs/TECH_STACK_STATUS.json`` in the
repository, describing its language, framework and databases.
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TECH_STACK_FILE = Path("docs") / "TECH_STACK_STATUS.json"


def load_tech_stack(repo_root: Path | str) -> dict[str, Any]:
    """Load the tech-stack descriptor for a repository.

    Returns:
        The descriptor dict, or an empty dict if the file is missing or invalid
    """
    status_path = Path(repo_root) / TECH_STACK_FILE

    if not status_path.is_file():
        logger.info(f"Tech stack file not found: {status_path}")
        return {}

    try:
        with open(status_path, "r", encoding="utf-8") as f:
            stack = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Error loading tech stack from {status_path}: {e}")
        return {}

    if not isinstance(stack, dict):
        logger.warning(f"Tech stack file {status_path} does not contain an object")
        return {}

    logger.info(f"Tech stack loaded: {stack.get('language')}/{stack.get('framework')}")
    return stack
