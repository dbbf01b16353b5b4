"""Repository scanning: file discovery, source reading and tech-stack loading."""
from .walker import IGNORE_DIRS, find_files, load_ignore_spec, read_source
from .tech_stack import TECH_STACK_FILE, load_tech_stack

__all__ = [
    "IGNORE_DIRS",
    "find_files",
    "load_ignore_spec",
    "read_source",
    "TECH_STACK_FILE",
    "load_tech_stack",
]
