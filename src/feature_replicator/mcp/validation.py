"""Validation of tool-call arguments."""
from __future__ import annotations
from typing import Any

_PYTHON_TYPES = {
    "string": str,
    "number": (int, float),
    "integer": int,
    "boolean": bool,
    "array": list,
    "object": dict,
}


class InputValidationError(ValueError):
    """A tool argument is missing, has the wrong type or is out of range."""


def validate_input(
    name: str,
    value: Any,
    expected_type: str,
    required: bool = True,
    default: Any = None,
    minimum: float | None = None,
    maximum: float | None = None,
) -> Any:
    """Check one tool argument and return it (or its default).

    Args:
        name: Argument name, used in error messages
        value: Value received from the caller
        expected_type: JSON type name (string, number, integer, boolean, array, object)
        required: Whether a missing value is an error
        default: Returned when the value is missing and not required
        minimum: Inclusive lower bound for numbers
        maximum: Inclusive upper bound for numbers

    Raises:
        InputValidationError: If the value fails any check
    """
    if value is None:
        if required:
            raise InputValidationError(f"Missing required input: {name}")
        return default

    python_type = _PYTHON_TYPES.get(expected_type)
    if python_type is None:
        raise ValueError(f"Unknown input type '{expected_type}' for {name}")

    # bool is an int subclass but never a valid number
    is_bool = isinstance(value, bool)
    if not isinstance(value, python_type) or (is_bool and expected_type != "boolean"):
        raise InputValidationError(
            f"Invalid input type for {name}: expected {expected_type}, got {type(value).__name__}"
        )

    if expected_type in ("number", "integer"):
        if minimum is not None and value < minimum:
            raise InputValidationError(f"{name} must be >= {minimum}")
        if maximum is not None and value > maximum:
            raise InputValidationError(f"{name} must be <= {maximum}")

    return value
