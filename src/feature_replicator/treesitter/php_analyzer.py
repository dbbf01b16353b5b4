"""Structural analysis of PHP source on a tree-sitter syntax tree.

Classifies nodes into validations, calculations, error handling, state
transitions, function calls and variable assignments. The walk is a
single iterative pre-order traversal; every record carries the 1-based
source line of the node it came from.
"""
from __future__ import annotations
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any

from .parsers import get_parser

logger = logging.getLogger(__name__)

STATE_FIELD = re.compile(r"estado|status|state|workflow", re.IGNORECASE)
MATH_FUNCTION = re.compile(
    r"round|floor|ceil|abs|pow|sqrt|sum|avg|count|max|min|number_format|intdiv|fmod",
    re.IGNORECASE,
)

_PHP_TAG = re.compile(r"<\?(?:php\b|=)", re.IGNORECASE)

ARITHMETIC_OPERATORS = ("+", "-", "*", "/", "%", "**")
LOGICAL_OPERATORS = ("&&", "||", "and", "or")

CALL_TYPES = (
    "function_call_expression",
    "member_call_expression",
    "nullsafe_member_call_expression",
    "scoped_call_expression",
)
ASSIGNMENT_TYPES = (
    "assignment_expression",
    "augmented_assignment_expression",
    "reference_assignment_expression",
)
THROW_TYPES = ("throw_expression", "throw_statement")

# Nodes rendered verbatim from source
LEAF_TYPES = frozenset({
    "name",
    "qualified_name",
    "variable_name",
    "dynamic_variable_name",
    "string",
    "encapsed_string",
    "heredoc",
    "nowdoc",
    "integer",
    "float",
    "boolean",
    "null",
    "relative_scope",
    "named_type",
    "primitive_type",
    "optional_type",
    "union_type",
    "cast_type",
})

DIGEST_LIMIT = 5
MAX_RENDER_DEPTH = 40


@dataclass
class Validation:
    type: str
    line: int
    condition: str | None = None
    then: str | None = None
    otherwise: str | None = None
    complexity: int = 0
    discriminant: str | None = None
    cases: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        if self.type == "switch":
            return {
                "type": self.type,
                "discriminant": self.discriminant,
                "cases": self.cases,
                "line": self.line,
            }
        return {
            "type": self.type,
            "condition": self.condition,
            "then": self.then,
            "else": self.otherwise,
            "line": self.line,
            "complexity": self.complexity,
        }


@dataclass
class Calculation:
    variable: str
    formula: str
    line: int
    operations: list[str]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ErrorHandling:
    type: str
    line: int
    try_block: str | None = None
    catches: list[dict] = field(default_factory=list)
    finally_block: str | None = None
    exception: str | None = None

    def to_dict(self) -> dict:
        if self.type == "throw":
            return {"type": self.type, "exception": self.exception, "line": self.line}
        data = {
            "type": self.type,
            "try_block": self.try_block,
            "catches": self.catches,
            "line": self.line,
        }
        if self.finally_block is not None:
            data["finally"] = self.finally_block
        return data


@dataclass
class StateTransition:
    field: str
    new_value: str
    line: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FunctionCall:
    function: str
    arguments: list[str]
    line: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class VariableAssignment:
    variable: str
    value: str
    line: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AnalysisResult:
    validations: list[Validation] = field(default_factory=list)
    calculations: list[Calculation] = field(default_factory=list)
    error_handling: list[ErrorHandling] = field(default_factory=list)
    state_transitions: list[StateTransition] = field(default_factory=list)
    function_calls: list[FunctionCall] = field(default_factory=list)
    variable_assignments: list[VariableAssignment] = field(default_factory=list)
    parse_error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "validations": [v.to_dict() for v in self.validations],
            "calculations": [c.to_dict() for c in self.calculations],
            "error_handling": [e.to_dict() for e in self.error_handling],
            "state_transitions": [s.to_dict() for s in self.state_transitions],
            "function_calls": [f.to_dict() for f in self.function_calls],
            "variable_assignments": [a.to_dict() for a in self.variable_assignments],
        }
        if self.parse_error is not None:
            data["parse_error"] = self.parse_error
        return data


class PHPASTAnalyzer:
    """Classify PHP syntax-tree nodes into business-logic records."""

    language = "php"

    def __init__(self):
        self.parser = get_parser(self.language)
        self._source = b""

    def analyze(self, code: str) -> AnalysisResult:
        """Analyze PHP source.

        Never raises: parse failures and unexpected tree shapes produce an
        empty result carrying ``parse_error``.
        """
        if not _PHP_TAG.search(code):
            code = "<?php " + code
        try:
            source = code.encode("utf-8")
            tree = self.parser.parse(source)
            root = tree.root_node
            if root.has_error:
                return AnalysisResult(parse_error=f"Syntax error near line {_first_error_line(root)}")

            self._source = source
            result = AnalysisResult()
            self._walk(root, result)
            return result
        except Exception as e:
            logger.warning(f"PHP analysis failed: {e}")
            return AnalysisResult(parse_error=str(e))
        finally:
            self._source = b""

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _walk(self, root: Any, result: AnalysisResult) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "comment":
                continue

            self._classify(node, result)
            stack.extend(reversed(node.children))

    def _classify(self, node: Any, result: AnalysisResult) -> None:
        kind = node.type
        if kind in ("if_statement", "else_if_clause"):
            result.validations.append(self._conditional(node))
        elif kind == "switch_statement":
            result.validations.append(self._switch(node))
        elif kind == "try_statement":
            result.error_handling.append(self._try(node))
        elif kind in THROW_TYPES:
            result.error_handling.append(ErrorHandling(
                type="throw",
                exception=self._render(_first_named(node)),
                line=_line(node),
            ))
        elif kind in ASSIGNMENT_TYPES:
            self._assignment(node, result)
        elif kind in CALL_TYPES:
            result.function_calls.append(FunctionCall(
                function=self._callee(node),
                arguments=self._arguments(node),
                line=_line(node),
            ))

    def _conditional(self, node: Any) -> Validation:
        condition = node.child_by_field_name("condition")
        otherwise = None
        if node.type == "if_statement":
            for alternative in node.children_by_field_name("alternative"):
                if alternative.type == "else_clause":
                    otherwise = self._digest(_body(alternative))

        return Validation(
            type="if",
            condition=self._render(condition),
            then=self._digest(_body(node)),
            otherwise=otherwise,
            line=_line(node),
            complexity=self._logical_complexity(condition),
        )

    def _switch(self, node: Any) -> Validation:
        cases = []
        body = node.child_by_field_name("body")
        for case in body.named_children if body else []:
            if case.type == "case_statement":
                value_node = case.child_by_field_name("value")
                value = self._render(value_node)
            elif case.type == "default_statement":
                value_node = None
                value = "default"
            else:
                continue

            statements = [
                child for child in case.named_children
                if child.type != "comment" and child != value_node
            ]
            cases.append({"value": value, "action": self._digest_statements(statements)})

        return Validation(
            type="switch",
            discriminant=self._render(node.child_by_field_name("condition")),
            cases=cases,
            line=_line(node),
        )

    def _try(self, node: Any) -> ErrorHandling:
        entry = ErrorHandling(
            type="try-catch",
            try_block=self._digest(node.child_by_field_name("body")),
            line=_line(node),
        )
        for child in node.named_children:
            if child.type == "catch_clause":
                variable = self._render(child.child_by_field_name("name"))
                entry.catches.append({
                    "exception_type": self._render(child.child_by_field_name("type")),
                    "variable": variable.lstrip("$"),
                    "handler": self._digest(child.child_by_field_name("body")),
                })
            elif child.type == "finally_clause":
                entry.finally_block = self._digest(child.child_by_field_name("body") or _first_named(child))
        return entry

    def _assignment(self, node: Any, result: AnalysisResult) -> None:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        variable = self._render(left)
        line = _line(node)

        operator = None
        if node.type == "augmented_assignment_expression":
            operator_node = node.child_by_field_name("operator")
            operator = _text(self._source, operator_node)[:-1] if operator_node else None

        if operator:
            value = f"{variable} {operator} {self._render(right)}"
        else:
            value = self._render(right)

        if STATE_FIELD.search(variable):
            result.state_transitions.append(StateTransition(field=variable, new_value=value, line=line))

        if operator in ARITHMETIC_OPERATORS:
            operations = self._operators(right)
            if operator not in operations:
                operations.insert(0, operator)
            result.calculations.append(Calculation(variable=variable, formula=value, line=line, operations=operations))
        elif operator is None and self._is_calculation(right):
            result.calculations.append(Calculation(
                variable=variable, formula=value, line=line, operations=self._operators(right),
            ))

        result.variable_assignments.append(VariableAssignment(variable=variable, value=value, line=line))

    # ------------------------------------------------------------------
    # Subtree queries
    # ------------------------------------------------------------------

    def _is_calculation(self, node: Any) -> bool:
        while node is not None and node.type == "parenthesized_expression":
            node = _first_named(node)
        if node is None:
            return False
        if node.type == "binary_expression":
            return self._operator(node) in ARITHMETIC_OPERATORS
        if node.type in CALL_TYPES:
            name = self._callee(node)
            tail = re.split(r"->|::|\\", name)[-1]
            return bool(MATH_FUNCTION.fullmatch(tail))
        return False

    def _operator(self, node: Any) -> str:
        operator = node.child_by_field_name("operator")
        return _text(self._source, operator).lower() if operator else ""

    def _binary_operators(self, node: Any | None) -> list[str]:
        """Operators of every binary expression in a subtree, in pre-order."""
        found = []
        stack = [node] if node is not None else []
        while stack:
            current = stack.pop()
            if current.type == "binary_expression":
                found.append(self._operator(current))
            stack.extend(reversed(current.children))
        return found

    def _operators(self, node: Any | None) -> list[str]:
        operations = []
        for operator in self._binary_operators(node):
            if operator in ARITHMETIC_OPERATORS and operator not in operations:
                operations.append(operator)
        return operations

    def _logical_complexity(self, node: Any | None) -> int:
        return sum(1 for op in self._binary_operators(node) if op in LOGICAL_OPERATORS)

    # ------------------------------------------------------------------
    # Block digests
    # ------------------------------------------------------------------

    def _digest(self, body: Any | None) -> str | None:
        if body is None:
            return None
        if body.type in ("compound_statement", "colon_block"):
            statements = [child for child in body.named_children if child.type != "comment"]
        else:
            statements = [body]
        return self._digest_statements(statements)

    def _digest_statements(self, statements: list) -> str:
        parts = []
        for statement in statements[:DIGEST_LIMIT]:
            summary = self._summarize(statement)
            if summary:
                parts.append(summary)

        if len(statements) > DIGEST_LIMIT:
            parts.append(f"... ({len(statements) - DIGEST_LIMIT} more statements)")
        return "; ".join(parts)

    def _summarize(self, statement: Any) -> str | None:
        if statement.type == "return_statement":
            value = _first_named(statement)
            return f"return {self._render(value)}" if value is not None else "return"
        if statement.type == "throw_statement":
            return f"throw {self._render(_first_named(statement))}"
        if statement.type != "expression_statement":
            return None

        inner = _first_named(statement)
        if inner is None:
            return None
        if inner.type in CALL_TYPES:
            return self._render(inner)
        if inner.type in ASSIGNMENT_TYPES:
            operator_node = inner.child_by_field_name("operator")
            operator = _text(self._source, operator_node) if operator_node else "="
            left = self._render(inner.child_by_field_name("left"))
            right = self._render(inner.child_by_field_name("right"))
            return f"{left} {operator} {right}"
        if inner.type == "throw_expression":
            return f"throw {self._render(_first_named(inner))}"
        return None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _callee(self, node: Any) -> str:
        if node.type == "function_call_expression":
            return self._render(node.child_by_field_name("function"))
        if node.type == "scoped_call_expression":
            scope = self._render(node.child_by_field_name("scope"))
            return f"{scope}::{self._render(node.child_by_field_name('name'))}"

        arrow = "?->" if node.type == "nullsafe_member_call_expression" else "->"
        target = self._render(node.child_by_field_name("object"))
        return f"{target}{arrow}{self._render(node.child_by_field_name('name'))}"

    def _arguments(self, node: Any, depth: int = 0) -> list[str]:
        arguments = node.child_by_field_name("arguments") or _find_child(node, "arguments")
        if arguments is None:
            return []
        return [
            self._render(arg, depth + 1)
            for arg in arguments.named_children
            if arg.type != "comment"
        ]

    def _render(self, node: Any | None, depth: int = 0) -> str:
        """Render an expression node as readable PHP-like text.

        Unknown node kinds fall back to their ``name`` or ``value`` child,
        else to a ``[kind]`` tag.
        """
        if node is None:
            return ""
        if depth > MAX_RENDER_DEPTH:
            return "..."

        kind = node.type
        nested = depth + 1

        if kind in LEAF_TYPES:
            return _text(self._source, node)

        if kind == "parenthesized_expression":
            return f"({self._render(_first_named(node), nested)})"

        if kind == "binary_expression":
            left = self._render(node.child_by_field_name("left"), nested)
            right = self._render(node.child_by_field_name("right"), nested)
            return f"{left} {_text(self._source, node.child_by_field_name('operator'))} {right}"

        if kind == "unary_op_expression":
            operator = node.children[0] if node.children else None
            operand = node.named_children[-1] if node.named_children else None
            return f"{_text(self._source, operator)}{self._render(operand, nested)}"

        if kind in CALL_TYPES:
            arguments = ", ".join(self._arguments(node, nested))
            return f"{self._callee(node)}({arguments})"

        if kind == "argument":
            name = node.child_by_field_name("name")
            value = self._render(node.named_children[-1], nested) if node.named_children else ""
            return f"{_text(self._source, name)}: {value}" if name is not None else value

        if kind in ("member_access_expression", "nullsafe_member_access_expression"):
            arrow = "?->" if kind.startswith("nullsafe") else "->"
            target = self._render(node.child_by_field_name("object"), nested)
            return f"{target}{arrow}{self._render(node.child_by_field_name('name'), nested)}"

        if kind == "subscript_expression":
            parts = node.named_children
            base = self._render(parts[0], nested) if parts else ""
            index = self._render(parts[1], nested) if len(parts) > 1 else ""
            return f"{base}[{index}]"

        if kind == "scoped_property_access_expression":
            scope = self._render(node.child_by_field_name("scope"), nested)
            return f"{scope}::{self._render(node.child_by_field_name('name'), nested)}"

        if kind == "type_list":
            return " | ".join(self._render(child, nested) for child in node.named_children)

        if kind == "class_constant_access_expression":
            return "::".join(self._render(child, nested) for child in node.named_children)

        if kind == "cast_expression":
            cast = _text(self._source, node.child_by_field_name("type"))
            return f"({cast}){self._render(node.child_by_field_name('value'), nested)}"

        if kind == "array_creation_expression":
            items = [
                self._render(child, nested)
                for child in node.named_children
                if child.type == "array_element_initializer"
            ]
            return f"[{', '.join(items)}]"

        if kind == "array_element_initializer":
            parts = node.named_children
            if len(parts) == 2 and any(child.type == "=>" for child in node.children):
                return f"{self._render(parts[0], nested)} => {self._render(parts[1], nested)}"
            return self._render(parts[0], nested) if parts else ""

        if kind == "conditional_expression":
            condition = self._render(node.child_by_field_name("condition"), nested)
            body = self._render(node.child_by_field_name("body"), nested)
            alternative = self._render(node.child_by_field_name("alternative"), nested)
            return f"{condition} ? {body} : {alternative}"

        if kind == "object_creation_expression":
            parts = [child for child in node.named_children if child.type != "arguments"]
            arguments = ", ".join(self._arguments(node, nested))
            target = self._render(parts[0], nested) if parts else ""
            return f"new {target}({arguments})"

        if kind in ASSIGNMENT_TYPES:
            operator = node.child_by_field_name("operator")
            left = self._render(node.child_by_field_name("left"), nested)
            right = self._render(node.child_by_field_name("right"), nested)
            return f"{left} {_text(self._source, operator) if operator else '='} {right}"

        if kind in THROW_TYPES:
            return f"throw {self._render(_first_named(node), nested)}"

        for field_name in ("name", "value"):
            child = node.child_by_field_name(field_name)
            if child is not None:
                return self._render(child, nested)
        return f"[{kind}]"


def _line(node: Any) -> int:
    return node.start_point[0] + 1


def _text(source: bytes, node: Any | None) -> str:
    """Get text for a node."""
    if not node:
        return ""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def _find_child(node: Any, child_type: str) -> Any | None:
    """Find first child of given type."""
    for child in node.children:
        if child.type == child_type:
            return child
    return None


def _body(node: Any) -> Any | None:
    return node.child_by_field_name("body") or _first_named(node)


def _first_named(node: Any) -> Any | None:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def _first_error_line(root: Any) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return _line(node)
        stack.extend(reversed(node.children))
    return _line(root)


_ANALYZERS = {
    "php": PHPASTAnalyzer,
}

_PLANNED_LANGUAGES = ("java", "csharp", "python", "javascript", "typescript")


def create_ast_analyzer(language: str) -> PHPASTAnalyzer:
    """Return the tree analyzer for a language.

    Raises:
        ValueError: If the language has no tree analyzer
    """
    analyzer_cls = _ANALYZERS.get(language)
    if analyzer_cls is not None:
        return analyzer_cls()
    if language in _PLANNED_LANGUAGES:
        raise ValueError(f"{language} AST analyzer not yet implemented")
    raise ValueError(f"Unsupported language for AST analysis: {language}")


def analyze_code(code: str, language: str = "php") -> dict:
    """Analyze source code and return the JSON-ready classification."""
    return create_ast_analyzer(language).analyze(code).to_dict()
