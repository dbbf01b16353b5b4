"""SQL query text extraction from source code.

Each language has a literal tokenizer (comments and char literals are
skipped so their quotes cannot open a bogus string). Literals joined by
the language's concatenation operator are folded into one query, and a
run is kept when its first literal starts with an SQL verb. Annotation
and ``execute(...)`` forms are read directly from their argument.

Extraction never raises and never deduplicates.
"""
from __future__ import annotations

import re
from dataclasses import dataclass


_SQL_START = re.compile(r"^\s*(?:SELECT|INSERT|UPDATE|DELETE)\s+\S", re.IGNORECASE)
_SQL_START_WITH_EXEC = re.compile(
    r"^\s*(?:SELECT|INSERT|UPDATE|DELETE|EXEC|EXECUTE)\s+\S", re.IGNORECASE
)
_SQL_START_EXTENDED = re.compile(
    r"^\s*(?:SELECT|INSERT|UPDATE|DELETE|WITH|REPLACE|MERGE|CALL)\s+\S", re.IGNORECASE
)

_QUOTED = re.compile(r'^[A-Za-z$@]*("""|\'\'\'|["\'`])([\s\S]*)\1$')
_ESCAPED_WHITESPACE = re.compile(r"\\r\\n|\\n|\\r|\\t")
_ESCAPED_QUOTE = re.compile(r"""\\(["'`])""")
_WHITESPACE = re.compile(r"\s+")

_C_COMMENT = r"//[^\n]*|/\*[\s\S]*?\*/"
_C_GAP = rf"(?:\s|{_C_COMMENT})*"
_CHAR_LITERAL = r"'(?:[^'\\\n]|\\.)'"


@dataclass(frozen=True)
class _Literal:
    start: int
    end: int
    body: str


@dataclass(frozen=True)
class _LiteralSyntax:
    tokens: re.Pattern[str]
    joiner: re.Pattern[str]


_CSHARP = _LiteralSyntax(
    tokens=re.compile(
        rf"(?P<skip>{_C_COMMENT}|{_CHAR_LITERAL})"
        r'|(?P<lit>(?:\$@|@\$|@)"(?:[^"]|"")*"|\$?"(?:[^"\\\n]|\\.)*")'
    ),
    joiner=re.compile(rf"{_C_GAP}\+{_C_GAP}"),
)

_JAVA = _LiteralSyntax(
    tokens=re.compile(
        rf"(?P<skip>{_C_COMMENT}|{_CHAR_LITERAL})"
        r'|(?P<lit>"""[\s\S]*?"""|"(?:[^"\\\n]|\\.)*")'
    ),
    joiner=re.compile(rf"{_C_GAP}\+{_C_GAP}"),
)

_PHP_GAP = rf"(?:\s|{_C_COMMENT}|\#[^\n]*)*"
_PHP = _LiteralSyntax(
    tokens=re.compile(
        rf"(?P<skip>{_C_COMMENT}|\#(?!\[)[^\n]*)"
        r"|(?P<heredoc><<<[ \t]*(?P<hq>[\"']?)(?P<hid>[A-Za-z_]\w*)(?P=hq)\r?\n"
        r"(?P<hbody>[\s\S]*?)\r?\n[ \t]*(?P=hid)\b)"
        r'|(?P<lit>"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\')'
    ),
    joiner=re.compile(rf"{_PHP_GAP}\.{_PHP_GAP}"),
)

_PY_GAP = r"(?:\s|\\\r?\n|\#[^\n]*)*"
_PYTHON = _LiteralSyntax(
    tokens=re.compile(
        r"(?P<skip>\#[^\n]*)"
        r"|(?P<lit>(?<!\w)[rRbBuUfF]{0,2}"
        r"(?:\"\"\"[\s\S]*?\"\"\"|'''[\s\S]*?'''|\"(?:[^\"\\\n]|\\.)*\"|'(?:[^'\\\n]|\\.)*'))"
    ),
    joiner=re.compile(rf"{_PY_GAP}\+?{_PY_GAP}"),
)

_JAVASCRIPT = _LiteralSyntax(
    tokens=re.compile(
        rf"(?P<skip>{_C_COMMENT})"
        r'|(?P<lit>`(?:[^`\\]|\\.)*`|"(?:[^"\\\n]|\\.)*"|\'(?:[^\'\\\n]|\\.)*\')'
    ),
    joiner=re.compile(rf"{_C_GAP}\+{_C_GAP}"),
)

_JAVA_QUERY_ANNOTATION = re.compile(r"@Query\s*\(\s*(?:value\s*=\s*)?")
_JAVA_NAMED_QUERY = re.compile(
    r"@Named(?:Native)?Query\s*\((?:[^()\"]|\"(?:[^\"\\]|\\.)*\")*?\bquery\s*=\s*"
)
_PY_EXECUTE = re.compile(r"\b(?:execute|executemany)\s*\(\s*")
_PHP_OPEN_TAG = re.compile(r"<\?(?:php\b|=)?", re.IGNORECASE)
_NOT_NEWLINE = re.compile(r"[^\n]")


def _decode(match: re.Match[str]) -> str:
    """Return the body of a literal token with escapes normalized."""
    groups = match.groupdict()
    if groups.get("hbody") is not None:
        return groups["hbody"]

    text = match.group(0)
    quoted = _QUOTED.match(text)
    body = quoted.group(2) if quoted else text

    # Verbatim strings only escape quotes by doubling them
    if text.startswith(("@", "$@")):
        return body.replace('""', '"')

    body = _ESCAPED_WHITESPACE.sub(" ", body)
    return _ESCAPED_QUOTE.sub(r"\1", body)


def _tokenize(content: str, syntax: _LiteralSyntax) -> list[_Literal]:
    literals = []
    for match in syntax.tokens.finditer(content):
        if match.group("skip") is not None:
            continue
        literals.append(_Literal(match.start(), match.end(), _decode(match)))
    return literals


def _fold(literals: list[_Literal]) -> str:
    return _WHITESPACE.sub(" ", " ".join(lit.body for lit in literals)).strip()


def _literal_runs(content: str, literals: list[_Literal], joiner: re.Pattern[str]) -> list[list[_Literal]]:
    """Group literals separated only by the concatenation operator."""
    runs: list[list[_Literal]] = []
    for lit in literals:
        if runs and joiner.fullmatch(content, runs[-1][-1].end, lit.start):
            runs[-1].append(lit)
        else:
            runs.append([lit])
    return runs


def _extract(
    content: str,
    syntax: _LiteralSyntax,
    verbs: re.Pattern[str],
    argument_forms: tuple[tuple[re.Pattern[str], re.Pattern[str] | None], ...] = (),
) -> list[str]:
    """Run the literal pass plus any argument-form passes, in source order.

    ``argument_forms`` pairs a regex that ends right before a literal
    argument with the verb test that argument must pass (None accepts any
    literal). Literals consumed by an argument form are not reported again
    by the generic pass.
    """
    literals = _tokenize(content, syntax)
    if not literals:
        return []

    runs = _literal_runs(content, literals, syntax.joiner)
    run_at = {run[0].start: run for run in runs}

    found: list[tuple[int, str]] = []
    consumed: set[int] = set()

    for pattern, accept in argument_forms:
        for match in pattern.finditer(content):
            run = run_at.get(match.end())
            if run is None or run[0].start in consumed:
                continue
            query = _fold(run)
            if query and (accept is None or accept.match(query)):
                consumed.add(run[0].start)
                found.append((run[0].start, query))

    for run in runs:
        if run[0].start in consumed:
            continue
        query = _fold(run)
        if verbs.match(query):
            found.append((run[0].start, query))

    found.sort(key=lambda item: item[0])
    return [query for _, query in found]


def _php_code_only(content: str) -> str:
    """Blank out inline HTML outside ``<?php ... ?>`` blocks, keeping offsets."""
    if not _PHP_OPEN_TAG.search(content):
        return content

    chunks = []
    pos = 0
    while pos < len(content):
        open_tag = _PHP_OPEN_TAG.search(content, pos)
        if not open_tag:
            chunks.append(_NOT_NEWLINE.sub(" ", content[pos:]))
            break

        chunks.append(_NOT_NEWLINE.sub(" ", content[pos:open_tag.end()]))
        close = content.find("?>", open_tag.end())
        if close == -1:
            chunks.append(content[open_tag.end():])
            break

        chunks.append(content[open_tag.end():close])
        chunks.append("  ")
        pos = close + 2

    return "".join(chunks)


def extract_csharp_queries(content: str) -> list[str]:
    """Extract SQL from C# string, interpolated and verbatim literals."""
    return _extract(content, _CSHARP, _SQL_START_WITH_EXEC)


def extract_java_queries(content: str) -> list[str]:
    """Extract SQL from Java literals and JPA query annotations."""
    return _extract(
        content,
        _JAVA,
        _SQL_START,
        argument_forms=((_JAVA_QUERY_ANNOTATION, None), (_JAVA_NAMED_QUERY, None)),
    )


def extract_php_queries(content: str) -> list[str]:
    """Extract SQL from PHP quoted strings and heredocs."""
    return _extract(_php_code_only(content), _PHP, _SQL_START)


def extract_python_queries(content: str) -> list[str]:
    """Extract SQL from Python literals and ``cursor.execute(...)`` arguments."""
    return _extract(
        content,
        _PYTHON,
        _SQL_START,
        argument_forms=((_PY_EXECUTE, _SQL_START_EXTENDED),),
    )


def extract_javascript_queries(content: str) -> list[str]:
    """Extract SQL from JavaScript/TypeScript quoted and template literals."""
    return _extract(content, _JAVASCRIPT, _SQL_START)
