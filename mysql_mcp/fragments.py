"""Validators for caller-supplied SQL fragments.

Some tools splice caller text into a fixed query template: a projection
list, a WHERE body, a query vector. These checks are deliberately shallow.
They guarantee that the listed token patterns are absent and parentheses
balance; the surrounding statement shape is fixed by the tool and the
MySQL account is read-only.
"""

import math
import re
from collections.abc import Iterable

from mysql_mcp.errors import (
    ForbiddenFragmentToken,
    FragmentTooLong,
    InvalidIdentifier,
    UnbalancedParens,
    ValidationRejected,
)
from mysql_mcp.identifiers import quote_ident
from mysql_mcp.sql_guard import strip_literals

MAX_WHERE_LENGTH = 1000

_COLUMN_FORBIDDEN_TOKENS = (
    "(",
    ")",
    ";",
    "--",
    "/*",
    "*/",
    "@@",
    "SLEEP",
    "BENCHMARK",
    "LOAD_FILE",
    "INTO",
    "OUTFILE",
    "DUMPFILE",
    "UNION",
    "INFORMATION_SCHEMA",
)

_ALIAS_SEPARATOR = re.compile(r"\s+AS\s+", re.IGNORECASE)

_WHERE_PATTERNS: tuple[tuple[re.Pattern, str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), reason)
    for pattern, reason in (
        (r";", "semicolon (multi-statement)"),
        (r"--", "SQL comment"),
        (r"#", "SQL comment"),
        (r"/\*", "SQL block comment"),
        (r"\bUNION\b", "UNION keyword"),
        (r"\bINTO\b", "INTO keyword"),
        (r"\bLOAD_FILE\s*\(", "LOAD_FILE function"),
        (r"\bSLEEP\s*\(", "SLEEP function"),
        (r"\bBENCHMARK\s*\(", "BENCHMARK function"),
        (r"\bGET_LOCK\s*\(", "GET_LOCK function"),
        (r"\bRELEASE_LOCK\s*\(", "RELEASE_LOCK function"),
        (r"@@", "system variable access"),
        (r"\bINFORMATION_SCHEMA\b", "INFORMATION_SCHEMA access"),
        (r"\bPERFORMANCE_SCHEMA\b", "PERFORMANCE_SCHEMA access"),
        (r"\bMYSQL\s*\.", "mysql system database access"),
        (r"\bSYS\s*\.", "sys database access"),
        (r"\bEXEC\s*\(", "EXEC function"),
        (r"\bSHUTDOWN\b", "SHUTDOWN command"),
        (r"0x[0-9a-f]{10,}", "long hex literal"),
    )
)

DISTANCE_FUNCTIONS = {
    "cosine": "COSINE",
    "euclidean": "EUCLIDEAN",
    "l2": "EUCLIDEAN",
    "dot": "DOT",
    "inner_product": "DOT",
}


def validate_select_columns(text: str) -> str:
    """Validate a comma-separated projection and return it fully quoted.

    ``""`` and ``"*"`` yield ``*``. Each item may be ``col``, ``tbl.col``,
    ``tbl.*`` or any of those followed by ``AS alias``.

    Raises:
        ForbiddenFragmentToken: If the text contains a forbidden token.
        InvalidIdentifier: If a name or alias fails quote_ident().
    """
    if not text or not text.strip():
        return "*"

    upper = text.upper()
    for token in _COLUMN_FORBIDDEN_TOKENS:
        if token in upper:
            raise ForbiddenFragmentToken("select contains forbidden pattern", token)

    quoted: list[str] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue

        pieces = _ALIAS_SEPARATOR.split(part)
        if len(pieces) > 2:
            raise InvalidIdentifier("invalid column alias", part)
        name = pieces[0].strip()
        alias = pieces[1].strip() if len(pieces) == 2 else ""

        column = _quote_column(name)
        if alias:
            column = f"{column} AS {quote_ident(alias)}"
        quoted.append(column)

    if not quoted:
        return "*"
    return ", ".join(quoted)


def _quote_column(name: str) -> str:
    if name == "*":
        return "*"
    if "." not in name:
        return quote_ident(name)

    parts = name.split(".")
    if len(parts) != 2:
        raise InvalidIdentifier("invalid column reference", name)
    table, column = (p.strip() for p in parts)
    if column == "*":
        return f"{quote_ident(table)}.*"
    return f"{quote_ident(table)}.{quote_ident(column)}"


def validate_where(text: str) -> None:
    """Check a WHERE body before it is appended after ``WHERE``.

    Patterns are checked on a copy with string literals blanked, so
    ``note = 'a;b (x'`` is fine. Backtick-quoted names stay visible there,
    so a quoted system schema is caught like a bare one. Parenthesis
    balance is checked with every literal blanked. The length limit
    applies to the original text.

    Raises:
        ForbiddenFragmentToken, UnbalancedParens, FragmentTooLong.
    """
    if not text:
        return

    visible = strip_literals(text, keep_identifiers=True)
    for regex, reason in _WHERE_PATTERNS:
        match = regex.search(visible)
        if match:
            raise ForbiddenFragmentToken(f"forbidden pattern detected ({reason})", match.group(0))

    stripped = strip_literals(text)
    if stripped.count("(") != stripped.count(")"):
        raise UnbalancedParens("unbalanced parentheses in WHERE clause")

    if len(text) > MAX_WHERE_LENGTH:
        raise FragmentTooLong(f"WHERE clause too long (max {MAX_WHERE_LENGTH} characters)", str(len(text)))


def build_vector_literal(values: Iterable[float]) -> str:
    """Format a query vector as ``[v1,v2,...]`` for STRING_TO_VECTOR().

    Raises:
        ValidationRejected: If the vector is empty or holds a non-finite value.
    """
    items = []
    for value in values:
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise ValidationRejected("query vector must contain only numbers", repr(value)) from e
        if not math.isfinite(number):
            raise ValidationRejected("query vector must contain only finite numbers", repr(value))
        items.append(repr(number))
    if not items:
        raise ValidationRejected("query_vector is required")
    return "[" + ",".join(items) + "]"


def distance_function(name: str | None) -> str:
    """Map a distance name to the MySQL DISTANCE() metric; unknown names mean cosine."""
    return DISTANCE_FUNCTIONS.get((name or "cosine").strip().lower(), "COSINE")
