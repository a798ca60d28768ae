"""Lexical SQL guard: pattern-based read-only enforcement.

Second layer of the combined validator (see sql_parser.py). It catches
textual amplifiers a permissive parser might let through: file I/O,
comment markers, lock and sleep functions, and statements that must never
be caller-controlled.

Patterns anchored at the start of the statement are matched against the
original text. Unanchored patterns are matched against a copy with string
and identifier literals blanked out, so ``WHERE note = '-- ; UNION'`` is not
mistaken for SQL tokens.
"""

import re
from typing import NamedTuple

from mysql_mcp.errors import BlockedPattern, EmptyInput, MultiStatement, ValidationRejected

_QUOTE_CHARS = frozenset("'\"`")

READ_ONLY_PREFIXES = ("SELECT", "SHOW", "DESCRIBE", "DESC", "EXPLAIN")


def strip_literals(sql: str, keep_identifiers: bool = False) -> str:
    """Blank out the contents of quoted literals, keeping their delimiters.

    The result has the same length as ``sql``. Single quotes, double quotes
    and backticks delimit literals. A doubled delimiter stays inside the
    literal. Backslash escapes the next character in single- and
    double-quoted strings only; backticks have no backslash escape.

    With ``keep_identifiers`` the backticks themselves are blanked and the
    quoted name is kept for pattern checks on schema and table names.
    """
    out = list(sql)
    i, n = 0, len(sql)
    while i < n:
        quote = sql[i]
        i += 1
        if quote not in _QUOTE_CHARS:
            continue
        keep = keep_identifiers and quote == "`"
        if keep:
            out[i - 1] = " "
        while i < n:
            ch = sql[i]
            if ch == "\\" and quote != "`":
                out[i] = " "
                if i + 1 < n:
                    out[i + 1] = " "
                i += 2
                continue
            if ch == quote:
                if i + 1 < n and sql[i + 1] == quote:
                    out[i] = out[i + 1] = " "
                    i += 2
                    continue
                if keep:
                    out[i] = " "
                i += 1
                break
            if not keep:
                out[i] = " "
            i += 1
    return "".join(out)


class _Pattern(NamedTuple):
    label: str
    reason: str
    regex: re.Pattern
    anchored: bool


def _anchored(label: str, reason: str, body: str) -> _Pattern:
    return _Pattern(label, reason, re.compile(r"^\s*" + body, re.IGNORECASE), True)


def _anywhere(label: str, reason: str, body: str) -> _Pattern:
    return _Pattern(label, reason, re.compile(body, re.IGNORECASE), False)


# Order only decides which reason is reported first.
BLOCKED_PATTERNS: tuple[_Pattern, ...] = (
    # File operations
    _anywhere("LOAD_FILE(", "file operation", r"\bLOAD_FILE\s*\("),
    _anywhere("INTO OUTFILE", "file operation", r"\bINTO\s+OUTFILE\b"),
    _anywhere("INTO DUMPFILE", "file operation", r"\bINTO\s+DUMPFILE\b"),
    _anywhere("LOAD DATA", "file operation", r"\bLOAD\s+DATA\b"),
    # DDL
    _anchored("CREATE", "DDL statement", r"CREATE\b"),
    _anchored("ALTER", "DDL statement", r"ALTER\b"),
    _anchored("DROP", "DDL statement", r"DROP\b"),
    _anchored("TRUNCATE", "DDL statement", r"TRUNCATE\b"),
    _anchored("RENAME", "DDL statement", r"RENAME\b"),
    # DML
    _anchored("INSERT", "DML statement", r"INSERT\b"),
    _anchored("UPDATE", "DML statement", r"UPDATE\b"),
    _anchored("DELETE", "DML statement", r"DELETE\b"),
    _anchored("REPLACE", "DML statement", r"REPLACE\b"),
    # Administrative commands
    _anchored("GRANT", "administrative command", r"GRANT\b"),
    _anchored("REVOKE", "administrative command", r"REVOKE\b"),
    _anchored("SET GLOBAL|SESSION|@@", "administrative command", r"SET\s+(?:GLOBAL\b|SESSION\b|@@)"),
    _anchored("FLUSH", "administrative command", r"FLUSH\b"),
    _anchored("RESET", "administrative command", r"RESET\b"),
    _anchored("KILL", "administrative command", r"KILL\b"),
    _anchored("SHUTDOWN", "administrative command", r"SHUTDOWN\b"),
    # Locking
    _anchored("LOCK TABLES", "table locking", r"LOCK\s+TABLES\b"),
    _anchored("UNLOCK TABLES", "table locking", r"UNLOCK\s+TABLES\b"),
    # Transactions
    _anchored("START TRANSACTION", "transaction control", r"START\s+TRANSACTION\b"),
    _anchored("BEGIN", "transaction control", r"BEGIN\b"),
    _anchored("COMMIT", "transaction control", r"COMMIT\b"),
    _anchored("ROLLBACK", "transaction control", r"ROLLBACK\b"),
    _anchored("SAVEPOINT", "transaction control", r"SAVEPOINT\b"),
    # Prepared statements
    _anchored("PREPARE", "prepared statement", r"PREPARE\b"),
    _anchored("EXECUTE", "prepared statement", r"EXECUTE\b"),
    _anchored("DEALLOCATE", "prepared statement", r"DEALLOCATE\b"),
    # Stored procedures
    _anchored("CALL", "stored procedure call", r"CALL\b"),
    # Dangerous functions
    _anywhere("SLEEP(", "dangerous function", r"\bSLEEP\s*\("),
    _anywhere("BENCHMARK(", "dangerous function", r"\bBENCHMARK\s*\("),
    _anywhere("GET_LOCK(", "dangerous function", r"\bGET_LOCK\s*\("),
    _anywhere("RELEASE_LOCK(", "dangerous function", r"\bRELEASE_LOCK\s*\("),
    _anywhere("IS_FREE_LOCK(", "dangerous function", r"\bIS_FREE_LOCK\s*\("),
    _anywhere("IS_USED_LOCK(", "dangerous function", r"\bIS_USED_LOCK\s*\("),
    # Comments can hide the tail of a statement
    _anywhere("--", "SQL comment", r"--"),
    _anywhere("/*", "SQL comment", r"/\*"),
    _anywhere("#", "SQL comment", r"#"),
)


def validate_sql(sql: str) -> None:
    """Reject SQL that is not a single read-only statement.

    Raises:
        EmptyInput: If the text is blank.
        MultiStatement: If a semicolon remains outside literals after
            dropping one trailing semicolon.
        BlockedPattern: If a blocked pattern matches, or the statement does
            not start with SELECT, SHOW, DESCRIBE, DESC or EXPLAIN.
    """
    text = sql.strip()
    if not text:
        raise EmptyInput("empty query")

    stripped = strip_literals(text)

    body = stripped.rstrip()
    if body.endswith(";"):
        body = body[:-1]
    if ";" in body:
        raise MultiStatement("multi-statement queries are not allowed", ";")

    for pattern in BLOCKED_PATTERNS:
        haystack = text if pattern.anchored else stripped
        if pattern.regex.search(haystack):
            raise BlockedPattern(f"query contains blocked pattern ({pattern.reason})", pattern.label)

    if not text.upper().startswith(READ_ONLY_PREFIXES):
        raise BlockedPattern("only SELECT, SHOW, DESCRIBE, and EXPLAIN queries are allowed")


def is_read_only_sql(sql: str) -> bool:
    """Convenience wrapper: True when validate_sql() accepts the text."""
    try:
        validate_sql(sql)
    except ValidationRejected:
        return False
    return True


def check_sql(sql: str) -> tuple[bool, str]:
    """Return (is_blocked, reason) for a quick pre-screen."""
    try:
        validate_sql(sql)
    except ValidationRejected as e:
        return True, str(e)
    return False, ""
