"""AST-based SQL validation using sqlglot's MySQL dialect.

First layer of the combined validator. The parser understands SQL structure,
so it catches what a regex cannot: a UNION arm reading ``mysql.user``, a
dangerous function hidden in a JOIN condition or a scalar subquery, or a
second statement after a semicolon that is not inside a literal.

Accepted statement kinds: select, union, parenSelect, show, otherRead
(DESCRIBE / DESC / EXPLAIN) and use. Everything else is rejected.

Usage:
    from mysql_mcp.sql_parser import validate_combined
    kind = validate_combined("SELECT id FROM users LIMIT 10")  # -> "select"
"""

import re

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, SqlglotError
from sqlglot.tokens import TokenType

from mysql_mcp.errors import (
    BlockedPattern,
    DangerousFunction,
    DisallowedStatementKind,
    EmptyInput,
    ForbiddenSchema,
    MultiStatement,
    ParseFailure,
)
from mysql_mcp.sql_guard import validate_sql

DIALECT = "mysql"

DANGEROUS_FUNCTIONS = frozenset(
    {
        # Time-based attacks
        "sleep",
        "benchmark",
        # Locking
        "get_lock",
        "release_lock",
        "is_free_lock",
        "is_used_lock",
        "release_all_locks",
        # File access
        "load_file",
        # UDF command execution
        "sys_eval",
        "sys_exec",
    }
)

FORBIDDEN_SCHEMAS = frozenset({"mysql", "information_schema", "performance_schema", "sys"})

# Nodes that modify data or server state, rejected wherever they appear.
_WRITE_NODES = (
    exp.Insert,
    exp.Update,
    exp.Delete,
    exp.Create,
    exp.Drop,
    exp.Alter,
    exp.TruncateTable,
    exp.Set,
    exp.Command,
)

_SELECT_LIKE = (exp.Select, exp.Union, exp.Subquery)

_LEADING_KEYWORD = re.compile(r"^\s*([A-Za-z]+)")

# EXPLAIN [ANALYZE] [EXTENDED] [PARTITIONS] [FORMAT=x] <query>, DESCRIBE <table>
_OTHER_READ = re.compile(
    r"^\s*(?:EXPLAIN|DESCRIBE|DESC)\b"
    r"""(?:\s+(?:ANALYZE|EXTENDED|PARTITIONS)\b|\s+FORMAT\s*=\s*(?:\w+|'[^']*'|"[^"]*"))*"""
    r"\s*(?P<rest>.*)$",
    re.IGNORECASE | re.DOTALL,
)
_IDENT = r"(?:`(?:[^`]|``)+`|[A-Za-z0-9_$]+)"
# tbl, db.tbl, optionally followed by a column name or a quoted wildcard
_TABLE_REF = re.compile(
    rf"^(?P<first>{_IDENT})(?:\s*\.\s*(?P<second>{_IDENT}))?(?:\s+(?:{_IDENT}|'[^']*'))?\s*$"
)
_QUERY_KEYWORDS = frozenset({"SELECT", "WITH", "TABLE", "VALUES", "INSERT", "UPDATE", "DELETE", "REPLACE", "FOR"})


def split_statements(sql: str) -> list[str]:
    """Split on semicolon tokens; semicolons in literals or comments never split.

    Raises:
        ParseFailure: If the text cannot be tokenized (e.g. unterminated string).
    """
    try:
        tokens = sqlglot.tokenize(sql, read=DIALECT)
    except SqlglotError as e:
        raise ParseFailure("failed to parse SQL statement", _describe(e)) from e

    pieces: list[str] = []
    start = end = None
    for token in tokens:
        if token.token_type == TokenType.SEMICOLON:
            if start is not None:
                pieces.append(sql[start : end + 1].strip())
            start = None
            continue
        if start is None:
            start = token.start
        end = token.end
    if start is not None:
        pieces.append(sql[start : end + 1].strip())
    return [p for p in pieces if p]


def validate_with_parser(sql: str) -> str:
    """Validate a single read-only statement structurally.

    Returns:
        The accepted statement kind.

    Raises:
        EmptyInput, MultiStatement, ParseFailure, DisallowedStatementKind,
        DangerousFunction, ForbiddenSchema.
    """
    text = sql.strip()
    if not text:
        raise EmptyInput("empty query")

    statements = split_statements(text)
    if len(statements) > 1:
        raise MultiStatement("multi-statement queries are not allowed", f"{len(statements)} statements")
    if not statements:
        raise EmptyInput("empty query")
    statement = statements[0]

    keyword = _leading_keyword(statement)
    if keyword == "SHOW":
        return "show"
    if keyword in ("EXPLAIN", "DESCRIBE", "DESC"):
        _validate_other_read(statement)
        return "otherRead"

    return _validate_statement(_parse_single(statement))


def statement_kind(sql: str) -> str:
    """Kind name of an accepted statement; rejects like validate_with_parser()."""
    return validate_with_parser(sql)


def validate_combined(sql: str) -> str:
    """Run the AST validator, then the lexical validator.

    Both layers must accept. When the parser only reports a parse failure
    and the lexical layer names a concrete blocked pattern, the lexical
    rejection is raised instead, since it says more about the input.
    """
    try:
        kind = validate_with_parser(sql)
    except ParseFailure as parse_error:
        try:
            validate_sql(sql)
        except BlockedPattern as lexical_error:
            raise lexical_error from parse_error
        except EmptyInput:
            pass
        raise
    validate_sql(sql)
    return kind


def _leading_keyword(statement: str) -> str:
    match = _LEADING_KEYWORD.match(statement)
    return match.group(1).upper() if match else ""


def _describe(error: SqlglotError) -> str:
    if isinstance(error, ParseError) and error.errors:
        return str(error.errors[0].get("description", ""))[:200]
    return str(error)[:200]


def _parse_single(statement: str) -> exp.Expression:
    try:
        parsed = [e for e in sqlglot.parse(statement, read=DIALECT) if e is not None]
    except SqlglotError as e:
        raise ParseFailure("failed to parse SQL statement", _describe(e)) from e
    if len(parsed) != 1:
        raise ParseFailure("failed to parse SQL statement", f"expected 1 statement, got {len(parsed)}")
    return parsed[0]


def _validate_other_read(statement: str) -> None:
    """DESCRIBE/EXPLAIN of a table is accepted; of a query, the query is validated.

    Anything that is not a plain table reference must parse as a query, so
    an option form this module does not know is rejected rather than waved
    through.
    """
    match = _OTHER_READ.match(statement)
    rest = match.group("rest").strip() if match else ""
    if not rest:
        raise DisallowedStatementKind("EXPLAIN/DESCRIBE needs a table or a query")

    table_ref = _TABLE_REF.match(rest)
    if table_ref and _leading_keyword(rest) not in _QUERY_KEYWORDS:
        schema = table_ref.group("first") if table_ref.group("second") else ""
        if schema.strip("`").lower() in FORBIDDEN_SCHEMAS:
            raise ForbiddenSchema("access to system schema is not allowed", schema.strip("`").lower())
        return

    node = _parse_single(rest)
    if not isinstance(node, _SELECT_LIKE):
        raise DisallowedStatementKind("only queries can be explained", type(node).__name__)
    _validate_query(node)


def _validate_statement(node: exp.Expression) -> str:
    if isinstance(node, exp.Select):
        _validate_query(node)
        return "select"
    if isinstance(node, exp.Union):
        _validate_query(node)
        return "union"
    if isinstance(node, exp.Subquery):
        _validate_query(node)
        return "parenSelect"
    if isinstance(node, (exp.Show, exp.Describe)):
        return "show" if isinstance(node, exp.Show) else "otherRead"
    if isinstance(node, exp.Use):
        return "use"

    if isinstance(node, exp.Insert):
        raise DisallowedStatementKind("INSERT statements are not allowed", "insert")
    if isinstance(node, exp.Update):
        raise DisallowedStatementKind("UPDATE statements are not allowed", "update")
    if isinstance(node, exp.Delete):
        raise DisallowedStatementKind("DELETE statements are not allowed", "delete")
    if isinstance(node, (exp.Create, exp.Drop)):
        kind = str(node.args.get("kind") or "").upper()
        if kind in ("DATABASE", "SCHEMA"):
            raise DisallowedStatementKind("database DDL statements are not allowed", f"{node.key} {kind.lower()}")
        raise DisallowedStatementKind("DDL statements are not allowed", node.key)
    if isinstance(node, (exp.Alter, exp.TruncateTable)):
        raise DisallowedStatementKind("DDL statements are not allowed", node.key)
    if isinstance(node, exp.Set):
        raise DisallowedStatementKind("SET statements are not allowed", "set")
    if isinstance(node, exp.Command):
        raise DisallowedStatementKind("administrative statements are not allowed", node.name.upper())

    raise DisallowedStatementKind("statement type not allowed", type(node).__name__)


def _validate_query(node: exp.Expression) -> None:
    """Check a select, union or parenthesised select and everything nested in it.

    find_all() descends into select lists, WHERE, JOIN ... ON, derived
    tables, CTEs, union arms and scalar subqueries alike, so every nested
    query gets the same treatment as the outer one.
    """
    for subquery in node.find_all(exp.Subquery):
        if not isinstance(subquery.this, _SELECT_LIKE):
            raise DisallowedStatementKind("unsupported select statement type", type(subquery.this).__name__)

    write = node.find(*_WRITE_NODES)
    if write is not None:
        raise DisallowedStatementKind("statement type not allowed inside a query", write.key)

    for func in node.find_all(exp.Func):
        name = _function_name(func)
        if name in DANGEROUS_FUNCTIONS:
            raise DangerousFunction("dangerous function not allowed", name)

    for table in node.find_all(exp.Table):
        schema = table.db.lower()
        if schema in FORBIDDEN_SCHEMAS:
            raise ForbiddenSchema("access to system schema is not allowed", schema)


def _function_name(func: exp.Func) -> str:
    if isinstance(func, exp.Anonymous):
        return func.name.lower()
    return func.sql_name().lower()
