"""Read-only query execution tools.

run_query() is the only tool that sends caller-written SQL to the server.
The text must pass validate_combined() (sqlglot AST checks, then the
lexical guard) before a connection is leased. Results are capped at
MYSQL_MAX_ROWS and flagged when truncated.
"""

from mysql_mcp.config import settings
from mysql_mcp.errors import DisallowedStatementKind, EmptyInput, ValidationRejected
from mysql_mcp.identifiers import quote_ident, truncate_query
from mysql_mcp.logging_config import get_logger
from mysql_mcp.serialization import clamp_max_rows
from mysql_mcp.sql_parser import validate_combined
from mysql_mcp.tools._deps import get_registry, tool_envelope
from mysql_mcp.types import QuerySuccessResult, error_result

logger = get_logger(__name__)

_EXPLAIN_PREFIXES = {
    "traditional": "EXPLAIN",
    "json": "EXPLAIN FORMAT=JSON",
    "tree": "EXPLAIN FORMAT=TREE",
}
_EXPLAINABLE_KINDS = frozenset({"select", "union", "parenSelect"})


@tool_envelope
def run_query(sql: str, database: str | None = None, max_rows: int | None = None) -> dict:
    """Execute a read-only SQL query against the active MySQL connection.

    Only a single SELECT, SHOW, DESCRIBE or EXPLAIN statement is allowed.
    Writes, DDL, administrative commands, comments, file access, lock and
    sleep functions and system schemas are rejected before execution.

    Args:
        sql: The SQL statement to run.
        database: Optional database to switch to (USE) before the query.
        max_rows: Optional row limit, capped at the server maximum.

    Returns:
        Dict with 'status', 'columns', 'rows', 'row_count' and 'truncated'
        on success, or 'error_message' and 'error_kind' if rejected or failed.
    """
    text = (sql or "").strip()
    if not text:
        raise EmptyInput("sql is required")

    try:
        kind = validate_combined(text)
    except ValidationRejected as e:
        logger.warning("run_query_rejected", kind=e.kind, reason=str(e), sql_preview=truncate_query(text))
        return error_result(e)

    database = (database or "").strip() or None
    if database:
        quote_ident(database)

    limit = clamp_max_rows(max_rows, settings.mysql_max_rows)
    pool, connection = get_registry().active()

    logger.info(
        "run_query_start",
        connection=connection,
        database=database,
        statement_kind=kind,
        limit=limit,
        sql_preview=truncate_query(text),
    )
    result = pool.query(text, database=database, max_rows=limit)
    logger.info("run_query_complete", row_count=result.row_count, truncated=result.truncated)

    response: QuerySuccessResult = {
        "status": "success",
        "columns": result.columns,
        "rows": result.rows,
        "row_count": result.row_count,
        "truncated": result.truncated,
    }
    if result.truncated:
        response["warning"] = f"Results truncated to {limit} rows. Add more specific filters to see all data."
    return response


@tool_envelope
def explain_query(sql: str, database: str | None = None, format: str = "traditional") -> dict:
    """Show the execution plan of a SELECT query without running it.

    Args:
        sql: The SELECT statement to explain (without the EXPLAIN keyword).
        database: Optional database to switch to before explaining.
        format: Plan format: "traditional", "json" or "tree".

    Returns:
        Dict with 'status' and 'plan' (one dict per plan row).
    """
    text = (sql or "").strip()
    if not text:
        raise EmptyInput("sql is required")

    prefix = _EXPLAIN_PREFIXES.get((format or "traditional").strip().lower())
    if prefix is None:
        raise ValidationRejected("unsupported EXPLAIN format", format)

    try:
        kind = validate_combined(text)
        if kind not in _EXPLAINABLE_KINDS:
            raise DisallowedStatementKind("only SELECT statements can be explained", kind)
    except ValidationRejected as e:
        logger.warning("explain_query_rejected", kind=e.kind, reason=str(e), sql_preview=truncate_query(text))
        return error_result(e)

    database = (database or "").strip() or None
    if database:
        quote_ident(database)

    pool, _ = get_registry().active()
    result = pool.query(f"{prefix} {text}", database=database, max_rows=settings.mysql_max_rows)
    return {"status": "success", "plan": result.as_dicts()}
