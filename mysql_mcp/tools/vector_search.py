"""Vector similarity tools for MySQL 9 VECTOR columns.

vector_search() composes its statement from fixed parts only: quoted
identifiers, a validated projection (validate_select_columns), a validated
WHERE body (validate_where) and a vector literal built from numbers. The
composed statement does not pass through validate_combined(); every piece
of caller text has been through its own fragment validator instead.

Example of the generated SQL:
    SELECT `id`, `title`, DISTANCE(`embedding`, STRING_TO_VECTOR('[0.1,0.2]'), 'COSINE') AS _distance
    FROM `shop`.`products` WHERE category = 'books'
    ORDER BY _distance ASC LIMIT 10
"""

import re

from mysql_mcp.config import settings
from mysql_mcp.errors import DatabaseConnectionError, EmptyInput
from mysql_mcp.fragments import (
    build_vector_literal,
    distance_function,
    validate_select_columns,
    validate_where,
)
from mysql_mcp.identifiers import quote_ident, quote_qualified, truncate_query
from mysql_mcp.logging_config import get_logger
from mysql_mcp.tools._deps import get_registry, tool_envelope
from mysql_mcp.types import VectorColumnInfo, VectorMatch

logger = get_logger(__name__)

DEFAULT_LIMIT = 10
DISTANCE_COLUMN = "_distance"
MIN_VECTOR_MAJOR_VERSION = 9

_VECTOR_DIMENSIONS_RE = re.compile(r"vector\((\d+)\)", re.IGNORECASE)

# Bound query: the literal percent sign is doubled for PyMySQL.
_VECTOR_COLUMNS_SQL = """
SELECT TABLE_NAME, COLUMN_NAME, COLUMN_TYPE
FROM information_schema.COLUMNS
WHERE TABLE_SCHEMA = %s AND COLUMN_TYPE LIKE 'vector%%'{table_filter}
ORDER BY TABLE_NAME, ORDINAL_POSITION
"""

_VECTOR_INDEX_SQL = """
SELECT INDEX_NAME, INDEX_TYPE
FROM information_schema.STATISTICS
WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s AND COLUMN_NAME = %s
"""


def build_search_sql(
    database: str,
    table: str,
    column: str,
    query_vector: list[float],
    limit: int,
    select: str = "",
    where: str = "",
    distance_func: str = "cosine",
) -> str:
    """Compose the vector search statement; raises on any invalid fragment."""
    columns = validate_select_columns(select)
    validate_where(where)
    vector = build_vector_literal(query_vector)
    metric = distance_function(distance_func)

    sql = (
        f"SELECT {columns}, "
        f"DISTANCE({quote_ident(column)}, STRING_TO_VECTOR('{vector}'), '{metric}') AS {DISTANCE_COLUMN} "
        f"FROM {quote_qualified(database, table)}"
    )
    if where:
        sql += f" WHERE {where}"
    sql += f" ORDER BY {DISTANCE_COLUMN} ASC LIMIT {int(limit)}"
    return sql


def _clamp_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        limit = DEFAULT_LIMIT
    return min(limit, settings.mysql_max_rows)


@tool_envelope
def vector_search(
    database: str,
    table: str,
    column: str,
    query_vector: list[float],
    limit: int = DEFAULT_LIMIT,
    select: str = "",
    where: str = "",
    distance_func: str = "cosine",
) -> dict:
    """Find the rows whose VECTOR column is closest to a query vector (MySQL 9.0+).

    Args:
        database: Database name.
        table: Table holding the vectors.
        column: VECTOR column to compare against.
        query_vector: The query embedding as a list of numbers.
        limit: Maximum matches (default 10, capped at the server maximum).
        select: Optional comma-separated columns to return, e.g. "id, title AS name".
        where: Optional filter appended after WHERE, e.g. "category = 'books'".
        distance_func: "cosine" (default), "euclidean"/"l2" or "dot"/"inner_product".

    Returns:
        Dict with 'status', 'results' (each with 'distance' and 'data') and 'count'.
    """
    for name, value in (("database", database), ("table", table), ("column", column)):
        if not value or not value.strip():
            raise EmptyInput(f"{name} is required")
    if not query_vector:
        raise EmptyInput("query_vector is required")

    limit = _clamp_limit(limit)
    sql = build_search_sql(
        database,
        table,
        column,
        query_vector,
        limit,
        select=select,
        where=where,
        distance_func=distance_func,
    )

    pool, _ = get_registry().active()
    logger.info("vector_search_start", table=f"{database}.{table}", sql_preview=truncate_query(sql))
    try:
        result = pool.query(sql, max_rows=limit)
    except DatabaseConnectionError as e:
        if "DISTANCE" in e.detail or "STRING_TO_VECTOR" in e.detail:
            raise DatabaseConnectionError("vector search failed (MySQL 9.0+ required)", e.detail) from e
        raise

    matches: list[VectorMatch] = []
    for row in result.as_dicts():
        distance = row.pop(DISTANCE_COLUMN, None)
        matches.append({"distance": distance, "data": row})

    logger.info("vector_search_complete", count=len(matches))
    return {"status": "success", "results": matches, "count": len(matches)}


def is_vector_supported(version: str) -> bool:
    """True for MySQL 9.0 and later; ``version`` is the VERSION() string."""
    major = version.split(".", 1)[0]
    return major.isdigit() and int(major) >= MIN_VECTOR_MAJOR_VERSION


@tool_envelope
def vector_info(database: str, table: str | None = None) -> dict:
    """Report whether the server supports VECTOR and list the vector columns of a database.

    Args:
        database: Database name.
        table: Optional table to restrict to.
    """
    if not database or not database.strip():
        raise EmptyInput("database is required")

    pool, _ = get_registry().active()
    version_row = pool.query_row("SELECT VERSION()")
    version = str(version_row[0]) if version_row else ""

    columns: list[VectorColumnInfo] = []
    info = {
        "status": "success",
        "vector_support": is_vector_supported(version),
        "mysql_version": version,
        "columns": columns,
    }
    if not info["vector_support"]:
        return info

    if table:
        sql = _VECTOR_COLUMNS_SQL.format(table_filter=" AND TABLE_NAME = %s")
        params = (database, table)
    else:
        sql = _VECTOR_COLUMNS_SQL.format(table_filter="")
        params = (database,)

    for table_name, column_name, column_type in pool.query(sql, params=params).rows:
        match = _VECTOR_DIMENSIONS_RE.search(str(column_type))
        index = pool.query_row(_VECTOR_INDEX_SQL, params=(database, table_name, column_name))
        columns.append(
            {
                "table": table_name,
                "column": column_name,
                "dimensions": int(match.group(1)) if match else 0,
                "column_type": column_type,
                "index_name": index[0] if index else "",
                "index_type": index[1] if index else "",
            }
        )
    return info
